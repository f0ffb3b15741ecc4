"""Offline ingestion: clean, chunk, embed and batch-upsert scraped pages."""

from sitechat.services.ingestion.chunker import TextChunker, split_sentences
from sitechat.services.ingestion.cleaner import TextCleaner, clean, remove_links
from sitechat.services.ingestion.ingestion_service import IngestionService, UpsertOutcome

__all__ = [
    "IngestionService",
    "TextChunker",
    "TextCleaner",
    "UpsertOutcome",
    "clean",
    "remove_links",
    "split_sentences",
]
