"""Orchestrator for the offline ingestion pipeline.

Pipeline stages: **fetch -> clean -> chunk -> embed -> batch-upsert**.

The :class:`IngestionService` coordinates its collaborators (article
provider, cleaner, chunker, embedding provider, vector store) without any
of them knowing about each other.  Every ``ingest_*`` entry point converges
on :meth:`IngestionService.ingest_documents`.

Partial success is the steady state.  A source that cannot be fetched, a
chunk whose embedding comes back empty and an upsert batch the store
rejects are each logged, counted in the :class:`IngestionReport` and
skipped; the run continues with the next unit.

Throughput toward the embedding API and the vector store is governed by
two :class:`~sitechat.utils.concurrency.AsyncRateLimiter` instances (one
per collaborator) rather than fixed sleeps.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, NamedTuple

import structlog

from sitechat.interfaces.vector_store_provider import MAX_UPSERT_BATCH
from sitechat.models.rag import (
    CorpusStats,
    Document,
    IngestionReport,
    VectorMatch,
    VectorRecord,
    parse_record_timestamp,
)
from sitechat.services.ingestion.chunker import TextChunker
from sitechat.services.ingestion.cleaner import TextCleaner
from sitechat.utils.errors import UpstreamError

if TYPE_CHECKING:
    from sitechat.interfaces.article_provider import IArticleProvider
    from sitechat.interfaces.embedding_provider import IEmbeddingProvider
    from sitechat.interfaces.vector_store_provider import IVectorStoreProvider
    from sitechat.utils.concurrency import AsyncRateLimiter

logger = structlog.get_logger(logger_name=__name__)

_TEXT_SUFFIXES = (".md", ".markdown", ".txt")


class UpsertOutcome(NamedTuple):
    """Result of :meth:`IngestionService.upsert_records`."""

    upserted: int
    batches: int
    failed_batches: int


@dataclass
class _RunCounters:
    sources_total: int = 0
    sources_failed: int = 0
    chunks_created: int = 0
    chunks_embedded: int = 0
    embedding_failures: int = 0
    failed_sources: list[str] = field(default_factory=list)

    def fail_source(self, source: str) -> None:
        self.sources_failed += 1
        self.failed_sources.append(source)


class IngestionService:
    """Orchestrates fetch -> clean -> chunk -> embed -> batch-upsert.

    Parameters
    ----------
    cleaner:
        Strips links and navigation lines from raw page text.
    chunker:
        Packs cleaned text into bounded chunks.
    embedding_provider:
        Embeds one chunk per call; an empty vector marks a failed chunk.
    vector_store:
        Namespace-bound store receiving the records.
    article_provider:
        Fetches pages for :meth:`ingest_urls`.  Optional for callers that
        only ingest documents or files.
    category:
        Corpus category written into every record's metadata.
    upsert_batch_size:
        Records per upsert call, capped at the store's limit of 100.
    embed_limiter, upsert_limiter:
        Rate limiters acquired before each embedding call and each upsert
        batch.  ``None`` disables pacing (tests).
    """

    def __init__(
        self,
        cleaner: TextCleaner,
        chunker: TextChunker,
        embedding_provider: IEmbeddingProvider,
        vector_store: IVectorStoreProvider,
        article_provider: IArticleProvider | None = None,
        *,
        category: str = "",
        upsert_batch_size: int = MAX_UPSERT_BATCH,
        embed_limiter: AsyncRateLimiter | None = None,
        upsert_limiter: AsyncRateLimiter | None = None,
    ) -> None:
        self._cleaner = cleaner
        self._chunker = chunker
        self._embedding_provider = embedding_provider
        self._vector_store = vector_store
        self._article_provider = article_provider
        self._category = category
        self._batch_size = max(1, min(upsert_batch_size, MAX_UPSERT_BATCH))
        self._embed_limiter = embed_limiter
        self._upsert_limiter = upsert_limiter

    @property
    def batch_size(self) -> int:
        return self._batch_size

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ingest_urls(self, urls: Iterable[str]) -> IngestionReport:
        """Fetch each URL through the article provider, then ingest the pages.

        Requires that ``article_provider`` was given at construction time.
        """
        if self._article_provider is None:
            raise ValueError("ingest_urls requires an article_provider")

        start = time.monotonic()
        counters = _RunCounters()
        documents: list[Document] = []
        for url in urls:
            counters.sources_total += 1
            logger.info("scraping_source", url=url)
            try:
                article = await self._article_provider.extract_content(url)
            except UpstreamError as exc:
                logger.error("scrape_failed", url=url, error=str(exc))
                counters.fail_source(url)
                continue
            if article is None or not article.text.strip():
                logger.error("scrape_empty", url=url)
                counters.fail_source(url)
                continue
            documents.append(Document(source_url=url, raw_text=article.text))

        return await self._run(documents, counters, start)

    async def ingest_files(self, paths: Iterable[str | Path]) -> IngestionReport:
        """Ingest local markdown / text files.

        Directories are expanded to the ``.md``, ``.markdown`` and ``.txt``
        files directly inside them, in name order.  Each file's
        ``source_url`` is its ``file://`` URI.
        """
        start = time.monotonic()
        counters = _RunCounters()
        documents: list[Document] = []
        for path in _expand_paths(paths):
            counters.sources_total += 1
            source = path.resolve().as_uri()
            try:
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                logger.error("file_read_failed", path=str(path), error=str(exc))
                counters.fail_source(source)
                continue
            if not text.strip():
                logger.warning("file_empty", path=str(path))
                counters.fail_source(source)
                continue
            documents.append(Document(source_url=source, raw_text=text))

        return await self._run(documents, counters, start)

    async def ingest_documents(self, documents: Iterable[Document]) -> IngestionReport:
        """Clean, chunk, embed and upsert already-fetched documents."""
        start = time.monotonic()
        counters = _RunCounters()
        docs = list(documents)
        counters.sources_total = len(docs)
        return await self._run(docs, counters, start)

    async def upsert_records(self, records: list[VectorRecord]) -> UpsertOutcome:
        """Submit *records* in fixed-size batches, sequentially.

        A batch the store rejects is logged and counted; later batches are
        still submitted.  250 records with the default size go out as
        100, 100 and 50.
        """
        if not records:
            return UpsertOutcome(upserted=0, batches=0, failed_batches=0)

        total_batches = (len(records) + self._batch_size - 1) // self._batch_size
        upserted = 0
        failed = 0
        for number, offset in enumerate(range(0, len(records), self._batch_size), start=1):
            batch = records[offset : offset + self._batch_size]
            if self._upsert_limiter is not None:
                await self._upsert_limiter.acquire()
            try:
                upserted += await self._vector_store.upsert(batch)
            except (UpstreamError, ValueError) as exc:
                failed += 1
                logger.error(
                    "upsert_batch_failed",
                    batch=number,
                    total_batches=total_batches,
                    size=len(batch),
                    error=str(exc),
                )
                continue
            logger.info(
                "upsert_batch_complete",
                batch=number,
                total_batches=total_batches,
                size=len(batch),
            )

        return UpsertOutcome(upserted=upserted, batches=total_batches, failed_batches=failed)

    async def get_corpus_stats(self) -> CorpusStats:
        """Return the record count of the store's namespace."""
        return await self._vector_store.get_stats()

    async def list_recent_records(self, limit: int = 100) -> list[VectorMatch]:
        """Return up to *limit* stored records, newest first by id timestamp.

        Records whose id carries no timestamp sort last.
        """
        matches = await self._vector_store.list_records(limit=limit)
        return sorted(
            matches,
            key=lambda m: parse_record_timestamp(m.id) or -1,
            reverse=True,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _run(
        self,
        documents: list[Document],
        counters: _RunCounters,
        start: float,
    ) -> IngestionReport:
        records: list[VectorRecord] = []
        for document in documents:
            records.extend(await self._embed_document(document, counters))

        if records:
            logger.info(
                "upserting_records",
                records=len(records),
                namespace=self._vector_store.get_namespace(),
            )
            outcome = await self.upsert_records(records)
        else:
            logger.error("no_records_created", sources=counters.sources_total)
            outcome = UpsertOutcome(upserted=0, batches=0, failed_batches=0)

        report = IngestionReport(
            sources_total=counters.sources_total,
            sources_failed=counters.sources_failed,
            chunks_created=counters.chunks_created,
            chunks_embedded=counters.chunks_embedded,
            embedding_failures=counters.embedding_failures,
            records_upserted=outcome.upserted,
            batches_total=outcome.batches,
            batches_failed=outcome.failed_batches,
            elapsed_seconds=round(time.monotonic() - start, 2),
            failed_sources=counters.failed_sources,
        )
        logger.info(
            "ingestion_complete",
            sources=report.sources_total,
            sources_failed=report.sources_failed,
            chunks=report.chunks_created,
            embedded=report.chunks_embedded,
            upserted=report.records_upserted,
            batches_failed=report.batches_failed,
            time_s=report.elapsed_seconds,
        )
        return report

    async def _embed_document(
        self, document: Document, counters: _RunCounters
    ) -> list[VectorRecord]:
        cleaned = self._cleaner.clean(document.raw_text)
        chunks = self._chunker.chunk_document(document, text=cleaned)
        counters.chunks_created += len(chunks)
        logger.info("document_chunked", url=document.source_url, chunks=len(chunks))

        records: list[VectorRecord] = []
        for chunk in chunks:
            if self._embed_limiter is not None:
                await self._embed_limiter.acquire()
            try:
                vector = await self._embedding_provider.embed_single(chunk.text)
            except UpstreamError as exc:
                logger.error(
                    "chunk_embedding_error",
                    url=document.source_url,
                    chunk_index=chunk.index,
                    error=str(exc),
                )
                vector = []
            if not vector:
                counters.embedding_failures += 1
                logger.error(
                    "chunk_embedding_empty",
                    url=document.source_url,
                    chunk_index=chunk.index,
                )
                continue

            records.append(VectorRecord.from_chunk(chunk, vector, category=self._category))
            counters.chunks_embedded += 1
            logger.debug(
                "chunk_embedded",
                url=document.source_url,
                chunk=f"{chunk.index + 1}/{chunk.total_chunks}",
            )
        return records


def _expand_paths(paths: Iterable[str | Path]) -> list[Path]:
    expanded: list[Path] = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            expanded.extend(
                sorted(p for p in path.iterdir() if p.is_file() and p.suffix.lower() in _TEXT_SUFFIXES)
            )
        else:
            expanded.append(path)
    return expanded
