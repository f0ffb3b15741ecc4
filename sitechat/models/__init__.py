"""sitechat domain models: re-exports all public model classes.

Two submodules split by pipeline side:
    - rag.py - ingestion and retrieval: documents, chunks, vector records
    - chat.py - query path: chat messages, completion requests, SSE events
"""

from __future__ import annotations

from sitechat.models.chat import (
    SSE_DONE_FRAME,
    ChatMessage,
    CompletionContent,
    CompletionRequest,
    Role,
    StreamEvent,
    decode_completion_content,
)
from sitechat.models.rag import (
    Chunk,
    CorpusStats,
    Document,
    IngestionReport,
    RetrievalResult,
    RetrievedPassage,
    VectorMatch,
    VectorRecord,
    make_record_id,
    parse_record_timestamp,
)

__all__ = [
    "SSE_DONE_FRAME",
    "ChatMessage",
    "Chunk",
    "CompletionContent",
    "CompletionRequest",
    "CorpusStats",
    "Document",
    "IngestionReport",
    "RetrievalResult",
    "RetrievedPassage",
    "Role",
    "StreamEvent",
    "VectorMatch",
    "VectorRecord",
    "decode_completion_content",
    "make_record_id",
    "parse_record_timestamp",
]
