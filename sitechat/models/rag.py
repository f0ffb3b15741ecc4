"""RAG data models: documents, chunks, vector records and retrieval results.

Pydantic v2 models with frozen config.  The lifecycle of each type:

    Document      scraped page; lives only for one ingestion run
    Chunk         bounded text segment cut from a Document
    VectorRecord  Chunk + embedding; owned by the vector store once upserted
    VectorMatch   one hit returned by a vector-store query
    RetrievalResult  ordered (text, score) pairs handed to prompt assembly

The vector-store metadata keys (``chunk_text``, ``url``, ``chunk_index``,
``total_chunks``, ``scraped_at``, ``category``) are shared by every store
provider so a corpus written by one ingestion run can be read back by the
query path regardless of backend.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field

_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def make_record_id(source_url: str, index: int, timestamp_ms: int) -> str:
    """Build a record id from source URL, chunk index and wall-clock millis.

    Re-ingesting the same page later yields new ids (append-only corpus).
    """
    return f"{source_url}-chunk-{index}-{timestamp_ms}"


def parse_record_timestamp(record_id: str) -> int | None:
    """Return the millisecond timestamp suffix of a record id, if present."""
    tail = record_id.rsplit("-", 1)[-1]
    return int(tail) if tail.isdigit() else None


class Document(BaseModel):
    """A scraped page awaiting cleaning and chunking."""

    model_config = ConfigDict(frozen=True)

    source_url: str = Field(description="URL (or file URI) the text came from.")
    raw_text: str = Field(description="Unprocessed page text, usually markdown.")


class Chunk(BaseModel):
    """A bounded text segment derived from a :class:`Document`.

    ``len(text)`` never exceeds the chunker's ``max_size`` unless the chunk
    is a single whitespace-free token longer than the limit.
    """

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="The chunk's textual content.")
    index: int = Field(ge=0, description="Zero-based position within the document.")
    total_chunks: int = Field(ge=1, description="Number of chunks cut from the document.")
    source_url: str = Field(description="URL of the parent document.")
    created_at: datetime = Field(description="When the chunk was produced (UTC).")

    def to_metadata(self, category: str = "") -> dict[str, Any]:
        """Serialise into flat vector-store metadata."""
        return {
            "chunk_text": self.text,
            "url": self.source_url,
            "chunk_index": self.index,
            "total_chunks": self.total_chunks,
            "scraped_at": self.created_at.isoformat(),
            "category": category,
        }

    @classmethod
    def from_metadata(cls, metadata: Mapping[str, Any], text: str | None = None) -> Chunk:
        """Rebuild a chunk from store metadata.

        Numeric fields may come back as floats (Pinecone stores numbers as
        doubles).  *text* overrides ``chunk_text`` for stores that keep the
        document body outside the metadata.
        """
        scraped_at = metadata.get("scraped_at")
        try:
            created_at = datetime.fromisoformat(str(scraped_at)) if scraped_at else _EPOCH
        except ValueError:
            created_at = _EPOCH
        total = int(metadata.get("total_chunks", 1) or 1)
        return cls(
            text=text if text is not None else str(metadata.get("chunk_text", "")),
            index=int(metadata.get("chunk_index", 0) or 0),
            total_chunks=max(total, 1),
            source_url=str(metadata.get("url", "")),
            created_at=created_at,
        )


class VectorRecord(BaseModel):
    """The persisted unit in the vector store."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique id: source URL + chunk index + timestamp.")
    values: list[float] = Field(description="Embedding vector of the store's dimension.")
    metadata: Chunk
    category: str = Field(default="", description="Corpus category tag stored with the record.")

    @classmethod
    def from_chunk(
        cls,
        chunk: Chunk,
        values: list[float],
        *,
        category: str = "",
        timestamp_ms: int | None = None,
    ) -> VectorRecord:
        if timestamp_ms is None:
            timestamp_ms = int(datetime.now(tz=timezone.utc).timestamp() * 1000)
        return cls(
            id=make_record_id(chunk.source_url, chunk.index, timestamp_ms),
            values=values,
            metadata=chunk,
            category=category,
        )

    def metadata_dict(self) -> dict[str, Any]:
        return self.metadata.to_metadata(category=self.category)


class VectorMatch(BaseModel):
    """One nearest-neighbour hit from a vector-store query."""

    model_config = ConfigDict(frozen=True)

    id: str
    score: float = Field(description="Similarity score; higher is closer.")
    chunk: Chunk | None = Field(default=None, description="Present when metadata was requested.")
    values: list[float] | None = Field(
        default=None, description="Only present when values were requested."
    )


class RetrievedPassage(BaseModel):
    """A chunk text and its similarity to the query."""

    model_config = ConfigDict(frozen=True)

    text: str
    score: float


class RetrievalResult(BaseModel):
    """Passages for one query, in the order the store ranked them."""

    model_config = ConfigDict(frozen=True)

    query: str
    passages: list[RetrievedPassage] = Field(default_factory=list)

    @property
    def context(self) -> str:
        """Passage texts joined by a blank line; empty when nothing matched."""
        return "\n\n".join(p.text for p in self.passages)

    def __len__(self) -> int:
        return len(self.passages)


class IngestionReport(BaseModel):
    """Counts for one ingestion run.

    Partial success is the normal outcome: a run "completes" even when
    some sources, chunks or batches failed, and the counts say how many.
    """

    model_config = ConfigDict(frozen=True)

    sources_total: int = Field(default=0, ge=0)
    sources_failed: int = Field(default=0, ge=0)
    chunks_created: int = Field(default=0, ge=0)
    chunks_embedded: int = Field(default=0, ge=0)
    embedding_failures: int = Field(default=0, ge=0)
    records_upserted: int = Field(default=0, ge=0)
    batches_total: int = Field(default=0, ge=0)
    batches_failed: int = Field(default=0, ge=0)
    elapsed_seconds: float = Field(default=0.0, ge=0.0)
    failed_sources: list[str] = Field(default_factory=list)


class CorpusStats(BaseModel):
    """Size of one vector-store namespace."""

    model_config = ConfigDict(frozen=True)

    provider: str
    namespace: str
    total_records: int = Field(default=0, ge=0)
