"""Shared pytest fixtures for the sitechat test suite."""

from __future__ import annotations

import hashlib
import math
import struct
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, AsyncIterator

import pytest
import structlog

from sitechat.interfaces.article_provider import ArticleContent, IArticleProvider
from sitechat.interfaces.embedding_provider import IEmbeddingProvider
from sitechat.interfaces.llm_provider import ILLMProvider
from sitechat.interfaces.vector_store_provider import MAX_UPSERT_BATCH, IVectorStoreProvider
from sitechat.models.chat import CompletionRequest
from sitechat.models.rag import Chunk, CorpusStats, VectorMatch, VectorRecord
from sitechat.utils.errors import LLMError, RAGError, ScrapeError

# Uncached loggers: each event resolves sys.stdout at call time, so pytest
# capture fixtures never leave a logger bound to a closed stream.
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.dev.ConsoleRenderer(colors=False),
    ],
    logger_factory=structlog.PrintLoggerFactory(),
    cache_logger_on_first_use=False,
)

# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------

SAMPLE_PAGE = (
    "[Home](https://www.aven.com/)\n"
    "- Card\n"
    "- [Support](https://www.aven.com/support)\n"
    "\n"
    "# What is a HELOC card?\n"
    "\n"
    "A home equity line of credit lets you borrow against your home. "
    "The Aven card turns that line into a credit card! "
    "Rates are variable. See https://www.aven.com/disclosures for details.\n"
    "\n"
    "   \n"
    "\n"
    "\n"
    "Who We Are\n"
    "Aven was founded to make home equity simple?\n"
)


def make_completion(content: str = "Aven offers a HELOC card.") -> dict[str, Any]:
    """Return an OpenAI-shaped blocking chat-completion payload."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "model": "test-model",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
    }


def make_fragment(text: str) -> dict[str, Any]:
    """Return an OpenAI-shaped streaming chunk carrying *text*."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion.chunk",
        "choices": [{"index": 0, "delta": {"content": text}, "finish_reason": None}],
    }


def make_chunk(text: str = "chunk", index: int = 0, url: str = "https://example.com/a") -> Chunk:
    return Chunk(
        text=text,
        index=index,
        total_chunks=max(index + 1, 1),
        source_url=url,
        created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def sample_page() -> str:
    return SAMPLE_PAGE


# ---------------------------------------------------------------------------
# Embedding
# ---------------------------------------------------------------------------

_EMBEDDING_DIM = 16


def _hash_to_vector(text: str, dim: int = _EMBEDDING_DIM) -> list[float]:
    """Deterministic unit vector derived from a SHA-256 of *text*."""
    raw = hashlib.sha256(text.encode("utf-8")).digest()
    while len(raw) < dim * 4:
        raw += hashlib.sha256(raw).digest()
    values = [
        v if math.isfinite(v) else 0.0 for v in struct.unpack(f"<{dim}f", raw[: dim * 4])
    ]
    # squash into [-1, 1]
    values = [math.tanh(v) for v in values]
    magnitude = max(sum(v * v for v in values) ** 0.5, 1e-10)
    return [v / magnitude for v in values]


class MockEmbeddingProvider(IEmbeddingProvider):
    """In-memory deterministic embedding provider.

    Any text containing one of ``fail_markers`` comes back as an empty
    vector, the same way a real provider reports a failed embedding.
    """

    def __init__(self, fail_markers: set[str] | None = None) -> None:
        self.fail_markers = set(fail_markers or ())
        self.calls: list[str] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        return [await self.embed_single(t) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        self.calls.append(text)
        if any(marker in text for marker in self.fail_markers):
            return []
        return _hash_to_vector(text)

    def get_dimension(self) -> int:
        return _EMBEDDING_DIM

    def get_provider_name(self) -> str:
        return "mock-embedding"

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Vector store
# ---------------------------------------------------------------------------


class MockVectorStore(IVectorStoreProvider):
    """In-memory vector store keyed by record id.

    ``fail_batches`` holds 1-based upsert call numbers that raise
    :class:`RAGError`.  Every call's size and every query's arguments are
    recorded for assertions.
    """

    def __init__(self, namespace: str = "test", fail_batches: set[int] | None = None) -> None:
        self._namespace = namespace
        self._records: dict[str, VectorRecord] = {}
        self.fail_batches = set(fail_batches or ())
        self.upsert_sizes: list[int] = []
        self.query_calls: list[dict[str, Any]] = []
        self.stats_error: Exception | None = None

    async def upsert(self, records: list[VectorRecord]) -> int:
        if len(records) > MAX_UPSERT_BATCH:
            raise ValueError(f"batch of {len(records)} exceeds {MAX_UPSERT_BATCH}")
        self.upsert_sizes.append(len(records))
        if len(self.upsert_sizes) in self.fail_batches:
            raise RAGError(message="batch rejected", provider_name="mock-store")
        for record in records:
            self._records[record.id] = record
        return len(records)

    async def query(
        self,
        vector: list[float],
        top_k: int = 30,
        include_metadata: bool = True,
        include_values: bool = False,
    ) -> list[VectorMatch]:
        self.query_calls.append(
            {
                "vector": vector,
                "top_k": top_k,
                "include_metadata": include_metadata,
                "include_values": include_values,
            }
        )
        scored = sorted(
            (
                (sum(a * b for a, b in zip(vector, r.values, strict=False)), r)
                for r in self._records.values()
            ),
            key=lambda pair: pair[0],
            reverse=True,
        )
        return [
            VectorMatch(
                id=r.id,
                score=score,
                chunk=r.metadata if include_metadata else None,
                values=list(r.values) if include_values else None,
            )
            for score, r in scored[:top_k]
        ]

    async def list_records(self, limit: int = 100) -> list[VectorMatch]:
        return [
            VectorMatch(id=r.id, score=0.0, chunk=r.metadata)
            for r in list(self._records.values())[:limit]
        ]

    async def get_stats(self) -> CorpusStats:
        if self.stats_error is not None:
            raise self.stats_error
        return CorpusStats(
            provider="mock-store", namespace=self._namespace, total_records=len(self._records)
        )

    def get_namespace(self) -> str:
        return self._namespace

    def get_provider_name(self) -> str:
        return "mock-store"

    def is_available(self) -> bool:
        return True

    @property
    def records(self) -> dict[str, VectorRecord]:
        return self._records

    def add(self, record: VectorRecord) -> None:
        self._records[record.id] = record


# ---------------------------------------------------------------------------
# LLM
# ---------------------------------------------------------------------------


class FakeLLM(ILLMProvider):
    """Scripted chat-completion provider.

    Parameters
    ----------
    fragments:
        Chunks the stream yields, in order.
    open_error:
        Raised on the first pull of the stream (stream unavailable).
    fail_after:
        Raise ``stream_error`` after this many fragments were yielded.
    completion_error:
        Raised by :meth:`create_chat_completion`.
    """

    def __init__(
        self,
        fragments: list[dict[str, Any]] | None = None,
        payload: dict[str, Any] | None = None,
        *,
        open_error: Exception | None = None,
        fail_after: int | None = None,
        stream_error: Exception | None = None,
        completion_error: Exception | None = None,
    ) -> None:
        self.fragments = list(fragments or [])
        self.payload = payload if payload is not None else make_completion()
        self.open_error = open_error
        self.fail_after = fail_after
        self.stream_error = stream_error or LLMError(message="stream broke", provider_name="fake")
        self.completion_error = completion_error
        self.completion_calls: list[CompletionRequest] = []
        self.stream_calls: list[CompletionRequest] = []
        self.pulled = 0
        self.stream_closed = False

    async def create_chat_completion(self, request: CompletionRequest) -> dict[str, Any]:
        self.completion_calls.append(request)
        if self.completion_error is not None:
            raise self.completion_error
        return self.payload

    async def stream_chat_completion(
        self, request: CompletionRequest
    ) -> AsyncIterator[dict[str, Any]]:
        self.stream_calls.append(request)
        try:
            if self.open_error is not None:
                raise self.open_error
            for position, fragment in enumerate(self.fragments):
                if self.fail_after is not None and position == self.fail_after:
                    raise self.stream_error
                self.pulled += 1
                yield fragment
            if self.fail_after is not None and self.fail_after >= len(self.fragments):
                raise self.stream_error
        finally:
            self.stream_closed = True

    def get_provider_name(self) -> str:
        return "fake-llm"

    def is_available(self) -> bool:
        return True

    @property
    def upstream_calls(self) -> int:
        return len(self.completion_calls) + len(self.stream_calls)


# ---------------------------------------------------------------------------
# Article provider
# ---------------------------------------------------------------------------


class FakeArticleProvider(IArticleProvider):
    """Returns canned page text per URL; unknown URLs raise ScrapeError."""

    def __init__(self, pages: dict[str, str | None]) -> None:
        self.pages = pages
        self.requested: list[str] = []

    async def extract_content(self, url: str) -> ArticleContent | None:
        self.requested.append(url)
        if url not in self.pages:
            raise ScrapeError(message=f"404 for {url}", provider_name="fake-scraper")
        text = self.pages[url]
        if text is None:
            return None
        return ArticleContent(title="", text=text, url=url)

    def get_provider_name(self) -> str:
        return "fake-scraper"

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def embedding_provider() -> MockEmbeddingProvider:
    return MockEmbeddingProvider()


@pytest.fixture
def vector_store() -> MockVectorStore:
    return MockVectorStore()


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM(fragments=[make_fragment("Hel"), make_fragment("lo")])
