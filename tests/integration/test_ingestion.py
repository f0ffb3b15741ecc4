"""Integration tests for the ingestion pipeline.

Runs fetch -> clean -> chunk -> embed -> batch-upsert against the in-memory
providers from conftest, then retrieves over the resulting corpus.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from sitechat.models.rag import Document, VectorRecord
from sitechat.services.ingestion.chunker import TextChunker
from sitechat.services.ingestion.cleaner import TextCleaner
from sitechat.services.ingestion.ingestion_service import IngestionService
from sitechat.services.retriever import Retriever
from tests.conftest import FakeArticleProvider, MockEmbeddingProvider, MockVectorStore, make_chunk

# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


class _CountingLimiter:
    def __init__(self) -> None:
        self.acquired = 0

    async def acquire(self, tokens: float = 1.0) -> float:
        self.acquired += 1
        return 0.0


def _build_service(
    store: MockVectorStore,
    embedding: MockEmbeddingProvider | None = None,
    pages: dict[str, str | None] | None = None,
    *,
    max_size: int = 700,
    **kwargs,
) -> IngestionService:
    return IngestionService(
        cleaner=TextCleaner(),
        chunker=TextChunker(max_size=max_size),
        embedding_provider=embedding or MockEmbeddingProvider(),
        vector_store=store,
        article_provider=FakeArticleProvider(pages) if pages is not None else None,
        category="aven",
        **kwargs,
    )


def _numbered_sentences(count: int) -> str:
    return " ".join(f"Sentence number {n}." for n in range(count))


# ---------------------------------------------------------------------------
# URL ingestion
# ---------------------------------------------------------------------------


class TestUrlIngestion:
    @pytest.mark.asyncio
    async def test_pages_are_cleaned_chunked_and_stored(self, sample_page: str) -> None:
        store = MockVectorStore(namespace="aven")
        service = _build_service(store, pages={"https://www.aven.com/": sample_page})

        report = await service.ingest_urls(["https://www.aven.com/"])

        assert report.sources_total == 1
        assert report.sources_failed == 0
        assert report.records_upserted == report.chunks_created > 0
        for record in store.records.values():
            assert "](" not in record.metadata.text
            assert "https://" not in record.metadata.text
            assert record.metadata.source_url == "https://www.aven.com/"
            assert record.id.startswith("https://www.aven.com/-chunk-")

    @pytest.mark.asyncio
    async def test_failed_url_is_counted_and_run_continues(self) -> None:
        store = MockVectorStore()
        pages = {"https://site.test/ok": "Working page text.", "https://site.test/empty": None}
        service = _build_service(store, pages=pages)

        report = await service.ingest_urls(
            ["https://site.test/missing", "https://site.test/empty", "https://site.test/ok"]
        )

        assert report.sources_total == 3
        assert report.sources_failed == 2
        assert report.failed_sources == ["https://site.test/missing", "https://site.test/empty"]
        assert report.records_upserted == 1

    @pytest.mark.asyncio
    async def test_requires_article_provider(self) -> None:
        service = _build_service(MockVectorStore())
        with pytest.raises(ValueError):
            await service.ingest_urls(["https://site.test/"])


# ---------------------------------------------------------------------------
# Batching and partial failure
# ---------------------------------------------------------------------------


class TestBatching:
    @pytest.mark.asyncio
    async def test_250_chunks_upserted_as_100_100_50(self) -> None:
        store = MockVectorStore()
        service = _build_service(store, max_size=20)

        report = await service.ingest_documents(
            [Document(source_url="https://site.test/long", raw_text=_numbered_sentences(250))]
        )

        assert report.chunks_created == 250
        assert store.upsert_sizes == [100, 100, 50]
        assert report.batches_total == 3
        assert report.records_upserted == 250

    @pytest.mark.asyncio
    async def test_failed_batch_does_not_stop_later_batches(self) -> None:
        store = MockVectorStore(fail_batches={2})
        service = _build_service(store, max_size=20)

        report = await service.ingest_documents(
            [Document(source_url="https://site.test/long", raw_text=_numbered_sentences(250))]
        )

        assert store.upsert_sizes == [100, 100, 50]
        assert report.batches_failed == 1
        assert report.records_upserted == 150
        assert len(store.records) == 150

    @pytest.mark.asyncio
    async def test_batch_size_capped_at_store_limit(self) -> None:
        service = _build_service(MockVectorStore(), upsert_batch_size=500)
        assert service.batch_size == 100

    @pytest.mark.asyncio
    async def test_upsert_records_directly(self) -> None:
        store = MockVectorStore()
        service = _build_service(store, upsert_batch_size=40)
        records = [
            VectorRecord.from_chunk(make_chunk(f"t{i}", index=i), [1.0], timestamp_ms=i)
            for i in range(90)
        ]

        outcome = await service.upsert_records(records)

        assert store.upsert_sizes == [40, 40, 10]
        assert outcome.upserted == 90
        assert outcome.failed_batches == 0

    @pytest.mark.asyncio
    async def test_empty_embedding_skips_exactly_that_chunk(self) -> None:
        store = MockVectorStore()
        embedding = MockEmbeddingProvider(fail_markers={"BROKEN"})
        service = _build_service(store, embedding)

        report = await service.ingest_documents(
            [
                Document(source_url="https://site.test/a", raw_text="First page is fine."),
                Document(source_url="https://site.test/b", raw_text="This page is BROKEN."),
                Document(source_url="https://site.test/c", raw_text="Third page is fine."),
            ]
        )

        assert report.chunks_created == 3
        assert report.embedding_failures == 1
        assert report.chunks_embedded == 2
        assert {r.metadata.source_url for r in store.records.values()} == {
            "https://site.test/a",
            "https://site.test/c",
        }

    @pytest.mark.asyncio
    async def test_limiters_paced_per_chunk_and_per_batch(self) -> None:
        embed_limiter = _CountingLimiter()
        upsert_limiter = _CountingLimiter()
        service = _build_service(
            MockVectorStore(),
            max_size=20,
            embed_limiter=embed_limiter,
            upsert_limiter=upsert_limiter,
        )

        await service.ingest_documents(
            [Document(source_url="https://site.test/long", raw_text=_numbered_sentences(120))]
        )

        assert embed_limiter.acquired == 120
        assert upsert_limiter.acquired == 2

    @pytest.mark.asyncio
    async def test_nothing_to_upsert(self) -> None:
        store = MockVectorStore()
        report = await _build_service(store).ingest_documents(
            [Document(source_url="https://site.test/blank", raw_text="[Home](https://x.test)")]
        )
        assert report.records_upserted == 0
        assert store.upsert_sizes == []


# ---------------------------------------------------------------------------
# Files, listing and retrieval
# ---------------------------------------------------------------------------


class TestFilesAndCorpus:
    @pytest.mark.asyncio
    async def test_ingest_directory_of_markdown(self, tmp_path: Path) -> None:
        (tmp_path / "a.md").write_text("Card rates are fixed.", encoding="utf-8")
        (tmp_path / "b.txt").write_text("Support is open daily.", encoding="utf-8")
        (tmp_path / "ignored.json").write_text("{}", encoding="utf-8")
        store = MockVectorStore()

        report = await _build_service(store).ingest_files([tmp_path])

        assert report.sources_total == 2
        sources = {r.metadata.source_url for r in store.records.values()}
        assert sources == {(tmp_path / "a.md").as_uri(), (tmp_path / "b.txt").as_uri()}

    @pytest.mark.asyncio
    async def test_missing_file_counted(self, tmp_path: Path) -> None:
        report = await _build_service(MockVectorStore()).ingest_files([tmp_path / "nope.md"])
        assert report.sources_failed == 1

    @pytest.mark.asyncio
    async def test_recent_records_newest_first(self) -> None:
        store = MockVectorStore()
        for ts in (10, 30, 20):
            store.add(VectorRecord.from_chunk(make_chunk(f"t{ts}", index=ts), [1.0], timestamp_ms=ts))

        recent = await _build_service(store).list_recent_records(limit=10)

        assert [m.id.rsplit("-", 1)[-1] for m in recent] == ["30", "20", "10"]

    @pytest.mark.asyncio
    async def test_ingested_corpus_is_retrievable(self) -> None:
        store = MockVectorStore(namespace="aven")
        embedding = MockEmbeddingProvider()
        service = _build_service(store, embedding)
        await service.ingest_documents(
            [
                Document(source_url="https://site.test/a", raw_text="Aven offers a HELOC card."),
                Document(source_url="https://site.test/b", raw_text="Payments are due monthly."),
            ]
        )

        result = await Retriever(embedding, store).retrieve_matches("Aven offers a HELOC card", k=1)

        assert [p.text for p in result.passages] == ["Aven offers a HELOC card"]
        assert (await service.get_corpus_stats()).total_records == 2
