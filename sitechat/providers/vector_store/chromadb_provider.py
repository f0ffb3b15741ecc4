"""ChromaDB vector store provider adapter.

Wraps ``chromadb.PersistentClient`` to implement :class:`IVectorStoreProvider`.
Uses cosine distance for similarity search.  Fully local, no external
service required, which makes it the default backend for development.

ChromaDB has no namespaces, so each namespace maps to its own collection
named ``{collection_name}-{namespace}``.  The client is synchronous; every
call made from an ``async`` method runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import os
from typing import Any

# Telemetry off before chromadb is imported; some versions only read the env var.
os.environ["ANONYMIZED_TELEMETRY"] = "False"

import chromadb
import structlog

from sitechat.interfaces.vector_store_provider import MAX_UPSERT_BATCH, IVectorStoreProvider
from sitechat.models.rag import Chunk, CorpusStats, VectorMatch, VectorRecord
from sitechat.utils.errors import ConfigurationError, RAGError

logger = structlog.get_logger(logger_name=__name__)


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """No-op embedding function that prevents ChromaDB from loading a model.

    sitechat always passes pre-computed embeddings, so ChromaDB's built-in
    embedding is never invoked.  Without this, ChromaDB downloads its
    default ONNX model on collection creation.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError(
            "sitechat uses pre-computed embeddings; "
            "ChromaDB's built-in embedding should never be called."
        )

    def name(self) -> str:
        """Return function name (required by ChromaDB's EmbeddingFunction protocol)."""
        return "noop_precomputed"


class ChromaDBProvider(IVectorStoreProvider):
    """Vector store provider backed by ChromaDB with local persistence.

    Parameters
    ----------
    persist_directory:
        On-disk location of the ChromaDB database.
    collection_name:
        Base collection name; the namespace is appended.
    namespace:
        Partition this provider reads and writes.
    expected_dimension:
        When given, the dimension of already-stored vectors is checked
        against it at startup and a mismatch raises ``ConfigurationError``.
    client:
        Pre-built ChromaDB client (tests pass an ``EphemeralClient``).
    """

    def __init__(
        self,
        persist_directory: str = "./data/chromadb",
        collection_name: str = "sitechat_corpus",
        namespace: str = "default",
        expected_dimension: int | None = None,
        client: Any | None = None,
    ) -> None:
        self._persist_directory = persist_directory
        self._namespace = namespace
        self._collection_name = f"{collection_name}-{namespace}"
        self._client = client or chromadb.PersistentClient(
            path=persist_directory,
            settings=chromadb.config.Settings(anonymized_telemetry=False),
        )
        # Collections created by an older chromadb with the default
        # embedding function reject a different one; reopen without it.
        try:
            self._collection = self._client.get_or_create_collection(
                name=self._collection_name,
                metadata={"hnsw:space": "cosine"},
                embedding_function=_NoopEmbeddingFunction(),
            )
        except ValueError:
            self._collection = self._client.get_or_create_collection(
                name=self._collection_name,
                metadata={"hnsw:space": "cosine"},
            )

        if expected_dimension is not None:
            self._validate_embedding_dimensions(expected_dimension)

    # ------------------------------------------------------------------
    # Startup validation
    # ------------------------------------------------------------------

    def _validate_embedding_dimensions(self, expected_dim: int) -> None:
        """Compare one stored vector's length against *expected_dim*.

        A mismatch means every query would return garbage, so fail at startup.
        """
        try:
            if self._collection.count() == 0:
                return
            sample = self._collection.peek(limit=1)
            embeddings = sample.get("embeddings") if sample else None
            if embeddings is None or len(embeddings) == 0:
                return
            stored_dim = len(embeddings[0])
        except Exception as exc:
            logger.warning("embedding_dimension_check_skipped", error=str(exc))
            return

        if stored_dim != expected_dim:
            logger.error(
                "embedding_dimension_mismatch",
                stored_dim=stored_dim,
                expected_dim=expected_dim,
                collection=self._collection_name,
            )
            raise ConfigurationError(
                message=(
                    f"Embedding dimension mismatch: collection '{self._collection_name}' "
                    f"holds {stored_dim}-dim vectors but the embedding model produces "
                    f"{expected_dim}-dim vectors. Set OPENAI_EMBEDDING_MODEL to the "
                    f"model used to build the corpus."
                ),
                provider_name=self.get_provider_name(),
            )
        logger.info("embedding_dimension_validated", dimension=stored_dim)

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def upsert(self, records: list[VectorRecord]) -> int:
        if len(records) > MAX_UPSERT_BATCH:
            raise ValueError(
                f"upsert accepts at most {MAX_UPSERT_BATCH} records, got {len(records)}"
            )
        if not records:
            return 0

        try:
            await asyncio.to_thread(
                self._collection.upsert,
                ids=[r.id for r in records],
                embeddings=[r.values for r in records],
                documents=[r.metadata.text for r in records],
                metadatas=[r.metadata_dict() for r in records],
            )
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB upsert failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.debug("chromadb_upsert", count=len(records), collection=self._collection_name)
        return len(records)

    async def query(
        self,
        vector: list[float],
        top_k: int = 30,
        include_metadata: bool = True,
        include_values: bool = False,
    ) -> list[VectorMatch]:
        include = ["distances"]
        if include_metadata:
            include += ["metadatas", "documents"]
        if include_values:
            include.append("embeddings")

        try:
            results = await asyncio.to_thread(self._search, vector, top_k, include)
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        if results is None:
            return []

        ids = results["ids"][0] if results.get("ids") else []
        distances = _first_row(results.get("distances"), len(ids), 0.0)
        metadatas = _first_row(results.get("metadatas"), len(ids), None)
        documents = _first_row(results.get("documents"), len(ids), None)
        embeddings = _first_row(results.get("embeddings"), len(ids), None)

        matches: list[VectorMatch] = []
        for idx, record_id in enumerate(ids):
            chunk = None
            if include_metadata and metadatas[idx] is not None:
                chunk = Chunk.from_metadata(metadatas[idx], text=documents[idx])
            values = None
            if include_values and embeddings[idx] is not None:
                values = [float(v) for v in embeddings[idx]]
            matches.append(
                VectorMatch(
                    id=record_id,
                    # Cosine distance is in [0, 2]; report similarity in [-1, 1].
                    score=1.0 - float(distances[idx]),
                    chunk=chunk,
                    values=values,
                )
            )

        logger.debug(
            "chromadb_query",
            collection=self._collection_name,
            top_k=top_k,
            results_count=len(matches),
            top_score=matches[0].score if matches else 0.0,
        )
        return matches

    async def list_records(self, limit: int = 100) -> list[VectorMatch]:
        try:
            page = await asyncio.to_thread(self._collection.get, limit=limit, include=["metadatas"])
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB list_records failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        ids = page.get("ids") or []
        metadatas = page.get("metadatas") or [None] * len(ids)
        return [
            VectorMatch(
                id=record_id,
                score=0.0,
                chunk=Chunk.from_metadata(meta) if meta else None,
            )
            for record_id, meta in zip(ids, metadatas, strict=True)
        ]

    async def get_stats(self) -> CorpusStats:
        try:
            total = await asyncio.to_thread(self._collection.count)
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB get_stats failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return CorpusStats(
            provider=self.get_provider_name(),
            namespace=self._namespace,
            total_records=total,
        )

    def get_namespace(self) -> str:
        return self._namespace

    def get_provider_name(self) -> str:
        return "chromadb"

    def is_available(self) -> bool:
        return self._collection is not None

    def _search(self, vector: list[float], top_k: int, include: list[str]) -> dict[str, Any] | None:
        count = self._collection.count()
        if count == 0 or top_k <= 0:
            return None
        return self._collection.query(
            query_embeddings=[vector],
            n_results=min(top_k, count),
            include=include,
        )


def _first_row(column: Any, length: int, fill: Any) -> list[Any]:
    """Return row 0 of a ChromaDB per-query result column, or *fill* padding."""
    if column is None or len(column) == 0 or column[0] is None:
        return [fill] * length
    return list(column[0])
