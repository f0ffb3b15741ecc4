"""Pinecone vector store provider adapter.

Wraps a ``pinecone.Pinecone`` index handle to implement
:class:`IVectorStoreProvider`.  Pinecone namespaces are native, so the
configured namespace is passed on every upsert and query.  The SDK's data
plane is synchronous; calls run in a worker thread to keep the event loop
free.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog
from pinecone import Pinecone

from sitechat.interfaces.vector_store_provider import MAX_UPSERT_BATCH, IVectorStoreProvider
from sitechat.models.rag import Chunk, CorpusStats, VectorMatch, VectorRecord
from sitechat.utils.errors import ConfigurationError, RAGError

logger = structlog.get_logger(logger_name=__name__)


class PineconeProvider(IVectorStoreProvider):
    """Vector store provider backed by a Pinecone serverless index.

    Parameters
    ----------
    api_key:
        Pinecone API key.
    index_name:
        Name of an existing index (created with the embedding dimension).
    namespace:
        Partition this provider reads and writes.
    host:
        Index host URL; skips the control-plane lookup when given.
    dimension:
        Embedding dimension, used for the zero vector in :meth:`list_records`.
    index:
        Pre-built index handle (tests pass a ``MagicMock``).
    """

    def __init__(
        self,
        api_key: str = "",
        index_name: str = "company-data",
        namespace: str = "default",
        host: str = "",
        dimension: int = 3072,
        index: Any | None = None,
    ) -> None:
        self._index_name = index_name
        self._namespace = namespace
        self._dimension = dimension
        if index is None:
            if not api_key:
                raise ConfigurationError(
                    message="PINECONE_API_KEY is required for the pinecone backend",
                    provider_name="pinecone",
                )
            client = Pinecone(api_key=api_key)
            index = client.Index(name=index_name, host=host) if host else client.Index(index_name)
        self._index = index

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

        vectors = [
            {"id": r.id, "values": r.values, "metadata": r.metadata_dict()}
            for r in records
        ]
        try:
            response = await asyncio.to_thread(
                self._index.upsert, vectors=vectors, namespace=self._namespace
            )
        except Exception as exc:
            raise RAGError(
                message=f"Pinecone upsert failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        upserted = _field(response, "upserted_count")
        logger.debug(
            "pinecone_upsert",
            index=self._index_name,
            namespace=self._namespace,
            count=len(records),
            upserted_count=upserted,
        )
        return int(upserted) if isinstance(upserted, int) else len(records)

    async def query(
        self,
        vector: list[float],
        top_k: int = 30,
        include_metadata: bool = True,
        include_values: bool = False,
    ) -> list[VectorMatch]:
        try:
            response = await asyncio.to_thread(
                self._index.query,
                vector=vector,
                top_k=top_k,
                include_metadata=include_metadata,
                include_values=include_values,
                namespace=self._namespace,
            )
        except Exception as exc:
            raise RAGError(
                message=f"Pinecone query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        matches = [
            self._to_match(m, include_metadata, include_values)
            for m in (_field(response, "matches") or [])
        ]
        logger.debug(
            "pinecone_query",
            namespace=self._namespace,
            top_k=top_k,
            results_count=len(matches),
            top_score=matches[0].score if matches else 0.0,
        )
        return matches

    async def list_records(self, limit: int = 100) -> list[VectorMatch]:
        """List records by querying with a zero vector.

        Pinecone serverless has no "fetch all metadata" call; a zero-vector
        query returns an arbitrary *limit* records with their metadata.
        """
        return await self.query(
            [0.0] * self._dimension,
            top_k=limit,
            include_metadata=True,
            include_values=False,
        )

    async def get_stats(self) -> CorpusStats:
        try:
            stats = await asyncio.to_thread(self._index.describe_index_stats)
        except Exception as exc:
            raise RAGError(
                message=f"Pinecone describe_index_stats failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        namespaces = _field(stats, "namespaces") or {}
        summary = namespaces.get(self._namespace)
        total = _field(summary, "vector_count") if summary is not None else 0
        return CorpusStats(
            provider=self.get_provider_name(),
            namespace=self._namespace,
            total_records=int(total or 0),
        )

    def get_namespace(self) -> str:
        return self._namespace

    def get_provider_name(self) -> str:
        return "pinecone"

    def is_available(self) -> bool:
        return self._index is not None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _to_match(raw: Any, include_metadata: bool, include_values: bool) -> VectorMatch:
        metadata = _field(raw, "metadata")
        values = _field(raw, "values")
        return VectorMatch(
            id=str(_field(raw, "id")),
            score=float(_field(raw, "score") or 0.0),
            chunk=Chunk.from_metadata(metadata) if include_metadata and metadata else None,
            values=[float(v) for v in values] if include_values and values else None,
        )


def _field(obj: Any, name: str) -> Any:
    """Read *name* from a Pinecone response object or a plain dict."""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)
