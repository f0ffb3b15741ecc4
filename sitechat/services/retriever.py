"""Top-K retrieval: embed a query and fetch the nearest chunks.

The context string handed to prompt assembly is the matched chunk texts
joined by a blank line, in the order the vector store ranked them.  No
matches is a valid outcome and yields an empty context.
"""

from __future__ import annotations

import structlog

from sitechat.interfaces.embedding_provider import IEmbeddingProvider
from sitechat.interfaces.vector_store_provider import IVectorStoreProvider
from sitechat.models.rag import RetrievalResult, RetrievedPassage
from sitechat.utils.errors import RAGError
from sitechat.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)

DEFAULT_TOP_K = 30


class Retriever:
    """Embeds queries and runs nearest-neighbour search against one namespace.

    Parameters
    ----------
    embedding_provider:
        Must produce vectors of the store's dimensionality.
    vector_store:
        Namespace-bound store populated by ingestion.
    default_top_k:
        ``k`` used when a call does not pass one.
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        vector_store: IVectorStoreProvider,
        default_top_k: int = DEFAULT_TOP_K,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._vector_store = vector_store
        self._default_top_k = default_top_k

    async def retrieve(self, query: str, k: int | None = None) -> str:
        """Return the context block for *query* (empty string when nothing matched)."""
        result = await self.retrieve_matches(query, k)
        return result.context

    async def retrieve_matches(self, query: str, k: int | None = None) -> RetrievalResult:
        """Return ranked ``(text, score)`` passages for *query*.

        Raises
        ------
        RAGError
            If the query cannot be embedded or the store query fails.
        """
        top_k = k if k is not None else self._default_top_k
        vector = await self._embedding_provider.embed_single(query)
        if not vector:
            raise RAGError(
                message="Query embedding failed; cannot retrieve context",
                provider_name=self._embedding_provider.get_provider_name(),
            )

        matches = await self._vector_store.query(
            vector,
            top_k=top_k,
            include_metadata=True,
            include_values=False,
        )
        passages = [
            RetrievedPassage(text=m.chunk.text, score=m.score)
            for m in matches
            if m.chunk is not None and m.chunk.text
        ]
        logger.info(
            "context_retrieved",
            namespace=self._vector_store.get_namespace(),
            top_k=top_k,
            matches=len(passages),
            top_score=passages[0].score if passages else None,
        )
        return RetrievalResult(query=query, passages=passages)
