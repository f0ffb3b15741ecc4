"""Abstract base class for vector-store service providers.

Defines the contract for storing and querying embedded chunks.  Every
provider instance is bound to exactly one namespace at construction, so
ingestion and retrieval built from the same settings always target the
same partition of the store.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from sitechat.models.rag import CorpusStats, VectorMatch, VectorRecord

# Maximum records accepted by a single upsert call.
MAX_UPSERT_BATCH = 100


# Concrete implementations: ChromaDBProvider, PineconeProvider
# Located in: sitechat/providers/vector_store/
class IVectorStoreProvider(ABC):
    """Contract for namespace-scoped vector stores.

    All store operations are async so network-backed stores do not block
    the event loop.  Records are append-only: there is no update or delete.
    """

    @abstractmethod
    async def upsert(self, records: list[VectorRecord]) -> int:
        """Insert (or overwrite by id) a batch of records.

        Parameters
        ----------
        records:
            At most :data:`MAX_UPSERT_BATCH` records.

        Returns
        -------
        int
            Number of records written.

        Raises
        ------
        ValueError
            If more than :data:`MAX_UPSERT_BATCH` records are passed.
        sitechat.utils.errors.RAGError
            If the store rejects the write.
        """

    @abstractmethod
    async def query(
        self,
        vector: list[float],
        top_k: int = 30,
        include_metadata: bool = True,
        include_values: bool = False,
    ) -> list[VectorMatch]:
        """Return the *top_k* records nearest to *vector*.

        Parameters
        ----------
        vector:
            Query embedding; same dimensionality as the stored vectors.
        top_k:
            Maximum number of matches.
        include_metadata:
            Populate :attr:`VectorMatch.chunk` from stored metadata.
        include_values:
            Populate :attr:`VectorMatch.values`.  Retrieval never needs the
            raw vectors, so this defaults to ``False``.

        Returns
        -------
        list[VectorMatch]
            Matches in descending similarity order as ranked by the store.

        Raises
        ------
        sitechat.utils.errors.RAGError
            If the query fails.
        """

    @abstractmethod
    async def list_records(self, limit: int = 100) -> list[VectorMatch]:
        """Return up to *limit* stored records (id + metadata, no values).

        Order is store-defined; callers that need recency sort by the
        timestamp suffix of the record id.
        """

    @abstractmethod
    async def get_stats(self) -> CorpusStats:
        """Return the record count of this provider's namespace."""

    @abstractmethod
    def get_namespace(self) -> str:
        """Return the namespace this provider reads and writes."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"chromadb"``, ``"pinecone"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the store is configured and its handle was created."""
