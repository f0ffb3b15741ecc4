"""Abstract base class for text-embedding service providers.

Defines the contract for turning text into fixed-length vectors.  The
single-text call is the one ingestion and retrieval use; it reports
failure with an empty list so a caller can skip the unit without losing
track of where it was.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation: OpenAIEmbeddingProvider (sitechat/providers/embedding/)
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by ingestion and retrieval.

    Vectors produced here are stored by, and queried against, an
    :class:`~sitechat.interfaces.vector_store_provider.IVectorStoreProvider`
    whose dimensionality must equal :meth:`get_dimension`.
    """

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            One or more text strings to embed.

        Returns
        -------
        list[list[float]]
            Embedding vectors corresponding positionally to *texts*.

        Raises
        ------
        sitechat.utils.errors.RAGError
            If the embedding API call fails.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string.

        Parameters
        ----------
        text:
            The text string to embed.

        Returns
        -------
        list[float]
            The embedding vector, or an empty list if embedding failed.
            Failures are logged, never raised.
        """

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors.

        Must match the dimension of the vector store the vectors go into
        (e.g. ``3072`` for ``text-embedding-3-large`` and
        ``gemini-embedding-001``).
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"openai-text-embedding-3-large"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured (credentials present)."""
