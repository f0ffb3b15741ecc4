"""Vector store provider adapters.

    - ChromaDBProvider - local persistent store, one collection per namespace
    - PineconeProvider - hosted index, native namespaces

The backend is chosen by ``VECTOR_STORE_BACKEND``.  PineconeProvider is
imported lazily by the factory so a ChromaDB-only deployment never loads
the Pinecone SDK.
"""

from sitechat.providers.vector_store.chromadb_provider import ChromaDBProvider

__all__ = ["ChromaDBProvider"]
