"""Public interface definitions for all external service providers.

Every external service sitechat talks to is accessed through the abstract
base classes in this package.  Concrete adapters live in
``sitechat/providers/`` and are assembled once in ``sitechat/main.py`` (or
the ingestion CLI), then passed into the services that need them.  Tests
inject in-memory fakes through the same seams.

    Interface              →  Concrete implementations
    ─────────────────────────────────────────────────────
    ILLMProvider           →  OpenAILLMProvider
    IEmbeddingProvider     →  OpenAIEmbeddingProvider
    IVectorStoreProvider   →  ChromaDBProvider, PineconeProvider
    IArticleProvider       →  WebScraperProvider
"""

from sitechat.interfaces.article_provider import ArticleContent, IArticleProvider
from sitechat.interfaces.embedding_provider import IEmbeddingProvider
from sitechat.interfaces.llm_provider import ILLMProvider
from sitechat.interfaces.vector_store_provider import MAX_UPSERT_BATCH, IVectorStoreProvider

__all__ = [
    "MAX_UPSERT_BATCH",
    "ArticleContent",
    "IArticleProvider",
    "IEmbeddingProvider",
    "ILLMProvider",
    "IVectorStoreProvider",
]
