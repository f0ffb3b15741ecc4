"""Provider and service factories shared by the web app and the ingestion CLI.

Both entry points must embed with the same model and write to the same
store and namespace, otherwise the corpus and the query path silently
disagree on vector dimensions.  Everything that wires concrete providers
together therefore lives here instead of in ``main.py``.

Heavy SDKs (pinecone) are imported inside the factory that needs them.
"""

from __future__ import annotations

from typing import Any

import structlog

from sitechat.config.loader import get_section
from sitechat.config.settings import Settings
from sitechat.interfaces.article_provider import IArticleProvider
from sitechat.interfaces.embedding_provider import IEmbeddingProvider
from sitechat.interfaces.llm_provider import ILLMProvider
from sitechat.interfaces.vector_store_provider import IVectorStoreProvider
from sitechat.utils.errors import ConfigurationError
from sitechat.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


def resolve_settings(app_settings: Settings, config: dict[str, Any]) -> Settings:
    """Fold the resolved YAML config back into a copy of *app_settings*.

    ``load_config`` has already applied env overrides on top of the YAML
    file, so the values read here are final.
    """
    app = get_section(config, "app")
    llm = get_section(config, "llm")
    store = get_section(config, "vector_store")
    ingestion = get_section(config, "ingestion")
    log = get_section(config, "logging")

    update: dict[str, Any] = {}
    if app.get("host"):
        update["app_host"] = str(app["host"])
    if app.get("port"):
        update["app_port"] = int(app["port"])
    if app.get("env"):
        update["app_env"] = str(app["env"])
    if log.get("level"):
        update["log_level"] = str(log["level"]).upper()
    for key, field_name in (
        ("base_url", "openai_base_url"),
        ("text_model", "openai_text_model"),
        ("embedding_model", "openai_embedding_model"),
    ):
        if llm.get(key):
            update[field_name] = str(llm[key])
    if store.get("backend"):
        update["vector_store_backend"] = str(store["backend"]).lower()
    if store.get("namespace"):
        update["vector_namespace"] = str(store["namespace"])
    if ingestion.get("category"):
        update["corpus_category"] = str(ingestion["category"])
    if ingestion.get("nav_labels"):
        update["nav_labels"] = [str(label) for label in ingestion["nav_labels"]]

    return app_settings.model_copy(update=update)


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------


def build_llm_provider(app_settings: Settings) -> ILLMProvider:
    """OpenAI-compatible chat provider (OpenAI, Gemini, Ollama via base_url)."""
    from sitechat.providers.llm.openai_provider import OpenAILLMProvider

    return OpenAILLMProvider(settings=app_settings)


def build_embedding_provider(app_settings: Settings) -> IEmbeddingProvider:
    """OpenAI-compatible embedding provider."""
    from sitechat.providers.embedding.openai_embedding_provider import (
        OpenAIEmbeddingProvider,
    )

    return OpenAIEmbeddingProvider(settings=app_settings)


def build_vector_store(app_settings: Settings, dimension: int | None = None) -> IVectorStoreProvider:
    """Return the configured vector store bound to the configured namespace.

    Raises
    ------
    ConfigurationError
        For an unknown backend, a missing Pinecone key, or a ChromaDB
        collection whose stored vectors do not match *dimension*.
    """
    backend = app_settings.vector_store_backend.lower()

    if backend == "chromadb":
        from sitechat.providers.vector_store.chromadb_provider import ChromaDBProvider

        return ChromaDBProvider(
            persist_directory=app_settings.chromadb_persist_dir,
            collection_name=app_settings.chromadb_collection,
            namespace=app_settings.vector_namespace,
            expected_dimension=dimension,
        )

    if backend == "pinecone":
        from sitechat.providers.vector_store.pinecone_provider import PineconeProvider

        return PineconeProvider(
            api_key=app_settings.pinecone_api_key,
            index_name=app_settings.pinecone_index,
            namespace=app_settings.vector_namespace,
            host=app_settings.pinecone_host,
            dimension=dimension or 3072,
        )

    raise ConfigurationError(
        message=f"Unknown vector store backend '{app_settings.vector_store_backend}' "
        "(expected 'chromadb' or 'pinecone')",
    )


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


def build_ingestion_service(
    app_settings: Settings,
    article_provider: IArticleProvider | None = None,
):  # noqa: ANN201
    """Assemble cleaner, chunker, embedder, store and rate limiters.

    *article_provider* is only needed for URL ingestion; the caller owns it
    and closes it when the run ends.
    """
    from sitechat.services.ingestion.chunker import TextChunker
    from sitechat.services.ingestion.cleaner import TextCleaner
    from sitechat.services.ingestion.ingestion_service import IngestionService
    from sitechat.utils.concurrency import AsyncRateLimiter

    embedding_provider = build_embedding_provider(app_settings)
    vector_store = build_vector_store(app_settings, embedding_provider.get_dimension())

    service = IngestionService(
        cleaner=TextCleaner(nav_labels=app_settings.nav_labels),
        chunker=TextChunker(max_size=app_settings.chunk_max_size),
        embedding_provider=embedding_provider,
        vector_store=vector_store,
        article_provider=article_provider,
        category=app_settings.corpus_category,
        upsert_batch_size=app_settings.upsert_batch_size,
        embed_limiter=AsyncRateLimiter(app_settings.embedding_rate_per_second, name="embedding"),
        upsert_limiter=AsyncRateLimiter(app_settings.upsert_rate_per_second, name="upsert"),
    )
    _logger.info(
        "ingestion_service_built",
        embedding=embedding_provider.get_provider_name(),
        vector_store=vector_store.get_provider_name(),
        namespace=vector_store.get_namespace(),
    )
    return service


def build_chat_service(
    app_settings: Settings,
    llm: ILLMProvider,
    embedding_provider: IEmbeddingProvider,
    vector_store: IVectorStoreProvider,
):  # noqa: ANN201
    """Assemble retriever, prompt builder, streamer and optional query rewriter."""
    from sitechat.services.chat_service import ChatService
    from sitechat.services.completion_streamer import CompletionStreamer
    from sitechat.services.prompt_builder import PromptBuilder
    from sitechat.services.query_rewriter import QueryRewriter
    from sitechat.services.retriever import Retriever

    rewriter = None
    if app_settings.query_rewrite_enabled:
        rewriter = QueryRewriter(llm=llm, model=app_settings.openai_text_model)

    return ChatService(
        retriever=Retriever(
            embedding_provider=embedding_provider,
            vector_store=vector_store,
            default_top_k=app_settings.rag_top_k,
        ),
        prompt_builder=PromptBuilder(persona=app_settings.assistant_persona),
        streamer=CompletionStreamer(llm=llm),
        model=app_settings.openai_text_model,
        default_max_tokens=app_settings.completion_max_tokens,
        default_temperature=app_settings.completion_temperature,
        top_k=app_settings.rag_top_k,
        query_rewriter=rewriter,
    )
