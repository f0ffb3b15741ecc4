"""sitechat FastAPI application entry point.

Builds every provider and service once at startup (``_build_all``), stores
them on ``app.state`` for the route dependencies, and exposes the ASGI
``app`` that uvicorn serves::

    uvicorn sitechat.main:app --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI

import sitechat
from sitechat.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from sitechat.api.routes import router as api_router
from sitechat.bootstrap import (
    build_chat_service,
    build_embedding_provider,
    build_llm_provider,
    build_vector_store,
    resolve_settings,
)
from sitechat.config.loader import load_config
from sitechat.config.settings import Settings
from sitechat.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings=settings)
resolved_settings = resolve_settings(settings, config)

configure_logging(
    log_level=resolved_settings.log_level,
    json_output=(resolved_settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Full DI assembly for the FastAPI application
# ---------------------------------------------------------------------------


def _build_all(app_settings: Settings) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    resolved = resolve_settings(app_settings, config)

    llm_provider = build_llm_provider(resolved)
    embedding_provider = build_embedding_provider(resolved)
    vector_store = build_vector_store(resolved, embedding_provider.get_dimension())

    chat_service = build_chat_service(
        resolved,
        llm=llm_provider,
        embedding_provider=embedding_provider,
        vector_store=vector_store,
    )

    provider_registry: dict[str, Any] = {
        "llm": llm_provider.is_available(),
        "llm_provider": llm_provider.get_provider_name(),
        "embedding": embedding_provider.is_available(),
        "embedding_provider": embedding_provider.get_provider_name(),
        "vector_store_provider": vector_store.get_provider_name(),
    }

    return {
        "settings": resolved,
        "llm_provider": llm_provider,
        "embedding_provider": embedding_provider,
        "vector_store": vector_store,
        "chat_service": chat_service,
        "provider_registry": provider_registry,
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup."""
    components = _build_all(settings)

    for key, value in components.items():
        setattr(application.state, key, value)

    missing = components["settings"].get_missing_credentials()
    if missing:
        _logger.warning("missing_credentials", env_vars=missing)

    _logger.info(
        "app_startup",
        version=sitechat.__version__,
        environment=components["settings"].app_env,
        llm=components["provider_registry"]["llm_provider"],
        vector_store=components["provider_registry"]["vector_store_provider"],
        namespace=components["vector_store"].get_namespace(),
    )

    yield

    _logger.info("app_shutdown")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="sitechat API",
        version=sitechat.__version__,
        description=(
            "Retrieval-augmented chat over a scraped website corpus, exposed "
            "as an OpenAI-style chat-completions endpoint with SSE streaming."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    application.include_router(api_router)

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "sitechat.main:app",
        host=resolved_settings.app_host,
        port=resolved_settings.app_port,
        reload=(resolved_settings.app_env == "development"),
    )
