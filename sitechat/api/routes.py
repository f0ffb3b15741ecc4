"""FastAPI routes for sitechat.

    Endpoint                  Method  Description
    ──────────────────────────────────────────────────────────────────
    /chat-completions         POST    RAG chat completion (JSON or SSE)
    /api/chat/completions     POST    Same handler, legacy path
    /health                   GET     Health check + provider status

Services are resolved from ``app.state`` (populated at startup by
``main._build_all``) through ``Annotated[..., Depends(...)]`` helpers, so
tests can mount the router on a bare FastAPI app with fakes on its state.
"""

from __future__ import annotations

from contextlib import aclosing
from typing import Annotated, Any, AsyncIterator

import structlog
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse, StreamingResponse

import sitechat
from sitechat.api.schemas import ChatCompletionRequestBody, ErrorResponse, HealthResponse
from sitechat.services.chat_service import ChatService
from sitechat.utils.errors import SiteChatError
from sitechat.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter()

SSE_HEADERS: dict[str, str] = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


# ---------------------------------------------------------------------------
# Dependency helpers
# ---------------------------------------------------------------------------


def _get_chat_service(request: Request) -> ChatService:
    """Return the chat service from application state."""
    return request.app.state.chat_service


ChatServiceDep = Annotated[ChatService, Depends(_get_chat_service)]


async def _relay_frames(events: AsyncIterator[str]) -> AsyncIterator[str]:
    """Yield SSE frames; the upstream stream is closed however iteration ends.

    On client disconnect Starlette cancels the response task, which exits
    the ``aclosing`` block and closes the streamer's generator.
    """
    async with aclosing(events) as frames:
        async for frame in frames:
            yield frame


# ---------------------------------------------------------------------------
# Chat completions
# ---------------------------------------------------------------------------


@router.post(
    "/chat-completions",
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Retrieval-augmented chat completion",
)
@router.post("/api/chat/completions", include_in_schema=False)
async def chat_completions(
    body: ChatCompletionRequestBody,
    chat_service: ChatServiceDep,
) -> Response:
    """Answer the last message using retrieved context.

    Returns the upstream chat-completion object, or a ``text/event-stream``
    of ``data: <chunk>`` frames ending in ``data: [DONE]`` when
    ``stream`` is true.  A stream that cannot be opened falls back to the
    JSON form.
    """
    result = await chat_service.handle(
        messages=[m.to_model() for m in body.messages],
        max_tokens=body.max_tokens,
        temperature=body.temperature,
        stream=body.stream,
        requested_model=body.model,
    )

    if result.events is None:
        return JSONResponse(content=result.payload)

    return StreamingResponse(
        _relay_frames(result.events),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


# ---------------------------------------------------------------------------
# System endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider availability."""
    providers: dict[str, Any] = {}
    if hasattr(request.app.state, "provider_registry"):
        providers = dict(request.app.state.provider_registry)

    vector_store = getattr(request.app.state, "vector_store", None)
    store_ok = False
    if vector_store is not None:
        try:
            stats = await vector_store.get_stats()
            store_ok = True
            providers["vector_store_records"] = stats.total_records
            providers["vector_namespace"] = stats.namespace
        except SiteChatError as exc:
            _logger.warning("health_vector_store_unreachable", error=str(exc))
            providers["vector_store_records"] = None
    providers["vector_store"] = store_ok

    chat_service = getattr(request.app.state, "chat_service", None)
    if chat_service is not None:
        providers["chat"] = chat_service.describe()

    llm_ok = bool(providers.get("llm", False))
    if llm_ok and store_ok:
        status = "healthy"
    elif llm_ok or store_ok:
        status = "degraded"
    else:
        status = "unhealthy"

    return HealthResponse(status=status, version=sitechat.__version__, providers=providers)
