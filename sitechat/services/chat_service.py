"""Query-path orchestration for one chat-completion request.

Validates the inbound message list, retrieves context for the last
message, folds the grounded prompt into that message and hands the
resulting :class:`CompletionRequest` to the :class:`CompletionStreamer`.
Validation happens before any upstream call, so a rejected request costs
nothing.
"""

from __future__ import annotations

from typing import Any, Sequence

import structlog

from sitechat.models.chat import ChatMessage, CompletionRequest
from sitechat.services.completion_streamer import CompletionResult, CompletionStreamer
from sitechat.services.prompt_builder import PromptBuilder
from sitechat.services.query_rewriter import QueryRewriter
from sitechat.services.retriever import Retriever
from sitechat.utils.errors import ClientInputError
from sitechat.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)

MISSING_CONTENT_MESSAGE = "No last message content provided."


class ChatService:
    """Retrieval-augmented chat completion.

    Parameters
    ----------
    retriever:
        Fetches the context block for a query.
    prompt_builder:
        Wraps context and query in the grounded instruction.
    streamer:
        Runs the completion (streamed or blocking, with fallback).
    model:
        Generation model used for every request.
    default_max_tokens, default_temperature:
        Used when the request leaves them unset (or zero).
    top_k:
        Passages retrieved per request.
    query_rewriter:
        Optional; when present, retrieval runs on the expanded query.
    """

    def __init__(
        self,
        retriever: Retriever,
        prompt_builder: PromptBuilder,
        streamer: CompletionStreamer,
        model: str,
        default_max_tokens: int = 150,
        default_temperature: float = 0.7,
        top_k: int = 30,
        query_rewriter: QueryRewriter | None = None,
    ) -> None:
        self._retriever = retriever
        self._prompt_builder = prompt_builder
        self._streamer = streamer
        self._model = model
        self._default_max_tokens = default_max_tokens
        self._default_temperature = default_temperature
        self._top_k = top_k
        self._query_rewriter = query_rewriter

    @staticmethod
    def validate(messages: Sequence[ChatMessage]) -> ChatMessage:
        """Return the last message, or raise if it is missing or empty."""
        if not messages or not messages[-1].content.strip():
            raise ClientInputError(message=MISSING_CONTENT_MESSAGE)
        return messages[-1]

    async def handle(
        self,
        messages: Sequence[ChatMessage],
        max_tokens: int | None = None,
        temperature: float | None = None,
        stream: bool | None = None,
        requested_model: str | None = None,
    ) -> CompletionResult:
        last = self.validate(messages)
        query = last.content

        retrieval_query = query
        if self._query_rewriter is not None:
            retrieval_query = await self._query_rewriter.rewrite(query)

        context = await self._retriever.retrieve(retrieval_query, k=self._top_k)
        prompt = self._prompt_builder.build(context, query)

        request = CompletionRequest(
            model=self._model,
            messages=(*messages[:-1], ChatMessage(role=last.role, content=prompt)),
            # Falsy values (0, 0.0) fall back to the defaults like unset ones.
            max_tokens=max_tokens or self._default_max_tokens,
            temperature=temperature or self._default_temperature,
            stream=bool(stream),
        )
        logger.info(
            "chat_completion_requested",
            model=request.model,
            requested_model=requested_model,
            messages=len(request.messages),
            context_chars=len(context),
            stream=request.stream,
        )
        return await self._streamer.complete(request)

    def describe(self) -> dict[str, Any]:
        """Settings summary for the health endpoint."""
        return {
            "model": self._model,
            "top_k": self._top_k,
            "query_rewrite": self._query_rewriter is not None,
        }
