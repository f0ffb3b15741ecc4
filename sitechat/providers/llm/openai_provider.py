"""OpenAI-compatible LLM provider adapter.

Wraps the ``openai`` async client to implement :class:`ILLMProvider`.
When ``openai_base_url`` is configured the client points at that URL
instead of api.openai.com; Google serves Gemini on an OpenAI-compatible
surface, so ``https://generativelanguage.googleapis.com/v1beta/openai/``
with ``gemini-2.0-flash-lite`` works through this one adapter.

Responses leave this module as plain dicts (``model_dump(mode="json")``)
so the HTTP layer can hand them to clients in the upstream shape.
"""

from __future__ import annotations

from typing import Any, AsyncIterator

import openai
import structlog

from sitechat.config.settings import Settings
from sitechat.interfaces.llm_provider import ILLMProvider
from sitechat.models.chat import CompletionRequest
from sitechat.utils.errors import LLMError

logger = structlog.get_logger(logger_name=__name__)


class OpenAILLMProvider(ILLMProvider):
    """LLM provider backed by an OpenAI-compatible chat-completions API."""

    def __init__(self, settings: Settings, client: openai.AsyncOpenAI | None = None) -> None:
        self._settings = settings
        self._api_key = settings.openai_api_key

        if client is None:
            client_kwargs: dict = {
                "api_key": self._api_key,
                "timeout": openai.Timeout(30.0, connect=5.0),
            }
            if settings.openai_base_url:
                client_kwargs["base_url"] = settings.openai_base_url
            client = openai.AsyncOpenAI(**client_kwargs)

        self._client = client
        self._text_model = settings.openai_text_model or "gpt-4o-mini"
        self._provider_label = (
            "openai-compatible" if settings.openai_base_url else "openai"
        )

    @property
    def text_model(self) -> str:
        return self._text_model

    # ------------------------------------------------------------------
    # ILLMProvider implementation
    # ------------------------------------------------------------------

    async def create_chat_completion(self, request: CompletionRequest) -> dict[str, Any]:
        try:
            response = await self._client.chat.completions.create(
                **request.to_payload(stream=False)
            )
        except openai.APIError as exc:
            raise LLMError(
                message=f"{self._provider_label} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info(
            "openai_chat_completion",
            model=request.model,
            provider=self._provider_label,
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return response.model_dump(mode="json", exclude_unset=True)

    async def stream_chat_completion(
        self, request: CompletionRequest
    ) -> AsyncIterator[dict[str, Any]]:
        try:
            stream = await self._client.chat.completions.create(
                **request.to_payload(stream=True)
            )
        except openai.APIError as exc:
            raise LLMError(
                message=f"{self._provider_label} stream open failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        fragments = 0
        try:
            async for chunk in stream:
                fragments += 1
                yield chunk.model_dump(mode="json", exclude_unset=True)
        except openai.APIError as exc:
            raise LLMError(
                message=f"{self._provider_label} stream interrupted: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        finally:
            # Releases the HTTP connection when the consumer stops early.
            await stream.close()
            logger.debug(
                "openai_stream_closed",
                model=request.model,
                provider=self._provider_label,
                fragments=fragments,
            )

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured (doesn't verify it works)."""
        return bool(self._api_key)

    def get_provider_name(self) -> str:
        return self._provider_label
