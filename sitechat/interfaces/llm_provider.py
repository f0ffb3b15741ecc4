"""Abstract base class for LLM service providers.

Defines the contract for an OpenAI-style chat-completion backend.  Payloads
cross this boundary as plain dicts shaped like the OpenAI wire format so
that the HTTP layer can relay them to clients unchanged.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator

from sitechat.models.chat import CompletionRequest


# Concrete implementation: OpenAILLMProvider (sitechat/providers/llm/)
class ILLMProvider(ABC):
    """Contract for chat-completion services used on the query path."""

    @abstractmethod
    async def create_chat_completion(self, request: CompletionRequest) -> dict[str, Any]:
        """Issue one blocking (non-streaming) chat completion.

        The request's ``stream`` flag is ignored; this call never streams.

        Returns
        -------
        dict
            The completion object (``choices[0].message.content`` holds the
            answer), unchanged apart from JSON serialisation.

        Raises
        ------
        sitechat.utils.errors.LLMError
            If the API call fails.
        """

    @abstractmethod
    def stream_chat_completion(self, request: CompletionRequest) -> AsyncIterator[dict[str, Any]]:
        """Open a streaming chat completion.

        Returns an async iterator of incremental chunk dicts.  Nothing is
        sent upstream until the first item is pulled; a failure to open
        the stream surfaces from that first pull.  Implementations must
        release the upstream connection when the iterator is closed early
        (``aclose()``).

        Raises
        ------
        sitechat.utils.errors.LLMError
            If opening or consuming the stream fails.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"openai"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if credentials are present."""
