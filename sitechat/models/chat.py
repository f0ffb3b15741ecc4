"""Chat-completion models: messages, requests, SSE events and decoded content.

ChatMessage and CompletionRequest are the per-request inputs to the
generation model; StreamEvent is one server-sent-events frame on the way
out.  :func:`decode_completion_content` is the single place that looks
inside an upstream chat-completion payload; callers receive a
:class:`CompletionContent` instead of probing nested dicts themselves.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

SSE_DONE_FRAME = "data: [DONE]\n\n"


class Role(str, Enum):
    """Speaker of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str = ""

    def to_payload(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


class CompletionRequest(BaseModel):
    """Parameters for one generation-model call."""

    model_config = ConfigDict(frozen=True)

    model: str
    messages: tuple[ChatMessage, ...] = Field(min_length=1)
    max_tokens: int = Field(default=150, ge=1)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    stream: bool = False

    def to_payload(self, *, stream: bool | None = None) -> dict[str, Any]:
        """OpenAI-style request body; *stream* overrides the request's own flag."""
        return {
            "model": self.model,
            "messages": [m.to_payload() for m in self.messages],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "stream": self.stream if stream is None else stream,
        }


class StreamEvent(BaseModel):
    """One SSE data frame: an upstream fragment or an error.

    Fragments carry the upstream chunk dict unchanged; encoding adds nothing
    beyond the ``data: ...\\n\\n`` framing.  The closing sentinel is
    :data:`SSE_DONE_FRAME`.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["fragment", "error"]
    data: dict[str, Any] | None = None

    @classmethod
    def fragment(cls, data: dict[str, Any]) -> StreamEvent:
        return cls(kind="fragment", data=data)

    @classmethod
    def error(cls, message: str) -> StreamEvent:
        return cls(kind="error", data={"error": {"message": message}})

    def encode(self) -> str:
        return f"data: {json.dumps(self.data, ensure_ascii=False)}\n\n"


class CompletionContent(BaseModel):
    """Result of decoding a chat-completion payload.

    Either ``ok=True`` with ``content`` or ``ok=False`` with a ``reason``
    describing which part of the payload was missing or malformed.
    """

    model_config = ConfigDict(frozen=True)

    ok: bool
    content: str = ""
    reason: str = ""


def decode_completion_content(payload: Any) -> CompletionContent:
    """Extract ``choices[0].message.content`` from a chat-completion payload."""
    if not isinstance(payload, dict):
        return CompletionContent(ok=False, reason=f"payload is {type(payload).__name__}, not an object")

    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return CompletionContent(ok=False, reason="payload has no choices")

    first = choices[0]
    if not isinstance(first, dict):
        return CompletionContent(ok=False, reason="choices[0] is not an object")

    message = first.get("message")
    if not isinstance(message, dict):
        return CompletionContent(ok=False, reason="choices[0] has no message")

    content = message.get("content")
    if not isinstance(content, str):
        return CompletionContent(ok=False, reason="choices[0].message has no text content")
    if not content.strip():
        return CompletionContent(ok=False, reason="choices[0].message.content is empty")

    return CompletionContent(ok=True, content=content)
