"""Pydantic request/response schemas for the sitechat API.

The chat-completions request mirrors the OpenAI request body so existing
OpenAI-style clients can point at this service.  Responses for the chat
route are relayed upstream payloads and therefore have no schema here.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from sitechat.models.chat import ChatMessage, Role


class ChatMessageIn(BaseModel):
    """One inbound chat message; ``content`` may be null as in the OpenAI API."""

    role: Role = Role.USER
    content: str | None = None

    def to_model(self) -> ChatMessage:
        return ChatMessage(role=self.role, content=self.content or "")


class ChatCompletionRequestBody(BaseModel):
    """Body of ``POST /chat-completions``."""

    messages: list[ChatMessageIn] = Field(default_factory=list)
    max_tokens: int | None = Field(default=None, ge=0)
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    stream: bool | None = None
    model: str | None = Field(
        default=None,
        description="Accepted for client compatibility; the server's configured model is used.",
    )


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
