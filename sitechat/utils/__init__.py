"""Utility modules for sitechat.

- **concurrency** -- async token-bucket rate limiter shared by every call
  to one external collaborator (embedding API, vector store).
- **errors** -- exception hierarchy rooted at SiteChatError; ingestion
  skips ``UpstreamError`` units, the query path maps them to HTTP errors.
- **logging** -- structlog setup with a dual renderer: coloured console
  output in development, JSON in production.
"""

from sitechat.utils.concurrency import AsyncRateLimiter
from sitechat.utils.errors import (
    ClientInputError,
    CompletionStateError,
    ConfigurationError,
    LLMError,
    RAGError,
    ScrapeError,
    SiteChatError,
    UpstreamError,
)
from sitechat.utils.logging import configure_logging, get_logger

__all__ = [
    "AsyncRateLimiter",
    "ClientInputError",
    "CompletionStateError",
    "ConfigurationError",
    "LLMError",
    "RAGError",
    "ScrapeError",
    "SiteChatError",
    "UpstreamError",
    "configure_logging",
    "get_logger",
]
