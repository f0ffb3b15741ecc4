"""Custom exception hierarchy for sitechat.

All application exceptions inherit from :class:`SiteChatError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "chromadb", "web_scraper") caused the
failure.

The hierarchy is organized by where the failure originates:

    SiteChatError  (base -- catch-all for any sitechat error)
    +-- ClientInputError         (bad request; no upstream call was made)
    +-- ConfigurationError       (startup / missing config)
    +-- CompletionStateError     (illegal streamer state transition)
    +-- UpstreamError            (an external collaborator failed)
        +-- LLMError             (chat-completion call failure)
        +-- RAGError             (embedding or vector-store failure)
        +-- ScrapeError          (fetching a source page failed)

Ingestion treats ``UpstreamError`` as "skip this unit and keep going";
the query path treats it as a request-level failure (HTTP 500) except for
streaming, which falls back to a blocking completion once.
"""


class SiteChatError(Exception):
    """Base exception for all sitechat errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  ``__str__`` prefixes the provider name in brackets for log
    output, e.g. ``[openai] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Request / configuration errors
# ---------------------------------------------------------------------------

class ClientInputError(SiteChatError):
    """Raised when an inbound request is unusable (e.g. no last message content)."""

    def __init__(
        self,
        message: str = "Invalid request",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(SiteChatError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class CompletionStateError(SiteChatError):
    """Raised when the completion streamer is driven through an illegal transition."""

    def __init__(
        self,
        message: str = "Illegal completion state transition",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# External service / provider errors
# ---------------------------------------------------------------------------

class UpstreamError(SiteChatError):
    """Raised when an external collaborator (model, store, website) fails."""

    def __init__(
        self,
        message: str = "Upstream service call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LLMError(UpstreamError):
    """Raised when a chat-completion API call fails."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RAGError(UpstreamError):
    """Raised when a RAG operation fails (embedding or vector store)."""

    def __init__(
        self,
        message: str = "RAG pipeline operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ScrapeError(UpstreamError):
    """Raised when a source page cannot be fetched."""

    def __init__(
        self,
        message: str = "Fetching source page failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
