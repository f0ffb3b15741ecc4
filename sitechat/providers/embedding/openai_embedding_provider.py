"""Embeddings through any OpenAI-compatible ``/embeddings`` endpoint.

The same adapter serves api.openai.com and Google's Gemini surface
(``openai_base_url`` + ``gemini-embedding-001``).  The vector dimension is
looked up from the model name because the store has to be created with it
before the first call is made.
"""

from __future__ import annotations

from typing import Iterator

import openai
import structlog

from sitechat.config.settings import Settings
from sitechat.interfaces.embedding_provider import IEmbeddingProvider
from sitechat.utils.errors import RAGError

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_EMBEDDING_MODEL = "text-embedding-3-large"
DEFAULT_DIMENSION = 3072

# Inputs per request accepted by the OpenAI embeddings API.
_MAX_INPUTS_PER_CALL = 2048

_DIMENSIONS_BY_MODEL: dict[str, int] = {
    "text-embedding-3-large": 3072,
    "text-embedding-3-small": 1536,
    "text-embedding-ada-002": 1536,
    "gemini-embedding-001": 3072,
    "text-embedding-004": 768,
    "nomic-embed-text": 768,
}


def _slices(texts: list[str], size: int) -> Iterator[list[str]]:
    for start in range(0, len(texts), size):
        yield texts[start : start + size]


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Turns chunk and query text into vectors.

    ``embed`` is strict (any failure raises :class:`RAGError`);
    ``embed_single`` is lenient and reports failure as an empty vector.
    """

    def __init__(self, settings: Settings, client: openai.AsyncOpenAI | None = None) -> None:
        self._api_key = settings.openai_api_key
        self._model = settings.openai_embedding_model or DEFAULT_EMBEDDING_MODEL
        self._dimension = _DIMENSIONS_BY_MODEL.get(self._model, DEFAULT_DIMENSION)
        self._label = "openai-compatible_embedding" if settings.openai_base_url else "openai_embedding"
        if client is None:
            client = openai.AsyncOpenAI(
                api_key=self._api_key,
                base_url=settings.openai_base_url or None,
            )
        self._client = client

    @property
    def model(self) -> str:
        return self._model

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        vectors: list[list[float]] = []
        for batch in _slices(texts, _MAX_INPUTS_PER_CALL):
            vectors.extend(await self._request(batch))

        if len(vectors) != len(texts):
            raise RAGError(
                message=f"{self._model} returned {len(vectors)} vectors for {len(texts)} inputs",
                provider_name=self._label,
            )
        return vectors

    async def embed_single(self, text: str) -> list[float]:
        if not text.strip():
            logger.warning("embedding_input_blank", model=self._model)
            return []
        try:
            vectors = await self.embed([text])
        except RAGError as exc:
            logger.error("embedding_failed", model=self._model, chars=len(text), error=str(exc))
            return []
        return list(vectors[0])

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return self._label

    def is_available(self) -> bool:
        return bool(self._api_key)

    async def _request(self, batch: list[str]) -> list[list[float]]:
        try:
            response = await self._client.embeddings.create(input=batch, model=self._model)
        except openai.APIError as exc:
            raise RAGError(
                message=f"embeddings request to {self._model} failed: {exc}",
                provider_name=self._label,
            ) from exc
        usage = getattr(response, "usage", None)
        logger.debug(
            "embedding_batch",
            model=self._model,
            inputs=len(batch),
            tokens=getattr(usage, "total_tokens", None),
        )
        return [item.embedding for item in response.data]
