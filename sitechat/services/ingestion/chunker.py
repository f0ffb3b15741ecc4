"""Greedy sentence/word packing of cleaned text into bounded chunks.

Splits text on runs of ``.``, ``!`` and ``?`` (the terminators are
dropped), then packs sentences left to right into chunks of at most
``max_size`` characters, joined by single spaces.  A sentence too long to
fit any chunk is packed word by word under the same rule, and a single
word longer than ``max_size`` becomes a chunk of its own, the only case in
which a chunk exceeds the limit.

One pass, deterministic, no overlap between chunks.  Boundaries are
approximate: this is greedy packing by character count, not an optimal
split.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone

import structlog

from sitechat.models.rag import Chunk, Document

logger = structlog.get_logger(logger_name=__name__)

_SENTENCE_BREAK = re.compile(r"[.!?]+")

DEFAULT_MAX_CHUNK_SIZE = 700


def split_sentences(text: str) -> list[str]:
    """Split on runs of sentence terminators; trim and drop empty pieces."""
    return [s.strip() for s in _SENTENCE_BREAK.split(text) if s.strip()]


class TextChunker:
    """Splits text into chunks of at most ``max_size`` characters.

    Parameters
    ----------
    max_size:
        Default maximum chunk length in characters (700).
    """

    def __init__(self, max_size: int = DEFAULT_MAX_CHUNK_SIZE) -> None:
        if max_size < 1:
            raise ValueError(f"max_size must be at least 1, got {max_size}")
        self._max_size = max_size

    @property
    def max_size(self) -> int:
        return self._max_size

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chunk(self, text: str, max_size: int | None = None) -> list[str]:
        """Pack *text* into an ordered list of chunk strings."""
        limit = max_size if max_size is not None else self._max_size
        if limit < 1:
            raise ValueError(f"max_size must be at least 1, got {limit}")

        chunks: list[str] = []
        buffer = ""
        for sentence in split_sentences(text):
            if _joined_length(buffer, sentence) <= limit:
                buffer = f"{buffer} {sentence}" if buffer else sentence
                continue

            if buffer:
                chunks.append(buffer)
                buffer = ""
            if len(sentence) <= limit:
                buffer = sentence
            else:
                buffer = self._pack_words(sentence, limit, chunks)

        if buffer:
            chunks.append(buffer)
        return chunks

    def chunk_document(
        self,
        document: Document,
        text: str | None = None,
        created_at: datetime | None = None,
    ) -> list[Chunk]:
        """Chunk a document into :class:`Chunk` models.

        *text* replaces ``document.raw_text`` (pass the cleaned text);
        every chunk shares one ``created_at`` timestamp.
        """
        pieces = self.chunk(document.raw_text if text is None else text)
        if not pieces:
            return []
        created_at = created_at or datetime.now(tz=timezone.utc)
        chunks = [
            Chunk(
                text=piece,
                index=idx,
                total_chunks=len(pieces),
                source_url=document.source_url,
                created_at=created_at,
            )
            for idx, piece in enumerate(pieces)
        ]
        logger.debug(
            "chunking_complete",
            source_url=document.source_url,
            num_chunks=len(chunks),
            max_chars=max(len(c.text) for c in chunks),
        )
        return chunks

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _pack_words(sentence: str, limit: int, chunks: list[str]) -> str:
        """Pack an oversized sentence word by word.

        Full chunks are appended to *chunks*; the trailing partial buffer
        is returned so following sentences can continue filling it.
        """
        buffer = ""
        for word in sentence.split():
            if _joined_length(buffer, word) <= limit:
                buffer = f"{buffer} {word}" if buffer else word
                continue
            if buffer:
                chunks.append(buffer)
                buffer = ""
            if len(word) > limit:
                chunks.append(word)
            else:
                buffer = word
        return buffer


def _joined_length(buffer: str, piece: str) -> int:
    return len(buffer) + 1 + len(piece) if buffer else len(piece)
