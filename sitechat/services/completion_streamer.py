"""Streamed chat completion with a single blocking fallback.

:class:`CompletionStreamer` drives one request through an explicit state
machine::

    INIT -> NON_STREAMING -> DONE
    INIT -> STREAMING -> STREAMING_DONE -> DONE
    INIT -> STREAMING -> STREAMING_FAILED -> FALLBACK_BLOCKING -> DONE
    INIT -> STREAMING -> STREAMING_FAILED -> DONE      (failed after delivery)

Every transition is checked against :data:`_TRANSITIONS`; an illegal move
raises :class:`CompletionStateError`.  ``FALLBACK_BLOCKING`` is reachable
from exactly one path, so a request falls back at most once.

Before a streaming result is handed to the caller the upstream stream is
*primed*: its first fragment is pulled.  Any failure up to that point
happens before a single byte reaches the client, so the streamer can
still switch to one blocking call and return its result as if streaming
had never been requested.  Once fragments have been delivered a failure
cannot fall back without duplicating output; the relay emits an SSE error
frame and ends without the ``[DONE]`` sentinel.

Fragments are relayed one at a time by an async generator: the next
upstream fragment is pulled only when the consumer asks for the next
frame, and closing the generator closes the upstream stream.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator

import structlog

from sitechat.interfaces.llm_provider import ILLMProvider
from sitechat.models.chat import SSE_DONE_FRAME, CompletionRequest, StreamEvent
from sitechat.utils.errors import CompletionStateError
from sitechat.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)


class CompletionState(str, Enum):
    """States of one completion request."""

    INIT = "INIT"
    NON_STREAMING = "NON_STREAMING"
    STREAMING = "STREAMING"
    STREAMING_DONE = "STREAMING_DONE"
    STREAMING_FAILED = "STREAMING_FAILED"
    FALLBACK_BLOCKING = "FALLBACK_BLOCKING"
    DONE = "DONE"


_TRANSITIONS: dict[CompletionState, frozenset[CompletionState]] = {
    CompletionState.INIT: frozenset({CompletionState.NON_STREAMING, CompletionState.STREAMING}),
    CompletionState.NON_STREAMING: frozenset({CompletionState.DONE}),
    CompletionState.STREAMING: frozenset(
        {CompletionState.STREAMING_DONE, CompletionState.STREAMING_FAILED}
    ),
    CompletionState.STREAMING_DONE: frozenset({CompletionState.DONE}),
    CompletionState.STREAMING_FAILED: frozenset(
        {CompletionState.FALLBACK_BLOCKING, CompletionState.DONE}
    ),
    CompletionState.FALLBACK_BLOCKING: frozenset({CompletionState.DONE}),
    CompletionState.DONE: frozenset(),
}


class CompletionStateMachine:
    """Tracks and validates the state of one completion request."""

    def __init__(self) -> None:
        self._state = CompletionState.INIT
        self._history: list[CompletionState] = [CompletionState.INIT]

    @property
    def state(self) -> CompletionState:
        return self._state

    @property
    def history(self) -> list[CompletionState]:
        return list(self._history)

    @property
    def fell_back(self) -> bool:
        return CompletionState.FALLBACK_BLOCKING in self._history

    def advance(self, target: CompletionState) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise CompletionStateError(
                message=f"Illegal completion transition {self._state.value} -> {target.value}"
            )
        self._state = target
        self._history.append(target)


@dataclass(frozen=True)
class CompletionResult:
    """What :meth:`CompletionStreamer.complete` hands back.

    Exactly one of ``payload`` (a blocking chat-completion object) and
    ``events`` (an async iterator of encoded SSE frames) is set.
    """

    machine: CompletionStateMachine
    payload: dict[str, Any] | None = None
    events: AsyncIterator[str] | None = None

    @property
    def is_streaming(self) -> bool:
        return self.events is not None

    @property
    def fell_back(self) -> bool:
        return self.machine.fell_back


class CompletionStreamer:
    """Runs a completion request as a live SSE stream or a single result.

    Parameters
    ----------
    llm:
        Chat-completion provider.  Its stream may be unavailable or
        unreliable; that is handled as a recoverable failure.
    """

    def __init__(self, llm: ILLMProvider) -> None:
        self._llm = llm

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        """Complete *request*.

        Raises
        ------
        sitechat.utils.errors.LLMError
            If the blocking call (direct or fallback) fails.
        """
        machine = CompletionStateMachine()

        if not request.stream:
            machine.advance(CompletionState.NON_STREAMING)
            payload = await self._llm.create_chat_completion(request)
            machine.advance(CompletionState.DONE)
            return CompletionResult(machine=machine, payload=payload)

        machine.advance(CompletionState.STREAMING)
        upstream = self._llm.stream_chat_completion(request)
        try:
            first: dict[str, Any] | None = await anext(upstream)
        except StopAsyncIteration:
            first = None
        except Exception as exc:
            await _close_upstream(upstream)
            machine.advance(CompletionState.STREAMING_FAILED)
            logger.warning(
                "streaming_failed_falling_back",
                model=request.model,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            machine.advance(CompletionState.FALLBACK_BLOCKING)
            payload = await self._llm.create_chat_completion(
                request.model_copy(update={"stream": False})
            )
            machine.advance(CompletionState.DONE)
            logger.info("fallback_completion_returned", model=request.model)
            return CompletionResult(machine=machine, payload=payload)

        return CompletionResult(machine=machine, events=self._relay(machine, upstream, first))

    async def _relay(
        self,
        machine: CompletionStateMachine,
        upstream: AsyncIterator[dict[str, Any]],
        first: dict[str, Any] | None,
    ) -> AsyncIterator[str]:
        delivered = 0
        try:
            if first is not None:
                yield StreamEvent.fragment(first).encode()
                delivered += 1
                async for fragment in upstream:
                    yield StreamEvent.fragment(fragment).encode()
                    delivered += 1
            machine.advance(CompletionState.STREAMING_DONE)
            yield SSE_DONE_FRAME
            machine.advance(CompletionState.DONE)
            logger.info("stream_completed", fragments=delivered)
        except (asyncio.CancelledError, GeneratorExit):
            logger.info("stream_consumer_disconnected", fragments=delivered)
            raise
        except Exception as exc:
            machine.advance(CompletionState.STREAMING_FAILED)
            logger.error(
                "streaming_failed_after_delivery",
                fragments=delivered,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            machine.advance(CompletionState.DONE)
            yield StreamEvent.error(str(exc)).encode()
        finally:
            await _close_upstream(upstream)


async def _close_upstream(upstream: AsyncIterator[Any]) -> None:
    aclose = getattr(upstream, "aclose", None)
    if aclose is None:
        return
    try:
        await aclose()
    except Exception as exc:
        logger.debug("upstream_close_failed", error=str(exc))
