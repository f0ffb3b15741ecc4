"""Unit tests for CompletionStreamer: streaming relay, single fallback, state machine."""

from __future__ import annotations

import json

import pytest

from sitechat.models.chat import SSE_DONE_FRAME, ChatMessage, CompletionRequest, Role
from sitechat.services.completion_streamer import (
    CompletionState,
    CompletionStateMachine,
    CompletionStreamer,
)
from sitechat.utils.errors import CompletionStateError, LLMError
from tests.conftest import FakeLLM, make_completion, make_fragment

S = CompletionState


def _request(stream: bool) -> CompletionRequest:
    return CompletionRequest(
        model="test-model",
        messages=(ChatMessage(role=Role.USER, content="hi"),),
        stream=stream,
    )


async def _drain(events) -> list[str]:
    return [frame async for frame in events]


def _payloads(frames: list[str]) -> list[dict]:
    return [json.loads(f[len("data: ") :]) for f in frames if f != SSE_DONE_FRAME]


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


class TestStateMachine:
    def test_happy_streaming_path(self) -> None:
        machine = CompletionStateMachine()
        for state in (S.STREAMING, S.STREAMING_DONE, S.DONE):
            machine.advance(state)
        assert machine.history == [S.INIT, S.STREAMING, S.STREAMING_DONE, S.DONE]
        assert not machine.fell_back

    def test_fallback_path(self) -> None:
        machine = CompletionStateMachine()
        for state in (S.STREAMING, S.STREAMING_FAILED, S.FALLBACK_BLOCKING, S.DONE):
            machine.advance(state)
        assert machine.fell_back

    @pytest.mark.parametrize(
        "path",
        [
            [S.FALLBACK_BLOCKING],
            [S.NON_STREAMING, S.FALLBACK_BLOCKING],
            [S.STREAMING, S.STREAMING_DONE, S.FALLBACK_BLOCKING],
            [S.STREAMING, S.STREAMING_FAILED, S.FALLBACK_BLOCKING, S.FALLBACK_BLOCKING],
            [S.STREAMING, S.STREAMING_FAILED, S.FALLBACK_BLOCKING, S.DONE, S.STREAMING],
        ],
    )
    def test_illegal_transitions_raise(self, path: list[CompletionState]) -> None:
        machine = CompletionStateMachine()
        with pytest.raises(CompletionStateError):
            for state in path:
                machine.advance(state)


# ---------------------------------------------------------------------------
# Non-streaming
# ---------------------------------------------------------------------------


class TestBlocking:
    @pytest.mark.asyncio
    async def test_returns_payload_unchanged(self) -> None:
        llm = FakeLLM(payload=make_completion("answer"))
        result = await CompletionStreamer(llm).complete(_request(stream=False))

        assert result.payload == make_completion("answer")
        assert not result.is_streaming
        assert result.machine.history == [S.INIT, S.NON_STREAMING, S.DONE]
        assert llm.stream_calls == []

    @pytest.mark.asyncio
    async def test_failure_propagates(self) -> None:
        llm = FakeLLM(completion_error=LLMError(message="quota"))
        with pytest.raises(LLMError):
            await CompletionStreamer(llm).complete(_request(stream=False))


# ---------------------------------------------------------------------------
# Streaming
# ---------------------------------------------------------------------------


class TestStreaming:
    @pytest.mark.asyncio
    async def test_fragments_then_done_without_fallback(self) -> None:
        fragments = [make_fragment("Hel"), make_fragment("lo")]
        llm = FakeLLM(fragments=fragments)

        result = await CompletionStreamer(llm).complete(_request(stream=True))
        frames = await _drain(result.events)

        assert frames[-1] == SSE_DONE_FRAME
        assert _payloads(frames) == fragments
        assert llm.completion_calls == []
        assert result.machine.history == [S.INIT, S.STREAMING, S.STREAMING_DONE, S.DONE]
        assert llm.stream_closed

    @pytest.mark.asyncio
    async def test_empty_stream_sends_only_done(self) -> None:
        result = await CompletionStreamer(FakeLLM(fragments=[])).complete(_request(stream=True))
        assert await _drain(result.events) == [SSE_DONE_FRAME]

    @pytest.mark.asyncio
    async def test_unavailable_stream_falls_back_once(self) -> None:
        llm = FakeLLM(open_error=LLMError(message="no stream"), payload=make_completion("fb"))

        result = await CompletionStreamer(llm).complete(_request(stream=True))

        assert not result.is_streaming
        assert result.fell_back
        assert result.payload == make_completion("fb")
        assert len(llm.completion_calls) == 1
        assert llm.completion_calls[0].stream is False
        assert result.machine.history == [
            S.INIT,
            S.STREAMING,
            S.STREAMING_FAILED,
            S.FALLBACK_BLOCKING,
            S.DONE,
        ]

    @pytest.mark.asyncio
    async def test_failure_before_first_fragment_falls_back(self) -> None:
        llm = FakeLLM(fragments=[make_fragment("a")], fail_after=0)
        result = await CompletionStreamer(llm).complete(_request(stream=True))

        assert result.fell_back
        assert llm.pulled == 0
        assert len(llm.completion_calls) == 1
        assert llm.stream_closed

    @pytest.mark.asyncio
    async def test_fallback_failure_propagates_without_second_fallback(self) -> None:
        llm = FakeLLM(
            open_error=LLMError(message="no stream"),
            completion_error=LLMError(message="also down"),
        )
        with pytest.raises(LLMError, match="also down"):
            await CompletionStreamer(llm).complete(_request(stream=True))
        assert len(llm.completion_calls) == 1
        assert len(llm.stream_calls) == 1

    @pytest.mark.asyncio
    async def test_failure_after_delivery_sends_error_frame_no_fallback(self) -> None:
        llm = FakeLLM(fragments=[make_fragment("a"), make_fragment("b")], fail_after=1)

        result = await CompletionStreamer(llm).complete(_request(stream=True))
        frames = await _drain(result.events)

        assert SSE_DONE_FRAME not in frames
        assert _payloads(frames) == [make_fragment("a"), {"error": {"message": "[fake] stream broke"}}]
        assert llm.completion_calls == []
        assert result.machine.history == [S.INIT, S.STREAMING, S.STREAMING_FAILED, S.DONE]
        assert not result.fell_back

    @pytest.mark.asyncio
    async def test_closing_events_closes_upstream(self) -> None:
        llm = FakeLLM(fragments=[make_fragment(str(i)) for i in range(10)])

        result = await CompletionStreamer(llm).complete(_request(stream=True))
        first = await anext(result.events)
        await result.events.aclose()

        assert json.loads(first[6:]) == make_fragment("0")
        assert llm.stream_closed
        assert llm.pulled < 10

    @pytest.mark.asyncio
    async def test_fragments_pulled_on_demand(self) -> None:
        llm = FakeLLM(fragments=[make_fragment(str(i)) for i in range(5)])
        result = await CompletionStreamer(llm).complete(_request(stream=True))

        # priming pulls exactly one fragment before any frame is consumed
        assert llm.pulled == 1
        await anext(result.events)
        await anext(result.events)
        assert llm.pulled == 2
        await result.events.aclose()
