"""Core services: ingestion pipeline and the retrieval + generation query path."""

from sitechat.services.chat_service import ChatService
from sitechat.services.completion_streamer import (
    CompletionResult,
    CompletionState,
    CompletionStateMachine,
    CompletionStreamer,
)
from sitechat.services.prompt_builder import PromptBuilder
from sitechat.services.query_rewriter import QueryRewriter
from sitechat.services.retriever import Retriever

__all__ = [
    "ChatService",
    "CompletionResult",
    "CompletionState",
    "CompletionStateMachine",
    "CompletionStreamer",
    "PromptBuilder",
    "QueryRewriter",
    "Retriever",
]
