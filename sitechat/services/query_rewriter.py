"""Optional retrieval-query expansion through the generation model.

Short chat questions ("fees?") embed poorly.  When enabled, the rewriter
asks the model to restate the question in more detail, expanding terms and
keywords, and the expanded text is used for **retrieval only**; the prompt
still carries the user's own words.

The model's reply goes through :func:`decode_completion_content`.  Any
unexpected shape degrades to the original query; an upstream failure is a
request-level error and propagates.
"""

from __future__ import annotations

import structlog

from sitechat.interfaces.llm_provider import ILLMProvider
from sitechat.models.chat import ChatMessage, CompletionRequest, Role, decode_completion_content
from sitechat.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)

_REWRITE_TEMPLATE = (
    "Create a prompt which can act as a prompt template where I put the original "
    "prompt and it can modify it according to my intentions so that the final "
    "modified prompt is more detailed. You can expand certain terms or keywords.\n"
    "----------\n"
    "PROMPT: {query}.\n"
    "MODIFIED PROMPT: "
)


class QueryRewriter:
    """Expands a user question into a more detailed retrieval query.

    Parameters
    ----------
    llm:
        Chat-completion provider.
    model:
        Model name for the rewrite call.
    max_tokens, temperature:
        Sampling parameters for the rewrite call.
    """

    def __init__(
        self,
        llm: ILLMProvider,
        model: str,
        max_tokens: int = 500,
        temperature: float = 0.7,
    ) -> None:
        self._llm = llm
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def rewrite(self, query: str) -> str:
        request = CompletionRequest(
            model=self._model,
            messages=(ChatMessage(role=Role.USER, content=_REWRITE_TEMPLATE.format(query=query)),),
            max_tokens=self._max_tokens,
            temperature=self._temperature,
            stream=False,
        )
        payload = await self._llm.create_chat_completion(request)
        decoded = decode_completion_content(payload)
        if not decoded.ok:
            logger.warning("query_rewrite_unusable", reason=decoded.reason)
            return query

        rewritten = decoded.content.strip()
        logger.info("query_rewritten", original_chars=len(query), rewritten_chars=len(rewritten))
        return rewritten
