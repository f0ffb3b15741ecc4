"""Assembles the grounded instruction sent to the generation model.

The prompt has a fixed shape::

    <persona>

    Context:
    <retrieved context, verbatim>

    Question:
    <user query, verbatim>

Neither the context nor the query is escaped or rewritten.  Retrieved
pages and user input are passed through as-is and the model is expected
to treat the Context block as reference material.
"""

from __future__ import annotations

from sitechat.config.settings import DEFAULT_PERSONA


class PromptBuilder:
    """Builds the persona + Context + Question prompt.

    Parameters
    ----------
    persona:
        Opening role statement.  Defaults to a support-assistant persona
        that tells the model to answer from the context only.
    """

    def __init__(self, persona: str = DEFAULT_PERSONA) -> None:
        self._persona = persona.strip()

    @property
    def persona(self) -> str:
        return self._persona

    def build(self, context: str, query: str) -> str:
        # An empty context still yields both labelled sections.
        return f"{self._persona}\n\nContext:\n{context}\n\nQuestion:\n{query}"
