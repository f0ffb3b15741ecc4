"""LLM provider adapters.

One concrete implementation of ILLMProvider (sitechat/interfaces/llm_provider.py):
    - OpenAILLMProvider - any OpenAI-compatible chat-completions endpoint
      (api.openai.com, Gemini's OpenAI surface, Ollama's /v1)

main.py builds it once at startup and stores it on app.state.
"""

from sitechat.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["OpenAILLMProvider"]
