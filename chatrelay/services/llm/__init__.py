"""Generation provider factory."""

from chatrelay.services.llm.base import BaseLLMProvider


def get_llm_provider() -> BaseLLMProvider:
    """Factory function that returns the configured provider. Also a FastAPI dependency."""
    from chatrelay.services.llm.openai_provider import OpenAIProvider
    return OpenAIProvider()
