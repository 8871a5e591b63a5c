"""Language model providers for the assistant."""

import logging
import os

from virtual_assistant.llm.provider import LLMProvider, LLMProviderError
from virtual_assistant.llm.stub_provider import StubLLMProvider

logger = logging.getLogger(__name__)

__all__ = ["LLMProvider", "LLMProviderError", "StubLLMProvider", "get_llm_provider"]


def get_llm_provider() -> LLMProvider:
    """Get the configured LLM provider.

    Returns the provider selected by environment configuration:
    - If ASSISTANT_LLM_PROVIDER=gemini or unset: returns GeminiProvider
    - If ASSISTANT_LLM_PROVIDER=stub: returns StubLLMProvider

    Environment variables:
        ASSISTANT_LLM_PROVIDER: Provider type (default: "gemini", options: "gemini", "stub")
        GEMINI_API_KEY: Required for the gemini provider

    Raises:
        ValueError: If the gemini provider is selected without an API key
    """
    provider_type = os.environ.get("ASSISTANT_LLM_PROVIDER", "gemini").lower()

    if provider_type == "stub":
        return StubLLMProvider()
    elif provider_type == "gemini":
        from virtual_assistant.llm.gemini_provider import GeminiProvider

        return GeminiProvider()
    else:
        logger.warning("Unknown LLM provider '%s', falling back to stub", provider_type)
        return StubLLMProvider()
