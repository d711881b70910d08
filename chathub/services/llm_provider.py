"""
AI provider factory.

Returns MockProvider when USE_MOCK_LLM=true (tests / local runs)
or the real AIProvider when an OpenAI key is configured.
"""

from __future__ import annotations

from functools import lru_cache

from chathub.config import settings
from chathub.services.ai_provider import AIProvider
from chathub.services.mock_provider import MockProvider


@lru_cache(maxsize=1)
def get_provider() -> AIProvider | MockProvider:
    """
    Return the configured provider implementation.

    - USE_MOCK_LLM=true          → MockProvider (deterministic, no API calls)
    - OPENAI_API_KEY available   → AIProvider (Anthropic too if its key is set)
    - default                    → MockProvider (fallback)
    """
    if settings.USE_MOCK_LLM:
        return MockProvider()

    if settings.OPENAI_API_KEY:
        return AIProvider(
            openai_api_key=settings.OPENAI_API_KEY,
            anthropic_api_key=settings.ANTHROPIC_API_KEY,
        )

    return MockProvider()
