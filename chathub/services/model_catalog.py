"""
Bot catalogue: display name -> provider, upstream model, premium flag.

Several display names map onto the same upstream model until
the newer one is generally available.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

DEFAULT_BOT = "default"


@dataclass(frozen=True)
class BotConfig:
    provider: Literal["openai", "anthropic"]
    model: str
    is_premium: bool = False


MODEL_MAP: dict[str, BotConfig] = {
    # OpenAI
    "GPT-4o": BotConfig("openai", "gpt-4o"),
    "GPT-4o mini": BotConfig("openai", "gpt-4o-mini"),
    "GPT-5.1": BotConfig("openai", "gpt-4o", is_premium=True),
    "GPT-5 Turbo": BotConfig("openai", "gpt-4o", is_premium=True),
    "GPT-4.1": BotConfig("openai", "gpt-4-turbo"),
    "GPT-4.1 Mini": BotConfig("openai", "gpt-4o-mini"),
    # Anthropic
    "Claude 3.5 Sonnet": BotConfig("anthropic", "claude-3-5-sonnet-20241022"),
    "Claude 4.5": BotConfig("anthropic", "claude-sonnet-4-20250514", is_premium=True),
    "Claude 4 Opus": BotConfig("anthropic", "claude-sonnet-4-20250514", is_premium=True),
    # Served through OpenAI-compatible models
    "DeepSeek V3": BotConfig("openai", "gpt-4o-mini"),
    "DeepSeek RT": BotConfig("openai", "gpt-4o-mini"),
    "Grok-3 Mini": BotConfig("openai", "gpt-4o-mini"),
    "Grok-4": BotConfig("openai", "gpt-4o"),
}

_FALLBACK = BotConfig("openai", "gpt-4o-mini")


def bot_id_for(bot_name: str | None) -> str:
    """
    Usage-ledger key for a bot.

    Only catalogue names are keys of their own. Missing and unknown names all
    share DEFAULT_BOT, the same key as the fallback model they are served by.
    """
    if bot_name and bot_name in MODEL_MAP:
        return bot_name
    return DEFAULT_BOT


def get_bot_config(bot_name: str | None) -> BotConfig:
    """Look up a bot; unknown names fall back to a free gpt-4o-mini bot."""
    if not bot_name:
        return _FALLBACK
    return MODEL_MAP.get(bot_name, _FALLBACK)
