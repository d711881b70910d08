"""
Mock AI provider for deterministic tests and local runs without API keys.

Mirrors the AIProvider interface; every call returns immediately.
"""

from __future__ import annotations

import base64
from collections.abc import AsyncIterator
from typing import Any

from chathub.services.model_catalog import BotConfig

# 1x1 transparent PNG
_PIXEL_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)


class MockProvider:
    """Echoes inputs back so tests can assert on what reached the provider."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []

    async def chat(self, bot: BotConfig, messages: list[dict[str, Any]]) -> str:
        self.calls.append(("chat", bot.model))
        last = messages[-1]["content"] if messages else ""
        return f"[{bot.model}] {last}"

    async def chat_stream(self, bot: BotConfig, messages: list[dict[str, Any]]) -> AsyncIterator[str]:
        """Yields the same text as chat(), one word at a time."""
        self.calls.append(("chat_stream", bot.model))
        last = messages[-1]["content"] if messages else ""
        words = f"[{bot.model}] {last}".split(" ")
        for i, word in enumerate(words):
            yield word if i == 0 else " " + word

    async def generate_image(self, prompt: str, size: str = "1024x1024") -> str:
        self.calls.append(("image", prompt))
        return "data:image/png;base64," + base64.b64encode(_PIXEL_PNG).decode("ascii")

    async def synthesize_speech(self, text: str, voice: str = "alloy", fmt: str = "mp3") -> bytes:
        self.calls.append(("speech", text))
        return f"{voice}:{text}".encode()

    async def transcribe(self, audio_data: bytes, filename: str = "audio.webm") -> str:
        self.calls.append(("transcribe", filename))
        return f"transcript of {len(audio_data)} bytes"
