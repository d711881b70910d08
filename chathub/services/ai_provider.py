"""AI provider abstraction for Anthropic and OpenAI models."""

from __future__ import annotations

import asyncio
import logging
from io import BytesIO
from collections.abc import AsyncIterator
from typing import Any

import anthropic
import openai

from chathub.services.model_catalog import BotConfig

logger = logging.getLogger(__name__)

# Transient error types that warrant a retry
_RETRYABLE_ANTHROPIC = (
    anthropic.RateLimitError,
    anthropic.APIConnectionError,
    anthropic.InternalServerError,
)
_RETRYABLE_OPENAI = (
    openai.RateLimitError,
    openai.APIConnectionError,
    openai.InternalServerError,
)

CHAT_MAX_TOKENS = 4096
IMAGE_MODEL = "dall-e-3"
TTS_MODEL = "tts-1"
TRANSCRIBE_MODEL = "whisper-1"


class ProviderError(Exception):
    """An upstream AI provider failed or is not configured."""


class ProviderTimeout(ProviderError):
    """The provider did not answer within the request pipeline's deadline."""


class AIProvider:
    """Unified interface for AI providers (Anthropic, OpenAI)."""

    def __init__(self, openai_api_key: str, anthropic_api_key: str = "", max_retries: int = 1) -> None:
        self.openai_client = openai.AsyncOpenAI(api_key=openai_api_key)
        self.anthropic_client = anthropic.AsyncAnthropic(api_key=anthropic_api_key) if anthropic_api_key else None
        self.max_retries = max_retries

    async def chat(self, bot: BotConfig, messages: list[dict[str, Any]]) -> str:
        """
        Send a conversation to the bot's provider and return the reply text.

        Args:
            bot: Catalogue entry naming provider and model
            messages: List of {"role", "content"} dicts, oldest first

        Raises:
            ProviderError: provider not configured or all retries failed
        """
        if bot.provider == "anthropic":
            return await self._call_claude(bot.model, messages)
        return await self._call_gpt(bot.model, messages)

    async def _call_claude(self, model: str, messages: list[dict[str, Any]]) -> str:
        if self.anthropic_client is None:
            raise ProviderError("Anthropic API not configured.")

        async def call() -> str:
            response = await self.anthropic_client.messages.create(
                model=model,
                max_tokens=CHAT_MAX_TOKENS,
                messages=messages,
            )
            return "".join(block.text for block in response.content if getattr(block, "type", "") == "text")

        return await self._with_retries("Claude", call, _RETRYABLE_ANTHROPIC, anthropic.APIError)

    async def _call_gpt(self, model: str, messages: list[dict[str, Any]]) -> str:
        async def call() -> str:
            response = await self.openai_client.chat.completions.create(
                model=model,
                messages=messages,
            )
            return response.choices[0].message.content or ""

        return await self._with_retries("OpenAI", call, _RETRYABLE_OPENAI, openai.APIError)

    async def chat_stream(self, bot: BotConfig, messages: list[dict[str, Any]]) -> AsyncIterator[str]:
        """
        Stream the reply as text deltas.

        Streams are not retried: by the time a transient error surfaces, part
        of the reply may already be on its way to the client.

        Raises:
            ProviderError: provider not configured or the stream failed
        """
        if bot.provider == "anthropic":
            deltas = self._stream_claude(bot.model, messages)
        else:
            deltas = self._stream_gpt(bot.model, messages)
        async for text in deltas:
            yield text

    async def _stream_claude(self, model: str, messages: list[dict[str, Any]]) -> AsyncIterator[str]:
        if self.anthropic_client is None:
            raise ProviderError("Anthropic API not configured.")

        try:
            async with self.anthropic_client.messages.stream(
                model=model,
                max_tokens=CHAT_MAX_TOKENS,
                messages=messages,
            ) as stream:
                async for event in stream:
                    if event.type == "content_block_delta" and hasattr(event.delta, "text"):
                        yield event.delta.text
        except anthropic.APIError as e:
            logger.error("Claude stream error: %s", e)
            raise ProviderError("Claude stream failed") from e

    async def _stream_gpt(self, model: str, messages: list[dict[str, Any]]) -> AsyncIterator[str]:
        try:
            stream = await self.openai_client.chat.completions.create(
                model=model,
                messages=messages,
                stream=True,
            )
            async for chunk in stream:
                delta = chunk.choices[0].delta.content if chunk.choices else None
                if delta:
                    yield delta
        except openai.APIError as e:
            logger.error("OpenAI stream error: %s", e)
            raise ProviderError("OpenAI stream failed") from e

    async def generate_image(self, prompt: str, size: str = "1024x1024") -> str:
        """
        Generate one image.

        Returns:
            data: URL with the base64-encoded PNG
        """

        async def call() -> str:
            response = await self.openai_client.images.generate(
                model=IMAGE_MODEL,
                prompt=prompt,
                size=size,
                n=1,
                response_format="b64_json",
            )
            b64 = response.data[0].b64_json if response.data else None
            if not b64:
                raise ProviderError("Image provider returned no image bytes")
            return f"data:image/png;base64,{b64}"

        return await self._with_retries("OpenAI image", call, _RETRYABLE_OPENAI, openai.APIError)

    async def synthesize_speech(self, text: str, voice: str = "alloy", fmt: str = "mp3") -> bytes:
        """Text-to-speech. Returns the encoded audio bytes."""

        async def call() -> bytes:
            response = await self.openai_client.audio.speech.create(
                model=TTS_MODEL,
                voice=voice,
                input=text,
                response_format=fmt,
            )
            return response.content

        return await self._with_retries("OpenAI TTS", call, _RETRYABLE_OPENAI, openai.APIError)

    async def transcribe(self, audio_data: bytes, filename: str = "audio.webm") -> str:
        """
        Transcribe audio using OpenAI Whisper.

        Args:
            audio_data: Raw audio bytes
            filename: Filename hint for audio format

        Returns:
            Transcribed text
        """
        audio_file = BytesIO(audio_data)
        audio_file.name = filename

        async def call() -> str:
            response = await self.openai_client.audio.transcriptions.create(
                model=TRANSCRIBE_MODEL,
                file=audio_file,
            )
            return response.text

        return await self._with_retries("OpenAI transcription", call, _RETRYABLE_OPENAI, openai.APIError)

    async def _with_retries(self, label, call, retryable, api_error):
        last_error: Exception | None = None

        for attempt in range(self.max_retries + 1):
            try:
                return await call()
            except retryable as e:
                last_error = e
                if attempt < self.max_retries:
                    wait_time = 2**attempt  # Exponential backoff: 1s, 2s, 4s...
                    logger.warning("%s API error (attempt %d), retrying in %ds: %s", label, attempt + 1, wait_time, e)
                    await asyncio.sleep(wait_time)
                else:
                    logger.error("%s API error, retries exhausted: %s", label, e)
            except api_error as e:
                logger.error("%s API error: %s", label, e)
                raise ProviderError(f"{label} request failed") from e

        raise ProviderError(f"{label} request failed") from last_error
