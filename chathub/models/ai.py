"""Request/response models for the AI proxy routes."""

from __future__ import annotations

from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    """Send one chat turn to a bot."""

    model_config = ConfigDict(extra="forbid")

    message: str = Field(..., min_length=1)
    bot_name: str | None = Field(default=None, max_length=100)
    conversation_id: UUID | None = None


class ChatResponse(BaseModel):
    response: str
    conversation_id: UUID


class ImageRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    prompt: str = Field(..., min_length=1)
    size: Literal["1024x1024", "1792x1024", "1024x1792"] = "1024x1024"


class ImageResponse(BaseModel):
    success: bool = True
    image: str


class SpeechRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    text: str = Field(..., min_length=1, max_length=4096)
    voice: str = "alloy"
    format: Literal["mp3", "opus", "aac", "flac", "wav"] = "mp3"


class TranscriptResponse(BaseModel):
    transcript: str


class BotInfo(BaseModel):
    """One entry of the public bot catalogue."""

    name: str
    provider: Literal["openai", "anthropic"]
    is_premium: bool
