"""
AI proxy routes: chat, image, speech and transcription.

Every handler goes through the request pipeline: the provider is only called
after the gate allows it, and a chat turn is only counted once the reply has
been stored. Streamed chat turns are counted once the stream has finished.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncGenerator, AsyncIterator
from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, File, Header, HTTPException, Response, UploadFile, status
from fastapi.responses import StreamingResponse

from chathub.entitlements import Capability
from chathub.models.ai import (
    BotInfo,
    ChatRequest,
    ChatResponse,
    ImageRequest,
    ImageResponse,
    SpeechRequest,
    TranscriptResponse,
)
from chathub.models.conversation import Conversation, Message
from chathub.models.user import User
from chathub.pipeline import pipeline
from chathub.repos.conversation_repo import ConversationRepo
from chathub.services.ai_provider import ProviderError
from chathub.services.llm_provider import get_provider
from chathub.services.model_catalog import MODEL_MAP, BotConfig, bot_id_for, get_bot_config

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["ai"])
conversation_repo = ConversationRepo()

IMAGE = Capability.premium_only("image")
SPEECH = Capability.premium_only("audio")
TRANSCRIBE = Capability.premium_only("transcribe")

_AUDIO_MEDIA_TYPES = {
    "mp3": "audio/mpeg",
    "opus": "audio/ogg",
    "aac": "audio/aac",
    "flac": "audio/flac",
    "wav": "audio/wav",
}


@router.get("/models", status_code=200, tags=["models"])
async def list_models() -> list[BotInfo]:
    """Public bot catalogue with premium flags."""
    return [
        BotInfo(name=name, provider=bot.provider, is_premium=bot.is_premium)
        for name, bot in MODEL_MAP.items()
    ]


def _chat_capability(bot: BotConfig, bot_id: str) -> Capability:
    return Capability.premium_only(f"chat:{bot_id}") if bot.is_premium else Capability.metered(bot_id)


async def _open_conversation(user: User, req: ChatRequest, bot_id: str) -> tuple[Conversation, list[dict]]:
    """
    Load or start the conversation and store the new user message.

    Returns:
        The conversation and the provider history ending with the new message
    """
    if req.conversation_id:
        conversation = await conversation_repo.get(user.id, req.conversation_id)
        if not conversation:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    else:
        conversation = await conversation_repo.create(user.id, bot_id=bot_id)

    user_message = Message(role="user", content=req.message, timestamp=datetime.now(UTC))
    await conversation_repo.append_message(user.id, conversation.id, user_message)

    history = [
        {"role": m.role, "content": m.content}
        for m in conversation.messages
        if m.role in ("user", "assistant")
    ]
    history.append({"role": "user", "content": req.message})
    return conversation, history


async def _store_reply(user: User, conversation: Conversation, bot: BotConfig, reply: str) -> None:
    await conversation_repo.append_message(
        user.id,
        conversation.id,
        Message(role="assistant", content=reply, timestamp=datetime.now(UTC), metadata={"model": bot.model}),
    )


@router.post("/ai/chat", status_code=200)
async def chat(
    req: ChatRequest,
    authorization: Annotated[str | None, Header()] = None,
) -> ChatResponse:
    """
    Send one chat turn to a bot.

    Free users get a fixed number of turns per bot; premium bots need a
    premium account. If conversation_id is omitted a new conversation is
    started.
    """
    bot = get_bot_config(req.bot_name)
    bot_id = bot_id_for(req.bot_name)

    async def operation(user: User) -> ChatResponse:
        conversation, history = await _open_conversation(user, req, bot_id)
        reply = await get_provider().chat(bot, history)
        await _store_reply(user, conversation, bot, reply)
        return ChatResponse(response=reply, conversation_id=conversation.id)

    return await pipeline.run(authorization, _chat_capability(bot, bot_id), operation)


@router.post("/ai/chat/stream", status_code=200)
async def chat_stream(
    req: ChatRequest,
    authorization: Annotated[str | None, Header()] = None,
) -> StreamingResponse:
    """
    Chat turn streamed as newline-delimited JSON events.

        {"type": "start", "conversation_id": ...}
        {"type": "delta", "text": ...}          (repeated)
        {"type": "done", "conversation_id": ..., "response": ...}

    A provider failure after the stream has started ends it with
    {"type": "error", "error": ...} instead of "done". The turn counts
    against the free quota only when "done" is reached.
    """
    bot = get_bot_config(req.bot_name)
    bot_id = bot_id_for(req.bot_name)

    async def produce(user: User) -> AsyncGenerator[dict, None]:
        conversation, history = await _open_conversation(user, req, bot_id)
        yield {"type": "start", "conversation_id": str(conversation.id)}

        parts = []
        async for text in get_provider().chat_stream(bot, history):
            parts.append(text)
            yield {"type": "delta", "text": text}

        reply = "".join(parts)
        await _store_reply(user, conversation, bot, reply)
        yield {"type": "done", "conversation_id": str(conversation.id), "response": reply}

    events = await pipeline.stream(authorization, _chat_capability(bot, bot_id), produce)
    # Pull the start event now so a missing conversation is still a plain 404
    first = await anext(events)
    return StreamingResponse(
        _ndjson(first, events),
        media_type="application/x-ndjson",
        headers={"Cache-Control": "no-cache"},
    )


async def _ndjson(first: dict, events: AsyncGenerator[dict, None]) -> AsyncIterator[str]:
    try:
        yield json.dumps(first) + "\n"
        async for event in events:
            yield json.dumps(event) + "\n"
    except ProviderError as e:
        logger.warning("Chat stream failed: %s", e)
        yield json.dumps({"type": "error", "error": "Streaming failed."}) + "\n"
    finally:
        await events.aclose()


@router.post("/ai/image", status_code=200)
async def generate_image(
    req: ImageRequest,
    authorization: Annotated[str | None, Header()] = None,
) -> ImageResponse:
    """Generate an image (premium only)."""

    async def operation(user: User) -> ImageResponse:
        image = await get_provider().generate_image(req.prompt, req.size)
        return ImageResponse(image=image)

    return await pipeline.run(authorization, IMAGE, operation)


@router.post("/ai/audio", status_code=200)
async def synthesize_speech(
    req: SpeechRequest,
    authorization: Annotated[str | None, Header()] = None,
) -> Response:
    """Text-to-speech (premium only). Returns the audio file body."""

    async def operation(user: User) -> bytes:
        return await get_provider().synthesize_speech(req.text, req.voice, req.format)

    audio = await pipeline.run(authorization, SPEECH, operation)
    return Response(content=audio, media_type=_AUDIO_MEDIA_TYPES[req.format])


@router.post("/ai/transcribe", status_code=200)
async def transcribe(
    audio: Annotated[UploadFile, File()],
    authorization: Annotated[str | None, Header()] = None,
) -> TranscriptResponse:
    """Speech-to-text for an uploaded audio file (premium only)."""

    async def operation(user: User) -> TranscriptResponse:
        data = await audio.read()
        if not data:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Audio file is required.")
        text = await get_provider().transcribe(data, audio.filename or "audio.webm")
        return TranscriptResponse(transcript=text)

    return await pipeline.run(authorization, TRANSCRIBE, operation)
