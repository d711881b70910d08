"""Conversation models for chat history."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class Message(BaseModel):
    """A single message in a conversation."""

    role: Literal["user", "assistant", "system"]
    content: str
    timestamp: datetime
    metadata: dict[str, Any] = Field(default_factory=dict)


class Conversation(BaseModel):
    """Core conversation model. Represents a row in the conversations table."""

    id: UUID
    user_id: UUID
    bot_id: str = "default"
    title: str | None = None
    messages: list[Message] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class CreateConversationRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, max_length=200)
    bot_id: str = Field(default="default", max_length=100)


class ConversationSummary(BaseModel):
    """What the API returns in conversation lists."""

    id: UUID
    title: str | None
    bot_id: str
    message_count: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, conversation: Conversation) -> ConversationSummary:
        """Convert internal Conversation model to public API response."""
        return cls(
            id=conversation.id,
            title=conversation.title,
            bot_id=conversation.bot_id,
            message_count=len(conversation.messages),
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
        )
