"""Repository for chat history: one row per conversation, messages in JSONB."""

from __future__ import annotations

import json
from uuid import UUID

import asyncpg

from chathub.db import user_conn
from chathub.models.conversation import Conversation, Message

# Auto-titles are cut from the first user message
TITLE_LENGTH = 60


def _row_to_conversation(row: asyncpg.Record) -> Conversation:
    messages = row["messages"]
    if isinstance(messages, str):
        messages = json.loads(messages)

    return Conversation(
        id=row["id"],
        user_id=row["user_id"],
        bot_id=row["bot_id"],
        title=row["title"],
        messages=[Message(**m) for m in messages],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class ConversationRepo:
    """Owner-scoped conversation storage. Every query runs under user_conn."""

    async def get(self, user_id: UUID, conversation_id: UUID) -> Conversation | None:
        """
        Returns:
            The conversation with its messages, or None if it does not exist
            or belongs to someone else
        """
        async with user_conn(user_id) as conn:
            row = await conn.fetchrow(
                "SELECT * FROM conversations WHERE id = $1 AND user_id = $2",
                conversation_id,
                user_id,
            )
        return _row_to_conversation(row) if row else None

    async def create(self, user_id: UUID, bot_id: str = "default", title: str | None = None) -> Conversation:
        """Start an empty conversation with a bot."""
        async with user_conn(user_id) as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO conversations (user_id, bot_id, title)
                VALUES ($1, $2, $3)
                RETURNING *
                """,
                user_id,
                bot_id,
                title,
            )
        return _row_to_conversation(row)

    async def append_message(self, user_id: UUID, conversation_id: UUID, message: Message) -> None:
        """
        Add one message to the end of the history and bump updated_at.

        An untitled conversation takes its title from the first user message.
        """
        title = message.content[:TITLE_LENGTH] if message.role == "user" else None
        async with user_conn(user_id) as conn:
            await conn.execute(
                """
                UPDATE conversations
                SET messages = messages || $2::jsonb,
                    title = COALESCE(title, $3),
                    updated_at = now()
                WHERE id = $1
                """,
                conversation_id,
                [message.model_dump(mode="json")],
                title,
            )

    async def list_for_user(self, user_id: UUID) -> list[Conversation]:
        """All of the user's conversations, most recently active first."""
        async with user_conn(user_id) as conn:
            rows = await conn.fetch(
                "SELECT * FROM conversations WHERE user_id = $1 ORDER BY updated_at DESC",
                user_id,
            )
        return [_row_to_conversation(row) for row in rows]

    async def delete(self, user_id: UUID, conversation_id: UUID) -> bool:
        """
        Returns:
            True if a conversation owned by the user was deleted
        """
        async with user_conn(user_id) as conn:
            status = await conn.execute(
                "DELETE FROM conversations WHERE id = $1 AND user_id = $2",
                conversation_id,
                user_id,
            )
        return status == "DELETE 1"
