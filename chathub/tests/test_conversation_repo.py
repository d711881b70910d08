"""
Tests for ConversationRepo against PostgreSQL.
"""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

import pytest

from chathub.models.conversation import Message
from chathub.repos.conversation_repo import ConversationRepo

pytestmark = pytest.mark.asyncio(loop_scope="session")

conversation_repo = ConversationRepo()


def message(role: str, content: str) -> Message:
    return Message(role=role, content=content, timestamp=datetime.now(UTC))


class TestConversationRepo:
    async def test_create_and_get(self, test_user_id):
        conversation = await conversation_repo.create(test_user_id, bot_id="GPT-4o", title="Trip")

        fetched = await conversation_repo.get(test_user_id, conversation.id)

        assert fetched.id == conversation.id
        assert fetched.bot_id == "GPT-4o"
        assert fetched.title == "Trip"
        assert fetched.messages == []

    async def test_append_messages(self, test_user_id):
        conversation = await conversation_repo.create(test_user_id)

        await conversation_repo.append_message(test_user_id, conversation.id, message("user", "Hello"))
        await conversation_repo.append_message(test_user_id, conversation.id, message("assistant", "Hi there"))

        fetched = await conversation_repo.get(test_user_id, conversation.id)
        assert [(m.role, m.content) for m in fetched.messages] == [("user", "Hello"), ("assistant", "Hi there")]

    async def test_title_from_first_user_message(self, test_user_id):
        conversation = await conversation_repo.create(test_user_id)

        await conversation_repo.append_message(test_user_id, conversation.id, message("user", "x" * 100))
        await conversation_repo.append_message(test_user_id, conversation.id, message("user", "second"))

        fetched = await conversation_repo.get(test_user_id, conversation.id)
        assert fetched.title == "x" * 60

    async def test_list_most_recent_first(self, test_user_id):
        older = await conversation_repo.create(test_user_id)
        newer = await conversation_repo.create(test_user_id)
        await conversation_repo.append_message(test_user_id, older.id, message("user", "bump"))

        listed = await conversation_repo.list_for_user(test_user_id)

        assert [c.id for c in listed] == [older.id, newer.id]

    async def test_delete(self, test_user_id):
        conversation = await conversation_repo.create(test_user_id)

        assert await conversation_repo.delete(test_user_id, conversation.id) is True
        assert await conversation_repo.get(test_user_id, conversation.id) is None
        assert await conversation_repo.delete(test_user_id, conversation.id) is False

    async def test_other_user_cannot_access(self, test_user_id, second_user_id):
        conversation = await conversation_repo.create(test_user_id)

        assert await conversation_repo.get(second_user_id, conversation.id) is None
        assert await conversation_repo.delete(second_user_id, conversation.id) is False
        assert await conversation_repo.list_for_user(second_user_id) == []

    async def test_missing(self, test_user_id):
        assert await conversation_repo.get(test_user_id, uuid4()) is None
