"""Conversation routes: list, create, view and delete chat history."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from chathub.auth import get_current_user
from chathub.models.conversation import Conversation, ConversationSummary, CreateConversationRequest
from chathub.models.user import User
from chathub.repos.conversation_repo import ConversationRepo

router = APIRouter(prefix="/api/conversations", tags=["conversations"])
conversation_repo = ConversationRepo()


@router.get("", status_code=200)
async def list_conversations(user: User = Depends(get_current_user)) -> list[ConversationSummary]:
    """List the current user's conversations, most recent first."""
    conversations = await conversation_repo.list_for_user(user.id)
    return [ConversationSummary.from_model(c) for c in conversations]


@router.post("", status_code=201)
async def create_conversation(
    req: CreateConversationRequest,
    user: User = Depends(get_current_user),
) -> ConversationSummary:
    conversation = await conversation_repo.create(user.id, bot_id=req.bot_id, title=req.title)
    return ConversationSummary.from_model(conversation)


@router.get("/{conversation_id}", status_code=200)
async def get_conversation(
    conversation_id: UUID,
    user: User = Depends(get_current_user),
) -> Conversation:
    """Get one conversation with its messages."""
    conversation = await conversation_repo.get(user.id, conversation_id)
    if not conversation:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    return conversation


@router.delete("/{conversation_id}", status_code=200)
async def delete_conversation(
    conversation_id: UUID,
    user: User = Depends(get_current_user),
) -> dict:
    deleted = await conversation_repo.delete(user.id, conversation_id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    return {"ok": True}
