"""Usage routes: per-bot free-tier consumption for the current user."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from chathub.auth import get_current_user
from chathub.models.usage import UsageEntry, UsageResponse
from chathub.models.user import User
from chathub.pipeline import entitlement_policy, usage_repo

router = APIRouter(prefix="/api/usage", tags=["usage"])


@router.get("", status_code=200)
async def get_usage(user: User = Depends(get_current_user)) -> UsageResponse:
    """Per-bot usage for the authenticated user, most recently used first."""
    records = await usage_repo.list_for_user(user.id)
    return UsageResponse(
        usage=[UsageEntry.from_record(r) for r in records],
        limit=entitlement_policy.free_limit,
        is_premium=user.is_premium,
    )
