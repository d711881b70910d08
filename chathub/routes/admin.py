"""Admin routes. Admin rights are checked separately from premium entitlements."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from chathub.auth import get_current_user
from chathub.errors import AdminRequired
from chathub.models.auth import SetPremiumRequest, SetPremiumResponse
from chathub.models.user import User, UserPublic
from chathub.pipeline import entitlement_policy
from chathub.repos.user_repo import UserRepo

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])
user_repo = UserRepo()


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """FastAPI dependency: the current user, if they are an administrator."""
    try:
        entitlement_policy.authorize_admin(user)
    except AdminRequired as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin required") from e
    return user


@router.post("/users/premium", status_code=200)
async def set_user_premium(
    req: SetPremiumRequest,
    admin: User = Depends(require_admin),
) -> SetPremiumResponse:
    """Set or unset premium for a user by email."""
    target = await user_repo.get_by_email(req.email)
    if target is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    updated = await user_repo.set_premium(target.id, req.is_premium)
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    # No audit table yet; this log line is the only record of who changed what.
    logger.info("Admin %s set is_premium=%s for user %s", admin.id, req.is_premium, target.id)
    return SetPremiumResponse(user=UserPublic.from_user(updated))
