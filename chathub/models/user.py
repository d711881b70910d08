"""User models for authentication and authorization."""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel


class User(BaseModel):
    """Core user model. Represents a row in the users table."""

    id: UUID
    email: str
    password_hash: str | None = None
    google_id: str | None = None
    name: str | None = None
    avatar_url: str | None = None
    provider: Literal["email", "google"] = "email"
    is_premium: bool = False
    is_admin: bool = False
    created_at: datetime
    updated_at: datetime


class UserPublic(BaseModel):
    """What the API returns. No password hash, no Google subject id."""

    id: UUID
    email: str
    name: str | None
    avatar_url: str | None
    provider: Literal["email", "google"]
    is_premium: bool
    is_admin: bool
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> UserPublic:
        """Convert internal User model to public API response."""
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            avatar_url=user.avatar_url,
            provider=user.provider,
            is_premium=user.is_premium,
            is_admin=user.is_admin,
            created_at=user.created_at,
        )
