"""Request/response models for sign-up, sign-in and entitlement changes."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from chathub.models.user import UserPublic


class SignupRequest(BaseModel):
    """Email/password account creation."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(..., min_length=1)


class LoginRequest(BaseModel):
    """Email/password sign-in."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str


class GoogleSignInRequest(BaseModel):
    """Google Identity Services credential (an ID token)."""

    model_config = ConfigDict(extra="forbid")

    credential: str = Field(..., min_length=1)


class AuthResponse(BaseModel):
    """Returned after any successful sign-in."""

    user: UserPublic
    token: str


class MeResponse(BaseModel):
    user: UserPublic


class UpgradeResponse(BaseModel):
    """Response after a self-service premium upgrade."""

    success: bool = True
    message: str = "Successfully upgraded to premium"
    user: UserPublic


class SetPremiumRequest(BaseModel):
    """Admin request to toggle another account's premium flag."""

    model_config = ConfigDict(extra="forbid")

    email: str
    is_premium: bool


class SetPremiumResponse(BaseModel):
    ok: bool = True
    user: UserPublic
