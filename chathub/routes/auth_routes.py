"""Authentication routes: email/password, Google sign-in, self-service upgrade."""

from __future__ import annotations

import logging

import asyncpg
from fastapi import APIRouter, Depends, HTTPException, status

from chathub.auth import create_token, get_current_user, hash_password, verify_password
from chathub.models.auth import (
    AuthResponse,
    GoogleSignInRequest,
    LoginRequest,
    MeResponse,
    SignupRequest,
    UpgradeResponse,
)
from chathub.models.user import User, UserPublic
from chathub.repos.user_repo import UserRepo
from chathub.services.google_auth import GoogleAuthError, verify_google_credential

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])
user_repo = UserRepo()


def _auth_response(user: User) -> AuthResponse:
    return AuthResponse(user=UserPublic.from_user(user), token=create_token(user))


@router.post("/signup", status_code=200)
async def signup(req: SignupRequest) -> AuthResponse:
    """Create an email/password account and sign it in."""
    existing = await user_repo.get_by_email(req.email)
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists")

    password_hash = await hash_password(req.password)
    try:
        user = await user_repo.create(req.email, password_hash=password_hash, provider="email")
    except asyncpg.UniqueViolationError as e:
        # Lost a race with a concurrent signup for the same email
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists") from e

    logger.info("New email account %s", user.id)
    return _auth_response(user)


@router.post("/login", status_code=200)
async def login(req: LoginRequest) -> AuthResponse:
    """Sign in with email and password."""
    user = await user_repo.get_by_email(req.email)
    if not user or not await verify_password(req.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return _auth_response(user)


@router.post("/google", status_code=200)
async def google_sign_in(req: GoogleSignInRequest) -> AuthResponse:
    """
    Sign in with a Google ID token.

    The account is found by Google subject id first, then by email. First
    sign-in creates a google account. If an account with the same email
    already exists, the Google id is linked to it and the profile refreshed.
    An email account already linked to another Google id is refused.
    """
    try:
        identity = await verify_google_credential(req.credential)
    except GoogleAuthError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e)) from e

    user = await user_repo.get_by_google_id(identity.sub)
    if user is None:
        user = await user_repo.get_by_email(identity.email)
        if user is not None and user.google_id and user.google_id != identity.sub:
            logger.warning("Google sign-in for account %s with a different Google id", user.id)
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Email is linked to a different Google account",
            )

    if user is None:
        user = await user_repo.create(
            identity.email,
            google_id=identity.sub,
            name=identity.name,
            avatar_url=identity.picture,
            provider="google",
        )
        logger.info("New Google account %s", user.id)
    else:
        fields = {"name": identity.name, "avatar_url": identity.picture}
        if not user.google_id:
            fields["google_id"] = identity.sub
            logger.info("Linked Google id to account %s", user.id)
        user = await user_repo.update(user.id, fields)

    return _auth_response(user)


@router.get("/me", status_code=200)
async def me(user: User = Depends(get_current_user)) -> MeResponse:
    """Get the current authenticated user."""
    return MeResponse(user=UserPublic.from_user(user))


@router.post("/upgrade-premium", status_code=200)
async def upgrade_premium(user: User = Depends(get_current_user)) -> UpgradeResponse:
    """
    Self-service premium upgrade.

    The existing token stays valid; the next request reads the new flag from
    the database.
    """
    updated = await user_repo.set_premium(user.id, True)
    if updated is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    logger.info("User %s upgraded to premium (self-service)", user.id)
    return UpgradeResponse(user=UserPublic.from_user(updated))
