"""
Authentication for chathub.

Password hashing, bearer-token issuance, and the identity resolver that turns
an Authorization header into a live User.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from datetime import timedelta
from typing import Annotated, Protocol

import bcrypt
from fastapi import Header, HTTPException, status

from chathub import config
from chathub.errors import InvalidToken, Unauthorized
from chathub.models.user import User
from chathub.repos.user_repo import UserRepo
from chathub.tokens import TokenCodec

logger = logging.getLogger(__name__)


class CredentialStore(Protocol):
    async def get_by_email(self, email: str) -> User | None: ...


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------


def _pre_hash(password: str) -> bytes:
    # SHA-256 first so long passwords fit under bcrypt's 72-byte input limit
    return hashlib.sha256(password.encode("utf-8")).hexdigest().encode("utf-8")


def _hash_password_sync(password: str) -> str:
    return bcrypt.hashpw(_pre_hash(password), bcrypt.gensalt()).decode("utf-8")


def _verify_password_sync(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(_pre_hash(password), password_hash.encode("utf-8"))


async def hash_password(password: str) -> str:
    """Hash a password with bcrypt, off the event loop."""
    return await asyncio.to_thread(_hash_password_sync, password)


async def verify_password(password: str, password_hash: str | None) -> bool:
    """Check a password against a stored hash. Accounts without a hash never match."""
    if not password_hash:
        return False
    return await asyncio.to_thread(_verify_password_sync, password, password_hash)


# ---------------------------------------------------------------------------
# Identity resolution
# ---------------------------------------------------------------------------


class IdentityResolver:
    """
    Resolves "Bearer <token>" to the user's current database record.

    The user is re-read on every call. Entitlement flags (is_premium,
    is_admin) therefore reflect the database as of this request, never the
    moment the token was issued.
    """

    def __init__(self, codec: TokenCodec, users: CredentialStore) -> None:
        self.codec = codec
        self.users = users

    async def resolve(self, authorization: str | None) -> User:
        """
        Args:
            authorization: Raw Authorization header value, or None

        Returns:
            Fresh User record

        Raises:
            Unauthorized: missing/malformed header, bad or expired token,
                or the token's user no longer exists
        """
        if not authorization:
            raise Unauthorized("No token provided")

        scheme, _, token = authorization.partition(" ")
        token = token.strip()
        if scheme != "Bearer" or not token:
            raise Unauthorized("Malformed authorization header")

        try:
            claims = self.codec.verify(token)
        except InvalidToken as e:
            raise Unauthorized("Invalid or expired token") from e

        user = await self.users.get_by_email(claims["sub"])
        if user is None:
            raise Unauthorized("User not found")
        return user


token_codec = TokenCodec(
    secret=config.settings.JWT_SECRET,
    algorithm=config.settings.JWT_ALGORITHM,
    default_ttl=timedelta(hours=config.settings.JWT_EXPIRY_HOURS),
)
user_repo = UserRepo()
identity_resolver = IdentityResolver(token_codec, user_repo)


def create_token(user: User) -> str:
    """Issue a session token for a signed-in user."""
    return token_codec.issue({"sub": user.email, "uid": str(user.id)})


async def get_current_user(
    authorization: Annotated[str | None, Header()] = None,
) -> User:
    """
    FastAPI dependency to get the current authenticated user.

    Raises:
        HTTPException: 401 if authentication fails
    """
    try:
        return await identity_resolver.resolve(authorization)
    except Unauthorized as e:
        logger.info("Rejected request: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Unauthorized: {e}",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e
