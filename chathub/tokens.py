"""
Bearer token issuing and verification.

Tokens are HS256 JWTs whose `sub` is the user's email. They prove that a
sign-in happened; they never carry entitlement state (premium/admin), which is
always read from the database on each request.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from chathub.errors import InvalidToken

# Claims stamped by issue() and stripped again by verify()
_TIME_CLAIMS = ("exp", "iat")


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TokenCodec:
    """Signs and verifies time-limited bearer tokens with a process-wide secret."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        default_ttl: timedelta = timedelta(days=7),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self._secret = secret
        self._algorithm = algorithm
        self._default_ttl = default_ttl
        self._clock = clock

    def issue(self, claims: dict[str, Any], ttl: timedelta | None = None) -> str:
        """
        Sign a token for the given claims.

        Args:
            claims: Must contain "sub" (the user's email)
            ttl: Lifetime of the token; defaults to the codec's default_ttl

        Returns:
            Encoded JWT string
        """
        if not claims.get("sub"):
            raise ValueError("Token claims must include 'sub' (email)")

        issued_at = self._clock()
        payload = dict(claims)
        payload["iat"] = issued_at
        payload["exp"] = issued_at + (ttl if ttl is not None else self._default_ttl)
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> dict[str, Any]:
        """
        Verify signature and expiry, returning the caller-supplied claims.

        Raises:
            InvalidToken: malformed, wrongly signed or expired
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise InvalidToken("Token expired") from e
        except jwt.InvalidTokenError as e:
            raise InvalidToken("Invalid token") from e

        for claim in _TIME_CLAIMS:
            payload.pop(claim, None)
        return payload
