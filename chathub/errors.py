"""
Access-control outcomes.

These are expected, user-facing results of the auth gate, not failures of the
service. Routes translate them into HTTP responses; infrastructure errors
(asyncpg, network) are not part of this hierarchy.
"""

from __future__ import annotations


class AccessDenied(Exception):
    """Base class for every outcome that refuses a request."""


class InvalidToken(AccessDenied):
    """Token is malformed, mis-signed or expired."""


class Unauthorized(AccessDenied):
    """No usable credentials, or the token's user no longer exists."""


class PremiumRequired(AccessDenied):
    """Authenticated, but the capability needs a premium account."""

    def __init__(self, capability: str = "premium"):
        super().__init__(f"{capability} requires a premium subscription")
        self.capability = capability


class QuotaExceeded(AccessDenied):
    """Free tier limit reached for one bot."""

    def __init__(self, bot_id: str, limit: int, used: int):
        super().__init__(f"Free query limit reached for {bot_id} ({used}/{limit})")
        self.bot_id = bot_id
        self.limit = limit
        self.used = used


class AdminRequired(AccessDenied):
    """Authenticated, but the action is reserved for administrators."""
