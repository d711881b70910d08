"""
Entitlement policy: may this user perform this capability right now?

Decisions are read-only. Counting a use happens later, in the request
pipeline, and only after the gated action succeeded.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from chathub.errors import AdminRequired, PremiumRequired, QuotaExceeded
from chathub.models.usage import Reservation
from chathub.models.user import User

logger = logging.getLogger(__name__)

FREE_LIMIT = 5


class UsageLedger(Protocol):
    """Storage contract the policy and pipeline need from the usage ledger."""

    async def get_count(self, user_id: UUID, bot_id: str) -> int: ...

    async def reserve(self, user_id: UUID, bot_id: str, limit: int) -> Reservation: ...

    async def record_use(self, user_id: UUID, bot_id: str, *, reserved: bool = False) -> int: ...

    async def release(self, user_id: UUID, bot_id: str) -> None: ...


class CapabilityKind(enum.Enum):
    PREMIUM_ONLY = "premium_only"
    FREE_TIER_METERED = "free_tier_metered"


@dataclass(frozen=True)
class Capability:
    """A gate-checked action, e.g. "generate image" or "chat with GPT-4o"."""

    kind: CapabilityKind
    name: str
    bot_id: str | None = None

    @classmethod
    def premium_only(cls, name: str) -> Capability:
        return cls(CapabilityKind.PREMIUM_ONLY, name)

    @classmethod
    def metered(cls, bot_id: str) -> Capability:
        return cls(CapabilityKind.FREE_TIER_METERED, f"chat:{bot_id}", bot_id)

    @property
    def is_metered(self) -> bool:
        return self.kind is CapabilityKind.FREE_TIER_METERED


@dataclass(frozen=True)
class Grant:
    """A positive decision. `charged` means a use must be recorded on success."""

    capability: Capability
    charged: bool
    used: int = 0


class EntitlementPolicy:
    """Premium flag and free-tier quota checks, with the limit injected."""

    def __init__(self, ledger: UsageLedger, free_limit: int = FREE_LIMIT) -> None:
        if free_limit < 0:
            raise ValueError("free_limit must be >= 0")
        self.ledger = ledger
        self.free_limit = free_limit

    async def authorize(self, user: User, capability: Capability) -> Grant:
        """
        Decide whether `user` may perform `capability`.

        is_admin plays no part here; admin privileges are checked by
        authorize_admin() and never unlock consumer features.

        Raises:
            PremiumRequired: capability is premium-only and the user is not premium
            QuotaExceeded: free user has used up the bot's free calls
        """
        if user.is_premium:
            return Grant(capability, charged=False)

        if capability.kind is CapabilityKind.PREMIUM_ONLY:
            logger.info("Denied %s to %s: premium required", capability.name, user.id)
            raise PremiumRequired(capability.name)

        used = await self.ledger.get_count(user.id, capability.bot_id)
        if used >= self.free_limit:
            logger.info(
                "Denied %s to %s: quota exceeded (%d/%d)",
                capability.name,
                user.id,
                used,
                self.free_limit,
            )
            raise QuotaExceeded(capability.bot_id, self.free_limit, used)

        return Grant(capability, charged=True, used=used)

    def authorize_admin(self, user: User) -> None:
        """
        Raises:
            AdminRequired: user is not an administrator
        """
        if not user.is_admin:
            logger.info("Denied admin action to %s", user.id)
            raise AdminRequired("Admin required")
