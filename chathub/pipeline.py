"""
Request pipeline for capability-gated operations.

    resolve identity -> authorize -> run operation -> record use

Usage is recorded only after the operation returns normally (or, for a
stream, after its last item). Errors, timeouts and cancellation inside the
operation never cost the user quota.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator, Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import TypeVar

from chathub import config
from chathub.auth import IdentityResolver, identity_resolver
from chathub.entitlements import Capability, EntitlementPolicy, Grant
from chathub.errors import PremiumRequired, QuotaExceeded, Unauthorized
from chathub.models.user import User
from chathub.repos.usage_repo import UsageRepo
from chathub.services.ai_provider import ProviderTimeout

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Decisions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Allowed:
    user: User


@dataclass(frozen=True)
class DenyUnauthenticated:
    reason: str = "Unauthorized"


@dataclass(frozen=True)
class DenyPremiumRequired:
    capability: str


@dataclass(frozen=True)
class DenyQuotaExceeded:
    bot_id: str
    limit: int
    used: int


Decision = Allowed | DenyUnauthenticated | DenyPremiumRequired | DenyQuotaExceeded


class Denied(Exception):
    """Raised by RequestPipeline.run() and .stream() when the gate refuses the request."""

    def __init__(self, decision: DenyUnauthenticated | DenyPremiumRequired | DenyQuotaExceeded):
        super().__init__(decision)
        self.decision = decision


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class RequestPipeline:
    """Composes identity resolution, entitlement checks and usage recording."""

    def __init__(
        self,
        resolver: IdentityResolver,
        policy: EntitlementPolicy,
        timeout: float | None = None,
    ) -> None:
        self.resolver = resolver
        self.policy = policy
        self.ledger = policy.ledger
        self.timeout = timeout

    async def decide(self, authorization: str | None, capability: Capability) -> Decision:
        """
        Gate check only: no operation is run and nothing is recorded.
        """
        try:
            user = await self.resolver.resolve(authorization)
        except Unauthorized as e:
            return DenyUnauthenticated(str(e))

        try:
            await self.policy.authorize(user, capability)
        except PremiumRequired as e:
            return DenyPremiumRequired(e.capability)
        except QuotaExceeded as e:
            return DenyQuotaExceeded(e.bot_id, e.limit, e.used)

        return Allowed(user)

    async def run(
        self,
        authorization: str | None,
        capability: Capability,
        operation: Callable[[User], Awaitable[T]],
    ) -> T:
        """
        Run `operation` for the caller if the gate allows it.

        Args:
            authorization: Raw Authorization header value
            capability: What the operation does, for the entitlement check
            operation: Coroutine function receiving the resolved User

        Returns:
            Whatever `operation` returns

        Raises:
            Denied: not authenticated, premium required or quota exceeded
            ProviderTimeout: the operation exceeded the pipeline timeout
        """
        user, bot_id = await self._admit(authorization, capability)
        if bot_id is None:
            return await self._bounded(operation(user))

        try:
            result = await self._bounded(operation(user))
        except BaseException:
            await self._release(user, bot_id)
            raise

        await self._commit(user, bot_id)
        return result

    async def stream(
        self,
        authorization: str | None,
        capability: Capability,
        produce: Callable[[User], AsyncGenerator[T, None]],
    ) -> AsyncGenerator[T, None]:
        """
        Gate a streamed operation.

        The gate runs now, so a denial is raised before any response starts.
        The returned generator relays `produce(user)` item by item; the pipeline
        timeout applies to the wait for each item. The use is recorded only once
        the source is exhausted. An error, a timeout or closing the generator
        early releases the reservation instead.

        Raises:
            Denied: not authenticated, premium required or quota exceeded
        """
        user, bot_id = await self._admit(authorization, capability)
        return self._relay(produce(user), user, bot_id)

    async def _relay(self, source: AsyncGenerator[T, None], user: User, bot_id: str | None) -> AsyncGenerator[T, None]:
        try:
            while True:
                try:
                    item = await self._bounded(anext(source))
                except StopAsyncIteration:
                    break
                yield item
        except BaseException:
            await source.aclose()
            if bot_id is not None:
                await self._release(user, bot_id)
            raise

        if bot_id is not None:
            await self._commit(user, bot_id)

    async def _admit(self, authorization: str | None, capability: Capability) -> tuple[User, str | None]:
        """
        Resolve, authorize and, for metered calls, hold one unit of quota.

        Returns:
            The caller, and the bot id a reservation was taken on (None if
            the call is not charged)
        """
        try:
            user = await self.resolver.resolve(authorization)
        except Unauthorized as e:
            logger.info("Denied %s: %s", capability.name, e)
            raise Denied(DenyUnauthenticated(str(e))) from e

        grant = await self._authorize(user, capability)
        if not grant.charged:
            return user, None

        bot_id = capability.bot_id
        reservation = await self.ledger.reserve(user.id, bot_id, self.policy.free_limit)
        if not reservation.admitted:
            logger.info(
                "Denied %s to %s: quota exceeded under concurrency (%d/%d)",
                capability.name,
                user.id,
                reservation.used,
                self.policy.free_limit,
            )
            raise Denied(DenyQuotaExceeded(bot_id, self.policy.free_limit, reservation.used))
        return user, bot_id

    async def _authorize(self, user: User, capability: Capability) -> Grant:
        try:
            return await self.policy.authorize(user, capability)
        except PremiumRequired as e:
            raise Denied(DenyPremiumRequired(e.capability)) from e
        except QuotaExceeded as e:
            raise Denied(DenyQuotaExceeded(e.bot_id, e.limit, e.used)) from e

    async def _commit(self, user: User, bot_id: str) -> None:
        try:
            count = await self.ledger.record_use(user.id, bot_id, reserved=True)
        except BaseException:
            await self._release(user, bot_id)
            raise
        logger.info("Recorded use of %s by %s (%d/%d)", bot_id, user.id, count, self.policy.free_limit)

    async def _release(self, user: User, bot_id: str) -> None:
        # Shielded so a cancelled request still hands its reservation back
        try:
            await asyncio.shield(self.ledger.release(user.id, bot_id))
        except Exception:
            logger.exception("Failed to release usage reservation for %s/%s", user.id, bot_id)

    async def _bounded(self, awaitable: Awaitable[T]) -> T:
        # Only our own deadline becomes ProviderTimeout; a TimeoutError raised
        # by the awaited code (a database timeout, say) passes through as is
        try:
            async with asyncio.timeout(self.timeout) as deadline:
                return await awaitable
        except TimeoutError as e:
            if deadline.expired():
                raise ProviderTimeout(f"No response within {self.timeout}s") from e
            raise


usage_repo = UsageRepo(reservation_ttl=timedelta(seconds=config.settings.RESERVATION_TTL_SECONDS))
entitlement_policy = EntitlementPolicy(usage_repo, free_limit=config.settings.FREE_TIER_LIMIT)
pipeline = RequestPipeline(
    identity_resolver,
    entitlement_policy,
    timeout=config.settings.PROVIDER_TIMEOUT_SECONDS,
)
