"""
Tests for the entitlement policy.
"""

from __future__ import annotations

import pytest

from chathub.entitlements import Capability, CapabilityKind, EntitlementPolicy
from chathub.errors import AdminRequired, PremiumRequired, QuotaExceeded

pytestmark = pytest.mark.asyncio(loop_scope="session")

IMAGE = Capability.premium_only("image")
GPT4 = Capability.metered("gpt-4")


class TestCapability:
    async def test_constructors(self):
        assert IMAGE.kind is CapabilityKind.PREMIUM_ONLY
        assert not IMAGE.is_metered
        assert GPT4.kind is CapabilityKind.FREE_TIER_METERED
        assert GPT4.bot_id == "gpt-4"
        assert GPT4.name == "chat:gpt-4"
        assert GPT4.is_metered


class TestPremiumOnly:
    async def test_free_user_denied(self, policy, users):
        alice = await users.create("alice@example.com")

        with pytest.raises(PremiumRequired) as exc_info:
            await policy.authorize(alice, IMAGE)

        assert exc_info.value.capability == "image"

    async def test_premium_user_allowed(self, policy, users):
        alice = await users.create("alice@example.com", is_premium=True)

        grant = await policy.authorize(alice, IMAGE)

        assert grant.charged is False

    async def test_admin_flag_does_not_unlock_premium(self, policy, users):
        """Admins are not premium unless they are also flagged premium."""
        admin = await users.create("admin@example.com", is_admin=True)

        with pytest.raises(PremiumRequired):
            await policy.authorize(admin, IMAGE)


class TestMetered:
    async def test_free_user_under_limit_is_charged(self, policy, users, ledger):
        alice = await users.create("alice@example.com")
        for _ in range(4):
            await ledger.record_use(alice.id, "gpt-4")

        grant = await policy.authorize(alice, GPT4)

        assert grant.charged is True
        assert grant.used == 4

    async def test_free_user_at_limit_denied(self, policy, users, ledger):
        alice = await users.create("alice@example.com")
        for _ in range(5):
            await ledger.record_use(alice.id, "gpt-4")

        with pytest.raises(QuotaExceeded) as exc_info:
            await policy.authorize(alice, GPT4)

        assert (exc_info.value.bot_id, exc_info.value.limit, exc_info.value.used) == ("gpt-4", 5, 5)

    async def test_quota_is_per_bot(self, policy, users, ledger):
        alice = await users.create("alice@example.com")
        for _ in range(5):
            await ledger.record_use(alice.id, "gpt-4")

        grant = await policy.authorize(alice, Capability.metered("claude-3"))

        assert grant.charged is True
        assert grant.used == 0

    async def test_quota_is_per_user(self, policy, users, ledger):
        alice = await users.create("alice@example.com")
        bob = await users.create("bob@example.com")
        for _ in range(5):
            await ledger.record_use(alice.id, "gpt-4")

        assert (await policy.authorize(bob, GPT4)).used == 0

    async def test_premium_user_never_charged(self, policy, users, ledger):
        """Premium users skip the ledger entirely, even far past the limit."""
        alice = await users.create("alice@example.com", is_premium=True)
        for _ in range(50):
            await ledger.record_use(alice.id, "gpt-4")
        ledger.get_count_calls = 0

        grant = await policy.authorize(alice, GPT4)

        assert grant.charged is False
        assert ledger.get_count_calls == 0

    async def test_authorize_does_not_record(self, policy, users, ledger):
        alice = await users.create("alice@example.com")

        await policy.authorize(alice, GPT4)
        await policy.authorize(alice, GPT4)

        assert ledger.record_use_calls == 0
        assert await ledger.get_count(alice.id, "gpt-4") == 0

    async def test_limit_is_injected(self, users, ledger):
        alice = await users.create("alice@example.com")
        await ledger.record_use(alice.id, "gpt-4")

        with pytest.raises(QuotaExceeded):
            await EntitlementPolicy(ledger, free_limit=1).authorize(alice, GPT4)

    async def test_zero_limit_denies_first_use(self, users, ledger):
        alice = await users.create("alice@example.com")

        with pytest.raises(QuotaExceeded):
            await EntitlementPolicy(ledger, free_limit=0).authorize(alice, GPT4)

    async def test_negative_limit_rejected(self, ledger):
        with pytest.raises(ValueError):
            EntitlementPolicy(ledger, free_limit=-1)


class TestAdmin:
    async def test_admin_allowed(self, policy, users):
        admin = await users.create("admin@example.com", is_admin=True)

        policy.authorize_admin(admin)

    async def test_premium_is_not_admin(self, policy, users):
        alice = await users.create("alice@example.com", is_premium=True)

        with pytest.raises(AdminRequired):
            policy.authorize_admin(alice)
