"""
Tests for UsageRepo against PostgreSQL.

Skipped when the database is unreachable.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from uuid import UUID

import pytest

from chathub import db
from chathub.repos.usage_repo import UsageRepo

pytestmark = pytest.mark.asyncio(loop_scope="session")

usage_repo = UsageRepo()


async def stored(user_id: UUID, bot_id: str):
    """The raw usage_records row, or None."""
    async with db.system_conn() as conn:
        return await conn.fetchrow(
            "SELECT count, reserved, reserved_at, last_used_at FROM usage_records WHERE user_id = $1 AND bot_id = $2",
            user_id,
            bot_id,
        )


class TestRecordUse:
    async def test_first_use_creates_record(self, test_user_id):
        assert await usage_repo.get_count(test_user_id, "gpt-4") == 0

        count = await usage_repo.record_use(test_user_id, "gpt-4")

        assert count == 1
        record = await stored(test_user_id, "gpt-4")
        assert record["count"] == 1
        assert record["last_used_at"] is not None

    async def test_increments_by_one(self, test_user_id):
        counts = [await usage_repo.record_use(test_user_id, "gpt-4") for _ in range(3)]

        assert counts == [1, 2, 3]
        assert await usage_repo.get_count(test_user_id, "gpt-4") == 3

    async def test_concurrent_increments_are_not_lost(self, test_user_id):
        await asyncio.gather(*(usage_repo.record_use(test_user_id, "gpt-4") for _ in range(15)))

        assert await usage_repo.get_count(test_user_id, "gpt-4") == 15

    async def test_pairs_are_independent(self, test_user_id, second_user_id):
        await usage_repo.record_use(test_user_id, "gpt-4")
        await usage_repo.record_use(test_user_id, "claude")
        await usage_repo.record_use(second_user_id, "gpt-4")

        assert await usage_repo.get_count(test_user_id, "gpt-4") == 1
        assert await usage_repo.get_count(test_user_id, "claude") == 1
        assert await usage_repo.get_count(second_user_id, "gpt-4") == 1


class TestReservations:
    async def test_reserve_then_record(self, test_user_id):
        reservation = await usage_repo.reserve(test_user_id, "gpt-4", limit=5)
        assert reservation.admitted
        assert reservation.used == 0

        count = await usage_repo.record_use(test_user_id, "gpt-4", reserved=True)

        record = await stored(test_user_id, "gpt-4")
        assert count == 1
        assert (record["count"], record["reserved"]) == (1, 0)

    async def test_reserve_then_release(self, test_user_id):
        await usage_repo.reserve(test_user_id, "gpt-4", limit=5)
        await usage_repo.release(test_user_id, "gpt-4")

        record = await stored(test_user_id, "gpt-4")
        assert (record["count"], record["reserved"]) == (0, 0)

    async def test_reserve_refused_at_limit(self, test_user_id):
        for _ in range(2):
            await usage_repo.record_use(test_user_id, "gpt-4")

        reservation = await usage_repo.reserve(test_user_id, "gpt-4", limit=2)

        assert not reservation.admitted
        assert reservation.used == 2

    async def test_reservations_count_against_limit(self, test_user_id):
        first = await usage_repo.reserve(test_user_id, "gpt-4", limit=1)
        second = await usage_repo.reserve(test_user_id, "gpt-4", limit=1)

        assert first.admitted
        assert not second.admitted
        assert second.used == 1

    async def test_reserve_stamps_reserved_at(self, test_user_id):
        await usage_repo.reserve(test_user_id, "gpt-4", limit=5)

        record = await stored(test_user_id, "gpt-4")
        assert record["reserved_at"] is not None

    async def test_expired_reservations_stop_holding_quota(self, test_user_id):
        """A reservation nobody recorded or released lapses after the TTL."""
        expiring = UsageRepo(reservation_ttl=timedelta(0))
        first = await expiring.reserve(test_user_id, "gpt-4", limit=1)

        second = await expiring.reserve(test_user_id, "gpt-4", limit=1)

        assert first.admitted
        assert second.admitted
        assert second.used == 0
        record = await stored(test_user_id, "gpt-4")
        assert record["reserved"] == 1

    async def test_expired_reservations_do_not_forgive_uses(self, test_user_id):
        expiring = UsageRepo(reservation_ttl=timedelta(0))
        await expiring.record_use(test_user_id, "gpt-4")
        await expiring.reserve(test_user_id, "gpt-4", limit=2)

        reservation = await expiring.reserve(test_user_id, "gpt-4", limit=1)

        assert not reservation.admitted
        assert reservation.used == 1

    async def test_concurrent_reservations_admit_exactly_limit(self, test_user_id):
        results = await asyncio.gather(*(usage_repo.reserve(test_user_id, "gpt-4", limit=5) for _ in range(20)))

        assert sum(r.admitted for r in results) == 5
        record = await stored(test_user_id, "gpt-4")
        assert record["reserved"] == 5

    async def test_zero_limit(self, test_user_id):
        reservation = await usage_repo.reserve(test_user_id, "gpt-4", limit=0)

        assert not reservation.admitted
        assert await stored(test_user_id, "gpt-4") is None

    async def test_release_without_record_is_noop(self, test_user_id):
        await usage_repo.release(test_user_id, "never-used")

        assert await stored(test_user_id, "never-used") is None


class TestListForUser:
    async def test_most_recent_first(self, test_user_id):
        await usage_repo.record_use(test_user_id, "gpt-4")
        await usage_repo.record_use(test_user_id, "claude")

        records = await usage_repo.list_for_user(test_user_id)

        assert [r.bot_id for r in records] == ["claude", "gpt-4"]

    async def test_reservation_only_rows_hidden(self, test_user_id):
        await usage_repo.reserve(test_user_id, "gpt-4", limit=5)

        assert await usage_repo.list_for_user(test_user_id) == []

    async def test_only_own_records(self, test_user_id, second_user_id):
        await usage_repo.record_use(second_user_id, "gpt-4")

        assert await usage_repo.list_for_user(test_user_id) == []
