"""
Repository for the usage ledger: one counter per (user, bot).

Every write is a single statement so concurrent requests for the same pair
serialize on the row lock in Postgres. Nothing here reads a count and writes
it back from Python.
"""

from __future__ import annotations

from datetime import timedelta
from uuid import UUID

import asyncpg

from chathub.db import user_conn
from chathub.models.usage import Reservation, UsageRecord

# Reservations held longer than this were abandoned by a crashed worker
DEFAULT_RESERVATION_TTL = timedelta(minutes=10)

# Reserved units still holding quota; all of them lapse together once the
# newest is older than the TTL. {ttl} is the placeholder of the interval parameter
_LIVE_RESERVED = """
    CASE WHEN usage_records.reserved_at < now() - {ttl}::interval THEN 0
         ELSE usage_records.reserved
    END
"""


def _row_to_record(row: asyncpg.Record) -> UsageRecord:
    """Convert a database row to a UsageRecord model."""
    return UsageRecord(
        user_id=row["user_id"],
        bot_id=row["bot_id"],
        count=row["count"],
        reserved=row["reserved"],
        last_used_at=row["last_used_at"],
    )


class UsageRepo:
    """All usage-ledger database operations."""

    def __init__(self, reservation_ttl: timedelta = DEFAULT_RESERVATION_TTL) -> None:
        self.reservation_ttl = reservation_ttl

    async def get_count(self, user_id: UUID, bot_id: str) -> int:
        """
        Committed number of uses for a (user, bot) pair.

        Returns:
            The count, or 0 if the pair has never been used
        """
        async with user_conn(user_id) as conn:
            count = await conn.fetchval(
                "SELECT count FROM usage_records WHERE user_id = $1 AND bot_id = $2",
                user_id,
                bot_id,
            )
            return count or 0

    async def reserve(self, user_id: UUID, bot_id: str, limit: int) -> Reservation:
        """
        Admit one metered action if the pair still has room under `limit`.

        Committed uses and live reservations both count against the limit.
        Reservations older than `reservation_ttl` are dropped by the same
        statement. The conditional upsert is the only admission check that
        holds under concurrency; callers must follow up with
        record_use(reserved=True) or release().

        Args:
            user_id: User UUID
            bot_id: Bot/model identifier
            limit: Maximum uses for the pair

        Returns:
            Reservation with admitted flag and the usage counted against the limit
        """
        if limit <= 0:
            return Reservation(admitted=False, used=await self.get_count(user_id, bot_id))

        live_reserved = _LIVE_RESERVED.format(ttl="$4")
        async with user_conn(user_id) as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO usage_records (user_id, bot_id, count, reserved, reserved_at)
                VALUES ($1, $2, 0, 1, now())
                ON CONFLICT (user_id, bot_id) DO UPDATE
                SET reserved = {live_reserved} + 1,
                    reserved_at = now()
                WHERE usage_records.count + {live_reserved} < $3
                RETURNING count, reserved
                """,
                user_id,
                bot_id,
                limit,
                self.reservation_ttl,
            )
            if row is not None:
                return Reservation(admitted=True, used=row["count"] + row["reserved"] - 1)

            used = await conn.fetchval(
                f"""
                SELECT usage_records.count + {_LIVE_RESERVED.format(ttl="$3")}
                FROM usage_records WHERE user_id = $1 AND bot_id = $2
                """,
                user_id,
                bot_id,
                self.reservation_ttl,
            )
            return Reservation(admitted=False, used=used or 0)

    async def record_use(self, user_id: UUID, bot_id: str, *, reserved: bool = False) -> int:
        """
        Atomically count one successful use and refresh last_used_at.

        Creates the record with count=1 if absent. With reserved=True the
        same statement also consumes the reservation taken by reserve().

        Returns:
            New count after increment
        """
        async with user_conn(user_id) as conn:
            return await conn.fetchval(
                """
                INSERT INTO usage_records (user_id, bot_id, count, reserved, last_used_at)
                VALUES ($1, $2, 1, 0, now())
                ON CONFLICT (user_id, bot_id) DO UPDATE
                SET count = usage_records.count + 1,
                    reserved = GREATEST(usage_records.reserved - $3, 0),
                    last_used_at = now()
                RETURNING count
                """,
                user_id,
                bot_id,
                1 if reserved else 0,
            )

    async def release(self, user_id: UUID, bot_id: str) -> None:
        """Drop one reservation without counting a use."""
        async with user_conn(user_id) as conn:
            await conn.execute(
                """
                UPDATE usage_records
                SET reserved = GREATEST(reserved - 1, 0)
                WHERE user_id = $1 AND bot_id = $2
                """,
                user_id,
                bot_id,
            )

    async def list_for_user(self, user_id: UUID) -> list[UsageRecord]:
        """
        All bots this user has used, most recent first.

        Pairs that only ever held a reservation are omitted.
        """
        async with user_conn(user_id) as conn:
            rows = await conn.fetch(
                """
                SELECT * FROM usage_records
                WHERE user_id = $1 AND count > 0
                ORDER BY last_used_at DESC
                """,
                user_id,
            )
            return [_row_to_record(row) for row in rows]
