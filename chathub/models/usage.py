"""Usage ledger models."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class UsageRecord(BaseModel):
    """Core usage model. Represents a row in the usage_records table."""

    user_id: UUID
    bot_id: str
    count: int = Field(default=0, ge=0)
    reserved: int = Field(default=0, ge=0)
    last_used_at: datetime | None = None


class Reservation(BaseModel):
    """Outcome of trying to admit one metered action."""

    admitted: bool
    used: int


class UsageEntry(BaseModel):
    """One bot's usage as shown to the user."""

    bot_id: str
    count: int
    last_used_at: datetime | None

    @classmethod
    def from_record(cls, record: UsageRecord) -> UsageEntry:
        return cls(bot_id=record.bot_id, count=record.count, last_used_at=record.last_used_at)


class UsageResponse(BaseModel):
    """GET /api/usage payload."""

    usage: list[UsageEntry]
    limit: int
    is_premium: bool
