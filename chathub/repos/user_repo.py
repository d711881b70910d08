"""Repository for user operations."""

from __future__ import annotations

from typing import Any
from uuid import UUID

import asyncpg

from chathub.db import system_conn
from chathub.models.user import User

# Columns that update() may touch. email and id are immutable.
_UPDATABLE = frozenset(
    {"password_hash", "google_id", "name", "avatar_url", "provider", "is_premium", "is_admin"}
)


def _row_to_user(row: asyncpg.Record) -> User:
    """Convert a database row to a User model."""
    return User(
        id=row["id"],
        email=row["email"],
        password_hash=row["password_hash"],
        google_id=row["google_id"],
        name=row["name"],
        avatar_url=row["avatar_url"],
        provider=row["provider"],
        is_premium=row["is_premium"],
        is_admin=row["is_admin"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class UserRepo:
    """Credential store backed by the users table."""

    async def get_by_email(self, email: str) -> User | None:
        """
        Live record for the email in a token's `sub` claim or a sign-in form.

        Runs on system_conn: at this point nobody is signed in yet, so there
        is no user id to scope the connection to.
        """
        async with system_conn() as conn:
            row = await conn.fetchrow("SELECT * FROM users WHERE email = $1", email)
        return _row_to_user(row) if row else None

    async def get_by_google_id(self, google_id: str) -> User | None:
        """Account linked to a Google subject id. Pre-auth, so system_conn as well."""
        async with system_conn() as conn:
            row = await conn.fetchrow("SELECT * FROM users WHERE google_id = $1", google_id)
        return _row_to_user(row) if row else None

    async def create(
        self,
        email: str,
        *,
        password_hash: str | None = None,
        google_id: str | None = None,
        name: str | None = None,
        avatar_url: str | None = None,
        provider: str = "email",
    ) -> User:
        """
        Create a new user on email signup or first Google sign-in.

        Raises:
            asyncpg.UniqueViolationError: email or google_id already taken
        """
        async with system_conn() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO users (email, password_hash, google_id, name, avatar_url, provider)
                VALUES ($1, $2, $3, $4, $5, $6)
                RETURNING *
                """,
                email,
                password_hash,
                google_id,
                name,
                avatar_url,
                provider,
            )
            return _row_to_user(row)

    async def update(self, user_id: UUID, fields: dict[str, Any]) -> User | None:
        """
        Update mutable columns of a user.

        Args:
            user_id: User UUID
            fields: Column -> new value. Only profile, link-up and entitlement
                columns are accepted.

        Returns:
            Updated User, or None if no such user
        """
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update user columns: {sorted(unknown)}")
        if not fields:
            async with system_conn() as conn:
                row = await conn.fetchrow("SELECT * FROM users WHERE id = $1", user_id)
                return _row_to_user(row) if row else None

        columns = sorted(fields)
        assignments = ", ".join(f"{col} = ${i}" for i, col in enumerate(columns, start=2))
        async with system_conn() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE users
                SET {assignments}, updated_at = now()
                WHERE id = $1
                RETURNING *
                """,
                user_id,
                *(fields[col] for col in columns),
            )
            return _row_to_user(row) if row else None

    async def set_premium(self, user_id: UUID, is_premium: bool) -> User | None:
        """
        Toggle the premium flag.

        Takes effect on the user's very next request, since the auth gate
        reloads the user every time.
        """
        return await self.update(user_id, {"is_premium": is_premium})
