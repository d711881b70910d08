"""
asyncpg pool plus the two ways to borrow a connection from it.

user_conn(user_id) scopes every statement to one account through the RLS
policies on users, conversations and usage_records. system_conn() leaves the
scope empty, which the policies treat as unrestricted. Repositories are the
only callers; nothing else acquires from the pool.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

import asyncpg

from chathub import config

logger = logging.getLogger(__name__)

pool: asyncpg.Pool | None = None

POOL_MIN_SIZE = 2
POOL_MAX_SIZE = 20
COMMAND_TIMEOUT_SECONDS = 60


async def init_pool(dsn: str | None = None) -> None:
    """Create the process-wide pool. Called from the app lifespan."""
    global pool
    pool = await asyncpg.create_pool(
        dsn=dsn or config.settings.DATABASE_URL,
        min_size=POOL_MIN_SIZE,
        max_size=POOL_MAX_SIZE,
        command_timeout=COMMAND_TIMEOUT_SECONDS,
        init=_register_json_codecs,
    )
    logger.info("Database pool initialized (max %d connections)", POOL_MAX_SIZE)


async def close_pool() -> None:
    global pool
    if pool is not None:
        await pool.close()
        pool = None
        logger.info("Database pool closed")


async def _register_json_codecs(conn: asyncpg.Connection) -> None:
    # json/jsonb parameters are passed as Python objects and come back decoded
    for type_name in ("json", "jsonb"):
        await conn.set_type_codec(type_name, encoder=json.dumps, decoder=json.loads, schema="pg_catalog")


@asynccontextmanager
async def _scoped(app_user_id: str) -> AsyncIterator[asyncpg.Connection]:
    if pool is None:
        raise RuntimeError("Database pool not initialized. Call init_pool() first.")

    async with pool.acquire() as conn:
        async with conn.transaction():
            # is_local=true: the setting dies with the transaction, so a
            # pooled connection never carries one user's scope into the next
            await conn.execute("SELECT set_config('app.user_id', $1, true)", app_user_id)
            yield conn


@asynccontextmanager
async def user_conn(user_id: str | UUID) -> AsyncIterator[asyncpg.Connection]:
    """
    Connection whose statements only see and modify `user_id`'s rows.

    Usage:
        async with user_conn(user_id) as conn:
            count = await conn.fetchval("SELECT count FROM usage_records WHERE bot_id = $1", bot_id)

    Yields:
        asyncpg.Connection inside a transaction, RLS-scoped to the user
    """
    async with _scoped(str(user_id)) as conn:
        yield conn


@asynccontextmanager
async def system_conn() -> AsyncIterator[asyncpg.Connection]:
    """
    Connection with no user scope.

    Only for work that cannot name a single owner up front:
    - sign-in lookups by email and account creation
    - admin changes to another user's flags
    - test setup and seeding scripts

    Yields:
        asyncpg.Connection inside a transaction, RLS unrestricted
    """
    async with _scoped("") as conn:
        yield conn
