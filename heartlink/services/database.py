"""Supabase Postgres access with RLS context.

Every connection handed out by ``get_connection`` runs inside a
transaction where ``request.jwt.claims`` carries the caller's identity, so
Supabase Row-Level Security policies written against ``auth.uid()`` see
the same user the API authenticated.

Uses ``asyncpg`` directly; the Supabase Python client cannot scope
``set_config`` to a transaction.
"""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import asyncpg

from heartlink.config import Settings, get_settings

logger = logging.getLogger("heartlink.db")

# Module-level connection pool: initialized once at app startup
_pool: asyncpg.Pool | None = None


async def init_pool(settings: Settings | None = None) -> asyncpg.Pool:
    """Create the asyncpg connection pool. Call once at app startup."""
    global _pool
    s = settings or get_settings()
    _pool = await asyncpg.create_pool(
        s.supabase_db_url,
        min_size=s.db_pool_min_size,
        max_size=s.db_pool_max_size,
        command_timeout=30,
        # Supabase's pooler (pgbouncer, transaction mode) rejects named statements
        statement_cache_size=0,
    )
    logger.info(
        "Database pool initialized (min=%d, max=%d)",
        s.db_pool_min_size,
        s.db_pool_max_size,
    )
    return _pool


async def close_pool() -> None:
    """Drain the pool. Call at app shutdown."""
    global _pool
    if _pool:
        await _pool.close()
        _pool = None
        logger.info("Database pool closed")


def get_pool() -> asyncpg.Pool:
    if _pool is None:
        raise RuntimeError("Database pool not initialized; call init_pool() first")
    return _pool


def rls_claims(user_id: str) -> str:
    """JSON claims document Supabase's ``auth.uid()`` reads."""
    return json.dumps({"sub": user_id, "role": "authenticated"})


@asynccontextmanager
async def get_connection(
    user_id: str | None = None,
) -> AsyncGenerator[asyncpg.Connection, None]:
    """Acquire a connection inside a transaction with RLS claims set.

    Usage::

        async with get_connection(user_id=user.user_id) as conn:
            rows = await conn.fetch("SELECT * FROM records WHERE user_id = $1", user.user_id)

    ``set_config(..., true)`` is transaction-local, so the claims vanish
    when the connection goes back to the pool.
    """
    pool = get_pool()
    async with pool.acquire() as conn:
        async with conn.transaction():
            if user_id:
                await conn.execute(
                    "SELECT set_config('request.jwt.claims', $1, true)",
                    rls_claims(user_id),
                )
            yield conn
