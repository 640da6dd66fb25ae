"""Postgres connection pool with per-account RLS context.

Statements run inside a transaction where ``app.current_account_key`` is set
with ``set_config(..., is_local => true)``, so row-level security policies on
``raw_samples`` only ever see the account being written or read.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

import asyncpg

from chillin.config import Settings, get_settings

logger = logging.getLogger("chillin.db")

_SET_ACCOUNT_SQL = "SELECT set_config('app.current_account_key', $1, true)"

# Created by init_pool() in the app lifespan
_pool: asyncpg.Pool | None = None


async def init_pool(settings: Settings | None = None) -> asyncpg.Pool:
    """Open the shared pool from ``database_url`` and the pool size settings."""
    global _pool
    cfg = settings or get_settings()
    _pool = await asyncpg.create_pool(
        dsn=cfg.database_url,
        min_size=cfg.database_pool_min,
        max_size=cfg.database_pool_max,
        command_timeout=30,
    )
    logger.info(
        "Postgres pool ready (%d-%d connections)", cfg.database_pool_min, cfg.database_pool_max
    )
    return _pool


async def close_pool() -> None:
    global _pool
    if _pool is None:
        return
    pool, _pool = _pool, None
    await pool.close()
    logger.info("Postgres pool closed")


def get_pool() -> asyncpg.Pool:
    if _pool is None:
        raise RuntimeError("init_pool() has not been awaited")
    return _pool


@asynccontextmanager
async def get_connection(
    account_key: str | None = None,
) -> AsyncGenerator[asyncpg.Connection, None]:
    """Yield a pooled connection inside a transaction scoped to ``account_key``.

    Usage::

        async with get_connection(account_key="alice") as conn:
            await conn.fetch("SELECT timestamp FROM raw_samples WHERE account_key = $1", "alice")

    The setting is transaction-local and is gone once the connection returns
    to the pool.
    """
    async with get_pool().acquire() as conn, conn.transaction():
        if account_key:
            await conn.execute(_SET_ACCOUNT_SQL, account_key)
        yield conn


async def execute(query: str, *args: Any, account_key: str | None = None) -> str:
    """Run one statement for ``account_key``; returns the status tag."""
    async with get_connection(account_key=account_key) as conn:
        return await conn.execute(query, *args)


async def fetch(
    query: str, *args: Any, account_key: str | None = None
) -> list[asyncpg.Record]:
    async with get_connection(account_key=account_key) as conn:
        return await conn.fetch(query, *args)
