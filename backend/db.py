"""
Database connection pool.

Only PostgresStore talks to the pool. Everything else goes through the
DocumentStore contract.
"""

from __future__ import annotations

import json

import asyncpg

from backend.config import settings

pool: asyncpg.Pool | None = None


async def init_pool(dsn: str | None = None) -> asyncpg.Pool:
    """
    Initialize the connection pool.
    Called once at application startup.
    """
    global pool
    pool = await asyncpg.create_pool(
        dsn=dsn or settings.DATABASE_URL,
        min_size=2,
        max_size=20,
        command_timeout=60,
        init=_init_connection,
    )
    return pool


async def close_pool() -> None:
    """
    Close the connection pool.
    Called at application shutdown.
    """
    global pool
    if pool is not None:
        await pool.close()
        pool = None


async def _init_connection(conn: asyncpg.Connection) -> None:
    """
    Initialize each new connection.
    Documents are JSONB; decode them to Python dicts.
    """
    await conn.set_type_codec(
        "jsonb",
        encoder=json.dumps,
        decoder=json.loads,
        schema="pg_catalog",
    )
    await conn.set_type_codec(
        "json",
        encoder=json.dumps,
        decoder=json.loads,
        schema="pg_catalog",
    )
