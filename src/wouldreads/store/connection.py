"""
Database connection management using asyncpg.

Only used when WOULDREADS_DATABASE_URL is set; otherwise state lives in JSON
files and this module is never imported.

The pool is created lazily on first use and shared by every repository.

Usage:
    from wouldreads.store.connection import get_db_pool

    pool = await get_db_pool()
    async with pool.acquire() as conn:
        value = await conn.fetchval("SELECT value FROM app_state WHERE key = $1", "last-fetch")

    # At shutdown:
    await close_db_pool()
"""

import asyncpg
import structlog

from wouldreads.config import get_settings

logger = structlog.get_logger()

# Shared connection pool, created on first use
_pool: asyncpg.Pool | None = None


async def get_db_pool() -> asyncpg.Pool:
    """
    Get or create the database connection pool.

    The pool is created lazily on first call and reused thereafter.

    Returns:
        asyncpg.Pool: Connection pool

    Raises:
        RuntimeError: If no database URL is configured
        asyncpg.PostgresError: If connection fails
    """
    global _pool

    if _pool is None:
        settings = get_settings()
        if not settings.database_url:
            raise RuntimeError("WOULDREADS_DATABASE_URL is not configured")

        logger.info(
            "Creating database connection pool", database_url=settings.database_url[:50] + "..."
        )

        _pool = await asyncpg.create_pool(
            settings.database_url,
            min_size=1,
            max_size=5,
            command_timeout=30,
        )

        logger.info("Database pool created", min_size=1, max_size=5)

    return _pool


async def close_db_pool() -> None:
    """
    Close the database connection pool.

    Safe to call even if pool was never created.
    """
    global _pool

    if _pool is not None:
        logger.info("Closing database pool")
        await _pool.close()
        _pool = None
        logger.info("Database pool closed")
