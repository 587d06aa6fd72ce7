"""
Database schema setup script.

Creates the app_state table that backs PostgresStateRepository. Only needed
when WOULDREADS_DATABASE_URL is set.

Run with:
    python -m wouldreads.store.setup_db
"""

import asyncio

import structlog

from wouldreads.store.connection import close_db_pool, get_db_pool

logger = structlog.get_logger()


# One row per named slot: articles, read-articles, last-fetch
CREATE_APP_STATE_SQL = """
CREATE TABLE IF NOT EXISTS app_state (
    key TEXT PRIMARY KEY,
    value JSONB NOT NULL,
    updated_at TIMESTAMPTZ DEFAULT NOW()
);
"""


async def setup_database() -> None:
    """
    Set up the database schema.

    Safe to run multiple times (uses IF NOT EXISTS).
    """
    logger.info("Setting up database schema")

    pool = await get_db_pool()

    async with pool.acquire() as conn:
        await conn.execute(CREATE_APP_STATE_SQL)

    logger.info("Database schema setup complete")


async def get_table_stats() -> dict:
    """
    Get basic statistics about the database.

    Returns:
        Dict with the number of stored slots
    """
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        slot_count = await conn.fetchval("SELECT COUNT(*) FROM app_state")

    return {"app_state": slot_count}


async def main() -> None:
    """Main entry point for running schema setup."""
    try:
        await setup_database()
        stats = await get_table_stats()
        logger.info("Database ready", **stats)
    finally:
        await close_db_pool()


if __name__ == "__main__":
    asyncio.run(main())
