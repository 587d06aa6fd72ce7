"""
PostgreSQL-backed state repository.

Each slot is one row of the app_state table (see setup_db.py). A save is a
single upsert statement, which makes every slot write atomic.
"""

import json
from typing import Any

import structlog

from wouldreads.store.connection import get_db_pool
from wouldreads.store.repository import default_for

logger = structlog.get_logger()


LOAD_SLOT_SQL = """
SELECT value FROM app_state WHERE key = $1;
"""

# ON CONFLICT (key) DO UPDATE means:
# - If key doesn't exist: INSERT
# - If key exists: replace the value
SAVE_SLOT_SQL = """
INSERT INTO app_state (key, value, updated_at)
VALUES ($1, $2::jsonb, NOW())
ON CONFLICT (key) DO UPDATE SET
    value = EXCLUDED.value,
    updated_at = NOW();
"""


class PostgresStateRepository:
    """Stores slots as JSONB rows keyed by slot name."""

    def __init__(self, pool=None):
        # Pool is resolved lazily so constructing the repository never connects
        self._pool = pool

    async def _get_pool(self):
        if self._pool is None:
            self._pool = await get_db_pool()
        return self._pool

    async def load(self, key: str) -> Any:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            raw = await conn.fetchval(LOAD_SLOT_SQL, key)

        if raw is None:
            return default_for(key)

        # asyncpg returns JSONB as text unless a codec is registered
        return json.loads(raw) if isinstance(raw, str) else raw

    async def save(self, key: str, value: Any) -> None:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            await conn.execute(SAVE_SLOT_SQL, key, json.dumps(value))

        logger.debug("State slot saved", key=key)
