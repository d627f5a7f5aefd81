"""The bot's PostgreSQL pool.

Reminders, user settings and chat tokens share one asyncpg pool. Opening it
also applies ``schema.sql``, whose statements are all ``IF NOT EXISTS`` so
every start can run them.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import asyncpg

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent / "schema.sql"

CONNECT_ATTEMPTS = 3
RETRY_DELAY = 3.0
HEALTH_TIMEOUT = 2.0


def load_schema(path: Path = SCHEMA_PATH) -> str:
    return path.read_text(encoding="utf-8")


class Database:
    def __init__(
        self,
        database_url: str,
        *,
        min_size: int = 1,
        max_size: int = 5,
        attempts: int = CONNECT_ATTEMPTS,
        retry_delay: float = RETRY_DELAY,
    ):
        self.database_url = database_url
        self.min_size = min_size
        self.max_size = max_size
        self.attempts = attempts
        self.retry_delay = retry_delay
        self._pool: asyncpg.Pool | None = None

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("Database is not open")
        return self._pool

    async def open(self) -> None:
        """Create the pool and apply the schema, retrying with backoff."""
        schema = load_schema()
        for attempt in range(1, self.attempts + 1):
            try:
                self._pool = await asyncpg.create_pool(
                    dsn=self.database_url,
                    min_size=self.min_size,
                    max_size=self.max_size,
                    command_timeout=15.0,
                )
                async with self._pool.acquire() as conn:
                    await conn.execute(schema)
                logger.info(f"Database ready (pool {self.min_size}-{self.max_size})")
                return
            except (OSError, asyncpg.PostgresError, asyncio.TimeoutError) as e:
                await self.close()
                if attempt == self.attempts:
                    logger.error(f"Database unreachable after {attempt} attempts: {e}")
                    raise
                delay = self.retry_delay * 2 ** (attempt - 1)
                logger.warning(
                    f"Database attempt {attempt}/{self.attempts} failed "
                    f"({type(e).__name__}: {e}), retrying in {delay}s"
                )
                await asyncio.sleep(delay)

    async def close(self) -> None:
        if self._pool is not None:
            pool, self._pool = self._pool, None
            await pool.close()

    async def check_health(self) -> bool:
        """Used by the webhook ``/health`` route."""
        if self._pool is None:
            return False
        try:
            async with self._pool.acquire(timeout=HEALTH_TIMEOUT) as conn:
                await conn.fetchval("SELECT 1")
        except (OSError, asyncpg.PostgresError, asyncio.TimeoutError):
            return False
        return True
