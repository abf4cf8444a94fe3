"""Database connection management."""

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

import asyncpg

from ..errors import StoreError

logger = logging.getLogger("organizer.db")

SCHEMA_PATH = os.path.join(os.path.dirname(__file__), "schema.sql")

# Driver-level failures that surface to the conversation as StoreError
DRIVER_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


class Database:
    """Owns the asyncpg pool.

    Opened once at process start, handed to every store, closed at shutdown.
    """

    def __init__(self, dsn: str, min_size: int = 1, max_size: int = 5):
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self._pool: Optional[asyncpg.Pool] = None

    async def open(self, max_retries: int = 5) -> "Database":
        """Create the pool with retry.

        Retries with exponential backoff (2, 4, 8, 8, 8 seconds) so a
        database that is still booting doesn't kill the process.
        """
        delays = [2, 4, 8, 8, 8]
        for attempt in range(max_retries):
            try:
                self._pool = await asyncpg.create_pool(
                    self.dsn, min_size=self.min_size, max_size=self.max_size,
                )
                if attempt > 0:
                    logger.info(f"Database connected after {attempt + 1} attempts")
                return self
            except DRIVER_ERRORS as e:
                if attempt < max_retries - 1:
                    delay = delays[min(attempt, len(delays) - 1)]
                    logger.warning(
                        f"Database not ready (attempt {attempt + 1}/{max_retries}): {e}. Retrying in {delay}s..."
                    )
                    await asyncio.sleep(delay)
                else:
                    logger.error(f"Database connection failed after {max_retries} attempts: {e}")
                    raise
        return self

    async def close(self):
        """Close the pool."""
        if self._pool:
            await self._pool.close()
            self._pool = None

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("Database not opened. Call open() first.")
        return self._pool

    @asynccontextmanager
    async def connection(self):
        """Get a connection from the pool; driver errors become StoreError."""
        try:
            async with self.pool.acquire() as conn:
                yield conn
        except DRIVER_ERRORS as e:
            raise StoreError(f"{type(e).__name__}: {e}") from e

    async def init_schema(self):
        """Apply schema.sql (idempotent)."""
        with open(SCHEMA_PATH) as f:
            schema = f.read()
        async with self.connection() as conn:
            await conn.execute(schema)
        logger.info("Database schema applied")

    async def drop_schema(self):
        async with self.connection() as conn:
            await conn.execute("""
                DROP TABLE IF EXISTS message_tags CASCADE;
                DROP TABLE IF EXISTS tags CASCADE;
                DROP TABLE IF EXISTS messages CASCADE;
                DROP TABLE IF EXISTS users CASCADE;
            """)
        logger.warning("Database tables dropped")
