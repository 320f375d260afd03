"""
PostgreSQL connection pool handle.

The pool is created by ``connect()`` and released by ``close()``; the MCP
server lifespan owns both calls. Components receive the handle at
construction instead of reaching for a module-level pool.
"""

import logging
from typing import Any, List, Optional

import asyncpg

from user_mcp.errors import PersistenceError

logger = logging.getLogger(__name__)

# Errors asyncpg raises for rejected statements or lost connections.
DB_ERRORS = (asyncpg.PostgresError, asyncpg.InternalClientError, OSError)


class Database:
    """Owns one asyncpg pool for the lifetime of the server."""

    def __init__(self, dsn: str, min_size: int = 1, max_size: int = 5):
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self._pool: Optional[asyncpg.Pool] = None

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    async def connect(self) -> None:
        """Create the connection pool."""
        if self._pool is not None:
            return
        try:
            self._pool = await asyncpg.create_pool(
                self.dsn,
                min_size=self.min_size,
                max_size=self.max_size,
            )
        except DB_ERRORS as e:
            raise PersistenceError(f"Could not connect to database: {e}") from e
        logger.info("Database pool ready (min=%d, max=%d)", self.min_size, self.max_size)

    async def close(self) -> None:
        """Release the connection pool."""
        if self._pool is None:
            return
        pool, self._pool = self._pool, None
        await pool.close()
        logger.info("Database pool closed")

    def _require_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise PersistenceError("Database is not connected")
        return self._pool

    async def fetch(self, query: str, *args: Any) -> List[Any]:
        return await self._require_pool().fetch(query, *args)

    async def fetchrow(self, query: str, *args: Any) -> Optional[Any]:
        return await self._require_pool().fetchrow(query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        return await self._require_pool().fetchval(query, *args)

    async def execute(self, query: str, *args: Any) -> str:
        return await self._require_pool().execute(query, *args)
