"""
Database connection management for schemasync.

Provides the async PostgreSQL connection pool that executes structure
statements and holds the ordered log of captured statements.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, List, Optional

import asyncpg

from ..config import ConnectionConfig
from ..exceptions import DatabaseConnectionError, ExecutionError


logger = logging.getLogger(__name__)


class ConnectionPool:
    """Async PostgreSQL connection pool wrapper.

    ``captured_sql`` is the ordered log that structure sessions in capture
    mode append to instead of executing statements.
    """

    def __init__(self, config: ConnectionConfig):
        self.config = config
        self.captured_sql: List[str] = []
        self._pool: Optional[asyncpg.Pool] = None
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Initialize the connection pool."""
        async with self._lock:
            if self._pool is not None:
                return

            try:
                logger.info(
                    f"Initializing connection pool to {self.config.host}:{self.config.port}"
                    f"/{self.config.database}"
                )

                self._pool = await asyncpg.create_pool(
                    **self.config.to_connection_kwargs(),
                    min_size=self.config.min_size,
                    max_size=self.config.max_size,
                )

                logger.info("Connection pool initialized successfully")

            except Exception as e:
                logger.error(f"Failed to initialize connection pool: {e}")
                raise DatabaseConnectionError(f"Failed to initialize connection pool: {e}") from e

    async def close(self) -> None:
        """Close the connection pool."""
        async with self._lock:
            if self._pool is not None:
                logger.info("Closing connection pool")
                await self._pool.close()
                self._pool = None

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        """Acquire a connection from the pool."""
        if self._pool is None:
            raise DatabaseConnectionError("Pool is not connected")

        async with self._pool.acquire() as connection:
            yield connection

    async def execute(self, query: str, *args) -> str:
        """Execute a statement and return its status.

        Without arguments asyncpg uses the simple query protocol, so ``query``
        may hold several semicolon-separated statements.
        """
        start_time = time.time()
        try:
            async with self.acquire() as conn:
                status = await conn.execute(query, *args)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            logger.error(f"Statement failed: {e}")
            raise ExecutionError(f"Failed to execute statement: {e}", sql=query, cause=e) from e

        logger.debug(f"Executed in {(time.time() - start_time) * 1000:.1f}ms: {status}")
        return status

    async def fetch(self, query: str, *args) -> List[asyncpg.Record]:
        """Fetch all results from a query."""
        async with self.acquire() as conn:
            return await conn.fetch(query, *args)

    async def fetchval(self, query: str, *args, column: int = 0) -> Any:
        """Fetch a single value from a query."""
        async with self.acquire() as conn:
            return await conn.fetchval(query, *args, column=column)

    def clear_captured(self) -> List[str]:
        """Empty the capture log and return what it held."""
        captured, self.captured_sql = self.captured_sql, []
        return captured

    @property
    def is_initialized(self) -> bool:
        """Check if pool is initialized."""
        return self._pool is not None

    async def __aenter__(self) -> "ConnectionPool":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
