"""
asyncpg pool for the security master.

Each CLI invocation opens one small pool, runs its queries and closes
it again. The store needs plain reads, single statements and one
transaction per upsert, so that is all this wrapper exposes.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from types import TracebackType
from typing import Any
from urllib.parse import urlsplit

import asyncpg

from tickisinator.config.settings import get_settings

logger = logging.getLogger(__name__)

APPLICATION_NAME = "tickisinator"


def _redact(url: str) -> str:
    """host:port/dbname of a DSN, without credentials."""
    parts = urlsplit(url)
    host = parts.hostname or "localhost"
    port = f":{parts.port}" if parts.port else ""
    return f"{host}{port}{parts.path}"


class Database:
    """
    Connection pool owner.

    Usage:
        async with Database() as db:
            async with db.transaction() as conn:
                await conn.fetchval("SELECT id FROM securities WHERE ...")
    """

    def __init__(
        self,
        database_url: str | None = None,
        min_size: int | None = None,
        max_size: int | None = None,
    ):
        settings = get_settings()

        self._database_url = database_url or str(settings.database_url)
        self._min_size = min_size or settings.db_pool_min_size
        self._max_size = max(max_size or settings.db_pool_max_size, self._min_size)
        self._command_timeout = settings.db_command_timeout

        self._pool: asyncpg.Pool | None = None

    @property
    def target(self) -> str:
        """The server and database this instance points at."""
        return _redact(self._database_url)

    async def connect(self) -> None:
        """Open the pool. Connection failures propagate to the caller."""
        if self._pool is not None:
            return

        try:
            self._pool = await asyncpg.create_pool(
                self._database_url,
                min_size=self._min_size,
                max_size=self._max_size,
                command_timeout=self._command_timeout,
                server_settings={"application_name": APPLICATION_NAME},
            )
        except (asyncpg.PostgresError, OSError) as e:
            logger.error(f"Failed to connect to {self.target}: {e}")
            raise

        logger.debug(
            f"Connected to {self.target} (pool: {self._min_size}-{self._max_size})"
        )

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.debug(f"Closed pool for {self.target}")

    async def __aenter__(self) -> "Database":
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._pool

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        """
        Run statements on one connection inside a transaction.

        The transaction commits when the block exits normally and rolls
        back when it raises.
        """
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                yield conn

    async def execute(self, query: str, *args: Any) -> str:
        """Run a statement and return PostgreSQL's status tag."""
        async with self.pool.acquire() as conn:
            return await conn.execute(query, *args)

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        async with self.pool.acquire() as conn:
            return await conn.fetch(query, *args)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        async with self.pool.acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        async with self.pool.acquire() as conn:
            return await conn.fetchval(query, *args)

    async def health_check(self) -> bool:
        """True when the server answers a trivial query."""
        try:
            return await self.fetchval("SELECT 1") == 1
        except (asyncpg.PostgresError, OSError, RuntimeError) as e:
            logger.warning(f"Health check against {self.target} failed: {e}")
            return False
