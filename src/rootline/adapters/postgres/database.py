"""Connection pool for the PostgreSQL adapters."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import asyncpg
import structlog

from rootline.adapters.postgres.grants_repository import GrantsRepository
from rootline.adapters.postgres.leaves_repository import LeavesRepository
from rootline.adapters.postgres.nodes_repository import NodesRepository

if TYPE_CHECKING:
    from rootline.config import Settings

logger = structlog.get_logger()


class Repositories:
    """The three store repositories bound to one connection."""

    def __init__(self, conn: asyncpg.Connection[asyncpg.Record]) -> None:
        """Bind repositories to a connection."""
        self.nodes = NodesRepository(conn)
        self.leaves = LeavesRepository(conn)
        self.grants = GrantsRepository(conn)


class TreeDatabase:
    """asyncpg pool handing out store repositories per request."""

    def __init__(self, dsn: str, *, min_size: int = 2, max_size: int = 10):
        """Initialize the database adapter."""
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.pool: asyncpg.Pool[asyncpg.Connection[asyncpg.Record]] | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> TreeDatabase:
        """Create an adapter from library settings."""
        return cls(settings.database_url, min_size=settings.pool_min_size, max_size=settings.pool_max_size)

    async def connect(self) -> None:
        """Create connection pool."""
        self.pool = await asyncpg.create_pool(
            self.dsn,
            min_size=self.min_size,
            max_size=self.max_size,
            command_timeout=60,
        )
        logger.info("tree_database_connected", dsn=self.dsn.split("@")[-1])

    async def close(self) -> None:
        """Close connection pool."""
        if self.pool:
            await self.pool.close()
            self.pool = None
            logger.info("tree_database_disconnected")

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection[asyncpg.Record]]:
        """Acquire a connection from the pool."""
        if self.pool is None:
            raise RuntimeError("Database pool not initialized")
        async with self.pool.acquire() as conn:
            yield conn

    @asynccontextmanager
    async def repositories(self) -> AsyncIterator[Repositories]:
        """Acquire a connection and wrap it in store repositories."""
        async with self.acquire() as conn:
            yield Repositories(conn)
