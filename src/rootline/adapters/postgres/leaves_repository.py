"""Leaf resources repository."""

import logging
from collections.abc import Mapping
from datetime import UTC
from typing import TYPE_CHECKING, Any
from uuid import UUID

from rootline.core.tree.types import LeafResource

if TYPE_CHECKING:
    from asyncpg import Connection

logger = logging.getLogger(__name__)

_COLUMNS = "id, container_id, name, storage_key, mime_type, size_bytes, created_at"


class LeavesRepository:
    """Repository for leaf resource rows (table leaf_resources)."""

    def __init__(self, conn: "Connection") -> None:
        """Initialize the repository."""
        self._conn = conn

    async def get(self, leaf_id: UUID) -> LeafResource | None:
        """Get leaf by ID."""
        row = await self._conn.fetchrow(
            f"SELECT {_COLUMNS} FROM leaf_resources WHERE id = $1",
            leaf_id,
        )
        if not row:
            return None
        return self._row_to_leaf(row)

    async def list_in(self, container_id: UUID) -> list[LeafResource]:
        """List leaves of a container, newest first."""
        rows = await self._conn.fetch(
            f"""
            SELECT {_COLUMNS} FROM leaf_resources
            WHERE container_id = $1
            ORDER BY created_at DESC
            """,
            container_id,
        )
        return [self._row_to_leaf(row) for row in rows]

    async def insert(self, leaf: LeafResource) -> LeafResource:
        """Insert a leaf row."""
        row = await self._conn.fetchrow(
            f"""
            INSERT INTO leaf_resources (id, container_id, name, storage_key, mime_type, size_bytes)
            VALUES ($1, $2, $3, $4, $5, $6)
            RETURNING {_COLUMNS}
            """,
            leaf.id,
            leaf.container_id,
            leaf.name,
            leaf.storage_key,
            leaf.mime_type,
            leaf.size_bytes,
        )
        return self._row_to_leaf(row)

    async def move(self, leaf_id: UUID, container_id: UUID) -> LeafResource | None:
        """Attach a leaf to another container."""
        row = await self._conn.fetchrow(
            f"""
            UPDATE leaf_resources SET container_id = $2
            WHERE id = $1
            RETURNING {_COLUMNS}
            """,
            leaf_id,
            container_id,
        )
        if not row:
            return None
        return self._row_to_leaf(row)

    async def delete(self, leaf_id: UUID) -> bool:
        """Delete a leaf row."""
        result: str = await self._conn.execute(
            "DELETE FROM leaf_resources WHERE id = $1",
            leaf_id,
        )
        return result == "DELETE 1"

    def _row_to_leaf(self, row: Mapping[str, Any]) -> LeafResource:
        """Convert database row to LeafResource."""
        return LeafResource(
            id=row["id"],
            container_id=row["container_id"],
            name=row["name"],
            storage_key=row["storage_key"],
            mime_type=row["mime_type"],
            size_bytes=row["size_bytes"],
            created_at=row["created_at"].replace(tzinfo=UTC),
        )
