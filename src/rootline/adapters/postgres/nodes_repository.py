"""Tree nodes repository."""

import logging
from collections.abc import Mapping
from datetime import UTC
from typing import TYPE_CHECKING, Any
from uuid import UUID

from asyncpg.exceptions import ForeignKeyViolationError, UniqueViolationError

from rootline.core.exceptions import ConflictError, DuplicateNodeError, InvalidParentError, StoreError
from rootline.core.tree.types import Node, NodeKind

if TYPE_CHECKING:
    from asyncpg import Connection

logger = logging.getLogger(__name__)

_COLUMNS = "id, namespace, kind, label, parent_id, version, created_at, updated_at"


class NodesRepository:
    """Repository for tree node rows (table tree_nodes)."""

    def __init__(self, conn: "Connection") -> None:
        """Initialize the repository."""
        self._conn = conn

    async def get(self, node_id: UUID) -> Node | None:
        """Get node by ID."""
        row = await self._conn.fetchrow(
            f"SELECT {_COLUMNS} FROM tree_nodes WHERE id = $1",
            node_id,
        )
        if not row:
            return None
        return self._row_to_node(row)

    async def children_of(self, namespace: str, parent_id: UUID | None) -> list[Node]:
        """List children of a parent, or the roots when parent_id is None."""
        if parent_id is None:
            rows = await self._conn.fetch(
                f"""
                SELECT {_COLUMNS} FROM tree_nodes
                WHERE namespace = $1 AND parent_id IS NULL
                """,
                namespace,
            )
        else:
            rows = await self._conn.fetch(
                f"""
                SELECT {_COLUMNS} FROM tree_nodes
                WHERE namespace = $1 AND parent_id = $2
                """,
                namespace,
                parent_id,
            )
        return [self._row_to_node(row) for row in rows]

    async def list_namespace(self, namespace: str) -> list[Node]:
        """List all nodes of a namespace."""
        rows = await self._conn.fetch(
            f"SELECT {_COLUMNS} FROM tree_nodes WHERE namespace = $1",
            namespace,
        )
        return [self._row_to_node(row) for row in rows]

    async def insert(self, node: Node) -> Node:
        """Insert a node row."""
        try:
            row = await self._conn.fetchrow(
                f"""
                INSERT INTO tree_nodes (id, namespace, kind, label, parent_id)
                VALUES ($1, $2, $3, $4, $5)
                RETURNING {_COLUMNS}
                """,
                node.id,
                node.namespace,
                node.kind.value,
                node.label,
                node.parent_id,
            )
        except UniqueViolationError as exc:
            raise DuplicateNodeError(f"node {node.id} already exists") from exc
        except ForeignKeyViolationError as exc:
            raise InvalidParentError(f"parent {node.parent_id} not found") from exc
        return self._row_to_node(row)

    async def set_parent(
        self,
        node_id: UUID,
        parent_id: UUID | None,
        *,
        expected_versions: Mapping[UUID, int],
    ) -> Node | None:
        """Move a node, locking and comparing every expected row first."""
        async with self._conn.transaction():
            if expected_versions:
                rows = await self._conn.fetch(
                    "SELECT id, version FROM tree_nodes WHERE id = ANY($1::uuid[]) FOR UPDATE",
                    list(expected_versions),
                )
                current = {row["id"]: row["version"] for row in rows}
                stale = [nid for nid, version in expected_versions.items() if current.get(nid) != version]
                if stale:
                    logger.info("Rejected move of %s: %d stale rows", node_id, len(stale))
                    raise ConflictError(f"rows changed since they were read: {', '.join(map(str, stale))}")

            row = await self._conn.fetchrow(
                f"""
                UPDATE tree_nodes
                SET parent_id = $2, version = version + 1, updated_at = NOW()
                WHERE id = $1
                RETURNING {_COLUMNS}
                """,
                node_id,
                parent_id,
            )
        if not row:
            return None
        return self._row_to_node(row)

    async def set_label(
        self,
        node_id: UUID,
        label: str,
        *,
        expected_version: int | None = None,
    ) -> Node | None:
        """Change a node label, optionally guarded by a version."""
        row = await self._conn.fetchrow(
            f"""
            UPDATE tree_nodes
            SET label = $2, version = version + 1, updated_at = NOW()
            WHERE id = $1 AND ($3::int IS NULL OR version = $3)
            RETURNING {_COLUMNS}
            """,
            node_id,
            label,
            expected_version,
        )
        if row:
            return self._row_to_node(row)
        if expected_version is not None:
            exists = await self._conn.fetchval("SELECT EXISTS (SELECT 1 FROM tree_nodes WHERE id = $1)", node_id)
            if exists:
                raise ConflictError(f"node {node_id} changed since it was read")
        return None

    async def delete(self, node_id: UUID) -> bool:
        """Delete a node row."""
        try:
            result: str = await self._conn.execute(
                "DELETE FROM tree_nodes WHERE id = $1",
                node_id,
            )
        except ForeignKeyViolationError as exc:
            raise StoreError(f"node {node_id} still has children") from exc
        return result == "DELETE 1"

    def _row_to_node(self, row: Mapping[str, Any]) -> Node:
        """Convert database row to Node."""
        return Node(
            id=row["id"],
            namespace=row["namespace"],
            kind=NodeKind(row["kind"]),
            label=row["label"],
            parent_id=row["parent_id"],
            version=row["version"],
            created_at=row["created_at"].replace(tzinfo=UTC),
            updated_at=row["updated_at"].replace(tzinfo=UTC),
        )
