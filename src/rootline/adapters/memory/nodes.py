"""In-memory node store."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import replace
from datetime import UTC, datetime
from uuid import UUID

from rootline.core.exceptions import ConflictError, DuplicateNodeError, StoreError
from rootline.core.tree.types import Node


class InMemoryNodeStore:
    """Dict-backed NodeStore.

    Useful for:
    - Unit testing the tree engine without a database
    - Short-lived trees built from rows fetched elsewhere

    Behaves like a relational store with a self-referencing foreign key:
    deleting a node that still has children raises StoreError unless
    enforce_integrity is off. Every write bumps the row version.

    Attributes:
        delete_log: Ids of successful deletes, in call order.
    """

    def __init__(self, nodes: Iterable[Node] = (), *, enforce_integrity: bool = True) -> None:
        """Initialize the store.

        Args:
            nodes: Rows to preload.
            enforce_integrity: Refuse to delete nodes with live children.
        """
        self._rows: dict[UUID, Node] = {node.id: node for node in nodes}
        self._enforce_integrity = enforce_integrity
        self.delete_log: list[UUID] = []

    def __len__(self) -> int:
        return len(self._rows)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._rows

    async def get(self, node_id: UUID) -> Node | None:
        """Fetch a node by id."""
        return self._rows.get(node_id)

    async def children_of(self, namespace: str, parent_id: UUID | None) -> list[Node]:
        """List direct children (or roots when parent_id is None)."""
        return [n for n in self._rows.values() if n.namespace == namespace and n.parent_id == parent_id]

    async def list_namespace(self, namespace: str) -> list[Node]:
        """List every node of a namespace."""
        return [n for n in self._rows.values() if n.namespace == namespace]

    async def insert(self, node: Node) -> Node:
        """Insert a node row."""
        if node.id in self._rows:
            raise DuplicateNodeError(f"node {node.id} already exists")
        self._rows[node.id] = node
        return node

    async def set_parent(
        self,
        node_id: UUID,
        parent_id: UUID | None,
        *,
        expected_versions: Mapping[UUID, int],
    ) -> Node | None:
        """Move a node after checking every expected version."""
        self._check_versions(expected_versions)
        node = self._rows.get(node_id)
        if node is None:
            return None
        return self._write(replace(node, parent_id=parent_id))

    async def set_label(
        self,
        node_id: UUID,
        label: str,
        *,
        expected_version: int | None = None,
    ) -> Node | None:
        """Change a node label."""
        node = self._rows.get(node_id)
        if node is None:
            return None
        if expected_version is not None and node.version != expected_version:
            raise ConflictError(f"node {node_id} changed (version {node.version}, expected {expected_version})")
        return self._write(replace(node, label=label))

    async def delete(self, node_id: UUID) -> bool:
        """Delete a node row."""
        if node_id not in self._rows:
            return False
        if self._enforce_integrity and any(n.parent_id == node_id for n in self._rows.values()):
            raise StoreError(f"node {node_id} still has children")
        del self._rows[node_id]
        self.delete_log.append(node_id)
        return True

    def _check_versions(self, expected_versions: Mapping[UUID, int]) -> None:
        for node_id, version in expected_versions.items():
            row = self._rows.get(node_id)
            if row is None or row.version != version:
                raise ConflictError(f"node {node_id} changed since it was read")

    def _write(self, node: Node) -> Node:
        updated = replace(node, version=node.version + 1, updated_at=datetime.now(UTC))
        self._rows[updated.id] = updated
        return updated
