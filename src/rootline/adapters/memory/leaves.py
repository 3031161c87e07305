"""In-memory leaf store."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from uuid import UUID

from rootline.core.tree.types import LeafResource


class InMemoryLeafStore:
    """Dict-backed LeafStore.

    Attributes:
        delete_log: Ids of successful deletes, in call order.
    """

    def __init__(self, leaves: Iterable[LeafResource] = ()) -> None:
        """Initialize the store with optional preloaded rows."""
        self._rows: dict[UUID, LeafResource] = {leaf.id: leaf for leaf in leaves}
        self.delete_log: list[UUID] = []

    def __len__(self) -> int:
        return len(self._rows)

    async def get(self, leaf_id: UUID) -> LeafResource | None:
        """Fetch a leaf by id."""
        return self._rows.get(leaf_id)

    async def list_in(self, container_id: UUID) -> list[LeafResource]:
        """List leaves of a container, newest first."""
        rows = [leaf for leaf in self._rows.values() if leaf.container_id == container_id]
        return sorted(rows, key=lambda leaf: leaf.created_at, reverse=True)

    async def insert(self, leaf: LeafResource) -> LeafResource:
        """Insert a leaf row."""
        self._rows[leaf.id] = leaf
        return leaf

    async def move(self, leaf_id: UUID, container_id: UUID) -> LeafResource | None:
        """Attach a leaf to another container."""
        leaf = self._rows.get(leaf_id)
        if leaf is None:
            return None
        moved = replace(leaf, container_id=container_id)
        self._rows[leaf_id] = moved
        return moved

    async def delete(self, leaf_id: UUID) -> bool:
        """Delete a leaf row."""
        if self._rows.pop(leaf_id, None) is None:
            return False
        self.delete_log.append(leaf_id)
        return True
