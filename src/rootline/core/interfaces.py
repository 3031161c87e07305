"""Protocol definitions for all external dependencies.

This module defines the interfaces (Protocols) that store adapters must
implement. The core only depends on these protocols, never on concrete
implementations, so storage backends can be swapped without duplicating
the tree rules.

Stores are deliberately dumb: they validate nothing. Every invariant lives
in the core services. The one obligation a store carries is per-row conflict
detection for NodeStore.set_parent.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable
from uuid import UUID

if TYPE_CHECKING:
    from rootline.core.rbac.types import Grant, GrantFilter, ResourceRef
    from rootline.core.tree.types import LeafResource, Node


@runtime_checkable
class NodeStore(Protocol):
    """Interface for node rows."""

    async def get(self, node_id: UUID) -> Node | None:
        """Fetch a node by id, or None when absent."""
        ...

    async def children_of(self, namespace: str, parent_id: UUID | None) -> list[Node]:
        """List direct children of a parent within a namespace.

        Args:
            namespace: Namespace to search.
            parent_id: Parent id, or None to list the namespace roots.

        Returns:
            Child nodes in no particular order.
        """
        ...

    async def list_namespace(self, namespace: str) -> list[Node]:
        """List every node of a namespace."""
        ...

    async def insert(self, node: Node) -> Node:
        """Insert a node row and return the stored row.

        Raises:
            DuplicateNodeError: If the id is already taken.
        """
        ...

    async def set_parent(
        self,
        node_id: UUID,
        parent_id: UUID | None,
        *,
        expected_versions: Mapping[UUID, int],
    ) -> Node | None:
        """Point a node at a new parent.

        Args:
            node_id: The node to move.
            parent_id: New parent id, or None for the top level.
            expected_versions: Versions observed by the caller's precondition
                check. Every listed row must still carry that version.

        Returns:
            The updated node, or None when the node is absent.

        Raises:
            ConflictError: If any listed row changed or vanished.
        """
        ...

    async def set_label(
        self,
        node_id: UUID,
        label: str,
        *,
        expected_version: int | None = None,
    ) -> Node | None:
        """Change a node label.

        Returns:
            The updated node, or None when the node is absent.

        Raises:
            ConflictError: If expected_version is given and stale.
        """
        ...

    async def delete(self, node_id: UUID) -> bool:
        """Delete a node row.

        Returns:
            True if deleted, False if it was already absent.

        Raises:
            StoreError: If the store refuses, e.g. the node still has children.
        """
        ...


@runtime_checkable
class LeafStore(Protocol):
    """Interface for leaf resources attached under containers."""

    async def get(self, leaf_id: UUID) -> LeafResource | None:
        """Fetch a leaf by id."""
        ...

    async def list_in(self, container_id: UUID) -> list[LeafResource]:
        """List leaves attached directly to a container."""
        ...

    async def insert(self, leaf: LeafResource) -> LeafResource:
        """Insert a leaf row."""
        ...

    async def move(self, leaf_id: UUID, container_id: UUID) -> LeafResource | None:
        """Attach a leaf to another container. None when the leaf is absent."""
        ...

    async def delete(self, leaf_id: UUID) -> bool:
        """Delete a leaf row. False when already absent."""
        ...


@runtime_checkable
class GrantStore(Protocol):
    """Interface for permission grant rows.

    Grants are append/delete only; there is no update operation.
    """

    async def grants_on(self, ref: ResourceRef) -> list[Grant]:
        """List every grant on a resource."""
        ...

    async def grants_for(self, principal_id: UUID) -> list[Grant]:
        """List every grant held by a principal."""
        ...

    async def add(self, grant: Grant) -> Grant:
        """Append a grant row."""
        ...

    async def remove_all(self, grant_filter: GrantFilter) -> int:
        """Remove every grant matching the filter.

        Returns:
            Number of rows removed.
        """
        ...


@runtime_checkable
class DeletionListener(Protocol):
    """Collaborator told about rows removed by the tree engine.

    The tree engine reports deletions through this interface only, so it
    never depends on grant storage directly.
    """

    async def on_nodes_deleted(self, node_ids: Sequence[UUID]) -> None:
        """Handle removed node ids."""
        ...

    async def on_leaves_deleted(self, leaf_ids: Sequence[UUID]) -> None:
        """Handle removed leaf ids."""
        ...
