"""Domain-specific exceptions.

All exceptions in the rootline system inherit from RootlineError,
making it easy to catch all system errors while still being able
to handle specific error types.

Structural violations (CycleError, InvalidParentError, RootViolationError,
DuplicateNodeError) are always raised before anything is written to a store.
ConflictError and PartialDeleteError describe a store that moved underneath
an operation; they are surfaced to the caller and never retried here.
"""

from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID


class RootlineError(Exception):
    """Base exception for all rootline errors.

    All custom exceptions in the system should inherit from this class
    to enable catching all rootline-specific errors with a single except clause.
    """

    pass


class NotFoundError(RootlineError):
    """A node or leaf resource does not exist.

    Attributes:
        resource_id: The id that could not be found.
    """

    def __init__(self, resource_id: UUID, what: str = "node") -> None:
        """Initialize NotFoundError.

        Args:
            resource_id: The missing id.
            what: Human readable name of the missing thing.
        """
        super().__init__(f"{what} {resource_id} not found")
        self.resource_id = resource_id


class InvalidParentError(RootlineError):
    """The requested parent is absent, in another namespace, or of another kind."""

    pass


class CycleError(RootlineError):
    """The move would make a node its own ancestor.

    Raised for self-parenting and for moving a node into its own subtree.
    """

    pass


class RootViolationError(RootlineError):
    """A null parent is not allowed here.

    Container namespaces hold exactly one root. Only the node that already
    holds that position may sit at the top level.
    """

    pass


class DuplicateNodeError(RootlineError):
    """A node with the requested id already exists."""

    pass


class ConflictError(RootlineError):
    """An optimistic-concurrency precondition failed at commit time.

    The precondition check (for instance the cycle check of a reparent) was
    evaluated against rows that changed before the write landed. The caller
    decides whether to reload and retry.
    """

    pass


class StoreError(RootlineError):
    """The backing store rejected a write.

    Used for referential-integrity failures and injected faults.
    """

    pass


class PartialDeleteError(RootlineError):
    """A cascading delete stopped part way.

    Attributes:
        deleted_node_ids: Nodes that were removed before the failure.
        deleted_leaf_ids: Leaf resources that were removed before the failure.
        promoted_node_ids: Children moved to the top level that stayed there.
    """

    def __init__(
        self,
        message: str,
        deleted_node_ids: Sequence[UUID] = (),
        deleted_leaf_ids: Sequence[UUID] = (),
        *,
        promoted_node_ids: Sequence[UUID] = (),
    ) -> None:
        """Initialize PartialDeleteError.

        Args:
            message: Error description.
            deleted_node_ids: Nodes removed before the failure.
            deleted_leaf_ids: Leaves removed before the failure.
            promoted_node_ids: Children left at the top level.
        """
        super().__init__(message)
        self.deleted_node_ids = list(deleted_node_ids)
        self.deleted_leaf_ids = list(deleted_leaf_ids)
        self.promoted_node_ids = list(promoted_node_ids)
