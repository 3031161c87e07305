"""Core domain - tree engine, access resolution and store protocols."""

from rootline.core.exceptions import (
    ConflictError,
    CycleError,
    DuplicateNodeError,
    InvalidParentError,
    NotFoundError,
    PartialDeleteError,
    RootlineError,
    RootViolationError,
    StoreError,
)
from rootline.core.interfaces import DeletionListener, GrantStore, LeafStore, NodeStore

__all__ = [
    "ConflictError",
    "CycleError",
    "DeletionListener",
    "DuplicateNodeError",
    "GrantStore",
    "InvalidParentError",
    "LeafStore",
    "NodeStore",
    "NotFoundError",
    "PartialDeleteError",
    "RootViolationError",
    "RootlineError",
    "StoreError",
]
