"""Tree domain types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

LINK_MIME_TYPE = "application/x-link"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class NodeKind(str, Enum):
    """Kinds of tree nodes.

    Both kinds share the same tree semantics. They differ only in the
    root policy of their namespace.
    """

    CONTAINER = "container"
    PLACEMENT = "placement"

    @property
    def single_root(self) -> bool:
        """Whether a namespace of this kind holds exactly one root."""
        return self is NodeKind.CONTAINER


@dataclass(frozen=True)
class Node:
    """One entry in a namespaced forest.

    A folder (container) or an org-chart position (placement). Tree
    position is derived from parent_id alone; nothing is denormalized.
    """

    id: UUID
    namespace: str
    kind: NodeKind
    label: str
    parent_id: UUID | None = None
    version: int = 1
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @property
    def is_root(self) -> bool:
        """Whether the node sits at the top of its namespace."""
        return self.parent_id is None


@dataclass(frozen=True)
class LeafResource:
    """A non-tree resource attached to a container (a file or a link)."""

    id: UUID
    container_id: UUID
    name: str
    storage_key: str
    mime_type: str | None = None
    size_bytes: int | None = None
    created_at: datetime = field(default_factory=_utcnow)

    @property
    def is_link(self) -> bool:
        """Link rows point elsewhere and carry no object bytes."""
        return self.mime_type == LINK_MIME_TYPE


class NodeSpec(BaseModel):
    """User input for a new node.

    Attributes:
        label: Display label, surrounding whitespace removed.
        id: Optional caller-chosen id (org-chart placements use the employee id).
    """

    model_config = ConfigDict(frozen=True)

    label: str
    id: UUID | None = None

    @field_validator("label")
    @classmethod
    def _strip_label(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("label must not be blank")
        return value


@dataclass(frozen=True)
class OutlineEntry:
    """A node together with its depth in a rendered forest."""

    node: Node
    depth: int


@dataclass
class CascadeResult:
    """What a delete removed, in the order it was removed."""

    node_ids: list[UUID] = field(default_factory=list)
    leaf_ids: list[UUID] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True when nothing was left to delete."""
        return not self.node_ids and not self.leaf_ids
