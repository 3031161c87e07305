"""RBAC domain types."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from uuid import UUID

_ACCESS_RANK = {"view": 1, "download": 2, "manage": 3}


class AccessLevel(str, Enum):
    """Access levels, ordered low to high."""

    VIEW = "view"
    DOWNLOAD = "download"
    MANAGE = "manage"

    @property
    def rank(self) -> int:
        """Numeric rank used for comparisons."""
        return _ACCESS_RANK[self.value]

    def covers(self, required: AccessLevel) -> bool:
        """Whether this level satisfies a required level."""
        return self.rank >= required.rank


class ResourceType(str, Enum):
    """Type of grant target."""

    CONTAINER = "container"
    LEAF = "leaf"


class ResolutionPolicy(str, Enum):
    """How inherited and direct grants combine.

    HIGHEST_RANK: every applicable grant counts; the highest rank wins.
    MOST_SPECIFIC: only the closest level holding any applicable grant counts,
    so an explicit lower grant can narrow an inherited higher one.
    """

    HIGHEST_RANK = "highest_rank"
    MOST_SPECIFIC = "most_specific"


@dataclass(frozen=True)
class ResourceRef:
    """Reference to a container node or a leaf resource."""

    type: ResourceType
    id: UUID

    @classmethod
    def container(cls, container_id: UUID) -> ResourceRef:
        """Reference a container node."""
        return cls(ResourceType.CONTAINER, container_id)

    @classmethod
    def leaf(cls, leaf_id: UUID) -> ResourceRef:
        """Reference a leaf resource."""
        return cls(ResourceType.LEAF, leaf_id)


@dataclass(frozen=True)
class Grant:
    """A permission grant (ACL entry).

    Rows are never edited in place. A principal may hold several rows on the
    same resource; the effective access is derived from all of them.
    """

    id: UUID
    principal_id: UUID
    resource: ResourceRef
    access: AccessLevel
    inherit: bool
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    created_by: UUID | None = None


@dataclass(frozen=True)
class GrantFilter:
    """Predicate for bulk grant removal.

    Unset fields match everything; set fields must all match. A filter
    with no field set matches nothing, so an empty filter never wipes a store.
    """

    grant_ids: frozenset[UUID] | None = None
    principal_id: UUID | None = None
    resources: frozenset[ResourceRef] | None = None

    @classmethod
    def by_ids(cls, grant_ids: Iterable[UUID]) -> GrantFilter:
        """Match the given grant rows."""
        return cls(grant_ids=frozenset(grant_ids))

    @classmethod
    def on_resources(cls, refs: Iterable[ResourceRef]) -> GrantFilter:
        """Match every grant on any of the given resources."""
        return cls(resources=frozenset(refs))

    @classmethod
    def principal_on(cls, principal_id: UUID, ref: ResourceRef) -> GrantFilter:
        """Match every row a principal holds on one resource."""
        return cls(principal_id=principal_id, resources=frozenset({ref}))

    @property
    def is_empty(self) -> bool:
        """True when no field is set."""
        return self.grant_ids is None and self.principal_id is None and self.resources is None

    def matches(self, grant: Grant) -> bool:
        """Check a grant against the predicate."""
        if self.is_empty:
            return False
        if self.grant_ids is not None and grant.id not in self.grant_ids:
            return False
        if self.principal_id is not None and grant.principal_id != self.principal_id:
            return False
        if self.resources is not None and grant.resource not in self.resources:
            return False
        return True


@dataclass
class GrantGroup:
    """All grant rows of one principal on one resource, collapsed for display."""

    principal_id: UUID
    access: AccessLevel
    inherit: bool
    created_at: datetime
    grant_ids: list[UUID] = field(default_factory=list)


@dataclass(frozen=True)
class ResolvedAccess:
    """Effective access together with the grant it came from.

    Attributes:
        access: The resolved level.
        grant: The winning grant, for display metadata.
        distance: 0 for a direct grant, otherwise hops up to the granting container.
    """

    access: AccessLevel
    grant: Grant
    distance: int

    @property
    def inherited(self) -> bool:
        """Whether the access comes from an ancestor container."""
        return self.distance > 0


@dataclass
class ShareOutcome:
    """Result of sharing one resource with several principals."""

    created: list[Grant] = field(default_factory=list)
    skipped: list[UUID] = field(default_factory=list)
