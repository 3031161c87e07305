"""Effective access resolution."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from rootline.core.interfaces import GrantStore, LeafStore, NodeStore
from rootline.core.rbac.types import (
    AccessLevel,
    Grant,
    ResolutionPolicy,
    ResolvedAccess,
    ResourceRef,
    ResourceType,
)
from rootline.core.tree import algorithms

if TYPE_CHECKING:
    from rootline.config import Settings

logger = structlog.get_logger()


class AccessResolver:
    """Combines direct and inherited grants into one effective access level.

    Resolution for a principal on a resource:
    1. Direct grants on the resource count at distance 0.
    2. Walking up the containers above the resource (a leaf's own container
       is distance 1), a grant counts only when its inherit flag is set.
    3. The highest rank wins; equal ranks prefer the closest grant, then the
       newest one.

    Resolution is a pure read. It writes nothing and is safe to call
    speculatively, e.g. to pre-filter a listing.
    """

    def __init__(
        self,
        nodes: NodeStore,
        grants: GrantStore,
        leaves: LeafStore | None = None,
        policy: ResolutionPolicy = ResolutionPolicy.HIGHEST_RANK,
    ) -> None:
        """Initialize the resolver.

        Args:
            nodes: Node store used to walk ancestors.
            grants: Grant store to read.
            leaves: Leaf store used to find a leaf's container. Without it,
                leaves only see their direct grants.
            policy: Resolution policy.
        """
        self._nodes = nodes
        self._grants = grants
        self._leaves = leaves
        self._policy = policy

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        nodes: NodeStore,
        grants: GrantStore,
        leaves: LeafStore | None = None,
    ) -> AccessResolver:
        """Build a resolver using the configured resolution policy."""
        return cls(nodes, grants, leaves, policy=settings.access_resolution)

    @property
    def policy(self) -> ResolutionPolicy:
        """The active resolution policy."""
        return self._policy

    async def effective_access(self, principal_id: UUID, ref: ResourceRef) -> AccessLevel | None:
        """Get a principal's effective access on a resource, or None."""
        resolved = await self.resolve(principal_id, ref)
        return resolved.access if resolved else None

    async def resolve(self, principal_id: UUID, ref: ResourceRef) -> ResolvedAccess | None:
        """Resolve effective access along with the grant it came from.

        Args:
            principal_id: The subject.
            ref: The resource being accessed.

        Returns:
            ResolvedAccess, or None if no grant applies.
        """
        candidates = await self._collect(principal_id, ref)
        if not candidates:
            return None

        if self._policy is ResolutionPolicy.MOST_SPECIFIC:
            closest = min(distance for distance, _ in candidates)
            candidates = [(d, g) for d, g in candidates if d == closest]

        distance, grant = max(
            candidates,
            key=lambda item: (item[1].access.rank, -item[0], item[1].created_at),
        )
        return ResolvedAccess(access=grant.access, grant=grant, distance=distance)

    async def can(self, principal_id: UUID, ref: ResourceRef, required: AccessLevel) -> bool:
        """Check whether a principal holds at least the required level."""
        access = await self.effective_access(principal_id, ref)
        return access is not None and access.covers(required)

    async def filter_accessible(
        self,
        principal_id: UUID,
        refs: Iterable[ResourceRef],
        minimum: AccessLevel = AccessLevel.VIEW,
    ) -> list[ResourceRef]:
        """Keep only the resources a principal can reach at the given level."""
        return [ref for ref in refs if await self.can(principal_id, ref, minimum)]

    async def _collect(self, principal_id: UUID, ref: ResourceRef) -> list[tuple[int, Grant]]:
        candidates = [(0, g) for g in await self._grants.grants_on(ref) if g.principal_id == principal_id]

        start_id = await self._first_container_above(ref)
        start = await self._nodes.get(start_id) if start_id else None
        if start is None:
            return candidates

        chain = [start, *await algorithms.ancestors(self._nodes, start.id)]
        for distance, container in enumerate(chain, start=1):
            for grant in await self._grants.grants_on(ResourceRef.container(container.id)):
                if grant.principal_id == principal_id and grant.inherit:
                    candidates.append((distance, grant))

        logger.debug(
            "access_candidates_collected",
            principal_id=str(principal_id),
            resource_id=str(ref.id),
            candidates=len(candidates),
        )
        return candidates

    async def _first_container_above(self, ref: ResourceRef) -> UUID | None:
        if ref.type is ResourceType.LEAF:
            if self._leaves is None:
                return None
            leaf = await self._leaves.get(ref.id)
            return leaf.container_id if leaf else None

        node = await self._nodes.get(ref.id)
        return node.parent_id if node else None
