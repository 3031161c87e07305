"""Grant management: sharing, revoking and listing grants."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from uuid import UUID, uuid4

import structlog

from rootline.core.exceptions import NotFoundError
from rootline.core.interfaces import GrantStore, LeafStore, NodeStore
from rootline.core.rbac.types import (
    AccessLevel,
    Grant,
    GrantFilter,
    GrantGroup,
    ResourceRef,
    ResourceType,
    ShareOutcome,
)
from rootline.core.tree.types import NodeKind

logger = structlog.get_logger()


def group_grants(
    grants: Iterable[Grant],
    label_for: Callable[[UUID], str] | None = None,
) -> list[GrantGroup]:
    """Collapse grant rows per principal.

    Each group keeps the best access (newest row on ties) for display and
    every row id, so revoking a group removes all of its rows.

    Args:
        grants: Grant rows, typically all rows on one resource.
        label_for: Display label of a principal, used for ordering.

    Returns:
        Groups ordered by principal label.
    """
    groups: dict[UUID, GrantGroup] = {}
    for grant in grants:
        group = groups.get(grant.principal_id)
        if group is None:
            groups[grant.principal_id] = GrantGroup(
                principal_id=grant.principal_id,
                access=grant.access,
                inherit=grant.inherit,
                created_at=grant.created_at,
                grant_ids=[grant.id],
            )
            continue

        group.grant_ids.append(grant.id)
        better = grant.access.rank > group.access.rank
        newer_tie = grant.access.rank == group.access.rank and grant.created_at > group.created_at
        if better or newer_tie:
            group.access = grant.access
            group.inherit = grant.inherit
            group.created_at = grant.created_at

    label = label_for or str
    return sorted(groups.values(), key=lambda g: (label(g.principal_id).casefold(), str(g.principal_id)))


class GrantService:
    """Service for creating, revoking and listing grants."""

    def __init__(
        self,
        grants: GrantStore,
        nodes: NodeStore | None = None,
        leaves: LeafStore | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            grants: Grant store to write.
            nodes: When given, container grants are checked against it.
            leaves: When given, leaf grants are checked against it.
        """
        self._grants = grants
        self._nodes = nodes
        self._leaves = leaves

    async def share(
        self,
        principal_id: UUID,
        ref: ResourceRef,
        access: AccessLevel = AccessLevel.VIEW,
        *,
        inherit: bool | None = None,
        created_by: UUID | None = None,
    ) -> Grant:
        """Append a grant for a principal.

        Container grants inherit by default. Leaf grants never inherit;
        the flag is forced off for them.
        """
        await self._ensure_exists(ref)
        if ref.type is ResourceType.LEAF:
            inherit = False
        elif inherit is None:
            inherit = True

        grant = await self._grants.add(
            Grant(
                id=uuid4(),
                principal_id=principal_id,
                resource=ref,
                access=access,
                inherit=inherit,
                created_by=created_by,
            )
        )
        logger.info(
            "grant_created",
            grant_id=str(grant.id),
            principal_id=str(principal_id),
            resource_type=ref.type.value,
            resource_id=str(ref.id),
            access=access.value,
            inherit=inherit,
        )
        return grant

    async def share_with_many(
        self,
        principal_ids: Iterable[UUID],
        ref: ResourceRef,
        access: AccessLevel = AccessLevel.VIEW,
        *,
        created_by: UUID | None = None,
    ) -> ShareOutcome:
        """Share one resource with several principals.

        Principals that already hold a direct grant on the resource are
        skipped rather than given a second row.
        """
        already = await self.principals_with_access(ref)
        outcome = ShareOutcome()
        for principal_id in dict.fromkeys(principal_ids):
            if principal_id in already:
                outcome.skipped.append(principal_id)
                continue
            outcome.created.append(await self.share(principal_id, ref, access, created_by=created_by))
        return outcome

    async def revoke(self, principal_id: UUID, ref: ResourceRef) -> int:
        """Remove every row a principal holds on a resource."""
        removed = await self._grants.remove_all(GrantFilter.principal_on(principal_id, ref))
        logger.info(
            "grants_revoked",
            principal_id=str(principal_id),
            resource_id=str(ref.id),
            removed=removed,
        )
        return removed

    async def revoke_grants(self, grant_ids: Sequence[UUID]) -> int:
        """Remove specific grant rows (e.g. every row of a GrantGroup)."""
        if not grant_ids:
            return 0
        removed = await self._grants.remove_all(GrantFilter.by_ids(grant_ids))
        logger.info("grants_revoked", grant_ids=[str(g) for g in grant_ids], removed=removed)
        return removed

    async def grant_groups(
        self,
        ref: ResourceRef,
        label_for: Callable[[UUID], str] | None = None,
    ) -> list[GrantGroup]:
        """List the direct grants on a resource, one group per principal."""
        return group_grants(await self._grants.grants_on(ref), label_for)

    async def principals_with_access(self, ref: ResourceRef) -> set[UUID]:
        """Principals holding at least one direct grant on a resource."""
        return {grant.principal_id for grant in await self._grants.grants_on(ref)}

    async def shared_with(
        self,
        principal_id: UUID,
        resource_type: ResourceType | None = None,
    ) -> list[ResourceRef]:
        """Resources directly shared with a principal, without duplicates."""
        refs = (
            grant.resource
            for grant in await self._grants.grants_for(principal_id)
            if resource_type is None or grant.resource.type is resource_type
        )
        return list(dict.fromkeys(refs))

    async def _ensure_exists(self, ref: ResourceRef) -> None:
        if ref.type is ResourceType.CONTAINER and self._nodes is not None:
            node = await self._nodes.get(ref.id)
            if node is None or node.kind is not NodeKind.CONTAINER:
                raise NotFoundError(ref.id, "container")
        elif ref.type is ResourceType.LEAF and self._leaves is not None:
            if await self._leaves.get(ref.id) is None:
                raise NotFoundError(ref.id, "leaf")


class GrantCleanup:
    """Deletion listener that drops grants on removed resources.

    Pass an instance to TreeService so cascading deletes clean up grants
    without the tree engine knowing about grant storage.
    """

    def __init__(self, grants: GrantStore) -> None:
        """Initialize the listener."""
        self._grants = grants

    async def on_nodes_deleted(self, node_ids: Sequence[UUID]) -> None:
        """Remove grants on deleted containers."""
        await self._remove([ResourceRef.container(node_id) for node_id in node_ids])

    async def on_leaves_deleted(self, leaf_ids: Sequence[UUID]) -> None:
        """Remove grants on deleted leaves."""
        await self._remove([ResourceRef.leaf(leaf_id) for leaf_id in leaf_ids])

    async def _remove(self, refs: list[ResourceRef]) -> None:
        if not refs:
            return
        removed = await self._grants.remove_all(GrantFilter.on_resources(refs))
        logger.info("grants_cleaned_up", resources=len(refs), removed=removed)
