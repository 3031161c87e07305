"""Tests for access resolution."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from rootline.adapters.memory import InMemoryGrantStore, InMemoryLeafStore, InMemoryNodeStore
from rootline.config import Settings
from rootline.core.rbac import (
    AccessLevel,
    AccessResolver,
    Grant,
    GrantFilter,
    ResolutionPolicy,
    ResourceRef,
)
from tests.fixtures.trees import FolderTree

_BASE = datetime(2024, 3, 1, tzinfo=UTC)


async def grant(
    store: InMemoryGrantStore,
    principal_id: UUID,
    ref: ResourceRef,
    access: AccessLevel,
    *,
    inherit: bool = True,
    minutes: int = 0,
) -> Grant:
    """Add a grant row with a controlled timestamp."""
    return await store.add(
        Grant(
            id=uuid4(),
            principal_id=principal_id,
            resource=ref,
            access=access,
            inherit=inherit,
            created_at=_BASE + timedelta(minutes=minutes),
        )
    )


@pytest.fixture
def alice() -> UUID:
    """Return a principal id."""
    return uuid4()


class TestEffectiveAccess:
    """Tests for effective_access."""

    async def test_no_grants(self, access_resolver: AccessResolver, folder_tree: FolderTree, alice: UUID) -> None:
        """Nobody has access by default."""
        assert await access_resolver.effective_access(alice, ResourceRef.container(folder_tree.docs.id)) is None

    async def test_inherited_through_levels_then_revoked(
        self,
        access_resolver: AccessResolver,
        grant_store: InMemoryGrantStore,
        folder_tree: FolderTree,
        alice: UUID,
    ) -> None:
        """An inheritable root grant reaches a deep file until it is removed."""
        row = await grant(grant_store, alice, ResourceRef.container(folder_tree.home.id), AccessLevel.DOWNLOAD)
        file_ref = ResourceRef.leaf(folder_tree.plan_pdf.id)

        resolved = await access_resolver.resolve(alice, file_ref)

        assert resolved is not None
        assert resolved.access is AccessLevel.DOWNLOAD
        assert resolved.grant.id == row.id
        assert resolved.distance == 3
        assert resolved.inherited

        await grant_store.remove_all(GrantFilter.by_ids([row.id]))

        assert await access_resolver.effective_access(alice, file_ref) is None

    async def test_direct_grant_raises_access(
        self,
        access_resolver: AccessResolver,
        grant_store: InMemoryGrantStore,
        folder_tree: FolderTree,
        alice: UUID,
    ) -> None:
        """A closer, higher grant beats an inherited lower one."""
        await grant(grant_store, alice, ResourceRef.container(folder_tree.home.id), AccessLevel.VIEW)
        await grant(grant_store, alice, ResourceRef.container(folder_tree.plans.id), AccessLevel.MANAGE)

        assert await access_resolver.effective_access(alice, ResourceRef.container(folder_tree.plans.id)) is (
            AccessLevel.MANAGE
        )
        assert await access_resolver.effective_access(alice, ResourceRef.container(folder_tree.week1.id)) is (
            AccessLevel.MANAGE
        )
        assert await access_resolver.effective_access(alice, ResourceRef.container(folder_tree.docs.id)) is (
            AccessLevel.VIEW
        )

    async def test_non_inheriting_ancestor_ignored(
        self,
        access_resolver: AccessResolver,
        grant_store: InMemoryGrantStore,
        folder_tree: FolderTree,
        alice: UUID,
    ) -> None:
        """A grant without inherit only applies to its own container."""
        await grant(grant_store, alice, ResourceRef.container(folder_tree.docs.id), AccessLevel.MANAGE, inherit=False)

        assert await access_resolver.effective_access(alice, ResourceRef.container(folder_tree.docs.id)) is (
            AccessLevel.MANAGE
        )
        assert await access_resolver.effective_access(alice, ResourceRef.container(folder_tree.plans.id)) is None
        assert await access_resolver.effective_access(alice, ResourceRef.leaf(folder_tree.syllabus.id)) is None

    async def test_direct_leaf_grant(
        self,
        access_resolver: AccessResolver,
        grant_store: InMemoryGrantStore,
        folder_tree: FolderTree,
        alice: UUID,
    ) -> None:
        """Leaf grants apply to the leaf only."""
        await grant(grant_store, alice, ResourceRef.leaf(folder_tree.syllabus.id), AccessLevel.DOWNLOAD, inherit=False)

        resolved = await access_resolver.resolve(alice, ResourceRef.leaf(folder_tree.syllabus.id))

        assert resolved is not None
        assert resolved.distance == 0
        assert await access_resolver.effective_access(alice, ResourceRef.container(folder_tree.docs.id)) is None

    async def test_other_principals_ignored(
        self,
        access_resolver: AccessResolver,
        grant_store: InMemoryGrantStore,
        folder_tree: FolderTree,
        alice: UUID,
    ) -> None:
        """Grants of other principals never leak."""
        await grant(grant_store, uuid4(), ResourceRef.container(folder_tree.home.id), AccessLevel.MANAGE)

        assert await access_resolver.effective_access(alice, ResourceRef.container(folder_tree.docs.id)) is None

    async def test_follows_moves(
        self,
        access_resolver: AccessResolver,
        grant_store: InMemoryGrantStore,
        node_store: InMemoryNodeStore,
        folder_tree: FolderTree,
        alice: UUID,
    ) -> None:
        """Inheritance is computed from the current tree."""
        await grant(grant_store, alice, ResourceRef.container(folder_tree.archive.id), AccessLevel.VIEW)
        plans_ref = ResourceRef.container(folder_tree.plans.id)
        assert await access_resolver.effective_access(alice, plans_ref) is None

        await node_store.set_parent(
            folder_tree.plans.id,
            folder_tree.archive.id,
            expected_versions={folder_tree.plans.id: folder_tree.plans.version},
        )

        assert await access_resolver.effective_access(alice, plans_ref) is AccessLevel.VIEW

    async def test_leaf_without_leaf_store(
        self,
        node_store: InMemoryNodeStore,
        grant_store: InMemoryGrantStore,
        folder_tree: FolderTree,
        alice: UUID,
    ) -> None:
        """Without a leaf store only direct leaf grants are seen."""
        resolver = AccessResolver(node_store, grant_store)
        await grant(grant_store, alice, ResourceRef.container(folder_tree.home.id), AccessLevel.MANAGE)

        assert await resolver.effective_access(alice, ResourceRef.leaf(folder_tree.syllabus.id)) is None


class TestTieBreaks:
    """Tests for choosing between equal-rank grants."""

    async def test_closest_wins(
        self,
        access_resolver: AccessResolver,
        grant_store: InMemoryGrantStore,
        folder_tree: FolderTree,
        alice: UUID,
    ) -> None:
        """Equal ranks prefer the nearer grant."""
        await grant(grant_store, alice, ResourceRef.container(folder_tree.home.id), AccessLevel.DOWNLOAD, minutes=5)
        near = await grant(grant_store, alice, ResourceRef.container(folder_tree.plans.id), AccessLevel.DOWNLOAD)

        resolved = await access_resolver.resolve(alice, ResourceRef.container(folder_tree.week1.id))

        assert resolved is not None
        assert resolved.grant.id == near.id
        assert resolved.distance == 1

    async def test_newest_wins_at_same_distance(
        self,
        access_resolver: AccessResolver,
        grant_store: InMemoryGrantStore,
        folder_tree: FolderTree,
        alice: UUID,
    ) -> None:
        """Equal rank and distance prefer the newest row."""
        ref = ResourceRef.container(folder_tree.docs.id)
        await grant(grant_store, alice, ref, AccessLevel.VIEW, minutes=1)
        newest = await grant(grant_store, alice, ref, AccessLevel.VIEW, minutes=9)
        await grant(grant_store, alice, ref, AccessLevel.VIEW, minutes=3)

        resolved = await access_resolver.resolve(alice, ref)

        assert resolved is not None
        assert resolved.grant.id == newest.id


class TestMostSpecificPolicy:
    """Tests for the most-specific resolution policy."""

    @pytest.fixture
    def resolver(
        self, node_store: InMemoryNodeStore, grant_store: InMemoryGrantStore, leaf_store: InMemoryLeafStore
    ) -> AccessResolver:
        """Return a resolver using the most-specific policy."""
        return AccessResolver(node_store, grant_store, leaf_store, policy=ResolutionPolicy.MOST_SPECIFIC)

    async def test_closer_grant_narrows_access(
        self,
        resolver: AccessResolver,
        access_resolver: AccessResolver,
        grant_store: InMemoryGrantStore,
        folder_tree: FolderTree,
        alice: UUID,
    ) -> None:
        """An explicit lower grant overrides an inherited higher one."""
        await grant(grant_store, alice, ResourceRef.container(folder_tree.home.id), AccessLevel.MANAGE)
        await grant(grant_store, alice, ResourceRef.container(folder_tree.plans.id), AccessLevel.VIEW)
        plans_ref = ResourceRef.container(folder_tree.plans.id)
        week1_ref = ResourceRef.container(folder_tree.week1.id)

        assert await resolver.effective_access(alice, plans_ref) is AccessLevel.VIEW
        assert await resolver.effective_access(alice, week1_ref) is AccessLevel.VIEW
        assert await access_resolver.effective_access(alice, plans_ref) is AccessLevel.MANAGE

    async def test_best_of_closest_level(
        self,
        resolver: AccessResolver,
        grant_store: InMemoryGrantStore,
        folder_tree: FolderTree,
        alice: UUID,
    ) -> None:
        """Several grants at the closest level still resolve to the highest."""
        ref = ResourceRef.container(folder_tree.docs.id)
        await grant(grant_store, alice, ref, AccessLevel.VIEW)
        await grant(grant_store, alice, ref, AccessLevel.DOWNLOAD)

        assert await resolver.effective_access(alice, ref) is AccessLevel.DOWNLOAD

    def test_from_settings(
        self,
        monkeypatch: pytest.MonkeyPatch,
        node_store: InMemoryNodeStore,
        grant_store: InMemoryGrantStore,
    ) -> None:
        """The policy is read from settings."""
        monkeypatch.setenv("ROOTLINE_ACCESS_RESOLUTION", "MOST_SPECIFIC")

        resolver = AccessResolver.from_settings(Settings(), node_store, grant_store)

        assert resolver.policy is ResolutionPolicy.MOST_SPECIFIC


class TestCan:
    """Tests for can and filter_accessible."""

    async def test_can(
        self,
        access_resolver: AccessResolver,
        grant_store: InMemoryGrantStore,
        folder_tree: FolderTree,
        alice: UUID,
    ) -> None:
        """Higher levels satisfy lower requirements."""
        await grant(grant_store, alice, ResourceRef.container(folder_tree.docs.id), AccessLevel.DOWNLOAD)
        ref = ResourceRef.leaf(folder_tree.syllabus.id)

        assert await access_resolver.can(alice, ref, AccessLevel.VIEW)
        assert await access_resolver.can(alice, ref, AccessLevel.DOWNLOAD)
        assert not await access_resolver.can(alice, ref, AccessLevel.MANAGE)

    async def test_filter_accessible(
        self,
        access_resolver: AccessResolver,
        grant_store: InMemoryGrantStore,
        folder_tree: FolderTree,
        alice: UUID,
    ) -> None:
        """Only reachable resources survive, in input order."""
        await grant(grant_store, alice, ResourceRef.container(folder_tree.plans.id), AccessLevel.VIEW)
        refs = [
            ResourceRef.container(folder_tree.archive.id),
            ResourceRef.container(folder_tree.week1.id),
            ResourceRef.leaf(folder_tree.plan_pdf.id),
            ResourceRef.leaf(folder_tree.syllabus.id),
        ]

        visible = await access_resolver.filter_accessible(alice, refs)
        downloadable = await access_resolver.filter_accessible(alice, refs, AccessLevel.DOWNLOAD)

        assert visible == [refs[1], refs[2]]
        assert downloadable == []
