"""Unit tests for tree algorithms."""

from __future__ import annotations

from itertools import permutations
from uuid import uuid4

from rootline.adapters.memory import InMemoryNodeStore
from rootline.core.tree import algorithms
from rootline.core.tree.types import Node, NodeKind
from tests.fixtures.trees import FolderTree, OrgChart, make_node


def _cyclic_store() -> tuple[InMemoryNodeStore, Node, Node]:
    """Two nodes pointing at each other, as a corrupted store might hold."""
    a_id, b_id = uuid4(), uuid4()
    a = Node(id=a_id, namespace="files", kind=NodeKind.CONTAINER, label="A", parent_id=b_id)
    b = Node(id=b_id, namespace="files", kind=NodeKind.CONTAINER, label="B", parent_id=a_id)
    return InMemoryNodeStore([a, b]), a, b


class TestSortByLabel:
    """Tests for sort_by_label."""

    def test_case_insensitive(self, folder_tree: FolderTree) -> None:
        """Lowercase labels sort among capitalised ones."""
        ordered = algorithms.sort_by_label([folder_tree.week1, folder_tree.plans, folder_tree.docs])

        assert [n.label for n in ordered] == ["Docs", "plans", "Week 1"]

    def test_ties_are_stable_across_input_order(self) -> None:
        """Equal labels always come out in the same order."""
        first = make_node("Same")
        second = make_node("Same")

        assert algorithms.sort_by_label([first, second]) == algorithms.sort_by_label([second, first])


class TestIsDescendantOrSelf:
    """Tests for is_descendant_or_self."""

    async def test_self(self, node_store: InMemoryNodeStore, folder_tree: FolderTree) -> None:
        """A node counts as its own descendant."""
        assert await algorithms.is_descendant_or_self(node_store, folder_tree.docs.id, folder_tree.docs.id)

    async def test_deep_descendant(self, node_store: InMemoryNodeStore, folder_tree: FolderTree) -> None:
        """The walk climbs more than one level."""
        assert await algorithms.is_descendant_or_self(node_store, folder_tree.week1.id, folder_tree.home.id)

    async def test_ancestor_is_not_descendant(self, node_store: InMemoryNodeStore, folder_tree: FolderTree) -> None:
        """The relation is directional."""
        assert not await algorithms.is_descendant_or_self(node_store, folder_tree.home.id, folder_tree.week1.id)

    async def test_antisymmetric_for_distinct_nodes(
        self, node_store: InMemoryNodeStore, folder_tree: FolderTree
    ) -> None:
        """Two distinct nodes are never each other's descendants."""
        for a, b in permutations(folder_tree.nodes, 2):
            down = await algorithms.is_descendant_or_self(node_store, a.id, b.id)
            up = await algorithms.is_descendant_or_self(node_store, b.id, a.id)

            assert not (down and up), (a.label, b.label)

    async def test_sibling_branch(self, node_store: InMemoryNodeStore, folder_tree: FolderTree) -> None:
        """Nodes in another branch are unrelated."""
        assert not await algorithms.is_descendant_or_self(node_store, folder_tree.archive.id, folder_tree.docs.id)

    async def test_missing_candidate(self, node_store: InMemoryNodeStore, folder_tree: FolderTree) -> None:
        """An unknown start node is nobody's descendant."""
        assert not await algorithms.is_descendant_or_self(node_store, uuid4(), folder_tree.home.id)

    async def test_terminates_on_corrupted_cycle(self) -> None:
        """A pre-existing cycle does not hang the walk."""
        store, a, _ = _cyclic_store()

        assert not await algorithms.is_descendant_or_self(store, a.id, uuid4())

    async def test_does_not_cross_namespaces(self) -> None:
        """A parent reference into another namespace is a dead end."""
        foreign_root = make_node("Root", namespace="other")
        stray = Node(id=uuid4(), namespace="files", kind=NodeKind.CONTAINER, label="Stray", parent_id=foreign_root.id)
        store = InMemoryNodeStore([foreign_root, stray])

        assert not await algorithms.is_descendant_or_self(store, stray.id, foreign_root.id)


class TestAncestors:
    """Tests for ancestors, depth and breadcrumbs."""

    async def test_parent_first(self, node_store: InMemoryNodeStore, folder_tree: FolderTree) -> None:
        """The chain starts at the parent and ends at the root."""
        chain = await algorithms.ancestors(node_store, folder_tree.week1.id)

        assert [n.id for n in chain] == [folder_tree.plans.id, folder_tree.docs.id, folder_tree.home.id]

    async def test_root_has_no_ancestors(self, node_store: InMemoryNodeStore, folder_tree: FolderTree) -> None:
        """A root has depth 0."""
        assert await algorithms.ancestors(node_store, folder_tree.home.id) == []
        assert await algorithms.depth(node_store, folder_tree.home.id) == 0

    async def test_depth(self, node_store: InMemoryNodeStore, folder_tree: FolderTree) -> None:
        """Depth counts hops to the root."""
        assert await algorithms.depth(node_store, folder_tree.week1.id) == 3

    async def test_breadcrumbs_root_to_node(self, node_store: InMemoryNodeStore, folder_tree: FolderTree) -> None:
        """Breadcrumbs run from the root down to the node itself."""
        crumbs = await algorithms.breadcrumbs(node_store, folder_tree.plans.id)

        assert [n.label for n in crumbs] == ["Home", "Docs", "plans"]

    async def test_breadcrumbs_missing_node(self, node_store: InMemoryNodeStore) -> None:
        """Unknown nodes have no breadcrumbs."""
        assert await algorithms.breadcrumbs(node_store, uuid4()) == []

    async def test_ancestors_terminate_on_cycle(self) -> None:
        """A corrupted cycle yields a finite chain."""
        store, a, b = _cyclic_store()

        chain = await algorithms.ancestors(store, a.id)

        assert [n.id for n in chain] == [b.id]


class TestWalkSubtree:
    """Tests for walk_subtree and collect_descendants."""

    async def test_pre_order_with_depths(self, node_store: InMemoryNodeStore, folder_tree: FolderTree) -> None:
        """The root comes first; siblings follow display order."""
        walked = await algorithms.walk_subtree(node_store, folder_tree.home.id)

        assert [(n.label, level) for n, level in walked] == [
            ("Home", 0),
            ("Archive", 1),
            ("Docs", 1),
            ("plans", 2),
            ("Week 1", 3),
        ]

    async def test_missing_root(self, node_store: InMemoryNodeStore) -> None:
        """Walking an unknown node yields nothing."""
        assert await algorithms.walk_subtree(node_store, uuid4()) == []

    async def test_collect_descendants_excludes_self(
        self, node_store: InMemoryNodeStore, folder_tree: FolderTree
    ) -> None:
        """Descendants never include the starting node."""
        descendants = await algorithms.collect_descendants(node_store, folder_tree.docs.id)

        assert set(descendants) == {folder_tree.plans.id, folder_tree.week1.id}

    async def test_terminates_on_cycle(self) -> None:
        """Each node is visited once even when the store holds a cycle."""
        store, a, b = _cyclic_store()

        walked = await algorithms.walk_subtree(store, a.id)

        assert [n.id for n, _ in walked] == [a.id, b.id]


class TestOutline:
    """Tests for outline."""

    async def test_forest_in_display_order(self, node_store: InMemoryNodeStore, org_chart: OrgChart) -> None:
        """Every root of the namespace is rendered with its subtree."""
        extra_root = make_node("Board", namespace="campus-north", kind=NodeKind.PLACEMENT)
        await node_store.insert(extra_root)

        entries = await algorithms.outline(node_store, "campus-north")

        assert [(e.node.label, e.depth) for e in entries] == [
            ("Board", 0),
            ("Principal", 0),
            ("Counselor", 1),
            ("Vice principal", 1),
            ("Tutor", 2),
        ]

    async def test_other_namespaces_do_not_leak(self, node_store: InMemoryNodeStore, org_chart: OrgChart) -> None:
        """Only the requested namespace is rendered."""
        entries = await algorithms.outline(node_store, "campus-south")

        assert [e.node.id for e in entries] == [org_chart.south_head.id]


class TestValidMoveTargets:
    """Tests for valid_move_targets."""

    async def test_excludes_own_subtree(self, node_store: InMemoryNodeStore, folder_tree: FolderTree) -> None:
        """A node cannot be offered itself or its descendants."""
        targets = await algorithms.valid_move_targets(node_store, folder_tree.docs.id)

        assert [n.label for n in targets] == ["Archive", "Home"]

    async def test_stays_in_namespace(self, node_store: InMemoryNodeStore, org_chart: OrgChart) -> None:
        """Nodes of other namespaces are never targets."""
        targets = await algorithms.valid_move_targets(node_store, org_chart.tutor.id)

        assert org_chart.south_head.id not in {n.id for n in targets}
        assert {n.id for n in targets} == {org_chart.principal.id, org_chart.vice.id, org_chart.counselor.id}

    async def test_missing_node(self, node_store: InMemoryNodeStore) -> None:
        """Unknown nodes have no targets."""
        assert await algorithms.valid_move_targets(node_store, uuid4()) == []
