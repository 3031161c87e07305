"""Tree mutation service.

Each operation follows the same protocol: read, check every structural
invariant, then commit. Nothing is written until all checks pass.

Multi-step operations behave differently on failure:
- insert_above deletes the node it created when the second step fails.
- remove_node moves already promoted children back when a promotion fails.
- delete_cascade and remove_node report what they removed through
  PartialDeleteError and leave reconciliation to the caller.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from uuid import UUID, uuid4

import structlog

from rootline.core.exceptions import (
    ConflictError,
    CycleError,
    DuplicateNodeError,
    InvalidParentError,
    NotFoundError,
    PartialDeleteError,
    RootViolationError,
)
from rootline.core.interfaces import DeletionListener, LeafStore, NodeStore
from rootline.core.tree import algorithms
from rootline.core.tree.types import (
    CascadeResult,
    LeafResource,
    Node,
    NodeKind,
    NodeSpec,
    OutlineEntry,
)

logger = structlog.get_logger()


class TreeService:
    """Structural operations over one NodeStore.

    Usage:
        service = TreeService(nodes, leaves, listeners=[GrantCleanup(grants)])
        home = await service.create_root("files", NodeKind.CONTAINER, "Home")
        docs = await service.create(home.id, NodeKind.CONTAINER, "Docs")
        await service.delete_cascade(docs.id)
    """

    def __init__(
        self,
        nodes: NodeStore,
        leaves: LeafStore | None = None,
        listeners: Sequence[DeletionListener] = (),
    ) -> None:
        """Initialize the service.

        Args:
            nodes: Store holding node rows.
            leaves: Store holding leaf resources; optional for trees without leaves.
            listeners: Collaborators told about every deletion (grant cleanup).
        """
        self._nodes = nodes
        self._leaves = leaves
        self._listeners = list(listeners)

    # Reads

    async def get(self, node_id: UUID) -> Node:
        """Fetch a node or raise NotFoundError."""
        node = await self._nodes.get(node_id)
        if node is None:
            raise NotFoundError(node_id)
        return node

    async def children(self, node_id: UUID) -> list[Node]:
        """List children of a node in display order."""
        node = await self.get(node_id)
        return algorithms.sort_by_label(await self._nodes.children_of(node.namespace, node.id))

    async def roots(self, namespace: str) -> list[Node]:
        """List the top-level nodes of a namespace in display order."""
        return algorithms.sort_by_label(await self._nodes.children_of(namespace, None))

    async def breadcrumbs(self, node_id: UUID) -> list[Node]:
        """Path from the namespace root to the node."""
        await self.get(node_id)
        return await algorithms.breadcrumbs(self._nodes, node_id)

    async def outline(self, namespace: str) -> list[OutlineEntry]:
        """The whole namespace forest in display order."""
        return await algorithms.outline(self._nodes, namespace)

    async def move_targets(self, node_id: UUID) -> list[Node]:
        """Nodes the given node may be moved under."""
        await self.get(node_id)
        return await algorithms.valid_move_targets(self._nodes, node_id)

    async def leaves_in(self, container_id: UUID) -> list[LeafResource]:
        """Leaves attached to a container, ordered by name."""
        leaves = self._require_leaves()
        await self.get(container_id)
        return sorted(await leaves.list_in(container_id), key=lambda leaf: (leaf.name.casefold(), str(leaf.id)))

    # Creation

    async def create_root(
        self,
        namespace: str,
        kind: NodeKind,
        label: str,
        *,
        node_id: UUID | None = None,
    ) -> Node:
        """Insert a top-level node.

        Raises:
            RootViolationError: If a container namespace already has its root.
            DuplicateNodeError: If node_id is already taken.
        """
        spec = NodeSpec(label=label, id=node_id)
        if kind.single_root and await self._nodes.children_of(namespace, None):
            raise RootViolationError(f"namespace {namespace!r} already has a root")
        return await self._insert(namespace, kind, spec, None)

    async def create(
        self,
        parent_id: UUID,
        kind: NodeKind,
        label: str,
        *,
        node_id: UUID | None = None,
    ) -> Node:
        """Insert a node under an existing parent.

        The new node joins the parent's namespace.

        Raises:
            InvalidParentError: If the parent is absent or of another kind.
            DuplicateNodeError: If node_id is already taken.
        """
        spec = NodeSpec(label=label, id=node_id)
        parent = await self._nodes.get(parent_id)
        if parent is None:
            raise InvalidParentError(f"parent {parent_id} not found")
        if parent.kind is not kind:
            raise InvalidParentError(f"parent {parent_id} is a {parent.kind.value}, not a {kind.value}")
        return await self._insert(parent.namespace, kind, spec, parent.id)

    async def insert_above(
        self,
        target_id: UUID,
        label: str,
        *,
        node_id: UUID | None = None,
    ) -> Node:
        """Splice a new node between a node and its current parent.

        Step one creates the new node under the target's parent. Step two
        moves the target under the new node. If step two fails the new node
        is deleted again and the step-two error is re-raised, so the tree is
        never left with a half-inserted node.

        Args:
            target_id: Node that receives the new ancestor.
            label: Label of the new node.
            node_id: Optional id for the new node.

        Returns:
            The new node.
        """
        spec = NodeSpec(label=label, id=node_id)
        target = await self.get(target_id)
        created = await self._insert(target.namespace, target.kind, spec, target.parent_id)

        try:
            moved = await self._nodes.set_parent(
                target.id,
                created.id,
                expected_versions={target.id: target.version, created.id: created.version},
            )
            if moved is None:
                raise NotFoundError(target.id)
        except Exception as exc:
            await self._roll_back_insert(created, exc)
            raise

        logger.info(
            "node_inserted_above",
            node_id=str(created.id),
            target_id=str(target.id),
            namespace=target.namespace,
        )
        return created

    # Structural edits

    async def rename(self, node_id: UUID, label: str) -> Node:
        """Change a node label."""
        spec = NodeSpec(label=label)
        node = await self.get(node_id)
        updated = await self._nodes.set_label(node.id, spec.label, expected_version=node.version)
        if updated is None:
            raise NotFoundError(node_id)
        logger.info("node_renamed", node_id=str(node_id))
        return updated

    async def reparent(self, node_id: UUID, new_parent_id: UUID | None) -> Node:
        """Move a node (with its subtree) under a new parent.

        Descendants keep their parent references; they move implicitly.
        The commit carries the versions of the node and of the new parent's
        ancestor chain, so a concurrent move that would turn this one into a
        cycle is rejected by the store.

        Raises:
            CycleError: If the new parent is the node or one of its descendants.
            InvalidParentError: If the new parent is absent or foreign.
            RootViolationError: If a null parent is illegal for this namespace.
            ConflictError: If the tree changed under the check.
        """
        node = await self.get(node_id)

        if new_parent_id is None:
            await self._check_top_level(node)
            expected = {node.id: node.version}
        else:
            if new_parent_id == node.id:
                raise CycleError(f"node {node_id} cannot be its own parent")
            parent = await self._nodes.get(new_parent_id)
            self._check_parent(node, parent, new_parent_id)
            if await algorithms.is_descendant_or_self(self._nodes, new_parent_id, node.id):
                raise CycleError(f"cannot move node {node_id} into its own subtree")
            expected = await self._chain_versions(node, new_parent_id)

        if node.parent_id == new_parent_id:
            return node
        return await self._commit_parent(node.id, new_parent_id, expected)

    async def detach(self, node_id: UUID) -> Node:
        """Make a node a top-level node; its children stay attached to it.

        Raises:
            RootViolationError: In single-root namespaces, unless the node
                already is the root.
        """
        node = await self.get(node_id)
        if node.parent_id is None:
            return node
        await self._check_top_level(node)
        return await self._commit_parent(node.id, None, {node.id: node.version})

    async def move_leaf(self, leaf_id: UUID, container_id: UUID) -> LeafResource:
        """Attach a leaf resource to another container."""
        leaves = self._require_leaves()
        leaf = await leaves.get(leaf_id)
        if leaf is None:
            raise NotFoundError(leaf_id, "leaf")
        container = await self._nodes.get(container_id)
        if container is None or container.kind is not NodeKind.CONTAINER:
            raise InvalidParentError(f"container {container_id} not found")
        if leaf.container_id == container.id:
            return leaf

        moved = await leaves.move(leaf.id, container.id)
        if moved is None:
            raise NotFoundError(leaf_id, "leaf")
        logger.info("leaf_moved", leaf_id=str(leaf_id), container_id=str(container_id))
        return moved

    # Deletion

    async def delete_cascade(self, node_id: UUID) -> CascadeResult:
        """Delete a node, its descendants and every leaf attached to them.

        Leaves go first, then nodes strictly deepest-first so that no delete
        ever targets a node with a live child. Nodes already gone are
        skipped, which makes the operation safe to re-run after a failure.

        Returns:
            Ids removed by this call; empty when nothing was left.

        Raises:
            PartialDeleteError: If a store call failed part way. Carries the
                ids removed before the failure.
        """
        root = await self._nodes.get(node_id)
        if root is None:
            logger.info("cascade_delete_noop", node_id=str(node_id))
            return CascadeResult()

        base_depth = await algorithms.depth(self._nodes, root.id)
        subtree = await algorithms.walk_subtree(self._nodes, root.id)
        ordered = sorted(subtree, key=lambda item: base_depth + item[1], reverse=True)

        result = CascadeResult()
        try:
            await self._delete_leaves([node.id for node, _ in subtree], result)
            for node, _ in ordered:
                if await self._nodes.delete(node.id):
                    result.node_ids.append(node.id)
        except Exception as exc:
            await self._notify(result)
            logger.error(
                "cascade_delete_interrupted",
                node_id=str(node_id),
                deleted_nodes=len(result.node_ids),
                deleted_leaves=len(result.leaf_ids),
                error=str(exc),
            )
            raise PartialDeleteError(
                f"cascade delete of {node_id} stopped after {len(result.node_ids)} nodes",
                result.node_ids,
                result.leaf_ids,
            ) from exc

        await self._notify(result)
        logger.info(
            "cascade_delete_completed",
            node_id=str(node_id),
            depth=base_depth,
            deleted_nodes=len(result.node_ids),
            deleted_leaves=len(result.leaf_ids),
        )
        return result

    async def remove_node(self, node_id: UUID) -> CascadeResult:
        """Delete a single node after promoting its children to the top level.

        This is the org-chart removal policy: the subtree below survives,
        split into new top-level trees.

        If promoting a child fails, the children promoted so far are moved
        back under the node and the original error is re-raised.

        Raises:
            RootViolationError: If the node has children in a single-root namespace.
            PartialDeleteError: If the final delete failed, or if promoted
                children could not be moved back. promoted_node_ids lists the
                children left at the top level.
        """
        node = await self.get(node_id)
        children = algorithms.sort_by_label(await self._nodes.children_of(node.namespace, node.id))
        if children and node.kind.single_root:
            raise RootViolationError(f"removing {node_id} would leave several roots in {node.namespace!r}")

        promoted: list[Node] = []
        try:
            for child in children:
                promoted.append(await self._commit_parent(child.id, None, {child.id: child.version}))
        except Exception as exc:
            await self._restore_children(node, promoted, exc)
            raise

        result = CascadeResult()
        try:
            await self._delete_leaves([node.id], result)
            if await self._nodes.delete(node.id):
                result.node_ids.append(node.id)
        except Exception as exc:
            await self._notify(result)
            raise PartialDeleteError(
                f"removal of {node_id} failed after promoting {len(children)} children",
                result.node_ids,
                result.leaf_ids,
                promoted_node_ids=[child.id for child in promoted],
            ) from exc

        await self._notify(result)
        logger.info("node_removed", node_id=str(node_id), promoted=len(children))
        return result

    # Internals

    async def _insert(self, namespace: str, kind: NodeKind, spec: NodeSpec, parent_id: UUID | None) -> Node:
        if spec.id is not None and await self._nodes.get(spec.id) is not None:
            raise DuplicateNodeError(f"node {spec.id} already exists")

        node = await self._nodes.insert(
            Node(
                id=spec.id or uuid4(),
                namespace=namespace,
                kind=kind,
                label=spec.label,
                parent_id=parent_id,
            )
        )
        logger.info(
            "node_created",
            node_id=str(node.id),
            parent_id=str(parent_id) if parent_id else None,
            namespace=namespace,
            kind=kind.value,
        )
        return node

    async def _roll_back_insert(self, created: Node, cause: Exception) -> None:
        try:
            await self._nodes.delete(created.id)
        except Exception as rollback_exc:
            logger.error(
                "insert_above_rollback_failed",
                node_id=str(created.id),
                error=str(rollback_exc),
            )
            return
        logger.warning("insert_above_rolled_back", node_id=str(created.id), error=str(cause))

    async def _restore_children(self, node: Node, promoted: Sequence[Node], cause: Exception) -> None:
        stranded: list[UUID] = []
        for child in promoted:
            try:
                await self._nodes.set_parent(child.id, node.id, expected_versions={child.id: child.version})
            except Exception as restore_exc:
                logger.error(
                    "remove_node_restore_failed",
                    node_id=str(node.id),
                    child_id=str(child.id),
                    error=str(restore_exc),
                )
                stranded.append(child.id)

        if stranded:
            raise PartialDeleteError(
                f"removal of {node.id} failed; {len(stranded)} children left at the top level",
                promoted_node_ids=stranded,
            ) from cause
        logger.warning("remove_node_rolled_back", node_id=str(node.id), restored=len(promoted), error=str(cause))

    async def _check_top_level(self, node: Node) -> None:
        if not node.kind.single_root:
            return
        roots = await self._nodes.children_of(node.namespace, None)
        if any(root.id != node.id for root in roots):
            raise RootViolationError(f"namespace {node.namespace!r} already has a root; {node.id} cannot be top-level")

    def _check_parent(self, node: Node, parent: Node | None, parent_id: UUID) -> None:
        if parent is None:
            raise InvalidParentError(f"parent {parent_id} not found")
        if parent.namespace != node.namespace:
            raise InvalidParentError(f"parent {parent_id} belongs to namespace {parent.namespace!r}")
        if parent.kind is not node.kind:
            raise InvalidParentError(f"parent {parent_id} is a {parent.kind.value}, not a {node.kind.value}")

    async def _chain_versions(self, node: Node, parent_id: UUID) -> dict[UUID, int]:
        parent = await self._nodes.get(parent_id)
        if parent is None:
            raise ConflictError(f"parent {parent_id} vanished during the move")
        chain = [parent, *await algorithms.ancestors(self._nodes, parent_id)]
        if any(n.id == node.id for n in chain):
            raise ConflictError(f"tree changed while moving {node.id}")
        expected = {n.id: n.version for n in chain}
        expected[node.id] = node.version
        return expected

    async def _commit_parent(self, node_id: UUID, parent_id: UUID | None, expected: Mapping[UUID, int]) -> Node:
        updated = await self._nodes.set_parent(node_id, parent_id, expected_versions=expected)
        if updated is None:
            raise NotFoundError(node_id)
        logger.info(
            "node_reparented",
            node_id=str(node_id),
            parent_id=str(parent_id) if parent_id else None,
        )
        return updated

    async def _delete_leaves(self, node_ids: Sequence[UUID], result: CascadeResult) -> None:
        if self._leaves is None:
            return
        for node_id in node_ids:
            for leaf in await self._leaves.list_in(node_id):
                if await self._leaves.delete(leaf.id):
                    result.leaf_ids.append(leaf.id)

    async def _notify(self, result: CascadeResult) -> None:
        for listener in self._listeners:
            if result.leaf_ids:
                await listener.on_leaves_deleted(list(result.leaf_ids))
            if result.node_ids:
                await listener.on_nodes_deleted(list(result.node_ids))

    def _require_leaves(self) -> LeafStore:
        if self._leaves is None:
            raise RuntimeError("No leaf store configured")
        return self._leaves
