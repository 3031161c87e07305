"""Tree algorithms - pure reads over a NodeStore.

Every walk here is iterative and carries a visited set. The functions that
guard against cycles are the same ones used to prevent them, so they must
terminate even on a corrupted store. A parent reference that crosses into
another namespace is treated as a dead end.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from rootline.core.interfaces import NodeStore
from rootline.core.tree.types import Node, OutlineEntry


def sort_by_label(nodes: Iterable[Node]) -> list[Node]:
    """Order nodes for display.

    Case-insensitive label order; exact label and then id break ties so the
    same tree always renders identically regardless of storage order.
    """
    return sorted(nodes, key=lambda n: (n.label.casefold(), n.label, str(n.id)))


async def is_descendant_or_self(store: NodeStore, candidate_id: UUID, ancestor_id: UUID) -> bool:
    """Check whether ancestor_id is candidate_id or one of its ancestors.

    Args:
        store: Node store to read.
        candidate_id: Node to start the upward walk from.
        ancestor_id: Node being looked for.

    Returns:
        True if the walk reaches ancestor_id.
    """
    if candidate_id == ancestor_id:
        return True

    seen: set[UUID] = set()
    namespace: str | None = None
    current: UUID | None = candidate_id
    while current is not None and current not in seen:
        seen.add(current)
        node = await store.get(current)
        if node is None:
            return False
        if namespace is None:
            namespace = node.namespace
        elif node.namespace != namespace:
            return False
        if node.id == ancestor_id:
            return True
        current = node.parent_id
    return False


async def ancestors(store: NodeStore, node_id: UUID) -> list[Node]:
    """Return the ancestor chain of a node, parent first, root last."""
    node = await store.get(node_id)
    if node is None:
        return []

    chain: list[Node] = []
    seen = {node.id}
    current = node.parent_id
    while current is not None and current not in seen:
        seen.add(current)
        parent = await store.get(current)
        if parent is None or parent.namespace != node.namespace:
            break
        chain.append(parent)
        current = parent.parent_id
    return chain


async def depth(store: NodeStore, node_id: UUID) -> int:
    """Count hops from a node to its namespace root (a root has depth 0)."""
    return len(await ancestors(store, node_id))


async def breadcrumbs(store: NodeStore, node_id: UUID) -> list[Node]:
    """Return the path from the namespace root down to the node itself."""
    node = await store.get(node_id)
    if node is None:
        return []
    chain = await ancestors(store, node_id)
    chain.reverse()
    chain.append(node)
    return chain


async def walk_subtree(store: NodeStore, root_id: UUID) -> list[tuple[Node, int]]:
    """Walk a subtree depth-first with an explicit stack.

    Args:
        store: Node store to read.
        root_id: Root of the subtree.

    Returns:
        (node, depth relative to root) pairs in pre-order, siblings in
        display order. The root itself comes first at depth 0. Empty when
        the root is absent.
    """
    root = await store.get(root_id)
    if root is None:
        return []

    visited: list[tuple[Node, int]] = []
    seen: set[UUID] = {root.id}
    stack: list[tuple[Node, int]] = [(root, 0)]
    while stack:
        node, level = stack.pop()
        visited.append((node, level))
        children = sort_by_label(await store.children_of(root.namespace, node.id))
        for child in reversed(children):
            if child.id in seen:
                continue
            seen.add(child.id)
            stack.append((child, level + 1))
    return visited


async def collect_descendants(store: NodeStore, root_id: UUID) -> list[UUID]:
    """Return every descendant id of a node, the node itself excluded."""
    return [node.id for node, level in await walk_subtree(store, root_id) if level > 0]


async def outline(store: NodeStore, namespace: str) -> list[OutlineEntry]:
    """Render a whole namespace forest in display order."""
    entries: list[OutlineEntry] = []
    for root in sort_by_label(await store.children_of(namespace, None)):
        entries.extend(OutlineEntry(node, level) for node, level in await walk_subtree(store, root.id))
    return entries


async def valid_move_targets(store: NodeStore, node_id: UUID) -> list[Node]:
    """List nodes a node may be moved under: its namespace minus its own subtree."""
    node = await store.get(node_id)
    if node is None:
        return []
    excluded = {node.id, *await collect_descendants(store, node_id)}
    candidates = await store.list_namespace(node.namespace)
    return sort_by_label(n for n in candidates if n.id not in excluded and n.kind is node.kind)
