"""Subtree enumeration for archive builders.

Walks a container subtree and lists every downloadable leaf with the path
it should get inside an archive. Folder labels and file names are both
sanitized, so no entry can escape the top-level directory. Packaging itself
happens elsewhere.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from uuid import UUID

import structlog

from rootline.core.exceptions import NotFoundError
from rootline.core.interfaces import LeafStore, NodeStore
from rootline.core.tree.algorithms import sort_by_label
from rootline.core.tree.types import LeafResource

logger = structlog.get_logger()

_UNSAFE_CHARS = re.compile(r'[\\/:*?"<>|]+')
_DOUBLE_SLASH = re.compile(r"/{2,}")


@dataclass(frozen=True)
class ExportEntry:
    """A leaf and its archive path."""

    leaf: LeafResource
    path: str


def safe_archive_name(name: str, fallback: str = "folder") -> str:
    """Replace characters that are unsafe in archive member names.

    Dot-only names ("." and "..") would address other directories, so they
    fall back too.
    """
    cleaned = _UNSAFE_CHARS.sub("_", name.strip())
    if cleaned in ("", ".", ".."):
        return fallback
    return cleaned


def _join(*parts: str) -> str:
    return _DOUBLE_SLASH.sub("/", "/".join(parts))


async def collect_export_entries(
    nodes: NodeStore,
    leaves: LeafStore,
    container_id: UUID,
    base_name: str | None = None,
) -> list[ExportEntry]:
    """List every downloadable leaf beneath a container.

    Args:
        nodes: Node store to walk.
        leaves: Leaf store to list attachments from.
        container_id: Root of the exported subtree.
        base_name: Top-level directory name; defaults to the container label.

    Returns:
        Entries in walk order: a container's own leaves by name, then its
        child containers in display order. Link rows are skipped.

    Raises:
        NotFoundError: If the container does not exist.
    """
    root = await nodes.get(container_id)
    if root is None:
        raise NotFoundError(container_id)

    entries: list[ExportEntry] = []
    seen: set[UUID] = {root.id}
    stack: list[tuple[UUID, str]] = [(root.id, safe_archive_name(base_name or root.label))]
    while stack:
        current_id, path = stack.pop()

        attached = sorted(await leaves.list_in(current_id), key=lambda leaf: (leaf.name.casefold(), str(leaf.id)))
        for leaf in attached:
            if leaf.is_link:
                continue
            entries.append(ExportEntry(leaf=leaf, path=_join(path, safe_archive_name(leaf.name, fallback="file"))))

        children = sort_by_label(await nodes.children_of(root.namespace, current_id))
        for child in reversed(children):
            if child.id in seen:
                continue
            seen.add(child.id)
            stack.append((child.id, _join(path, safe_archive_name(child.label))))

    logger.info("export_entries_collected", container_id=str(container_id), entries=len(entries))
    return entries
