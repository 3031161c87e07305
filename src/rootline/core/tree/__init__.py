"""Tree core domain."""

from rootline.core.tree.algorithms import (
    ancestors,
    breadcrumbs,
    collect_descendants,
    depth,
    is_descendant_or_self,
    outline,
    sort_by_label,
    valid_move_targets,
    walk_subtree,
)
from rootline.core.tree.export import ExportEntry, collect_export_entries, safe_archive_name
from rootline.core.tree.service import TreeService
from rootline.core.tree.types import (
    LINK_MIME_TYPE,
    CascadeResult,
    LeafResource,
    Node,
    NodeKind,
    NodeSpec,
    OutlineEntry,
)

__all__ = [
    "LINK_MIME_TYPE",
    "CascadeResult",
    "ExportEntry",
    "LeafResource",
    "Node",
    "NodeKind",
    "NodeSpec",
    "OutlineEntry",
    "TreeService",
    "ancestors",
    "breadcrumbs",
    "collect_descendants",
    "collect_export_entries",
    "depth",
    "is_descendant_or_self",
    "outline",
    "safe_archive_name",
    "sort_by_label",
    "valid_move_targets",
    "walk_subtree",
]
