"""rootline - hierarchical resource trees with layered access control."""

from rootline.core.rbac import AccessLevel, AccessResolver, GrantCleanup, GrantService, ResourceRef
from rootline.core.tree import Node, NodeKind, TreeService

__version__ = "0.1.0"

__all__ = [
    "AccessLevel",
    "AccessResolver",
    "GrantCleanup",
    "GrantService",
    "Node",
    "NodeKind",
    "ResourceRef",
    "TreeService",
    "__version__",
]
