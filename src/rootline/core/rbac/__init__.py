"""RBAC core domain."""

from rootline.core.rbac.access_resolver import AccessResolver
from rootline.core.rbac.grant_service import GrantCleanup, GrantService, group_grants
from rootline.core.rbac.types import (
    AccessLevel,
    Grant,
    GrantFilter,
    GrantGroup,
    ResolutionPolicy,
    ResolvedAccess,
    ResourceRef,
    ResourceType,
    ShareOutcome,
)

__all__ = [
    "AccessLevel",
    "AccessResolver",
    "Grant",
    "GrantCleanup",
    "GrantFilter",
    "GrantGroup",
    "GrantService",
    "ResolutionPolicy",
    "ResolvedAccess",
    "ResourceRef",
    "ResourceType",
    "ShareOutcome",
    "group_grants",
]
