"""In-memory grant store."""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from rootline.core.rbac.types import Grant, GrantFilter, ResourceRef


class InMemoryGrantStore:
    """List-backed GrantStore. Rows are only ever appended or removed."""

    def __init__(self, grants: Iterable[Grant] = ()) -> None:
        """Initialize the store with optional preloaded rows."""
        self._rows: list[Grant] = list(grants)

    def __len__(self) -> int:
        return len(self._rows)

    async def grants_on(self, ref: ResourceRef) -> list[Grant]:
        """List grants on a resource, oldest first."""
        return sorted((g for g in self._rows if g.resource == ref), key=lambda g: g.created_at)

    async def grants_for(self, principal_id: UUID) -> list[Grant]:
        """List grants held by a principal, oldest first."""
        return sorted((g for g in self._rows if g.principal_id == principal_id), key=lambda g: g.created_at)

    async def add(self, grant: Grant) -> Grant:
        """Append a grant row."""
        self._rows.append(grant)
        return grant

    async def remove_all(self, grant_filter: GrantFilter) -> int:
        """Remove every matching row and return how many went."""
        kept = [g for g in self._rows if not grant_filter.matches(g)]
        removed = len(self._rows) - len(kept)
        self._rows = kept
        return removed
