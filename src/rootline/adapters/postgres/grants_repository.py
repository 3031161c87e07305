"""Permission grants repository."""

import logging
from collections import defaultdict
from collections.abc import Mapping
from datetime import UTC
from typing import TYPE_CHECKING, Any
from uuid import UUID

from rootline.core.rbac.types import AccessLevel, Grant, GrantFilter, ResourceRef, ResourceType

if TYPE_CHECKING:
    from asyncpg import Connection

logger = logging.getLogger(__name__)

_COLUMNS = "id, principal_id, resource_type, resource_id, access, inherit, created_at, created_by"


class GrantsRepository:
    """Repository for permission grant rows (table permission_grants)."""

    def __init__(self, conn: "Connection") -> None:
        """Initialize the repository."""
        self._conn = conn

    async def grants_on(self, ref: ResourceRef) -> list[Grant]:
        """List all grants for a resource."""
        rows = await self._conn.fetch(
            f"""
            SELECT {_COLUMNS} FROM permission_grants
            WHERE resource_type = $1 AND resource_id = $2
            ORDER BY created_at
            """,
            ref.type.value,
            ref.id,
        )
        return [self._row_to_grant(row) for row in rows]

    async def grants_for(self, principal_id: UUID) -> list[Grant]:
        """List all grants for a principal."""
        rows = await self._conn.fetch(
            f"""
            SELECT {_COLUMNS} FROM permission_grants
            WHERE principal_id = $1
            ORDER BY created_at
            """,
            principal_id,
        )
        return [self._row_to_grant(row) for row in rows]

    async def add(self, grant: Grant) -> Grant:
        """Append a grant row."""
        row = await self._conn.fetchrow(
            f"""
            INSERT INTO permission_grants
                (id, principal_id, resource_type, resource_id, access, inherit, created_by)
            VALUES ($1, $2, $3, $4, $5, $6, $7)
            RETURNING {_COLUMNS}
            """,
            grant.id,
            grant.principal_id,
            grant.resource.type.value,
            grant.resource.id,
            grant.access.value,
            grant.inherit,
            grant.created_by,
        )
        return self._row_to_grant(row)

    async def remove_all(self, grant_filter: GrantFilter) -> int:
        """Delete every grant matching the filter."""
        if grant_filter.is_empty:
            return 0

        conditions: list[str] = []
        args: list[Any] = []
        if grant_filter.grant_ids is not None:
            args.append(list(grant_filter.grant_ids))
            conditions.append(f"id = ANY(${len(args)}::uuid[])")
        if grant_filter.principal_id is not None:
            args.append(grant_filter.principal_id)
            conditions.append(f"principal_id = ${len(args)}")
        if grant_filter.resources is not None:
            if not grant_filter.resources:
                return 0
            by_type: dict[ResourceType, list[UUID]] = defaultdict(list)
            for ref in grant_filter.resources:
                by_type[ref.type].append(ref.id)
            clauses: list[str] = []
            for resource_type, ids in sorted(by_type.items(), key=lambda item: item[0].value):
                args.append(resource_type.value)
                args.append(ids)
                clauses.append(f"(resource_type = ${len(args) - 1} AND resource_id = ANY(${len(args)}::uuid[]))")
            conditions.append("(" + " OR ".join(clauses) + ")")

        result: str = await self._conn.execute(
            f"DELETE FROM permission_grants WHERE {' AND '.join(conditions)}",
            *args,
        )
        removed = int(result.split()[-1])
        logger.debug("Removed %d grants", removed)
        return removed

    def _row_to_grant(self, row: Mapping[str, Any]) -> Grant:
        """Convert database row to Grant."""
        return Grant(
            id=row["id"],
            principal_id=row["principal_id"],
            resource=ResourceRef(ResourceType(row["resource_type"]), row["resource_id"]),
            access=AccessLevel(row["access"]),
            inherit=row["inherit"],
            created_at=row["created_at"].replace(tzinfo=UTC),
            created_by=row["created_by"],
        )
