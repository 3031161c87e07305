"""PostgreSQL store adapters."""

from rootline.adapters.postgres.database import Repositories, TreeDatabase
from rootline.adapters.postgres.grants_repository import GrantsRepository
from rootline.adapters.postgres.leaves_repository import LeavesRepository
from rootline.adapters.postgres.nodes_repository import NodesRepository

__all__ = [
    "GrantsRepository",
    "LeavesRepository",
    "NodesRepository",
    "Repositories",
    "TreeDatabase",
]
