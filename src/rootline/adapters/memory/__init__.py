"""In-memory store adapters."""

from rootline.adapters.memory.grants import InMemoryGrantStore
from rootline.adapters.memory.leaves import InMemoryLeafStore
from rootline.adapters.memory.nodes import InMemoryNodeStore

__all__ = [
    "InMemoryGrantStore",
    "InMemoryLeafStore",
    "InMemoryNodeStore",
]
