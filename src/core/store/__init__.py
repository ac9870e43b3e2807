"""State backends: the TTL key-value store and the SQLite repository."""

from src.core.store.repository import RelayRepository, get_repository, reset_repository
from src.core.store.ttl import InMemoryStore, KeyValueStore

__all__ = [
    "InMemoryStore",
    "KeyValueStore",
    "RelayRepository",
    "get_repository",
    "reset_repository",
]
