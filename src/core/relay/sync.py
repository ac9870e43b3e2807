"""Pending command-sync markers, cleared by the bot's next heartbeat."""

from src.core.store.ttl import InMemoryStore, KeyValueStore


class PendingSyncRegistry:
    """Set of bot ids whose runtime should re-fetch its command catalog."""

    def __init__(self, store: KeyValueStore | None = None) -> None:
        self._store = store if store is not None else InMemoryStore()

    @staticmethod
    def _key(bot_id: str) -> str:
        return f"sync:{bot_id}"

    def mark(self, bot_id: str) -> None:
        self._store.set(self._key(bot_id), True)

    def is_pending(self, bot_id: str) -> bool:
        return bool(self._store.get(self._key(bot_id)))

    def consume(self, bot_id: str) -> bool:
        """Clear the marker. Returns True if one was set."""
        return self._store.delete(self._key(bot_id))
