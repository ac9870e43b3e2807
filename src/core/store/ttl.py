"""Key-value store with optional per-entry TTL.

The relay keeps three kinds of process-local state: the idempotency cache,
conversation memory, and pending-sync markers. All of them go through the
``KeyValueStore`` protocol so a deployment running several instances can
swap in a shared cache without touching the callers.
"""

import time
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """Minimal key-value interface with TTL semantics."""

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None: ...

    def delete(self, key: str) -> bool: ...


class InMemoryStore:
    """Dict-backed store with lazy expiry.

    Entries written with a TTL are dropped the next time they are read after
    expiring; nothing sweeps the map in the background. Entries written
    without a TTL live until deleted.

    Not thread-safe: callers are expected to run on a single event loop.

    Example:
        >>> store = InMemoryStore()
        >>> store.set("k", 1, ttl_seconds=120)
        >>> store.get("k")
        1
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[float | None, Any]] = {}

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds is not None else None
        self._entries[key] = (expires_at, value)

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
