"""Relay pipeline: idempotency, engine, usage reporting and sync markers."""

from src.core.relay.engine import (
    CatalogStore,
    PersonaStore,
    RelayEngine,
    RelayEvent,
    RelayResult,
)
from src.core.relay.idempotency import IdempotencyGuard, Replay
from src.core.relay.sync import PendingSyncRegistry
from src.core.relay.usage import UsageReporter, post_usage

__all__ = [
    "CatalogStore",
    "IdempotencyGuard",
    "PendingSyncRegistry",
    "PersonaStore",
    "RelayEngine",
    "RelayEvent",
    "RelayResult",
    "Replay",
    "UsageReporter",
    "post_usage",
]
