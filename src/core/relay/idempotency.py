"""Replay protection keyed by caller-supplied idempotency keys."""

import logging
from dataclasses import dataclass

from src.core.decisions import Decision
from src.core.store.ttl import InMemoryStore, KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 120


@dataclass(frozen=True)
class Replay:
    """A cached outcome. ``decision`` is None when the event had nothing to do."""

    decision: Decision | None


class IdempotencyGuard:
    """Remembers the outcome emitted for each idempotency key.

    A retry carrying the same key within the TTL gets the stored outcome
    back unchanged, decision id included. "Nothing to do" outcomes are
    cached too, so a retry never reaches the classifier twice. Keys are
    scoped to the tenant and bot, so one tenant can never replay another
    tenant's decision. Entries expire a fixed time after insertion; a
    lookup never extends them.

    Attributes:
        ttl_seconds: Lifetime of an entry from insertion.
    """

    def __init__(
        self,
        store: KeyValueStore | None = None,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
    ) -> None:
        self._store = store if store is not None else InMemoryStore()
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def _key(tenant_id: str, bot_id: str | None, idempotency_key: str) -> str:
        return f"idem:{tenant_id}:{bot_id or '-'}:{idempotency_key}"

    def lookup(
        self, tenant_id: str, bot_id: str | None, idempotency_key: str | None
    ) -> Replay | None:
        if not idempotency_key:
            return None
        replay = self._store.get(self._key(tenant_id, bot_id, idempotency_key))
        if replay is not None:
            logger.info(
                "Replaying %s for idempotency key",
                replay.decision.id if replay.decision else "empty outcome",
            )
        return replay

    def store(
        self,
        tenant_id: str,
        bot_id: str | None,
        idempotency_key: str | None,
        decision: Decision | None,
    ) -> None:
        if not idempotency_key:
            return
        self._store.set(
            self._key(tenant_id, bot_id, idempotency_key),
            Replay(decision),
            ttl_seconds=self.ttl_seconds,
        )
