"""Bounded conversation memory partitioned by scope key.

Two scopes exist per bot and channel: a bot-wide one and one per user.
Reads prefer the user scope and fall back to the bot scope, so callers
that never send an author id still get context.
"""

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum

from src.core.store.ttl import InMemoryStore, KeyValueStore

logger = logging.getLogger(__name__)

MAX_TURNS = 8
ANONYMOUS_BOT = "-"


class Role(str, Enum):
    USER = "user"
    BOT = "bot"


@dataclass(frozen=True)
class ConversationTurn:
    """One remembered message."""

    role: Role
    text: str


def bot_scope(channel_id: str, bot_id: str | None) -> str:
    """Scope key shared by everyone talking to a bot in a channel."""
    return f"mem:{channel_id}:{bot_id or ANONYMOUS_BOT}"


def user_scope(channel_id: str, bot_id: str | None, user_id: str) -> str:
    """Scope key for one user talking to a bot in a channel."""
    return f"mem:{channel_id}:{bot_id or ANONYMOUS_BOT}:{user_id}"


class ConversationMemory:
    """Ring buffers of recent turns, one per scope key.

    Each buffer keeps at most ``max_turns`` entries; appending beyond that
    evicts the oldest. Memory is bounded by count only, never by age.

    Attributes:
        max_turns: Buffer capacity per scope.
    """

    def __init__(self, store: KeyValueStore | None = None, max_turns: int = MAX_TURNS) -> None:
        self._store = store if store is not None else InMemoryStore()
        self.max_turns = max_turns

    def append(self, scope_key: str, turn: ConversationTurn) -> None:
        buffer = self._store.get(scope_key)
        if buffer is None:
            buffer = deque(maxlen=self.max_turns)
        buffer.append(turn)
        self._store.set(scope_key, buffer)

    def read(self, scope_key: str) -> list[ConversationTurn]:
        buffer = self._store.get(scope_key)
        return list(buffer) if buffer else []

    def context_for(
        self, channel_id: str, bot_id: str | None, user_id: str | None
    ) -> list[ConversationTurn]:
        """Read the preferred context: the user scope if non-empty, else the bot scope."""
        if user_id:
            turns = self.read(user_scope(channel_id, bot_id, user_id))
            if turns:
                return turns
        return self.read(bot_scope(channel_id, bot_id))

    def record(
        self,
        channel_id: str,
        bot_id: str | None,
        user_id: str | None,
        role: Role,
        text: str,
    ) -> None:
        """Append a turn to every scope it belongs to.

        With a resolvable bot id the turn goes to both the bot-wide and the
        user scope; the bot-wide buffer thereby stays a superset view.
        Without a bot id only the anonymous bot-wide scope is written.
        """
        if not text:
            return
        turn = ConversationTurn(role=role, text=text)
        self.append(bot_scope(channel_id, bot_id), turn)
        if bot_id and user_id:
            self.append(user_scope(channel_id, bot_id, user_id), turn)
