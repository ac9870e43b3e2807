"""Scoped, count-bounded conversation memory."""

from src.core.memory.conversation import (
    MAX_TURNS,
    ConversationMemory,
    ConversationTurn,
    Role,
    bot_scope,
    user_scope,
)
from src.core.memory.prompts import format_context

__all__ = [
    "MAX_TURNS",
    "ConversationMemory",
    "ConversationTurn",
    "Role",
    "bot_scope",
    "format_context",
    "user_scope",
]
