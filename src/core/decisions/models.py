"""Decision data model emitted for every handled relay event.

A Decision is the whole contract with the downstream bot runner: an
intent tag, a confidence on the 0-1 scale, extracted params, and an
ordered list of actions. Decisions are immutable and may be replayed
verbatim when a client retries with the same idempotency key.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class IntentKind(str, Enum):
    """Closed set of decision intents."""

    COMMAND = "command.request"
    REPLY = "conversational.reply"
    FILTERED = "filtered"
    DISABLED = "disabled"


class ActionKind(str, Enum):
    """Closed set of action kinds."""

    COMMAND = "command"
    REPLY = "reply"


@dataclass(frozen=True)
class Action:
    """One step for the bot runner to perform.

    Command actions carry ``slash`` (the rendered command line), ``name``
    and ``args``. Reply actions carry ``content`` and ``ephemeral``.
    """

    kind: ActionKind
    content: str | None = None
    ephemeral: bool = False
    slash: str | None = None
    name: str | None = None
    args: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        if self.kind is ActionKind.REPLY:
            return {
                "kind": self.kind.value,
                "content": self.content,
                "ephemeral": self.ephemeral,
            }
        return {
            "kind": self.kind.value,
            "slash": self.slash,
            "name": self.name,
            "args": dict(self.args),
        }


@dataclass(frozen=True)
class Decision:
    """Canonical output for one inbound event.

    Attributes:
        id: Unique per emission; echoed back in the x-request-id header.
        intent: What kind of outcome this is.
        confidence: Normalized to 0-1.
        params: Extracted parameters (or flags such as ``clarification``).
        actions: Ordered actions for the executor.
    """

    id: str
    intent: IntentKind
    confidence: float
    params: dict[str, Any] = field(default_factory=dict)
    actions: tuple[Action, ...] = ()

    @property
    def reply_text(self) -> str | None:
        for action in self.actions:
            if action.kind is ActionKind.REPLY:
                return action.content
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "intent": self.intent.value,
            "confidence": self.confidence,
            "params": dict(self.params),
            "actions": [action.to_dict() for action in self.actions],
        }
