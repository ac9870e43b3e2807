"""Pure assembly of Decision objects.

Nothing in this module performs I/O. Each constructor returns a fresh
Decision with a new id.
"""

import uuid
from typing import Any

from src.core.decisions.models import Action, ActionKind, Decision, IntentKind

DISABLED_MESSAGE = "This bot is currently disabled by its owner."


def new_decision_id() -> str:
    """Generate a fresh decision id."""
    return f"dec_{uuid.uuid4().hex}"


def normalize_confidence(value: Any) -> float:
    """Map a confidence value onto the 0-1 scale.

    The classification prompt asks the model for a 0-100 integer, while
    older prompts and the slash path use 0-1 floats. Values above 1 are
    read as percentages. Anything unparseable counts as 0.

    Examples:
        >>> normalize_confidence(85)
        0.85
        >>> normalize_confidence(0.7)
        0.7
        >>> normalize_confidence("abc")
        0.0
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if number != number:  # NaN
        return 0.0
    if number > 1.0:
        number = number / 100.0
    return round(min(max(number, 0.0), 1.0), 4)


def command(
    name: str,
    slash: str,
    args: dict[str, str],
    confidence: float,
) -> Decision:
    """Build a command decision carrying one command action.

    Args:
        name: Command name (mapping name or slash word).
        slash: Rendered command line for the executor.
        args: Final extracted parameters.
        confidence: Confidence on the 0-1 scale.
    """
    return Decision(
        id=new_decision_id(),
        intent=IntentKind.COMMAND,
        confidence=normalize_confidence(confidence),
        params=dict(args),
        actions=(
            Action(kind=ActionKind.COMMAND, slash=slash, name=name, args=dict(args)),
        ),
    )


def reply(
    content: str,
    confidence: float = 1.0,
    params: dict[str, Any] | None = None,
) -> Decision:
    """Build a conversational decision carrying one reply action."""
    return Decision(
        id=new_decision_id(),
        intent=IntentKind.REPLY,
        confidence=normalize_confidence(confidence),
        params=dict(params or {}),
        actions=(Action(kind=ActionKind.REPLY, content=content),),
    )


def clarification(question: str, confidence: float = 0.0) -> Decision:
    """Build a reply decision that asks the user to clarify."""
    return reply(question, confidence=confidence, params={"clarification": True})


def filtered() -> Decision:
    """Build a decision for an event outside the bot's allowed channels."""
    return Decision(
        id=new_decision_id(),
        intent=IntentKind.FILTERED,
        confidence=1.0,
    )


def disabled(message: str = DISABLED_MESSAGE) -> Decision:
    """Build a decision for a bot whose master switch is off."""
    return Decision(
        id=new_decision_id(),
        intent=IntentKind.DISABLED,
        confidence=1.0,
        actions=(Action(kind=ActionKind.REPLY, content=message, ephemeral=True),),
    )
