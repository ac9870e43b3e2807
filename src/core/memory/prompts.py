"""Rendering of remembered turns for the classification prompt."""

from src.core.memory.conversation import ConversationTurn, Role


def format_context(turns: list[ConversationTurn]) -> str:
    """Format remembered turns as a transcript block.

    Args:
        turns: Turns oldest first.

    Returns:
        Transcript lines ("User: ..." / "Bot: ..."), or an empty string
        when there is nothing to show.

    Example:
        >>> format_context([ConversationTurn(Role.USER, "hi")])
        'User: hi'
    """
    lines = []
    for turn in turns:
        speaker = "Bot" if turn.role is Role.BOT else "User"
        text = " ".join(turn.text.split())
        lines.append(f"{speaker}: {text}")
    return "\n".join(lines)
