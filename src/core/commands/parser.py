"""Pure function-based slash command parser for explicit command input."""

import re
from dataclasses import dataclass, field

SLASH_PATTERN = re.compile(r"^/([A-Za-z0-9][\w-]*)(?:\s+(.*))?$", re.DOTALL)


@dataclass
class ParsedCommand:
    """Represents an explicit slash command with its arguments.

    Attributes:
        name: The command name (lowercase normalized).
        args: Arguments from ``key=value`` tokens, or free text mapped to
            ``amount`` / ``message`` when no such token is present.
        raw: The trimmed original input.
    """

    name: str
    args: dict[str, str] = field(default_factory=dict)
    raw: str = ""


def parse_slash_command(text: str) -> ParsedCommand | None:
    """Parse an explicit slash command from text.

    Detects input of the form ``/name key=value key2=value2`` and extracts
    the command name and its arguments. Names are normalized to lowercase.
    Tokens without ``=`` are ignored when at least one ``key=value`` token
    exists. Without any, free text becomes ``amount`` for a lone number
    after ``/purge`` and ``message`` otherwise.

    Args:
        text: The text to parse for a command.

    Returns:
        ParsedCommand if the trimmed text starts with ``/word``, otherwise None.

    Examples:
        >>> parse_slash_command("/ban user=42 reason=spam")
        ParsedCommand(name='ban', args={'user': '42', 'reason': 'spam'}, raw='/ban user=42 reason=spam')

        >>> parse_slash_command("/purge 5").args
        {'amount': '5'}

        >>> parse_slash_command("/say hello there").args
        {'message': 'hello there'}

        >>> parse_slash_command("hello /ban") is None
        True

        >>> parse_slash_command("/") is None
        True
    """
    text = text.strip()
    match = SLASH_PATTERN.match(text)
    if match is None:
        return None

    name = match.group(1).lower()
    rest = (match.group(2) or "").split()

    args: dict[str, str] = {}
    for token in rest:
        key, sep, value = token.partition("=")
        if sep and key:
            args[key] = value

    if not args and rest:
        if name == "purge" and rest[0].isdigit():
            args["amount"] = rest[0]
        else:
            args["message"] = " ".join(rest)

    return ParsedCommand(name=name, args=args, raw=text)
