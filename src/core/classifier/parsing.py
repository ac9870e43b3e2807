"""Extraction of the first balanced JSON object from model output."""

import json
from typing import Any

from src.core.errors import ClassificationFailure


def _balanced_end(text: str, start: int) -> int | None:
    """Return the index just past the object opening at ``start``, if balanced."""
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index + 1
    return None


def extract_json_object(text: str) -> dict[str, Any]:
    """Find and decode the first balanced JSON object in text.

    Models often wrap JSON in prose or code fences. Candidates are tried
    in order of their opening brace; the first that decodes to an object
    wins.

    Args:
        text: Raw model output.

    Returns:
        The decoded object.

    Raises:
        ClassificationFailure: If no decodable object exists.

    Examples:
        >>> extract_json_object('Sure! ```json\\n{"isCommand": false}\\n```')
        {'isCommand': False}
    """
    if not text:
        raise ClassificationFailure("Empty classifier output")

    start = text.find("{")
    while start != -1:
        end = _balanced_end(text, start)
        if end is not None:
            try:
                value = json.loads(text[start:end])
            except ValueError:
                value = None
            if isinstance(value, dict):
                return value
        start = text.find("{", start + 1)

    raise ClassificationFailure("No JSON object found in classifier output")
