"""Deterministic parameter extraction for natural-language commands.

The extractor runs independently of the classifier. Its output only
fills fields the model left blank; see ``merge_params``.
"""

import re

from src.core.commands.models import PLACEHOLDER_PATTERN, CommandMapping

USER_MENTION = re.compile(r"<@!?(\d+)>")
ROLE_MENTION = re.compile(r"<@&(\d+)>")
CHANNEL_MENTION = re.compile(r"<#(\d+)>")
ANY_MENTION = re.compile(r"<(?:@[!&]?|#)\d+>")
NUMBER = re.compile(r"\b(\d+)([smhd])?\b", re.IGNORECASE)

REASON_PATTERNS = (
    re.compile(r"\b(?:for|because|reason:?)\s+(.+)$", re.IGNORECASE | re.DOTALL),
    re.compile(r"\b(?:being|they're|he's|she's)\s+(.+)$", re.IGNORECASE | re.DOTALL),
)
QUOTED = re.compile(r"[\"“'‘](.+?)[\"”'’]", re.DOTALL)
MESSAGE_LEAD = re.compile(
    r"\b(?:say|note|announce|tell everyone)\b[:,]?\s+(.+)$", re.IGNORECASE | re.DOTALL
)

TEMPLATE_DEFAULTS = {
    "reason": "No reason provided",
    "message": "No message provided",
    "amount": "1",
    "duration": "5m",
    "user": "target user",
}


def _target_user(message: str, bot_client_id: str | None) -> str | None:
    user_ids = USER_MENTION.findall(message)
    if bot_client_id:
        without_bot = [uid for uid in user_ids if uid != bot_client_id]
        if len(without_bot) != len(user_ids):
            return without_bot[0] if without_bot else None

    if not user_ids:
        return None
    if len(user_ids) > 1:
        first_token = message.strip().split(None, 1)[0]
        if USER_MENTION.fullmatch(first_token):
            # "@bot ban @target": the leading mention addresses the bot
            return user_ids[1]
    return user_ids[0]


def _clean(text: str) -> str:
    return " ".join(text.split()).strip(" .,!?")


def extract_params(
    message: str,
    command: CommandMapping | None = None,
    bot_client_id: str | None = None,
) -> dict[str, str]:
    """Extract parameters from a chat message.

    Extracts the target user, role and channel mention ids, a numeric token
    (``amount`` or ``duration`` depending on which placeholder the command
    declares), a ``reason`` clause, and ``message`` text for say/note style
    commands.

    Args:
        message: Raw message content, mentions included.
        command: The matched command, used to decide how numbers and free
            text are mapped. Without one, numbers map to ``amount``.
        bot_client_id: The bot's own platform id; its mentions are skipped.

    Returns:
        Extracted parameters. Only non-empty values are included.

    Examples:
        >>> extract_params("warn <@123> for spamming")
        {'user': '123', 'reason': 'spamming'}

        >>> extract_params("<@999> ban <@42> because rude")["user"]
        '42'
    """
    params: dict[str, str] = {}

    user = _target_user(message, bot_client_id)
    if user:
        params["user"] = user

    role = ROLE_MENTION.search(message)
    if role:
        params["role"] = role.group(1)

    channel = CHANNEL_MENTION.search(message)
    if channel:
        params["channel"] = channel.group(1)

    without_mentions = ANY_MENTION.sub(" ", message)

    for pattern in REASON_PATTERNS:
        match = pattern.search(without_mentions)
        if match:
            reason = _clean(match.group(1))
            if reason:
                params["reason"] = reason
                break

    number = NUMBER.search(without_mentions)
    if number:
        value, unit = number.group(1), (number.group(2) or "").lower()
        wants_amount = command is None or command.declares("amount")
        wants_duration = command is not None and command.declares("duration")
        if wants_amount:
            params["amount"] = value
        if wants_duration:
            params["duration"] = f"{value}{unit or 'm'}"

    if command is not None and command.declares("message"):
        quoted = QUOTED.search(without_mentions)
        lead = MESSAGE_LEAD.search(without_mentions)
        text = quoted.group(1) if quoted else (lead.group(1) if lead else "")
        text = " ".join(text.split())
        if text:
            params["message"] = text

    return params


def merge_params(
    model_params: dict[str, object] | None, extracted: dict[str, str]
) -> dict[str, str]:
    """Merge model-extracted params with deterministic ones.

    Model output wins field by field. Fields the model left missing or
    blank are filled from the deterministic extractor.

    Example:
        >>> merge_params({"user": "", "reason": "spam"}, {"user": "1", "reason": "x"})
        {'user': '1', 'reason': 'spam'}
    """
    merged: dict[str, str] = {}
    for key, value in (model_params or {}).items():
        if value is None:
            continue
        text = str(value).strip()
        if text:
            merged[str(key)] = text
    for key, value in extracted.items():
        if not merged.get(key):
            merged[key] = value
    return merged


def missing_required(command: CommandMapping, params: dict[str, str]) -> str | None:
    """Name the first target placeholder the command needs but params lack.

    Only ``user`` and ``amount`` count: acting on a guessed target or a
    guessed count is worse than asking.
    """
    for placeholder in ("user", "amount"):
        if command.declares(placeholder) and not params.get(placeholder):
            return placeholder
    return None


def render_template(template: str, params: dict[str, str]) -> str:
    """Fill a command output template.

    Known params replace their placeholders; remaining well-known
    placeholders get defaults; unknown ones are left in place.

    Example:
        >>> render_template("/ban {user} {reason}", {"user": "42"})
        '/ban 42 No reason provided'
    """

    def substitute(match: re.Match) -> str:
        key = match.group(1)
        value = params.get(key)
        if value:
            return value
        return TEMPLATE_DEFAULTS.get(key, match.group(0))

    return PLACEHOLDER_PATTERN.sub(substitute, template)
