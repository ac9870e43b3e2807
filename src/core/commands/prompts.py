"""Prompt builder for natural-language intent classification.

This module turns a bot's persona, its command catalog and recent
conversation into a single prompt asking the model for one JSON object.
"""

from src.core.commands.models import BotPersona, CommandMapping

DEFAULT_PERSONALITY = (
    "You are a helpful Discord bot assistant that can handle moderation "
    "commands and casual conversation. You're friendly, efficient, and great "
    "at understanding natural language."
)

STYLE_HINTS = {
    "friendly": "Keep replies warm and casual.",
    "professional": "Keep replies polite and businesslike.",
    "minimal": "Keep replies as short as possible.",
}


def _format_catalog(commands: list[CommandMapping]) -> str:
    if not commands:
        return "(no commands configured)"
    return "\n".join(
        f"- ID: {cmd.id}, Name: {cmd.name}, Pattern: {cmd.pattern}, "
        f"Output: {cmd.output_template}"
        for cmd in commands
    )


def build_classification_prompt(
    message: str,
    commands: list[CommandMapping],
    persona: BotPersona | None = None,
    context: str = "",
    referenced_message: str | None = None,
    response_style: str = "friendly",
) -> str:
    """Build the classification prompt for one message.

    Args:
        message: The user's message.
        commands: Active command mappings for the bot.
        persona: Bot persona; a generic personality is used without one.
        context: Formatted recent conversation (see ``format_context``).
        referenced_message: Text of the bot message being replied to, if any.
        response_style: Configured response style tag.

    Returns:
        Prompt text asking for a single JSON object.

    Example:
        >>> prompt = build_classification_prompt("hi", [])
        >>> '"isCommand"' in prompt
        True
    """
    personality = (persona.personality if persona else "") or DEFAULT_PERSONALITY

    examples_section = ""
    if persona and persona.examples.strip():
        examples_section = f"""
EXAMPLE PHRASES:
{persona.examples.strip()}
"""

    context_section = ""
    if context:
        context_section = f"""
CONVERSATION CONTEXT (oldest first):
{context}
"""

    reply_section = ""
    if referenced_message:
        reply_section = f"""
The user is replying to this earlier bot message:
"{referenced_message}"
"""

    style_hint = STYLE_HINTS.get(response_style, STYLE_HINTS["friendly"])

    return f"""{personality}

LANGUAGE POLICY:
- Detect the user's language and answer conversationally in that language.
- Keep JSON keys in English.
- {style_hint}

Your job is to decide whether the user wants to run one of the commands below
or is just chatting, and to extract command parameters from natural phrasing.

AVAILABLE COMMANDS:
{_format_catalog(commands)}
{examples_section}{context_section}{reply_section}
PARAMETER RULES:
- Discord mentions look like <@123>, <@!123> (users), <@&123> (roles), <#123> (channels).
  Put only the numeric id in params.
- The first mention usually addresses the bot itself; the target is the next one.
- Put numbers for counts in "amount" and lengths of time in "duration".
- Put the "for ..." / "because ..." clause in "reason".

CONFIDENCE: an integer from 0 to 100.

USER MESSAGE: "{message}"

Respond with exactly one JSON object and no other text.

For a command:
{{"isCommand": true, "bestMatch": {{"commandId": "<id>", "confidence": <0-100>, "params": {{"user": "...", "reason": "..."}}}}}}

For conversation:
{{"isCommand": false, "conversationalResponse": "<reply in the bot's voice>"}}

If a command is intended but essential details are missing:
{{"isCommand": true, "clarificationQuestion": "<short question>"}}"""
