"""Intent classification: slash fast-path, model classification, keyword fallback.

One event moves through at most three stages:

1. Slash fast-path. Content starting with ``/word`` is an explicit command
   and never reaches the model.
2. Natural-language path. The model is asked for one JSON object
   describing a command match, a conversational reply, or a clarification.
3. Fallback. When the model call fails or its output is unusable, a small
   keyword scan decides between asking for clarification and doing nothing.
   The fallback never invents a conversational reply.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from src.core.classifier.llm import LLMClient
from src.core.classifier.parsing import extract_json_object
from src.core.commands import (
    BotPersona,
    CommandMapping,
    ParsedCommand,
    build_classification_prompt,
    parse_slash_command,
)
from src.core.decisions import normalize_confidence
from src.core.errors import ClassificationFailure

logger = logging.getLogger(__name__)

SLASH_CONFIDENCE = 0.99

COMMAND_KEYWORDS = re.compile(
    r"\b(ban(?:ned|s)?|kick(?:ed|s)?|warn(?:ed|s|ing)?|mute(?:d|s)?|purge|"
    r"timeout|roles?|slowmode|delete|clear)\b",
    re.IGNORECASE,
)
BULK_DELETE_KEYWORDS = {"purge", "delete", "clear"}
MENTION = re.compile(r"<(?:@[!&]?|#)\d+>")

GENERIC_CLARIFICATION = (
    "I think you want to use a command, but I'm having trouble understanding. "
    "Could you be more specific?"
)
DELETE_COUNT_CLARIFICATION = "How many messages would you like me to delete?"


class Outcome(str, Enum):
    COMMAND = "command"
    CONVERSATION = "conversation"
    CLARIFICATION = "clarification"
    NO_INTENT = "no_intent"


@dataclass(frozen=True)
class Classification:
    """Result of classifying one message.

    Attributes:
        outcome: Which branch the classifier settled on.
        confidence: 0-1 confidence for command and conversation outcomes.
        command: Matched catalog entry (natural-language commands).
        slash: Parsed explicit command (slash fast-path).
        params: Parameters the model extracted.
        text: Reply or clarification text.
        fallback: True when produced by the keyword fallback.
    """

    outcome: Outcome
    confidence: float = 0.0
    command: CommandMapping | None = None
    slash: ParsedCommand | None = None
    params: dict[str, Any] = field(default_factory=dict)
    text: str | None = None
    fallback: bool = False


def keyword_fallback(message: str) -> Classification:
    """Decide conservatively after a failed model call.

    A moderation keyword yields a clarification question; a bulk-delete
    keyword with no number gets a question about the count. Anything else
    is no intent at all.

    Examples:
        >>> keyword_fallback("please purge the chat").text
        'How many messages would you like me to delete?'
        >>> keyword_fallback("good morning").outcome
        <Outcome.NO_INTENT: 'no_intent'>
    """
    text = MENTION.sub(" ", message)
    found = {m.lower() for m in COMMAND_KEYWORDS.findall(text)}
    if not found:
        return Classification(outcome=Outcome.NO_INTENT, fallback=True)

    if found & BULK_DELETE_KEYWORDS and not re.search(r"\d", text):
        question = DELETE_COUNT_CLARIFICATION
    else:
        question = GENERIC_CLARIFICATION
    return Classification(outcome=Outcome.CLARIFICATION, text=question, fallback=True)


def classify_slash(content: str) -> Classification | None:
    """Slash fast-path. Returns None when the content is not an explicit command."""
    parsed = parse_slash_command(content)
    if parsed is None:
        return None
    return Classification(
        outcome=Outcome.COMMAND,
        confidence=SLASH_CONFIDENCE,
        slash=parsed,
        params=dict(parsed.args),
    )


def _text_field(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


class IntentClassifier:
    """Classifies chat messages into command, conversation or clarification.

    Attributes:
        llm: Capability used for the natural-language path.

    Example:
        >>> classifier = IntentClassifier(llm=my_client)
        >>> result = await classifier.classify("ban <@1> for spam", catalog)
        >>> result.outcome
        <Outcome.COMMAND: 'command'>
    """

    def __init__(self, llm: LLMClient) -> None:
        self.llm = llm

    def classify_slash(self, content: str) -> Classification | None:
        return classify_slash(content)

    async def classify(
        self,
        message: str,
        commands: list[CommandMapping],
        persona: BotPersona | None = None,
        context: str = "",
        referenced_message: str | None = None,
        confidence_threshold: float = 0.0,
        response_style: str = "friendly",
    ) -> Classification:
        """Classify a natural-language message.

        Provider errors, timeouts and unusable output all end in the keyword
        fallback; this method does not raise for them.

        Args:
            message: The user's message.
            commands: Active command catalog for the bot.
            persona: Bot persona for the prompt.
            context: Formatted recent conversation.
            referenced_message: Bot message being replied to, if any.
            confidence_threshold: Commands below this 0-1 confidence turn
                into clarification questions.
            response_style: Configured response style tag.

        Returns:
            The classification.
        """
        prompt = build_classification_prompt(
            message,
            commands,
            persona=persona,
            context=context,
            referenced_message=referenced_message,
            response_style=response_style,
        )
        try:
            raw = await self.llm.classify(prompt)
            data = extract_json_object(raw)
            return self._interpret(data, commands, confidence_threshold)
        except ClassificationFailure as e:
            logger.warning("Classification failed, using keyword fallback: %s", e)
        except Exception as e:
            logger.error("Unexpected classifier error, using keyword fallback: %s", e)
        return keyword_fallback(message)

    def _interpret(
        self,
        data: dict[str, Any],
        commands: list[CommandMapping],
        confidence_threshold: float,
    ) -> Classification:
        question = _text_field(data, "clarificationQuestion")
        best = data.get("bestMatch")

        if data.get("isCommand") and isinstance(best, dict):
            command_id = str(best.get("commandId", "")).strip()
            command = next((c for c in commands if str(c.id) == command_id), None)
            if command is None:
                raise ClassificationFailure(f"Model picked unknown command id {command_id!r}")

            confidence = normalize_confidence(best.get("confidence"))
            if confidence < confidence_threshold:
                return Classification(
                    outcome=Outcome.CLARIFICATION,
                    confidence=confidence,
                    command=command,
                    text=question
                    or f"Did you want me to run {command.name}? Please add a bit more detail.",
                )

            params = best.get("params")
            return Classification(
                outcome=Outcome.COMMAND,
                confidence=confidence,
                command=command,
                params=params if isinstance(params, dict) else {},
            )

        if data.get("isCommand") and question:
            return Classification(outcome=Outcome.CLARIFICATION, text=question)

        reply = _text_field(data, "conversationalResponse")
        if reply:
            confidence = data.get("confidence")
            return Classification(
                outcome=Outcome.CONVERSATION,
                confidence=normalize_confidence(confidence) if confidence is not None else 1.0,
                text=reply,
            )

        if question:
            return Classification(outcome=Outcome.CLARIFICATION, text=question)

        return Classification(outcome=Outcome.NO_INTENT)
