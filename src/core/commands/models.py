"""Command catalog and bot persona data models.

This module defines the CommandMapping dataclass, one natural-language
command an operator configured for a bot, and BotPersona, the bot's
personality used when building classification prompts.
"""

import re
from dataclasses import dataclass

PLACEHOLDER_PATTERN = re.compile(r"\{(\w+)\}")


@dataclass
class CommandMapping:
    """A natural-language pattern mapped to a command template.

    Attributes:
        id: Unique identifier assigned by the store.
        tenant_id: Owning tenant.
        bot_id: Bot the mapping belongs to.
        name: Command name (e.g. "ban").
        pattern: Natural-language description of how users phrase it.
        output_template: Command line with named placeholders,
            e.g. "/ban {user} {reason}".
        status: "active" mappings are offered to the classifier.
        usage_count: Incremented by the execution layer.

    Example:
        >>> mapping = CommandMapping(
        ...     id="7", tenant_id="t1", bot_id="b1", name="purge",
        ...     pattern="delete {amount} messages",
        ...     output_template="/purge amount={amount}",
        ... )
        >>> mapping.placeholders
        ['amount']
    """

    id: str
    tenant_id: str
    bot_id: str
    name: str
    pattern: str
    output_template: str
    status: str = "active"
    usage_count: int = 0

    @property
    def placeholders(self) -> list[str]:
        return PLACEHOLDER_PATTERN.findall(self.output_template)

    def declares(self, placeholder: str) -> bool:
        return placeholder in self.placeholders or f"{{{placeholder}}}" in self.pattern


@dataclass
class BotPersona:
    """Personality and identity of a bot.

    Attributes:
        bot_id: Bot identifier.
        tenant_id: Owning tenant.
        name: Display name.
        personality: Free-text personality prompt.
        examples: Optional few-shot example phrases, one per line.
        connected: Whether a runtime has registered recently.
        client_id: Platform application id, set on registration.
        platform: Chat platform, e.g. "discord".
    """

    bot_id: str
    tenant_id: str
    name: str = ""
    personality: str = ""
    examples: str = ""
    connected: bool = False
    client_id: str | None = None
    platform: str = "discord"
