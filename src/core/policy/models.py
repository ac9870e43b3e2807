"""Per-bot configuration model.

Exactly one configuration exists per bot. A bot without a stored
configuration behaves as if it had ``BotConfiguration(bot_id)``: enabled,
every channel allowed.
"""

from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any


class ChannelMode(str, Enum):
    ALL = "all"
    WHITELIST = "whitelist"
    BLACKLIST = "blacklist"


def _default_categories() -> list[str]:
    return ["moderation", "utility", "fun", "economy"]


def _default_dangerous() -> list[str]:
    return ["ban", "kick", "purge", "nuke"]


@dataclass
class BotConfiguration:
    """Operator-controlled behaviour for one bot.

    Only ``enabled`` and the channel fields are enforced by the relay.
    Permission, command and rate-limit fields are shipped to the bot
    runtime through the config endpoint and enforced there.

    Attributes:
        bot_id: Bot this configuration belongs to.
        enabled: Master switch.
        channel_mode: How the channel sets are applied.
        enabled_channels: Allow-set used in whitelist mode.
        disabled_channels: Deny-set used in blacklist mode.
        confidence_threshold: Minimum 0-1 confidence to emit a command.
        version: Incremented on every save; lets clients skip refetching.
    """

    bot_id: str
    enabled: bool = True
    channel_mode: ChannelMode = ChannelMode.ALL
    enabled_channels: list[str] = field(default_factory=list)
    disabled_channels: list[str] = field(default_factory=list)
    permission_mode: str = "all"
    enabled_roles: list[str] = field(default_factory=list)
    disabled_roles: list[str] = field(default_factory=list)
    enabled_users: list[str] = field(default_factory=list)
    disabled_users: list[str] = field(default_factory=list)
    premium_role_ids: list[str] = field(default_factory=list)
    enabled_command_categories: list[str] = field(default_factory=_default_categories)
    disabled_commands: list[str] = field(default_factory=list)
    command_mode: str = "all"
    free_rate_limit: int = 10
    premium_rate_limit: int = 50
    server_rate_limit: int = 100
    confidence_threshold: float = 0.70
    require_confirmation: bool = False
    dangerous_commands: list[str] = field(default_factory=_default_dangerous)
    response_style: str = "friendly"
    version: int = 1

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["channel_mode"] = self.channel_mode.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BotConfiguration":
        """Build a configuration from stored JSON, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        if "channel_mode" in values:
            values["channel_mode"] = ChannelMode(values["channel_mode"])
        return cls(**values)
