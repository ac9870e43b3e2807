"""Policy gate: master switch and channel rules, checked before classification."""

import logging
from dataclasses import dataclass
from typing import Protocol

from src.core.decisions import Decision, builder
from src.core.policy.models import BotConfiguration, ChannelMode

logger = logging.getLogger(__name__)


class ConfigStore(Protocol):
    """Lookup collaborator for bot configurations."""

    def get_configuration(self, bot_id: str) -> BotConfiguration | None: ...


@dataclass(frozen=True)
class GateResult:
    """Outcome of a policy check.

    Attributes:
        config: Effective configuration (defaults when none is stored).
        blocked: Decision to return instead of classifying, or None to proceed.
        reason: Short machine-readable reason when blocked.
    """

    config: BotConfiguration
    blocked: Decision | None = None
    reason: str = ""

    @property
    def proceed(self) -> bool:
        return self.blocked is None


def check_channel(config: BotConfiguration, channel_id: str) -> str:
    """Apply channel rules.

    Returns:
        Empty string if the channel is allowed, otherwise the block reason.
    """
    if config.channel_mode is ChannelMode.WHITELIST:
        allowed = config.enabled_channels
        if allowed and channel_id not in allowed:
            return "channel_not_whitelisted"
    elif config.channel_mode is ChannelMode.BLACKLIST:
        if channel_id in config.disabled_channels:
            return "channel_blacklisted"
    return ""


class PolicyGate:
    """Enforces a bot's master switch and channel allow/deny rules.

    Rules are evaluated in order: missing configuration proceeds with
    defaults, a disabled bot is blocked with a ``disabled`` decision, and
    a disallowed channel is blocked with an empty ``filtered`` decision.
    Role, user and rate-limit settings are left to the bot runtime.
    """

    def __init__(self, config_store: ConfigStore | None) -> None:
        self.config_store = config_store

    def evaluate(self, bot_id: str | None, channel_id: str) -> GateResult:
        config = None
        if bot_id and self.config_store is not None:
            config = self.config_store.get_configuration(bot_id)

        if config is None:
            return GateResult(config=BotConfiguration(bot_id=bot_id or ""))

        if config.enabled is False:
            logger.info("Bot %s is disabled, skipping classification", bot_id)
            return GateResult(config=config, blocked=builder.disabled(), reason="disabled")

        reason = check_channel(config, channel_id)
        if reason:
            logger.debug("Filtered event on channel %s (%s)", channel_id, reason)
            return GateResult(config=config, blocked=builder.filtered(), reason=reason)

        return GateResult(config=config)
