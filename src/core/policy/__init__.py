"""Per-bot configuration and the pre-classification policy gate."""

from src.core.policy.gate import ConfigStore, GateResult, PolicyGate, check_channel
from src.core.policy.models import BotConfiguration, ChannelMode

__all__ = [
    "BotConfiguration",
    "ChannelMode",
    "ConfigStore",
    "GateResult",
    "PolicyGate",
    "check_channel",
]
