"""Tests for the policy gate."""

from src.core.decisions import IntentKind
from src.core.policy import BotConfiguration, ChannelMode, PolicyGate


class TestPolicyGate:
    """Tests for PolicyGate.evaluate."""

    def test_no_configuration_proceeds(self, repo) -> None:
        result = PolicyGate(repo).evaluate("b1", "c1")

        assert result.proceed is True
        assert result.config.enabled is True
        assert result.config.channel_mode is ChannelMode.ALL

    def test_no_bot_id_proceeds(self, repo) -> None:
        assert PolicyGate(repo).evaluate(None, "c1").proceed is True

    def test_disabled_bot_blocked_with_reply(self, repo) -> None:
        repo.save_configuration(BotConfiguration(bot_id="b1", enabled=False))

        result = PolicyGate(repo).evaluate("b1", "c1")

        assert result.proceed is False
        assert result.blocked.intent is IntentKind.DISABLED
        assert len(result.blocked.actions) == 1
        assert result.blocked.reply_text

    def test_whitelist_filters_other_channels(self, repo) -> None:
        repo.save_configuration(
            BotConfiguration(
                bot_id="b1", channel_mode=ChannelMode.WHITELIST, enabled_channels=["A"]
            )
        )
        gate = PolicyGate(repo)

        blocked = gate.evaluate("b1", "B")
        assert blocked.blocked.intent is IntentKind.FILTERED
        assert blocked.blocked.actions == ()

        assert gate.evaluate("b1", "A").proceed is True

    def test_empty_whitelist_allows_everything(self, repo) -> None:
        repo.save_configuration(BotConfiguration(bot_id="b1", channel_mode=ChannelMode.WHITELIST))
        assert PolicyGate(repo).evaluate("b1", "anything").proceed is True

    def test_blacklist_filters_listed_channels(self, repo) -> None:
        repo.save_configuration(
            BotConfiguration(
                bot_id="b1", channel_mode=ChannelMode.BLACKLIST, disabled_channels=["X"]
            )
        )
        gate = PolicyGate(repo)

        assert gate.evaluate("b1", "X").blocked.intent is IntentKind.FILTERED
        assert gate.evaluate("b1", "Y").proceed is True

    def test_disabled_checked_before_channels(self, repo) -> None:
        repo.save_configuration(
            BotConfiguration(
                bot_id="b1",
                enabled=False,
                channel_mode=ChannelMode.WHITELIST,
                enabled_channels=["A"],
            )
        )
        assert PolicyGate(repo).evaluate("b1", "B").blocked.intent is IntentKind.DISABLED
