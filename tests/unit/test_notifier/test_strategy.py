"""Tests for the slack() mixin."""

from unittest.mock import MagicMock

import pytest

from slack_sender.delivery.request import Known
from slack_sender.exceptions import ProfileNotFoundError
from slack_sender.registry import ProfileRegistry
from slack_sender.strategy import SlackStrategy, slack_strategy

THREAD_TS = "1234567890.123456"


@pytest.fixture(autouse=True)
def default(mock_client: MagicMock):
    profile = ProfileRegistry.register(
        "default", {"token": "xoxb-test", "channels": {"deploys": "C_DEPLOYS", "ops": "C_OPS"}}
    )
    profile._client = mock_client
    return profile


class TestSlackStrategy:
    """Defaults merged with call-time arguments."""

    def test_uses_default_channel(self, mock_client: MagicMock) -> None:
        class Deploy(slack_strategy(channel=Known("deploys"))):
            pass

        assert Deploy().slack("Deploying...") == THREAD_TS
        mock_client.chat_postMessage.assert_called_once_with(
            channel="C_DEPLOYS", text="Deploying..."
        )

    def test_call_time_values_win(self, mock_client: MagicMock) -> None:
        class Deploy(slack_strategy(channel=Known("deploys"), icon_emoji="rocket")):
            pass

        Deploy().slack("Done", channel=Known("ops"))
        mock_client.chat_postMessage.assert_called_once_with(
            channel="C_OPS", text="Done", icon_emoji=":rocket:"
        )

    def test_requires_channel(self) -> None:
        with pytest.raises(ValueError, match="No channel specified"):
            SlackStrategy().slack("hi")

    def test_default_profile_option(self) -> None:
        class Billing(slack_strategy(channel="C1", profile="billing")):
            pass

        with pytest.raises(ProfileNotFoundError, match="'billing' not found"):
            Billing().slack("hi")

    def test_defaults_isolated_per_class(self) -> None:
        first = slack_strategy(channel="C1")
        second = slack_strategy(channel="C2")
        assert first.slack_defaults == {"channel": "C1"}
        assert second.slack_defaults == {"channel": "C2"}
        assert SlackStrategy.slack_defaults == {}
