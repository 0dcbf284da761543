"""Tests for the module-level API."""

from unittest.mock import MagicMock

import pytest

import slack_sender
from slack_sender import Known
from slack_sender.exceptions import ProfileNotFoundError
from slack_sender.scheduler import set_backend

THREAD_TS = "1234567890.123456"


@pytest.fixture
def default(mock_client: MagicMock):
    profile = slack_sender.register(
        token="xoxb-test",
        channels={"ops_alerts": "C_OPS"},
        user_groups={"oncall": "S_ONCALL"},
    )
    profile._client = mock_client
    return profile


class TestModuleApi:
    """Delivery through the default profile."""

    def test_register_without_name_is_default(self, default) -> None:
        assert default.key == "default"
        assert slack_sender.default_profile() is default

    def test_register_named(self) -> None:
        profile = slack_sender.register("billing", token="xoxb-2")
        assert slack_sender.get_profile("billing") is profile

    def test_no_default_profile(self) -> None:
        with pytest.raises(ProfileNotFoundError, match="No default profile set"):
            slack_sender.deliver(channel="C123", text="hi")

    def test_deliver(self, default, mock_client: MagicMock) -> None:
        assert slack_sender.deliver(channel=Known("ops_alerts"), text="Deployed") == THREAD_TS
        mock_client.chat_postMessage.assert_called_once_with(channel="C_OPS", text="Deployed")

    def test_deliver_to_other_profile(self, default, mock_client: MagicMock) -> None:
        billing_client = MagicMock()
        billing_client.chat_postMessage.return_value = {"ok": True, "ts": "2.2"}
        billing = slack_sender.register("billing", token="xoxb-2")
        billing._client = billing_client

        assert slack_sender.deliver(profile="billing", channel="C9", text="x") == "2.2"
        mock_client.chat_postMessage.assert_not_called()

    def test_deliver_later(self, default, settings_factory) -> None:
        settings_factory(async_backend="apscheduler")
        backend = MagicMock()
        set_backend(backend)

        assert slack_sender.deliver_later(channel="C123", text="later") is True
        backend.enqueue.assert_called_once_with("default", channel="C123", text="later")

    def test_format_group_mention(self, default) -> None:
        assert slack_sender.format_group_mention(Known("oncall")) == "<!subteam^S_ONCALL>"
