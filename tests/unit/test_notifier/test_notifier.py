"""Tests for declarative notifiers."""

from unittest.mock import MagicMock, call

import pytest

from slack_sender.delivery.request import Known
from slack_sender.exceptions import NotificationError
from slack_sender.notifier import (
    Computed,
    Literal,
    MethodRef,
    NotificationDefinition,
    Notifier,
    notify,
)
from slack_sender.notifier.values import as_value
from slack_sender.registry import ProfileRegistry

THREAD_TS = "1234567890.123456"


@pytest.fixture(autouse=True)
def default(mock_client: MagicMock):
    profile = ProfileRegistry.register(
        "default",
        {
            "token": "xoxb-test",
            "channels": {"notifications": "C_NOTIFY", "audit": "C_AUDIT"},
        },
    )
    profile._client = mock_client
    return profile


class SignupNotifier(Notifier):
    notifications = [
        notify()
        .channel(Known("notifications"))
        .only_if(lambda n: n.user_name != "bot")
        .text(MethodRef("greeting")),
    ]

    def greeting(self) -> str:
        return f"Hello, {self.user_name}!"


class TestValues:
    """Tagged notification values."""

    def test_literal(self) -> None:
        assert Literal("x").resolve(object()) == "x"

    def test_method_ref_calls_methods(self) -> None:
        notifier = SignupNotifier(user_name="Ada")
        assert MethodRef("greeting").resolve(notifier) == "Hello, Ada!"

    def test_method_ref_reads_attributes(self) -> None:
        assert MethodRef("user_name").resolve(SignupNotifier(user_name="Ada")) == "Ada"

    def test_computed(self) -> None:
        assert Computed(lambda n: n.user_name.upper()).resolve(SignupNotifier(user_name="ada")) == "ADA"

    def test_as_value(self) -> None:
        assert as_value("C1") == Literal("C1")
        assert isinstance(as_value(len), Computed)
        ref = MethodRef("greeting")
        assert as_value(ref) is ref


class TestBuilder:
    def test_build(self) -> None:
        definition = notify().channels("C1", "C2").profile("billing").text("hi").build()
        assert definition == NotificationDefinition(
            channels=(Literal("C1"), Literal("C2")),
            payload=(("text", Literal("hi")),),
            profile=Literal("billing"),
            condition=None,
        )


class TestNotifier:
    """Running notifiers."""

    def test_sends_when_condition_holds(self, mock_client: MagicMock) -> None:
        assert SignupNotifier.run(user_name="Alice") == [THREAD_TS]
        mock_client.chat_postMessage.assert_called_once_with(
            channel="C_NOTIFY", text="Hello, Alice!"
        )

    def test_skips_when_condition_fails(self, mock_client: MagicMock) -> None:
        assert SignupNotifier.run(user_name="bot") == []
        mock_client.chat_postMessage.assert_not_called()

    def test_channels_in_order(self, mock_client: MagicMock) -> None:
        class Broadcast(Notifier):
            notifications = [
                notify().channels(Known("notifications"), Known("audit")).text("hello"),
            ]

        Broadcast.run()
        assert mock_client.chat_postMessage.call_args_list == [
            call(channel="C_NOTIFY", text="hello"),
            call(channel="C_AUDIT", text="hello"),
        ]

    def test_computed_channel_list(self, mock_client: MagicMock) -> None:
        class Fanout(Notifier):
            notifications = [notify().channel(MethodRef("targets")).text("x")]

        Fanout.run(targets=["C1", "C2"])
        assert mock_client.chat_postMessage.call_count == 2

    def test_missing_channel(self) -> None:
        class NoChannel(Notifier):
            notifications = [notify().text("hi")]

        with pytest.raises(ValueError, match="Missing channel"):
            NoChannel.run()

    def test_missing_payload(self) -> None:
        class NoPayload(Notifier):
            notifications = [notify().channel("C1").text(MethodRef("body"))]

        with pytest.raises(ValueError, match="Missing payload"):
            NoPayload.run(body=None)

    def test_failed_channel_does_not_stop_others(
        self, mock_client: MagicMock, slack_error
    ) -> None:
        mock_client.chat_postMessage.side_effect = [
            slack_error("channel_not_found"),
            {"ok": True, "ts": THREAD_TS},
        ]

        class Broadcast(Notifier):
            notifications = [notify().channels("C_GONE", "C_OK").text("hello")]

        with pytest.raises(NotificationError, match="1 channel\\(s\\): C_GONE") as excinfo:
            Broadcast.run()

        assert mock_client.chat_postMessage.call_count == 2
        assert [channel for channel, _ in excinfo.value.failures] == ["C_GONE"]

    def test_definitions_inherited(self, mock_client: MagicMock) -> None:
        class AuditedSignup(SignupNotifier):
            notifications = [notify().channel(Known("audit")).text(Computed(lambda n: f"signup: {n.user_name}"))]

        assert len(AuditedSignup._notification_definitions) == 2
        AuditedSignup.run(user_name="Alice")
        assert mock_client.chat_postMessage.call_args_list == [
            call(channel="C_NOTIFY", text="Hello, Alice!"),
            call(channel="C_AUDIT", text="signup: Alice"),
        ]

    def test_profile_routing(self, mock_client: MagicMock) -> None:
        billing_client = MagicMock()
        billing_client.chat_postMessage.return_value = {"ok": True, "ts": "2.2"}
        billing = ProfileRegistry.register("billing", {"token": "xoxb-2"})
        billing._client = billing_client

        class Invoice(Notifier):
            notifications = [notify().channel("C_BILLING").profile("billing").text("paid")]

        assert Invoice.run() == ["2.2"]
        mock_client.chat_postMessage.assert_not_called()
