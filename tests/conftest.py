"""Shared fixtures."""

from typing import Any, Callable, Dict, Optional
from unittest.mock import MagicMock

import pytest
from slack_sdk.errors import SlackApiError
from slack_sdk.web.slack_response import SlackResponse

from slack_sender.config import Settings, configure, reset_settings
from slack_sender.profile import Profile
from slack_sender.registry import ProfileRegistry
from slack_sender.scheduler import set_backend

THREAD_TS = "1234567890.123456"


@pytest.fixture(autouse=True)
def _isolate_global_state():
    """Start every test with production-like settings and no profiles."""
    configure(_env_file=None, sandbox_mode=False)
    yield
    ProfileRegistry.clear()
    set_backend(None)
    reset_settings()


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    def _make(**overrides: Any) -> Settings:
        return configure(_env_file=None, **overrides)

    return _make


@pytest.fixture
def mock_client() -> MagicMock:
    client = MagicMock()
    client.chat_postMessage.return_value = {"ok": True, "ts": THREAD_TS}
    return client


@pytest.fixture
def make_profile(mock_client: MagicMock) -> Callable[..., Profile]:
    def _make(**overrides: Any) -> Profile:
        config: Dict[str, Any] = {
            "key": "test_profile",
            "token": "xoxb-test",
            "channels": {
                "slack_development": "C01H3KU3B9P",
                "eng_alerts": "C03F1DMJ4PM",
            },
            "user_groups": {"slack_development": "S123"},
            "sandbox": {"channel": {"replace_with": "C01H3KU3B9P"}},
        }
        config.update(overrides)
        profile = Profile(**config)
        profile._client = mock_client
        return profile

    return _make


@pytest.fixture
def profile(make_profile: Callable[..., Profile]) -> Profile:
    return make_profile()


@pytest.fixture
def slack_error() -> Callable[..., SlackApiError]:
    """Build a SlackApiError the way slack_sdk raises them."""

    def _make(
        error: str,
        headers: Optional[Dict[str, str]] = None,
        status_code: int = 200,
        **data: Any,
    ) -> SlackApiError:
        response = SlackResponse(
            client=None,
            http_verb="POST",
            api_url="https://slack.com/api/chat.postMessage",
            req_args={},
            data={"ok": False, "error": error, **data},
            headers=headers or {},
            status_code=status_code,
        )
        return SlackApiError(
            f"The request to the Slack API failed. (error: {error})", response
        )

    return _make
