"""slack-sender.

A Slack message delivery library:

- Named profiles holding credentials, channel/user-group maps and a
  sandbox policy
- Sandbox redirection, no-op and passthrough for non-production use
- Synchronous delivery and background delivery with retries
- File uploads
- Retry-aware classification of Slack API errors
"""

from typing import Any, Optional, Union

from .config import SandboxBehavior, Settings, configure, get_settings, reset_settings
from .delivery import DeliveryResult, Known, RetryDecision, retry_policy
from .exceptions import (
    ConfigurationError,
    InvalidArgumentsError,
    NotificationError,
    ProfileNotFoundError,
    SlackSenderError,
)
from .notifier import Computed, Literal, MethodRef, Notifier, notify
from .profile import Profile
from .registry import DEFAULT_PROFILE, ProfileRegistry
from .strategy import SlackStrategy, slack_strategy

__version__ = "1.0.0"
__license__ = "MIT"


def register(name: Optional[str] = None, **config: Any) -> Profile:
    """Register a profile; unnamed registrations become the default profile."""
    return ProfileRegistry.register(name or DEFAULT_PROFILE, config)


def get_profile(name: str) -> Profile:
    return ProfileRegistry.find(name)


def default_profile() -> Profile:
    try:
        return ProfileRegistry.find(DEFAULT_PROFILE)
    except ProfileNotFoundError:
        raise ProfileNotFoundError(
            "No default profile set. Call slack_sender.register(...) first"
        ) from None


def deliver(**kwargs: Any) -> Union[Optional[str], bool]:
    """Deliver synchronously through the default profile."""
    return default_profile().deliver(**kwargs)


def deliver_later(**kwargs: Any) -> bool:
    """Deliver in the background through the default profile."""
    return default_profile().deliver_later(**kwargs)


def format_group_mention(key: str) -> str:
    return default_profile().format_group_mention(key)


__all__ = [
    "Computed",
    "ConfigurationError",
    "DeliveryResult",
    "InvalidArgumentsError",
    "Known",
    "Literal",
    "MethodRef",
    "NotificationError",
    "Notifier",
    "Profile",
    "ProfileNotFoundError",
    "ProfileRegistry",
    "RetryDecision",
    "SandboxBehavior",
    "Settings",
    "SlackSenderError",
    "SlackStrategy",
    "configure",
    "default_profile",
    "deliver",
    "deliver_later",
    "format_group_mention",
    "get_profile",
    "get_settings",
    "notify",
    "register",
    "reset_settings",
    "retry_policy",
    "slack_strategy",
]
