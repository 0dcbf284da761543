"""Custom exceptions for slack-sender."""

from typing import List, Tuple


class SlackSenderError(Exception):
    """Base exception for slack-sender."""


class ConfigurationError(SlackSenderError):
    """Configuration-related errors."""


class MissingConfigError(ConfigurationError):
    """Required configuration is missing."""


class InvalidConfigError(ConfigurationError):
    """Configuration is invalid."""


class AsyncBackendUnavailableError(ConfigurationError):
    """No async backend is configured for background delivery."""


class ProfileMismatchError(ConfigurationError):
    """A `profile=` argument conflicts with the profile being called."""


class InvalidArgumentsError(SlackSenderError):
    """Invalid input that can never succeed, so must not be retried.

    Covers missing content, invalid blocks, incompatible file options and
    unknown channel or user group names.
    """


class ProfileError(SlackSenderError):
    """Profile registry errors."""


class ProfileNotFoundError(ProfileError):
    """Requested profile is not registered."""


class DuplicateProfileError(ProfileError):
    """A profile with the same name is already registered."""


class FileUploadError(SlackSenderError):
    """Uploading file content to Slack failed."""


class NotificationError(SlackSenderError):
    """One or more channel sends in a notification fan-out failed."""

    def __init__(self, failures: List[Tuple[str, BaseException]]) -> None:
        self.failures = failures
        channels = ", ".join(channel for channel, _ in failures)
        super().__init__(
            f"Notification failed for {len(failures)} channel(s): {channels}"
        )
