"""A ``slack(...)`` method for classes that send Slack messages.

Usage::

    class Deploy(slack_strategy(channel=Known("deploys"))):
        def run(self):
            self.slack("Deploying...")
            self.slack("Done", channel=Known("ops"))

Defaults given to ``slack_strategy`` apply to every call; call-time values
take precedence.
"""

from typing import Any, Dict, Optional, Type

from .registry import DEFAULT_PROFILE, ProfileRegistry


class SlackStrategy:
    """Mixin providing ``slack()``; configure defaults via ``slack_strategy``."""

    slack_defaults: Dict[str, Any] = {}

    def slack(self, text: Optional[str] = None, **kwargs: Any) -> Any:
        """Send a Slack message synchronously.

        Returns:
            The message timestamp from Slack (see ``Profile.deliver``).

        Raises:
            ValueError: If no channel was given and no default is configured.
        """
        if text is not None:
            kwargs["text"] = text

        merged = {**self.slack_defaults, **kwargs}
        channel = merged.pop("channel", None)
        profile = merged.pop("profile", None) or DEFAULT_PROFILE

        if channel is None:
            raise ValueError("No channel specified and no default channel configured")

        return ProfileRegistry.find(profile).deliver(channel=channel, **merged)


def slack_strategy(**defaults: Any) -> Type[SlackStrategy]:
    """Build a ``SlackStrategy`` mixin with the given per-call defaults."""
    return type("SlackStrategy", (SlackStrategy,), {"slack_defaults": dict(defaults)})
