"""Channel resolution and sandbox redirection.

Turns the caller's channel (a literal ID or a known channel name) into the
destination actually used for the Slack call, applying the profile's
sandbox policy when sandbox mode is active.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from ..config import SandboxBehavior, Settings
from ..exceptions import InvalidArgumentsError, MissingConfigError
from ..utils.slack_format import channel_display

if TYPE_CHECKING:
    from ..profile import Profile

UNKNOWN_CHANNEL = "Unknown channel provided: :%s"
DEFAULT_SANDBOX_MESSAGE_PREFIX = (
    ":construction: _This message would have been sent to %s in production_"
)


def resolve_channel(profile: "Profile", channel: str, validate_known_channel: bool) -> str:
    """Look up known channel names; pass literal IDs through unchecked."""
    if not validate_known_channel:
        return channel
    try:
        return profile.channels[channel]
    except KeyError:
        raise InvalidArgumentsError(UNKNOWN_CHANNEL % channel) from None


def sandbox_behavior(profile: "Profile", settings: Settings) -> Optional[SandboxBehavior]:
    """Resolved sandbox behavior, or None when sandbox mode is inactive."""
    if not settings.is_sandbox_mode:
        return None
    return profile.resolved_sandbox_behavior(settings)


def redirect_text(text: Optional[str], display: str, prefix_template: Optional[str]) -> str:
    """Quote every line of ``text`` beneath a prefix naming the real channel."""
    prefix = (prefix_template or DEFAULT_SANDBOX_MESSAGE_PREFIX).replace("%s", display, 1)
    quoted = "".join(f"> {line}" for line in text.splitlines(keepends=True)) if text else ""
    return "\n\n".join(part for part in (prefix, quoted) if part.strip())


@dataclass(frozen=True)
class ChannelResolution:
    """Where a request goes, and with what text."""

    channel: str
    display: str
    behavior: Optional[SandboxBehavior]
    send_channel: str
    send_text: Optional[str]

    @property
    def is_noop(self) -> bool:
        return self.behavior is SandboxBehavior.NOOP

    @property
    def is_redirect(self) -> bool:
        return self.behavior is SandboxBehavior.REDIRECT


def resolve(
    profile: "Profile",
    channel: str,
    validate_known_channel: bool,
    text: Optional[str],
    settings: Settings,
) -> ChannelResolution:
    """Resolve the effective channel and text for a send."""
    resolved = resolve_channel(profile, channel, validate_known_channel)
    display = channel_display(resolved)
    behavior = sandbox_behavior(profile, settings)

    if behavior is SandboxBehavior.REDIRECT:
        if not profile.sandbox_channel:
            raise MissingConfigError(
                f"Sandbox behavior is redirect but profile {profile.key!r} "
                "has no sandbox channel.replace_with"
            )
        send_channel = profile.sandbox_channel
        send_text: Optional[str] = redirect_text(
            text, display, profile.sandbox_channel_message_prefix
        )
    else:
        send_channel = resolved
        send_text = text

    return ChannelResolution(
        channel=resolved,
        display=display,
        behavior=behavior,
        send_channel=send_channel,
        send_text=send_text,
    )
