"""Slack mrkdwn formatting utilities.

Slack's mrkdwn format is close to standard markdown but has its own
conventions for bold (*bold*), italic (_italic_), strikethrough (~text~)
and links (<url|text>).  Channel and user-group references use the
<#C123> and <!subteam^S123> forms.
"""

import re
from typing import Any, List, Tuple

# Channel, private group or DM identifiers. Directionally correct only:
# a definitive answer would need conversations.list.
CHANNEL_ID_PATTERN = re.compile(r"\A[CGD][A-Z0-9]+\Z")


def is_blank(value: Any) -> bool:
    """True for None, whitespace-only strings and empty collections."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return len(value) == 0
    except TypeError:
        return False


def markdown(text: str) -> str:
    """Convert standard markdown to Slack-compatible mrkdwn.

    Order of operations:
    1. Extract inline and fenced code -> placeholders
    2. Italic (*text*) -> _text_
    3. Bold+italic (***text***) -> *_text_*
    4. Bold (**text**) -> *text*
    5. Strikethrough (~~text~~) -> ~text~
    6. Links [text](url) -> <url|text>
    7. Restore placeholders
    """
    placeholders: List[Tuple[str, str]] = []

    def _make_placeholder(m: re.Match) -> str:  # type: ignore[type-arg]
        key = f"\x00PH{len(placeholders)}\x00"
        placeholders.append((key, m.group(0)))
        return key

    text = re.sub(r"```.*?```", _make_placeholder, text, flags=re.DOTALL)
    text = re.sub(r"`[^`\n]+`", _make_placeholder, text)

    text = re.sub(r"(?<!\*)\*([^*]+)\*(?!\*)", r"_\1_", text)
    text = re.sub(r"\*\*\*(.*?)\*\*\*", r"*_\1_*", text)
    text = re.sub(r"\*\*(.*?)\*\*", r"*\1*", text)
    text = re.sub(r"~~(.*?)~~", r"~\1~", text)
    text = re.sub(r"\[(.*?)\]\((.*?)\)", r"<\2|\1>", text)

    for key, content in placeholders:
        text = text.replace(key, content)

    return text


def channel_link(channel_id: str) -> str:
    """Render a clickable channel reference."""
    return f"<#{channel_id}>"


def group_link(group_id: str) -> str:
    """Render a user-group mention."""
    return f"<!subteam^{group_id}>"


def is_channel_id(value: str) -> bool:
    """Check whether a value looks like a channel/group/DM identifier."""
    return not value.startswith("#") and bool(CHANNEL_ID_PATTERN.match(value))


def channel_display(channel: str) -> str:
    """Format a channel for humans: a link for IDs, inline code otherwise."""
    return channel_link(channel) if is_channel_id(channel) else f"`{channel}`"


def titleize(name: str) -> str:
    """Turn ``not_in_channel`` or ``NotInChannel`` into ``Not In Channel``."""
    spaced = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", " ", name)
    words = re.split(r"[\s_\-]+", spaced)
    return " ".join(w[:1].upper() + w[1:] for w in words if w)


def truncate(text: str, length: int = 100, omission: str = "...") -> str:
    """Shorten text to at most ``length`` characters."""
    if len(text) <= length:
        return text
    return text[: max(length - len(omission), 0)] + omission
