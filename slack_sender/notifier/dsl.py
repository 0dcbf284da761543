"""Builder for notification definitions.

    notify()
        .channel(Known("notifications"))
        .only_if(lambda n: n.user.notifications_enabled)
        .text(MethodRef("greeting"))
"""

from typing import Any, Dict, List, Optional

from .definition import NotificationDefinition
from .values import Value, as_value


class NotificationBuilder:
    """Collects routing, payload and condition settings."""

    def __init__(self) -> None:
        self._channels: List[Value] = []
        self._profile: Optional[Value] = None
        self._condition: Optional[Value] = None
        self._payload: Dict[str, Value] = {}

    # Routing

    def channel(self, value: Any) -> "NotificationBuilder":
        self._channels.append(as_value(value))
        return self

    def channels(self, *values: Any) -> "NotificationBuilder":
        for value in values:
            self._channels.append(as_value(value))
        return self

    def profile(self, value: Any) -> "NotificationBuilder":
        self._profile = as_value(value)
        return self

    # Payload

    def text(self, value: Any) -> "NotificationBuilder":
        return self._set("text", value)

    def blocks(self, value: Any) -> "NotificationBuilder":
        return self._set("blocks", value)

    def attachments(self, value: Any) -> "NotificationBuilder":
        return self._set("attachments", value)

    def icon_emoji(self, value: Any) -> "NotificationBuilder":
        return self._set("icon_emoji", value)

    def thread_ts(self, value: Any) -> "NotificationBuilder":
        return self._set("thread_ts", value)

    def files(self, value: Any) -> "NotificationBuilder":
        return self._set("files", value)

    # Conditions

    def only_if(self, value: Any) -> "NotificationBuilder":
        self._condition = as_value(value)
        return self

    def build(self) -> NotificationDefinition:
        return NotificationDefinition(
            channels=tuple(self._channels),
            payload=tuple(self._payload.items()),
            profile=self._profile,
            condition=self._condition,
        )

    def _set(self, field: str, value: Any) -> "NotificationBuilder":
        self._payload[field] = as_value(value)
        return self


def notify() -> NotificationBuilder:
    """Start declaring a notification."""
    return NotificationBuilder()
