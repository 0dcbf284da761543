"""Immutable notification definitions."""

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

import structlog

from ..exceptions import NotificationError
from .values import Value

logger = structlog.get_logger()


def _flatten(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple)):
        return [item for v in value for item in _flatten(v)]
    return [value]


@dataclass(frozen=True)
class NotificationDefinition:
    """Routing, condition and payload for one notification."""

    channels: Tuple[Value, ...]
    payload: Tuple[Tuple[str, Value], ...]
    profile: Optional[Value] = None
    condition: Optional[Value] = None

    def execute(self, notifier: Any) -> List[Any]:
        """Resolve every field against ``notifier`` and send to each channel.

        Channels are sent to in declaration order. A failed channel does not
        stop the remaining ones; failures are raised together afterwards.

        Returns:
            The result of each send, or an empty list when the condition is
            false.

        Raises:
            ValueError: If no channel or no payload resolves.
            NotificationError: If any channel send failed.
        """
        if self.condition is not None and not self.condition.resolve(notifier):
            return []

        channels = [
            ch
            for value in self.channels
            for ch in _flatten(value.resolve(notifier))
            if ch is not None
        ]
        if not channels:
            raise ValueError(
                "Missing channel in notification. Add .channel(...) or .channels(...)."
            )

        payload = {key: value.resolve(notifier) for key, value in self.payload}
        payload = {key: value for key, value in payload.items() if value is not None}
        if not payload:
            raise ValueError(
                "Missing payload in notification. Add text, blocks, attachments, or files."
            )

        profile = self.profile.resolve(notifier) if self.profile is not None else None

        results: List[Any] = []
        failures: List[Tuple[str, BaseException]] = []
        for channel in channels:
            kwargs = dict(payload)
            if profile:
                kwargs["profile"] = profile
            try:
                results.append(notifier.slack(channel=channel, **kwargs))
            except Exception as e:
                logger.warning(
                    "Notification send failed",
                    notifier=type(notifier).__name__,
                    channel=str(channel),
                    error=str(e),
                )
                failures.append((str(channel), e))

        if failures:
            raise NotificationError(failures)
        return results
