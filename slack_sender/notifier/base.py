"""Base class for objects whose main job is sending Slack notifications.

Usage::

    class SignupNotifier(Notifier):
        notifications = [
            notify()
            .channel(Known("notifications"))
            .only_if(lambda n: n.user_name != "bot")
            .text(MethodRef("greeting")),
        ]

        def greeting(self):
            return f"Hello, {self.user_name}!"

    SignupNotifier.run(user_name="Alice")
"""

from typing import Any, ClassVar, List, Sequence, Tuple, Union

from ..strategy import SlackStrategy
from .definition import NotificationDefinition
from .dsl import NotificationBuilder


class Notifier(SlackStrategy):
    """Sends every declared notification when called."""

    notifications: ClassVar[Sequence[Union[NotificationBuilder, NotificationDefinition]]] = ()
    _notification_definitions: ClassVar[Tuple[NotificationDefinition, ...]] = ()

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        inherited = tuple(
            definition
            for base in cls.__bases__
            for definition in getattr(base, "_notification_definitions", ())
        )
        own = tuple(
            item.build() if isinstance(item, NotificationBuilder) else item
            for item in cls.__dict__.get("notifications", ())
        )
        cls._notification_definitions = inherited + own

    def __init__(self, **context: Any) -> None:
        for name, value in context.items():
            setattr(self, name, value)

    @classmethod
    def run(cls, **context: Any) -> List[Any]:
        """Instantiate with ``context`` and send every notification."""
        return cls(**context).call()

    def call(self) -> List[Any]:
        results: List[Any] = []
        for definition in self._notification_definitions:
            results.extend(definition.execute(self))
        return results
