"""Values resolved against a notifier instance at send time.

A notification field is one of:

- ``Literal(value)``: used as-is
- ``MethodRef(name)``: an attribute of the notifier, called if callable
- ``Computed(fn)``: ``fn(notifier)``

``as_value`` wraps bare values: callables become ``Computed`` and
everything else becomes ``Literal``.
"""

from dataclasses import dataclass
from typing import Any, Callable, Union


@dataclass(frozen=True)
class Literal:
    value: Any

    def resolve(self, context: Any) -> Any:
        return self.value


@dataclass(frozen=True)
class MethodRef:
    name: str

    def resolve(self, context: Any) -> Any:
        attr = getattr(context, self.name)
        return attr() if callable(attr) else attr


@dataclass(frozen=True)
class Computed:
    fn: Callable[[Any], Any]

    def resolve(self, context: Any) -> Any:
        return self.fn(context)


Value = Union[Literal, MethodRef, Computed]


def as_value(raw: Any) -> Value:
    if isinstance(raw, (Literal, MethodRef, Computed)):
        return raw
    if callable(raw):
        return Computed(raw)
    return Literal(raw)
