"""Declarative Slack notifications."""

from .base import Notifier
from .definition import NotificationDefinition
from .dsl import NotificationBuilder, notify
from .values import Computed, Literal, MethodRef

__all__ = [
    "Computed",
    "Literal",
    "MethodRef",
    "NotificationBuilder",
    "NotificationDefinition",
    "Notifier",
    "notify",
]
