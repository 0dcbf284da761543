"""Delivery pipeline: validation, channel resolution, dispatch and error handling."""

from .error_handling import (
    ErrorKind,
    RetryAction,
    RetryDecision,
    error_kind,
    error_message,
    retry_policy,
)
from .executor import DeliveryExecutor, deliver
from .request import DeliveryRequest, DeliveryResult, Known, blank_text_only

__all__ = [
    "DeliveryExecutor",
    "DeliveryRequest",
    "DeliveryResult",
    "ErrorKind",
    "Known",
    "RetryAction",
    "RetryDecision",
    "blank_text_only",
    "deliver",
    "error_kind",
    "error_message",
    "retry_policy",
]
