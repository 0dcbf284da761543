"""Background delivery with retries."""

from .backend import DeliveryJobScheduler, default_backoff, get_backend, set_backend

__all__ = ["DeliveryJobScheduler", "default_backoff", "get_backend", "set_backend"]
