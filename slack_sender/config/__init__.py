"""Library configuration."""

from .settings import (
    SUPPORTED_ASYNC_BACKENDS,
    SandboxBehavior,
    Settings,
    configure,
    get_settings,
    reset_settings,
)

__all__ = [
    "SUPPORTED_ASYNC_BACKENDS",
    "SandboxBehavior",
    "Settings",
    "configure",
    "get_settings",
    "reset_settings",
]
