"""Configuration management using Pydantic Settings.

Features:
- Environment variable loading (``SLACK_SENDER_`` prefix)
- Type validation
- Default values
- Computed sandbox mode
- A process-wide default instance for ergonomic access
"""

from enum import Enum
from typing import Any, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SUPPORTED_ASYNC_BACKENDS = ("apscheduler",)


class SandboxBehavior(str, Enum):
    """What happens to a send while sandbox mode is active."""

    REDIRECT = "redirect"
    NOOP = "noop"
    PASSTHROUGH = "passthrough"


class Settings(BaseSettings):
    """Library settings loaded from environment variables."""

    enabled: bool = Field(True, description="Global kill switch for all sends")
    sandbox_mode: Optional[bool] = Field(
        None,
        description=(
            "Force sandbox mode on or off. Left unset, sandbox mode is active "
            "unless environment is 'production'."
        ),
    )
    environment: Optional[str] = Field(
        None, description="Deployment environment name (e.g. production)"
    )
    sandbox_default_behavior: SandboxBehavior = Field(
        SandboxBehavior.NOOP,
        description="Sandbox behavior for profiles without their own policy",
    )
    silence_archived_channel_exceptions: bool = Field(
        False,
        description="Treat 'is_archived' errors from Slack as successful no-ops",
    )

    # Async delivery
    async_backend: Optional[str] = Field(
        None, description="Background job backend used by deliver_later"
    )
    async_max_attempts: int = Field(
        5, description="Attempts before a background delivery gives up", ge=1
    )

    # Monitoring
    log_level: str = Field("INFO", description="Logging level")
    debug: bool = Field(False, description="Enable debug mode")

    model_config = SettingsConfigDict(
        env_prefix="SLACK_SENDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("sandbox_default_behavior", mode="before")
    @classmethod
    def validate_sandbox_default_behavior(cls, v: Any) -> SandboxBehavior:
        """Accept behavior names and reject unsupported ones."""
        if isinstance(v, SandboxBehavior):
            return v
        try:
            return SandboxBehavior(str(v).strip().lower())
        except ValueError:
            supported = [b.value for b in SandboxBehavior]
            raise ValueError(
                f"Unsupported sandbox behavior: {v!r}. Supported behaviors: {supported}"
            )

    @field_validator("async_backend", mode="before")
    @classmethod
    def validate_async_backend(cls, v: Any) -> Optional[str]:
        """Validate the async backend name."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        name = str(v).strip().lower()
        if name not in SUPPORTED_ASYNC_BACKENDS:
            raise ValueError(
                f"Unsupported async backend: {v!r}. "
                f"Supported backends: {list(SUPPORTED_ASYNC_BACKENDS)}"
            )
        return name

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: Any) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v.upper()  # type: ignore[no-any-return]

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return (self.environment or "").strip().lower() == "production"

    @property
    def is_sandbox_mode(self) -> bool:
        """Resolve the tri-state sandbox_mode setting."""
        if self.sandbox_mode is not None:
            return self.sandbox_mode
        return not self.is_production


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the process-wide settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def configure(**overrides: Any) -> Settings:
    """Replace the process-wide settings, applying overrides on top of env."""
    global _settings
    _settings = Settings(**overrides)
    return _settings


def reset_settings() -> None:
    """Forget the process-wide settings so they are reloaded on next use."""
    global _settings
    _settings = None
