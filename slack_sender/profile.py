"""Slack workspace profiles.

A profile bundles the credentials, channel and user-group name maps and
sandbox policy for one Slack workspace connection. Profiles are created
once at registration time and are read-only afterwards; only the token
(which may be supplied as a callable) and the API clients are computed
lazily and memoised.
"""

from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from slack_sdk import WebClient
from slack_sdk.web.async_client import AsyncWebClient

from .config import SandboxBehavior, Settings, get_settings
from .delivery.executor import deliver
from .delivery.request import DeliveryRequest, Known, blank_text_only, normalize_keys
from .delivery.validation import validate
from .exceptions import (
    AsyncBackendUnavailableError,
    ConfigurationError,
    InvalidArgumentsError,
    ProfileMismatchError,
)
from .files import FileUploader
from .utils.slack_format import group_link, is_blank

logger = structlog.get_logger()

SANDBOX_REDIRECT_REQUIRES_CHANNEL = (
    "Sandbox behavior :redirect requires sandbox.channel.replace_with to be set"
)
PROFILE_UNREGISTERED = (
    "Cannot specify profile: :%s when calling on unregistered profile. "
    "Register the profile first with slack_sender.register(name, **config)"
)
PROFILE_MISMATCH = (
    "Cannot specify profile: :%s when calling on profile :%s. "
    "Use slack_sender.get_profile(%r).deliver(...) instead"
)

Token = Union[str, Callable[[], str]]


class SandboxChannelConfig(BaseModel):
    """Where sandboxed messages go, and how they are introduced."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    replace_with: Optional[str] = None
    message_prefix: Optional[str] = None


class SandboxUserGroupConfig(BaseModel):
    """User group mentioned instead of the real one in sandbox mode."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    replace_with: Optional[str] = None


class SandboxConfig(BaseModel):
    """Per-profile sandbox policy."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    behavior: Optional[SandboxBehavior] = None
    channel: SandboxChannelConfig = Field(default_factory=SandboxChannelConfig)
    user_group: SandboxUserGroupConfig = Field(default_factory=SandboxUserGroupConfig)

    @field_validator("behavior", mode="before")
    @classmethod
    def validate_behavior(cls, v: Any) -> Optional[SandboxBehavior]:
        """Accept behavior names and reject unsupported ones."""
        if v is None or isinstance(v, SandboxBehavior):
            return v
        try:
            return SandboxBehavior(str(v).strip().lower())
        except ValueError:
            supported = [b.value for b in SandboxBehavior]
            raise ValueError(
                f"Unsupported sandbox behavior: {v!r}. Supported behaviors: {supported}"
            )

    @field_validator("channel", "user_group", mode="before")
    @classmethod
    def allow_none(cls, v: Any) -> Any:
        return {} if v is None else v

    @model_validator(mode="after")
    def validate_redirect_channel(self) -> "SandboxConfig":
        """A redirect policy needs somewhere to redirect to."""
        if self.behavior is SandboxBehavior.REDIRECT and is_blank(self.channel.replace_with):
            raise ValueError(SANDBOX_REDIRECT_REQUIRES_CHANNEL)
        return self


class Profile:
    """Credentials, name maps and sandbox policy for one Slack workspace."""

    def __init__(
        self,
        key: str,
        token: Token,
        channels: Optional[Mapping[str, str]] = None,
        user_groups: Optional[Mapping[str, str]] = None,
        slack_client_config: Optional[Mapping[str, Any]] = None,
        sandbox: Union[SandboxConfig, Mapping[str, Any], None] = None,
    ) -> None:
        self.key = str(key)
        self._token = token
        self._resolved_token: Optional[str] = None
        self.channels: Mapping[str, str] = MappingProxyType(
            {str(k): v for k, v in (channels or {}).items()}
        )
        self.user_groups: Mapping[str, str] = MappingProxyType(
            {str(k): v for k, v in (user_groups or {}).items()}
        )
        self.slack_client_config: Mapping[str, Any] = MappingProxyType(
            dict(slack_client_config or {})
        )
        if isinstance(sandbox, SandboxConfig):
            self.sandbox = sandbox
        else:
            self.sandbox = SandboxConfig.model_validate(normalize_keys(dict(sandbox or {})))
        self._client: Optional[WebClient] = None
        self._async_client: Optional[AsyncWebClient] = None

    def __repr__(self) -> str:
        return f"Profile(key={self.key!r}, channels={list(self.channels)!r})"

    # ── Sandbox accessors ─────────────────────────────────────────

    @property
    def sandbox_channel(self) -> Optional[str]:
        return self.sandbox.channel.replace_with

    @property
    def sandbox_channel_message_prefix(self) -> Optional[str]:
        return self.sandbox.channel.message_prefix

    @property
    def sandbox_user_group(self) -> Optional[str]:
        return self.sandbox.user_group.replace_with

    def resolved_sandbox_behavior(self, settings: Optional[Settings] = None) -> SandboxBehavior:
        """Effective sandbox behavior for this profile.

        Resolution order:
        1. Explicit sandbox.behavior if set
        2. redirect if sandbox.channel.replace_with is set
        3. The global sandbox_default_behavior setting
        """
        if self.sandbox.behavior is not None:
            return self.sandbox.behavior
        if not is_blank(self.sandbox_channel):
            return SandboxBehavior.REDIRECT
        return (settings or get_settings()).sandbox_default_behavior

    # ── Credentials and clients ───────────────────────────────────

    @property
    def token(self) -> str:
        """The API token, evaluating a callable token at most once."""
        if not callable(self._token):
            return self._token
        if self._resolved_token is None:
            self._resolved_token = self._token()
        return self._resolved_token

    @property
    def client(self) -> WebClient:
        if self._client is None:
            self._client = WebClient(token=self.token, **self.slack_client_config)
        return self._client

    @property
    def async_client(self) -> AsyncWebClient:
        if self._async_client is None:
            self._async_client = AsyncWebClient(token=self.token, **self.slack_client_config)
        return self._async_client

    @property
    def is_registered(self) -> bool:
        from .registry import ProfileRegistry

        return ProfileRegistry.all().get(self.key) is self

    # ── Delivery ──────────────────────────────────────────────────

    def deliver(self, **kwargs: Any) -> Union[Optional[str], bool]:
        """Deliver synchronously.

        Returns:
            The message timestamp (None when Slack did not report one or the
            send was a sandbox no-op), or False when delivery is disabled or
            the call is an explicit blank text-only call.
        """
        settings = get_settings()
        prepared = self._prepare(kwargs, settings)
        if prepared is None:
            return False
        target, call_kwargs = prepared
        return deliver(target, settings=settings, **call_kwargs).thread_ts

    def deliver_later(self, **kwargs: Any) -> bool:
        """Hand the delivery to the background job backend.

        Returns:
            True once enqueued, False when delivery is disabled or the call is
            an explicit blank text-only call.
        """
        from .scheduler.backend import get_backend

        settings = get_settings()
        prepared = self._prepare(kwargs, settings)
        if prepared is None:
            return False
        target, call_kwargs = prepared
        validate(DeliveryRequest.build(target, **call_kwargs))

        backend = get_backend(settings)
        if backend is None:
            raise AsyncBackendUnavailableError(
                "No async backend configured. Use deliver() to send inline, or set "
                "SLACK_SENDER_ASYNC_BACKEND=apscheduler to enable background "
                "delivery with automatic retries."
            )

        if not is_blank(call_kwargs.get("files")):
            raise ConfigurationError(
                "Files cannot be delivered in the background; use deliver() instead"
            )

        if not target.is_registered:
            raise ConfigurationError(
                "Profile must be registered before using background delivery. "
                "Register it with slack_sender.register(name, **config)"
            )

        backend.enqueue(target.key, **call_kwargs)
        return True

    async def upload_files(
        self,
        files: Any,
        channel: Optional[str] = None,
        initial_comment: Optional[str] = None,
    ) -> List[Dict[str, str]]:
        """Upload files through ``async_client``, sharing them when ``channel`` is given.

        Returns:
            ``[{"id": ..., "title": ...}]`` for every uploaded file.
        """
        uploader = FileUploader(self.async_client, files)
        file_refs = await uploader.upload_to_slack()
        if channel is not None:
            await uploader.share(file_refs, channel, initial_comment=initial_comment)
        return file_refs

    def format_group_mention(self, key: str, settings: Optional[Settings] = None) -> str:
        """Mention a user group; ``Known`` names are looked up in user_groups."""
        settings = settings or get_settings()
        if isinstance(key, Known):
            try:
                group_id = self.user_groups[key]
            except KeyError:
                raise InvalidArgumentsError(f"Unknown user group: {key}") from None
        else:
            group_id = key

        if not is_blank(self.sandbox_user_group) and settings.is_sandbox_mode:
            group_id = self.sandbox_user_group  # type: ignore[assignment]

        return group_link(group_id)

    # ── Preprocessing ─────────────────────────────────────────────

    def _prepare(
        self, kwargs: Dict[str, Any], settings: Settings
    ) -> Optional[Tuple["Profile", Dict[str, Any]]]:
        if not settings.enabled:
            logger.debug("Slack delivery disabled", profile=self.key)
            return None
        if blank_text_only(kwargs):
            logger.debug("Skipping explicit blank text", profile=self.key)
            return None

        kwargs = dict(kwargs)
        target = self._target_profile(kwargs)

        channel = kwargs.get("channel")
        if isinstance(channel, Known):
            # Background jobs receive plain strings, so the "look this name
            # up" intent travels as a separate flag.
            kwargs["channel"] = str(channel)
            kwargs["validate_known_channel"] = True

        for key in ("blocks", "attachments"):
            if is_blank(kwargs.get(key)):
                kwargs.pop(key, None)
            else:
                kwargs[key] = normalize_keys(kwargs[key])

        return target, kwargs

    def _target_profile(self, kwargs: Dict[str, Any]) -> "Profile":
        """Resolve a ``profile=`` argument against this profile."""
        from .registry import DEFAULT_PROFILE, ProfileRegistry

        if "profile" not in kwargs:
            return self

        requested = str(kwargs.pop("profile"))
        registered_name = self.key if self.is_registered else None

        if registered_name == DEFAULT_PROFILE:
            return ProfileRegistry.find(requested)
        if registered_name is None:
            raise ProfileMismatchError(PROFILE_UNREGISTERED % requested)
        if registered_name == requested:
            return self
        raise ProfileMismatchError(PROFILE_MISMATCH % (requested, registered_name, requested))
