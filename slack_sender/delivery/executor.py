"""Delivery executor.

Runs one ``DeliveryRequest`` through validation, channel resolution and
sandbox handling, then posts a message or uploads files:

    validate -> resolve -> noop | send
    send     -> post message | upload files

Slack errors are logged and propagate to the caller (or to the job backend,
which consults ``retry_policy``). An ``is_archived`` error becomes a
successful no-op when ``silence_archived_channel_exceptions`` is set.
"""

from typing import TYPE_CHECKING, Any, Dict, Optional

import structlog
from slack_sdk.errors import SlackApiError

from ..config import Settings, get_settings
from ..utils.slack_format import is_blank, truncate
from .channel_resolution import ChannelResolution, resolve
from .error_handling import ErrorKind, error_kind, error_message, log_api_failure
from .request import DeliveryRequest, DeliveryResult
from .validation import validate

if TYPE_CHECKING:
    from ..profile import Profile

logger = structlog.get_logger()

ARCHIVED_CHANNEL_SILENCED = "Failed successfully: ignoring 'is archived' error per config"
SANDBOX_NOOP_MESSAGE = "Sandbox noop: message logged but not sent"
BLANK_TEXT_NOOP_MESSAGE = "Explicit blank text: nothing to send"
NOOP_PREVIEW_LENGTH = 100


class DeliveryExecutor:
    """Delivers a single request to Slack."""

    def __init__(self, request: DeliveryRequest, settings: Optional[Settings] = None) -> None:
        self.request = request
        self.settings = settings or get_settings()
        self._resolution: Optional[ChannelResolution] = None

    @property
    def profile(self) -> "Profile":
        return self.request.profile

    @property
    def channel_display(self) -> str:
        if self._resolution is not None:
            return self._resolution.display
        return f"`{self.request.channel}`"

    def run(self) -> DeliveryResult:
        """Deliver the request, raising on failure."""
        if not validate(self.request):
            return DeliveryResult(message=BLANK_TEXT_NOOP_MESSAGE)

        self._resolution = resolve(
            self.profile,
            self.request.channel,
            self.request.validate_known_channel,
            self.request.text,
            self.settings,
        )

        if self._resolution.is_noop:
            return self._sandbox_noop()

        try:
            if self.request.files:
                return self._upload_files()
            return self._post_message()
        except SlackApiError as e:
            if (
                error_kind(e) is ErrorKind.IS_ARCHIVED
                and self.settings.silence_archived_channel_exceptions
            ):
                logger.info(
                    ARCHIVED_CHANNEL_SILENCED,
                    profile=self.profile.key,
                    channel=self.channel_display,
                )
                return DeliveryResult(message=ARCHIVED_CHANNEL_SILENCED)
            log_api_failure(e, self.profile.key, self.channel_display, self.request.text)
            raise

    def attempt(self) -> DeliveryResult:
        """Deliver the request, returning a failed result instead of raising."""
        try:
            return self.run()
        except Exception as e:
            return DeliveryResult(ok=False, error=e, error_message=error_message(e))

    # ── Branches ─────────────────────────────────────────────────

    def _sandbox_noop(self) -> DeliveryResult:
        preview = truncate(self.request.text or "(blocks/attachments only)", NOOP_PREVIEW_LENGTH)
        logger.info(
            f"[SANDBOX NOOP] Profile: {self.profile.key} | "
            f"Channel: {self.channel_display} | Text: {preview}",
            profile=self.profile.key,
            channel=self.channel_display,
        )
        return DeliveryResult(message=SANDBOX_NOOP_MESSAGE)

    def _post_message(self) -> DeliveryResult:
        assert self._resolution is not None
        params: Dict[str, Any] = {
            "channel": self._resolution.send_channel,
            "text": self._resolution.send_text,
            "blocks": self.request.blocks,
            "attachments": self.request.attachments,
            "icon_emoji": self.request.icon_emoji,
            "thread_ts": self.request.thread_ts,
        }
        params = {key: value for key, value in params.items() if not is_blank(value)}

        response = self.profile.client.chat_postMessage(**params)
        thread_ts = response.get("ts")

        logger.debug(
            "Slack message sent",
            profile=self.profile.key,
            channel=self._resolution.send_channel,
            thread_ts=thread_ts,
        )
        return DeliveryResult(thread_ts=thread_ts)

    def _upload_files(self) -> DeliveryResult:
        assert self._resolution is not None
        channel = self._resolution.send_channel
        client = self.profile.client

        params: Dict[str, Any] = {
            "file_uploads": [f.to_upload() for f in self.request.files],
            "channel": channel,
        }
        if not is_blank(self._resolution.send_text):
            params["initial_comment"] = self._resolution.send_text
        response = client.files_upload_v2(**params)

        # files_upload_v2 does not report where the file was shared, so
        # look up the share record to find the message timestamp.
        files = response.get("files") or []
        file_id = files[0].get("id") if files else None
        if not file_id:
            return DeliveryResult()

        file_info = client.files_info(file=file_id)
        shares = (file_info.get("file") or {}).get("shares") or {}
        thread_ts = _share_ts(shares, "public", channel) or _share_ts(
            shares, "private", channel
        )

        logger.debug(
            "Slack files uploaded",
            profile=self.profile.key,
            channel=channel,
            file_count=len(self.request.files),
            thread_ts=thread_ts,
        )
        return DeliveryResult(thread_ts=thread_ts)


def _share_ts(shares: Dict[str, Any], visibility: str, channel: str) -> Optional[str]:
    entries = (shares.get(visibility) or {}).get(channel) or []
    if not entries:
        return None
    return entries[0].get("ts")


def deliver(profile: "Profile", settings: Optional[Settings] = None, **kwargs: Any) -> DeliveryResult:
    """Build a request for ``profile`` and deliver it, raising on failure."""
    request = DeliveryRequest.build(profile, **kwargs)
    return DeliveryExecutor(request, settings=settings).run()
