"""Classification of delivery failures.

Maps exceptions raised during a delivery to an ``ErrorKind``, decides
whether a background job should retry (and when), and builds the
diagnostic text shown to callers and written to logs.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

import structlog
from slack_sdk.errors import SlackApiError

from ..exceptions import ConfigurationError, InvalidArgumentsError, ProfileError
from ..utils.slack_format import titleize

logger = structlog.get_logger()

DEFAULT_PROFILE_KEY = "default"
KNOWN_RESPONSE_KEYS = ("ok", "error", "needed", "provided", "response_metadata")


class ErrorKind(str, Enum):
    """What went wrong, as far as retrying is concerned."""

    NOT_IN_CHANNEL = "not_in_channel"
    CHANNEL_NOT_FOUND = "channel_not_found"
    IS_ARCHIVED = "is_archived"
    RATE_LIMITED = "ratelimited"
    API_ERROR = "api_error"
    INVALID_ARGUMENTS = "invalid_arguments"
    CONFIGURATION = "configuration"
    OTHER = "other"


PERMANENT_CHANNEL_ERRORS = frozenset(
    {ErrorKind.NOT_IN_CHANNEL, ErrorKind.CHANNEL_NOT_FOUND, ErrorKind.IS_ARCHIVED}
)


class RetryAction(str, Enum):
    DISCARD = "discard"
    DELAY = "delay"
    DEFAULT = "default"


@dataclass(frozen=True)
class RetryDecision:
    """Retry hint consumed by the job backend."""

    action: RetryAction
    seconds: Optional[int] = None

    @classmethod
    def discard(cls) -> "RetryDecision":
        return cls(RetryAction.DISCARD)

    @classmethod
    def delay(cls, seconds: int) -> "RetryDecision":
        return cls(RetryAction.DELAY, seconds)

    @classmethod
    def default(cls) -> "RetryDecision":
        return cls(RetryAction.DEFAULT)


# ── Response inspection ─────────────────────────────────────────────


def normalize_response(response: Any) -> Dict[str, Any]:
    """Return the body of a Slack response as a plain dict."""
    if response is None:
        return {}
    data = getattr(response, "data", response)
    if isinstance(data, Mapping):
        return dict(data)
    return {}


def error_code(exc: BaseException) -> Optional[str]:
    """The canonical Slack error code (e.g. ``not_in_channel``), if any."""
    if not isinstance(exc, SlackApiError):
        return None
    code = normalize_response(exc.response).get("error")
    return str(code) if code else None


def retry_after(exc: BaseException) -> Optional[int]:
    """Seconds from a ``Retry-After`` response header, if present."""
    headers = getattr(getattr(exc, "response", None), "headers", None)
    if not isinstance(headers, Mapping):
        return None
    for name, value in headers.items():
        if str(name).lower() != "retry-after":
            continue
        if isinstance(value, (list, tuple)):
            value = value[0] if value else None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None
    return None


def error_kind(exc: BaseException) -> ErrorKind:
    """Classify an exception raised while delivering."""
    if isinstance(exc, InvalidArgumentsError):
        return ErrorKind.INVALID_ARGUMENTS
    if isinstance(exc, (ConfigurationError, ProfileError)):
        return ErrorKind.CONFIGURATION
    if not isinstance(exc, SlackApiError):
        return ErrorKind.OTHER

    match error_code(exc):
        case "not_in_channel":
            return ErrorKind.NOT_IN_CHANNEL
        case "channel_not_found":
            return ErrorKind.CHANNEL_NOT_FOUND
        case "is_archived":
            return ErrorKind.IS_ARCHIVED
        case "ratelimited" | "rate_limited":
            return ErrorKind.RATE_LIMITED
    if retry_after(exc) is not None:
        return ErrorKind.RATE_LIMITED
    return ErrorKind.API_ERROR


def is_permanent_channel_error(exc: BaseException) -> bool:
    return error_kind(exc) in PERMANENT_CHANNEL_ERRORS


# ── Retry policy ────────────────────────────────────────────────────


def retry_policy(attempt: int, exc: BaseException) -> RetryDecision:
    """Decide how a background job should react to a failed attempt.

    ``attempt`` is accepted so backends can call every policy the same way;
    the delay itself is left to the backend unless Slack asked for one.
    """
    match error_kind(exc):
        case (
            ErrorKind.INVALID_ARGUMENTS
            | ErrorKind.CONFIGURATION
            | ErrorKind.NOT_IN_CHANNEL
            | ErrorKind.CHANNEL_NOT_FOUND
            | ErrorKind.IS_ARCHIVED
        ):
            return RetryDecision.discard()
        case ErrorKind.RATE_LIMITED | ErrorKind.API_ERROR:
            seconds = retry_after(exc)
            if seconds is not None and seconds > 0:
                return RetryDecision.delay(seconds)
            return RetryDecision.default()
        case _:
            return RetryDecision.default()


# ── Diagnostics ─────────────────────────────────────────────────────


def error_message(exc: BaseException) -> str:
    """Actionable one-line description of a failure.

    Slack error shapes vary per error code, so the message is assembled from
    whatever is present: the error code, ``needed``/``provided``, response
    metadata messages and finally any unrecognised fields.
    """
    if not isinstance(exc, SlackApiError):
        return str(exc)

    resp = normalize_response(exc.response)
    parts = [str(resp.get("error") or exc)]

    if resp.get("needed"):
        parts.append(f"needed={resp['needed']}")
    if resp.get("provided"):
        parts.append(f"provided={resp['provided']}")

    meta = resp.get("response_metadata") or {}
    messages = meta.get("messages") if isinstance(meta, Mapping) else None
    if messages:
        parts.append("; ".join(str(m) for m in messages))

    extras = [
        f"{key}={json.dumps(value, default=str)}"
        for key, value in resp.items()
        if key not in KNOWN_RESPONSE_KEYS
    ]
    if extras:
        parts.append(" ".join(extras))

    return " | ".join(parts)


def error_name(exc: BaseException) -> str:
    """Human-readable name, e.g. ``Not In Channel``."""
    return titleize(error_code(exc) or type(exc).__name__)


def log_api_failure(
    exc: BaseException,
    profile_key: str,
    display: str,
    text: Optional[str],
) -> None:
    """Log one warning describing a failed Slack call."""
    prefix = (
        "SLACK MESSAGE SEND FAILED: "
        if is_permanent_channel_error(exc)
        else "SLACK API ERROR: "
    )
    parts = [f"** {prefix}{error_name(exc)} **."]
    if profile_key != DEFAULT_PROFILE_KEY:
        parts.append(f"Profile: {profile_key}")
    parts.append(f"Channel: {display}")
    parts.append(f"Message: {text or '(blocks/attachments only)'}")

    logger.warning(
        " ".join(parts),
        error=error_message(exc),
        profile=profile_key,
        channel=display,
    )
