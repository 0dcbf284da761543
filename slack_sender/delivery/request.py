"""Delivery request and result types.

A ``DeliveryRequest`` is the transient unit of work handed to the
``DeliveryExecutor``: it is built once per call from caller keyword
arguments, preprocessed, consumed and thrown away.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

from ..files import FileWrapper, MultiFileWrapper
from ..utils.slack_format import is_blank, markdown

if TYPE_CHECKING:
    from ..profile import Profile

CONTENT_FIELDS = ("text", "blocks", "attachments", "files")
OTHER_CONTENT_FIELDS = ("blocks", "attachments", "files")


class Known(str):
    """A symbolic name resolved through a profile's channel or user-group map.

    Plain strings are passed through as literal Slack IDs; wrapping a name in
    ``Known`` asks for it to be looked up (and rejected if absent).
    """

    def __repr__(self) -> str:
        return f"Known({str.__repr__(self)})"


def normalize_keys(value: Any) -> Any:
    """Recursively convert mapping keys to strings.

    Block Kit payloads must survive serialisation to the job backend and
    to the transport, so keys are canonicalised once up front. slack_sdk
    model objects (``SectionBlock``, ``Attachment``, ...) are expanded
    through their ``to_dict()``.
    """
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict) and not isinstance(value, Mapping):
        return normalize_keys(to_dict())
    if isinstance(value, Mapping):
        return {
            (k.value if isinstance(k, Enum) else str(k)): normalize_keys(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [normalize_keys(item) for item in value]
    return value


def blank_text_only(kwargs: Mapping[str, Any]) -> bool:
    """True when ``text`` was passed explicitly but blank, with no other content.

    Such calls are deliberate no-ops: an interpolated-but-empty message body
    can never succeed, so it must not be sent or retried.
    """
    text = kwargs.get("text")
    if not isinstance(text, str) or not is_blank(text):
        return False
    return all(is_blank(kwargs.get(key)) for key in OTHER_CONTENT_FIELDS)


def normalize_icon_emoji(raw: Optional[str]) -> Optional[str]:
    if is_blank(raw):
        return None
    return re.sub(r":+", ":", f":{raw}:")


@dataclass
class DeliveryRequest:
    """A single delivery to one channel of one profile."""

    profile: "Profile"
    channel: str
    validate_known_channel: bool = False
    text: Optional[str] = None
    blocks: Optional[List[Any]] = None
    attachments: Optional[List[Any]] = None
    icon_emoji: Optional[str] = None
    thread_ts: Optional[str] = None
    files: List[FileWrapper] = field(default_factory=list)
    text_provided: bool = False

    @classmethod
    def build(cls, profile: "Profile", **kwargs: Any) -> "DeliveryRequest":
        """Build a preprocessed request from caller keyword arguments."""
        unknown = set(kwargs) - {
            "channel",
            "validate_known_channel",
            "text",
            "blocks",
            "attachments",
            "icon_emoji",
            "thread_ts",
            "files",
        }
        if unknown:
            raise TypeError(f"Unexpected delivery arguments: {sorted(unknown)}")
        if kwargs.get("channel") is None:
            raise TypeError("channel is required")

        channel = kwargs["channel"]
        validate_known_channel = bool(kwargs.get("validate_known_channel", False))
        if isinstance(channel, Known):
            validate_known_channel = True
        channel = str(channel)

        text = kwargs.get("text")
        blocks = kwargs.get("blocks")
        attachments = kwargs.get("attachments")

        return cls(
            profile=profile,
            channel=channel,
            validate_known_channel=validate_known_channel,
            text=None if is_blank(text) else markdown(text),
            blocks=None if blocks is None else normalize_keys(blocks),
            attachments=None if attachments is None else normalize_keys(attachments),
            icon_emoji=normalize_icon_emoji(kwargs.get("icon_emoji")),
            thread_ts=kwargs.get("thread_ts") or None,
            files=MultiFileWrapper(kwargs.get("files")).files,
            text_provided="text" in kwargs and isinstance(text, str),
        )

    @property
    def explicit_blank_text_only(self) -> bool:
        return (
            self.text_provided
            and is_blank(self.text)
            and all(is_blank(getattr(self, key)) for key in OTHER_CONTENT_FIELDS)
        )

    @property
    def content_blank(self) -> bool:
        return all(is_blank(getattr(self, key)) for key in CONTENT_FIELDS)


@dataclass
class DeliveryResult:
    """Outcome of a delivery attempt."""

    ok: bool = True
    thread_ts: Optional[str] = None
    message: Optional[str] = None
    error: Optional[BaseException] = None
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "thread_ts": self.thread_ts,
            "message": self.message,
            "error_message": self.error_message,
        }
