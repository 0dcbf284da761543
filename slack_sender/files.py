"""File handling for Slack uploads.

``FileWrapper`` normalises a caller-supplied file (bytes, text, a path or
any object with ``read()``) into bytes plus a filename.
``MultiFileWrapper`` does the same for one-or-many files.

``FileUploader`` uploads files to Slack's servers without sharing them,
returning file ids that can be shared later with
``files_completeUploadExternal``.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import aiohttp
import structlog
from slack_sdk.web.async_client import AsyncWebClient

from .exceptions import FileUploadError

logger = structlog.get_logger()


class FileWrapper:
    """A single file read into memory for upload."""

    def __init__(self, content: bytes, filename: str, index: int) -> None:
        self.content = content
        self.filename = filename
        self.index = index

    @classmethod
    def wrap(cls, obj: Any, index: int) -> "FileWrapper":
        """Wrap a file-like object, path, bytes or text at position ``index``."""
        if isinstance(obj, FileWrapper):
            return cls(obj.content, obj.filename, index)

        filename: Optional[str] = None

        if isinstance(obj, (bytes, bytearray)):
            content = bytes(obj)
        elif isinstance(obj, Path) or (isinstance(obj, str) and _is_file_path(obj)):
            path = Path(obj)
            content = path.read_bytes()
            filename = path.name
        elif isinstance(obj, str):
            content = obj.encode("utf-8")
        elif hasattr(obj, "read"):
            data = obj.read()
            content = data.encode("utf-8") if isinstance(data, str) else bytes(data)
            filename = _filename_from(obj)
        else:
            raise TypeError(f"Cannot upload object of type {type(obj).__name__}")

        return cls(content, filename or f"attachment {index + 1}", index)

    def to_upload(self) -> Dict[str, Any]:
        """Item for ``files_upload_v2(file_uploads=...)``."""
        return {"file": self.content, "filename": self.filename, "title": self.filename}

    def __repr__(self) -> str:
        return (
            f"FileWrapper(filename={self.filename!r}, index={self.index}, "
            f"size={len(self.content)})"
        )


def _is_file_path(value: str) -> bool:
    return "\x00" not in value and len(value) < 4096 and os.path.isfile(value)


def _filename_from(obj: Any) -> Optional[str]:
    for attr in ("filename", "original_filename", "name"):
        value = getattr(obj, attr, None)
        if isinstance(value, str) and value and not value.startswith("<"):
            return os.path.basename(value)
    return None


def _is_file_like(obj: Any) -> bool:
    return isinstance(obj, (bytes, bytearray, str, Path)) or hasattr(obj, "read")


class MultiFileWrapper:
    """Normalise one file or a sequence of files into ``FileWrapper``s."""

    def __init__(self, raw_files: Any) -> None:
        if raw_files is None:
            files: Sequence[Any] = []
        elif _is_file_like(raw_files) or isinstance(raw_files, FileWrapper):
            files = [raw_files]
        else:
            files = list(raw_files)

        self.files: List[FileWrapper] = [
            FileWrapper.wrap(f, i) for i, f in enumerate(files)
        ]

    @property
    def total_file_size(self) -> int:
        return sum(len(f.content) for f in self.files)


class FileUploader:
    """Uploads files to Slack's servers without sharing them to a channel."""

    def __init__(self, client: AsyncWebClient, raw_files: Any) -> None:
        self.client = client
        self.files = MultiFileWrapper(raw_files).files

    async def upload_to_slack(self) -> List[Dict[str, str]]:
        """Upload every file, returning ``[{"id": ..., "title": ...}]``.

        Raises:
            SlackApiError: If Slack refuses to issue an upload URL.
            FileUploadError: If posting the content to the upload URL fails.
        """
        uploaded: List[Dict[str, str]] = []
        async with aiohttp.ClientSession() as session:
            for file in self.files:
                response = await self.client.files_getUploadURLExternal(
                    filename=file.filename,
                    length=len(file.content),
                )
                await self._upload_file_content(
                    session, response["upload_url"], file.content
                )
                uploaded.append({"id": response["file_id"], "title": file.filename})

        logger.debug(
            "Uploaded files to Slack",
            count=len(uploaded),
            total_bytes=sum(len(f.content) for f in self.files),
        )
        return uploaded

    async def share(
        self,
        file_refs: List[Dict[str, str]],
        channel: str,
        initial_comment: Optional[str] = None,
    ) -> Any:
        """Share previously uploaded files to a channel."""
        kwargs: Dict[str, Any] = {"files": file_refs, "channel_id": channel}
        if initial_comment:
            kwargs["initial_comment"] = initial_comment
        return await self.client.files_completeUploadExternal(**kwargs)

    async def _upload_file_content(
        self, session: aiohttp.ClientSession, upload_url: str, content: bytes
    ) -> None:
        async with session.post(upload_url, data=content) as response:
            if 200 <= response.status < 300:
                return
            body = await response.text()
            raise FileUploadError(
                f"Failed to upload file to Slack: {response.status} - {body}"
            )
