"""Content validation run before any network call.

Every failure here raises ``InvalidArgumentsError``: retrying can never
fix the request, so the retry policy discards these immediately.
"""

from typing import Any, Optional, Sequence

from ..exceptions import InvalidArgumentsError
from ..utils.slack_format import is_blank
from .request import DeliveryRequest

NO_CONTENT_PROVIDED = "Must provide at least one of: text, blocks, attachments, or files"
INVALID_BLOCKS = "Provided blocks were invalid"
FILES_WITH_BLOCKS = "Cannot provide files with blocks"
FILES_WITH_ATTACHMENTS = "Cannot provide files with attachments"
FILES_WITH_ICON_EMOJI = "Cannot provide files with icon_emoji"


def blocks_valid(blocks: Optional[Sequence[Any]]) -> bool:
    """Every block must be a mapping with a ``type`` key.

    Keys have already been normalised to strings by the time a request is
    validated. Per-type block shapes are left for Slack to reject.
    """
    if is_blank(blocks):
        return False
    return all(isinstance(block, dict) and "type" in block for block in blocks)


def validate(request: DeliveryRequest) -> bool:
    """Validate a request.

    Returns:
        False when the request is an explicit blank text-only call, which is
        a deliberate no-op; True when the request should be delivered.

    Raises:
        InvalidArgumentsError: If the request can never be delivered.
    """
    if request.explicit_blank_text_only:
        return False

    if request.content_blank:
        raise InvalidArgumentsError(NO_CONTENT_PROVIDED)

    if not is_blank(request.blocks) and not blocks_valid(request.blocks):
        raise InvalidArgumentsError(INVALID_BLOCKS)

    if request.files:
        if not is_blank(request.blocks):
            raise InvalidArgumentsError(FILES_WITH_BLOCKS)
        if not is_blank(request.attachments):
            raise InvalidArgumentsError(FILES_WITH_ATTACHMENTS)
        if not is_blank(request.icon_emoji):
            raise InvalidArgumentsError(FILES_WITH_ICON_EMOJI)

    return True
