"""
Wire-format grammars and format detection.

Each grammar is a module with ``initial_state()`` and a ``feed`` function that
maps new input (an envelope or text) to semantic events while updating the
state object the session owns. The engine picks a grammar once per session and
keeps the ``Format`` tag next to the session buffer.
"""

from __future__ import annotations

from enum import Enum
import re
from typing import Any

from ..exceptions import UnknownFormatError
from . import claude, items, raw, responses, transcript


class Format(str, Enum):
    """Wire formats understood by the engine."""

    # JSON family, grammar not yet chosen (no recognized envelope seen so far)
    JSON = "json"

    ITEMS = "items"
    RESPONSES = "responses"
    CLAUDE = "claude"
    TRANSCRIPT = "transcript"
    RAW = "raw"


JSON_GRAMMARS = {
    Format.ITEMS: items,
    Format.RESPONSES: responses,
    Format.CLAUDE: claude,
}

_SSE_PREFIXES = ("data:", "event:", "id:")
_HEADER_MARKER = "agent:"
_LEADING_MARKERS = ("{", *_SSE_PREFIXES, _HEADER_MARKER)


def detect_format(text: str, final: bool = False, strict: bool = False) -> Format | None:
    """
    Decide the wire format from the first text of a session.

    Args:
        text: All sanitized text received so far
        final: True when no more text will arrive for this turn
        strict: Raise instead of falling back to raw pass-through

    Returns:
        The detected format, or None while the text is still ambiguous

    Raises:
        UnknownFormatError: If ``strict`` and nothing matched
    """
    head = text.lstrip()
    if not head:
        return None

    lowered = head[: len(_HEADER_MARKER)].lower()
    if head.startswith("{") or head.startswith(_SSE_PREFIXES):
        return Format.JSON

    if lowered.startswith(_HEADER_MARKER):
        newline = head.find("\n")
        if newline < 0 and not final:
            return None
        first_line = head if newline < 0 else head[:newline]
        if transcript.HEADER_RE.match(first_line.strip()):
            return Format.TRANSCRIPT
    elif not final and any(
        marker.startswith(lowered) for marker in _LEADING_MARKERS if len(head) < len(marker)
    ):
        return None

    if strict:
        raise UnknownFormatError(f"Unrecognized stream format: {head[:80]!r}")
    return Format.RAW


_RESPONSE_TYPE_RE = re.compile(r"^response\.")
_ITEM_TYPES = {
    "thread.started",
    "turn.started",
    "turn.completed",
    "turn.failed",
    "item.started",
    "item.updated",
    "item.completed",
}
_CLAUDE_TYPES = {
    "system",
    "assistant",
    "user",
    "result",
    "stream_event",
    "message_start",
    "message_delta",
    "message_stop",
    "content_block_start",
    "content_block_delta",
    "content_block_stop",
    "tool_result",
}


def classify_envelope(envelope: Any) -> Format | None:
    """Pick the JSON grammar for an envelope, or None if its type is not recognized."""
    if not isinstance(envelope, dict):
        return None
    event_type = envelope.get("type")
    if not isinstance(event_type, str):
        return None
    if _RESPONSE_TYPE_RE.match(event_type):
        return Format.RESPONSES
    if event_type in _ITEM_TYPES:
        return Format.ITEMS
    if event_type in _CLAUDE_TYPES:
        return Format.CLAUDE
    return None


__all__ = [
    "JSON_GRAMMARS",
    "Format",
    "claude",
    "classify_envelope",
    "detect_format",
    "items",
    "raw",
    "responses",
    "transcript",
]
