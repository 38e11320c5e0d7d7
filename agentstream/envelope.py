"""
Incremental JSON envelope reader.

Accumulates raw chunk text and extracts complete top-level JSON objects as
they become whole. The reader is an explicit resumable cursor rather than a
suspended generator: every ``push`` is one synchronous step that scans only
the newly arrived characters and returns the values completed by them.

Text between values is tolerated:

- whitespace and newlines
- SSE framing (``data:`` prefixes, ``event:``/``id:`` lines, ``:`` comments)
- the ``[DONE]`` end marker
- human-readable log lines, which are skipped up to their newline
"""

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from typing import Any

from .config import DEFAULT_MAX_BUFFER_CHARS
from .exceptions import MalformedEnvelopeError, UnboundedBufferError

logger = logging.getLogger(__name__)

SSE_DATA_PREFIX = "data:"
DONE_MARKER = "[DONE]"
_WAIT_MARKERS = (SSE_DATA_PREFIX, DONE_MARKER)


@dataclass
class EnvelopeCursor:
    """Per-session buffer plus the scan state of the value being read."""

    buffer: str = ""
    max_chars: int = DEFAULT_MAX_BUFFER_CHARS

    # Scan state, meaningful only while ``in_value`` is set.
    in_value: bool = False
    pos: int = 0
    depth: int = 0
    in_string: bool = False
    escaped: bool = False

    # Set while discarding a non-JSON line whose newline has not arrived yet.
    skipping_line: bool = False

    @property
    def pending(self) -> int:
        """Number of buffered characters not yet consumed."""
        return len(self.buffer)

    def _reset_scan(self) -> None:
        self.in_value = False
        self.pos = 0
        self.depth = 0
        self.in_string = False
        self.escaped = False


def _scan_value(cursor: EnvelopeCursor) -> int:
    """
    Continue scanning the value at the start of the buffer.

    Returns:
        Index just past the closing brace, or -1 if the value is still open
    """
    buf = cursor.buffer
    i = cursor.pos
    depth = cursor.depth
    in_string = cursor.in_string
    escaped = cursor.escaped
    end = -1

    while i < len(buf):
        c = buf[i]
        i += 1
        if in_string:
            if escaped:
                escaped = False
            elif c == "\\":
                escaped = True
            elif c == '"':
                in_string = False
        elif c == '"':
            in_string = True
        elif c == "{" or c == "[":
            depth += 1
        elif c == "}" or c == "]":
            depth -= 1
            if depth == 0:
                end = i
                break

    cursor.pos = i
    cursor.depth = depth
    cursor.in_string = in_string
    cursor.escaped = escaped
    return end


def _take_value(cursor: EnvelopeCursor, end: int) -> Any:
    fragment = cursor.buffer[:end]
    cursor.buffer = cursor.buffer[end:]
    cursor._reset_scan()
    try:
        return json.loads(fragment)
    except json.JSONDecodeError as e:
        raise MalformedEnvelopeError.from_fragment(fragment, e.msg) from e


def push(cursor: EnvelopeCursor, text: str) -> list[Any]:
    """
    Append text to the cursor and extract every value it completes.

    Args:
        cursor: Session cursor, mutated in place
        text: Newly arrived chunk text

    Returns:
        Decoded top-level values in arrival order (possibly empty)

    Raises:
        MalformedEnvelopeError: If a complete value fails to decode
        UnboundedBufferError: If unconsumed text exceeds ``cursor.max_chars``
    """
    if text:
        cursor.buffer += text
    values: list[Any] = []

    while True:
        if cursor.in_value:
            end = _scan_value(cursor)
            if end < 0:
                break
            values.append(_take_value(cursor, end))
            continue

        if cursor.skipping_line:
            newline = cursor.buffer.find("\n")
            if newline < 0:
                cursor.buffer = ""
                break
            cursor.buffer = cursor.buffer[newline + 1 :]
            cursor.skipping_line = False
            continue

        cursor.buffer = cursor.buffer.lstrip()
        head = cursor.buffer
        if not head:
            break

        if head[0] == "{":
            cursor.in_value = True
            continue

        if head.startswith(SSE_DATA_PREFIX):
            cursor.buffer = head[len(SSE_DATA_PREFIX) :]
            continue

        if head.startswith(DONE_MARKER):
            cursor.buffer = head[len(DONE_MARKER) :]
            continue

        if any(marker.startswith(head) for marker in _WAIT_MARKERS):
            # Could still become a prefix we understand.
            break

        logger.debug("Skipping non-JSON line: %s", head[:80])
        cursor.skipping_line = True

    if cursor.pending > cursor.max_chars:
        raise UnboundedBufferError(cursor.pending, cursor.max_chars)

    return values


def flush(cursor: EnvelopeCursor) -> None:
    """
    Close the cursor at the end of a turn.

    Raises:
        MalformedEnvelopeError: If the stream ended inside a value
    """
    leftover = cursor.buffer
    truncated = cursor.in_value
    cursor.buffer = ""
    cursor.skipping_line = False
    cursor._reset_scan()
    if truncated and leftover.strip():
        raise MalformedEnvelopeError.from_fragment(leftover, "stream ended inside a value")
