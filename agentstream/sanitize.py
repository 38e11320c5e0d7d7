"""Chunk sanitizer: strips terminal control sequences from human-readable output."""

import re

# CSI sequences, OSC sequences (terminated by BEL or ST) and two-byte escapes.
ANSI_ESCAPE_RE = re.compile(
    r"\x1B\][^\x07\x1B]*(?:\x07|\x1B\\)"
    r"|\x1B\[[0-?]*[ -/]*[@-~]"
    r"|\x1B[@-Z\\-_]"
)
JSON_TYPE_MARKER = '"type"'


def looks_like_json(raw: str) -> bool:
    """Return True if the chunk should be passed through untouched."""
    return raw.strip().startswith("{") or JSON_TYPE_MARKER in raw


def strip_ansi(text: str) -> str:
    return ANSI_ESCAPE_RE.sub("", text.replace("\r", ""))


def sanitize(raw: str) -> str:
    """
    Clean one chunk before it is buffered.

    JSON-looking chunks are returned unmodified, since escape-like sequences
    inside quoted strings are payload. Everything else loses ANSI sequences and
    carriage returns. The check runs per chunk: a single process may interleave
    log lines with JSON lines.
    """
    if not raw:
        return ""
    if looks_like_json(raw):
        return raw
    return strip_ansi(raw)
