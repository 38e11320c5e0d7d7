"""Pass-through grammar for streams that match no known format."""

from __future__ import annotations

from ..events import AnswerDelta, SemanticEvent


def initial_state() -> None:
    """Raw pass-through keeps no per-session state."""
    return None


def feed(_state: None, text: str) -> list[SemanticEvent]:
    """Surface sanitized text verbatim as answer text."""
    if not text:
        return []
    return [AnswerDelta(text_delta=text)]
