"""
Delta/response grammar.

``response.output_text.delta`` envelopes stream answer text; the
``response.completed`` payload is authoritative and replaces it;
``response.error`` fails the turn with the producer's own message.
"""

from __future__ import annotations

import logging
from typing import Any

from ..events import AnswerDelta, AnswerFinal, Failed, SemanticEvent

logger = logging.getLogger(__name__)

DELTA_TYPES = ("response.output_text.delta", "response.delta")
DEFAULT_ERROR_MESSAGE = "The agent reported an error."


def initial_state() -> None:
    """Responses are self-contained; nothing is carried between envelopes."""
    return None


def extract_delta_text(delta: Any) -> str:
    """Pull text out of the several shapes a delta payload can take."""
    if not delta:
        return ""
    if isinstance(delta, str):
        return delta
    if isinstance(delta, list):
        return "".join(extract_delta_text(part) for part in delta)
    if isinstance(delta, dict):
        if isinstance(delta.get("text"), str):
            return delta["text"]
        content = delta.get("content")
        if isinstance(content, list):
            return "".join(
                entry["text"]
                for entry in content
                if isinstance(entry, dict) and isinstance(entry.get("text"), str)
            )
        if isinstance(delta.get("delta"), str):
            return delta["delta"]
    return ""


def extract_response_text(response: Any) -> str | None:
    """
    Final answer text of a completed response.

    Prefers the first ``output_text`` block of ``response.output``; falls back
    to ``response.text`` and then to the concatenated text of all blocks.
    """
    if not isinstance(response, dict):
        return None
    output = response.get("output")
    blocks = [block for block in output if isinstance(block, dict)] if isinstance(output, list) else []

    for block in blocks:
        if block.get("type") == "output_text" and isinstance(block.get("text"), str):
            return block["text"]
        # Message-shaped blocks nest their output_text parts under "content".
        for part in block.get("content") or []:
            if (
                isinstance(part, dict)
                and part.get("type") == "output_text"
                and isinstance(part.get("text"), str)
            ):
                return part["text"]

    if isinstance(response.get("text"), str):
        return response["text"]

    joined = "".join(block["text"] for block in blocks if isinstance(block.get("text"), str))
    return joined or None


def feed(_state: None, envelope: Any) -> list[SemanticEvent]:
    """Translate one envelope into semantic events."""
    if not isinstance(envelope, dict):
        return []
    event_type = envelope.get("type")

    if event_type in DELTA_TYPES:
        text = extract_delta_text(envelope.get("delta"))
        if not text:
            return []
        return [AnswerDelta(text_delta=text)]

    if event_type == "response.completed":
        text = extract_response_text(envelope.get("response"))
        if text is None:
            return []
        return [AnswerFinal(text=text)]

    if event_type == "response.error":
        error = envelope.get("error")
        message = error.get("message") if isinstance(error, dict) else None
        formatted = f"Error: {message or DEFAULT_ERROR_MESSAGE}"
        return [AnswerFinal(text=formatted), Failed(message=formatted)]

    logger.debug("Ignoring %s event", event_type)
    return []
