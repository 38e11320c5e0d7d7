"""
Batch transcript parser.

Runs the plain-transcript grammar over a complete transcript in one pass and
folds the result into a ``TranscriptDocument``. Streaming a transcript through
the engine goes through the same grammar and the same fold, so a finished
streamed session and a transcript loaded from storage agree.
"""

from __future__ import annotations

import logging

from .config import DEFAULT_AGENT_NAMES
from .events import Done
from .models import TranscriptDocument, TranscriptHeader, frozen_mapping
from .protocols import Format, transcript
from .reconciler import SessionState, fold
from .sanitize import strip_ansi

logger = logging.getLogger(__name__)


def parse_transcript(
    raw: str, agent_names: tuple[str, ...] = DEFAULT_AGENT_NAMES
) -> TranscriptDocument:
    """
    Parse one complete plain-text transcript.

    Args:
        raw: Full transcript text (terminal escapes are removed first)
        agent_names: Block names that start answer capture besides the header agent

    Returns:
        Parsed document; free text that matches nothing yields an empty document
    """
    text = strip_ansi(raw)
    grammar = transcript.initial_state(agent_names=agent_names)
    events = transcript.feed(grammar, text, final=True)

    view_state = SessionState(session_id="transcript", format=Format.TRANSCRIPT.value)
    for event in [*events, Done()]:
        fold(view_state, event)
    view = view_state.snapshot()

    working = tuple(
        step.label for step in view.steps if step.id.startswith(transcript.WORKING_STEP_PREFIX)
    )
    document = TranscriptDocument(
        header=TranscriptHeader(agent=grammar.agent, command=grammar.command),
        meta=frozen_mapping(grammar.meta),
        working=working,
        thinking=view.thinking,
        answer=view.answer,
        tokens_used=view.tokens_used,
        success=view.success is not False,
        provider_line=grammar.provider_line,
        user_instructions=grammar.user_instructions,
        error=view.error,
    )
    if not document.is_structured:
        logger.debug("Transcript matched no known structure (%d chars)", len(text))
    return document
