"""
Session reconciler.

Folds semantic events into a per-session view model and returns an immutable
``SessionView`` snapshot after every update, so the UI can render while the
stream is still arriving.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
import logging

from .events import (
    AnswerDelta,
    AnswerFinal,
    Done,
    Failed,
    MetaUpdated,
    SemanticEvent,
    StepCompleted,
    StepDelta,
    StepFailed,
    StepStarted,
    ThinkingDelta,
    TokensUsed,
)
from .models import SessionView, Step, StepStatus, frozen_mapping

logger = logging.getLogger(__name__)


@dataclass
class _StepState:
    id: str
    label: str
    status: StepStatus
    detail_parts: list[str] = field(default_factory=list)

    def advance(self, status: StepStatus) -> None:
        if self.status.is_terminal:
            return
        if status.rank > self.status.rank:
            self.status = status

    def freeze(self) -> Step:
        detail = "".join(self.detail_parts) if self.detail_parts else None
        return Step(id=self.id, label=self.label, status=self.status, detail=detail)


@dataclass
class SessionState:
    """Mutable accumulator behind one session's view."""

    session_id: str
    format: str | None = None
    steps: list[_StepState] = field(default_factory=list)
    step_index: dict[str, _StepState] = field(default_factory=dict)
    thinking_parts: list[str] = field(default_factory=list)
    answer: str = ""
    tokens_used: int | None = None
    success: bool | None = None
    error: str | None = None
    meta: dict[str, str] = field(default_factory=dict)
    frozen: bool = False

    def snapshot(self) -> SessionView:
        return SessionView(
            session_id=self.session_id,
            steps=tuple(step.freeze() for step in self.steps),
            thinking="".join(self.thinking_parts),
            answer=self.answer,
            tokens_used=self.tokens_used,
            success=self.success,
            is_streaming=not self.frozen,
            format=self.format,
            error=self.error,
            meta=frozen_mapping(self.meta),
        )


def fold(state: SessionState, event: SemanticEvent) -> None:
    """Apply one event to the session state in place."""
    if state.frozen:
        logger.debug("Ignoring %s for finished session %s", event.type.value, state.session_id)
        return

    if isinstance(event, StepStarted):
        if event.id in state.step_index:
            return
        step = _StepState(id=event.id, label=event.label, status=StepStatus.IN_PROGRESS)
        state.steps.append(step)
        state.step_index[event.id] = step

    elif isinstance(event, StepDelta):
        step = state.step_index.get(event.id)
        if step is None:
            logger.debug("Delta for unknown step %s", event.id)
            return
        if step.status.is_terminal:
            return
        step.detail_parts.append(event.text_delta)
        step.advance(StepStatus.IN_PROGRESS)

    elif isinstance(event, StepCompleted | StepFailed):
        step = state.step_index.get(event.id)
        if step is None:
            logger.debug("Completion for unknown step %s", event.id)
            return
        if isinstance(event, StepFailed):
            if event.message and not step.status.is_terminal:
                step.detail_parts.append(event.message)
            step.advance(StepStatus.FAILED)
        else:
            step.advance(StepStatus.COMPLETED)

    elif isinstance(event, ThinkingDelta):
        state.thinking_parts.append(event.text_delta)

    elif isinstance(event, AnswerDelta):
        state.answer += event.text_delta

    elif isinstance(event, AnswerFinal):
        state.answer = event.text

    elif isinstance(event, MetaUpdated):
        state.meta[event.key] = event.value

    elif isinstance(event, TokensUsed):
        state.tokens_used = event.count

    elif isinstance(event, Failed):
        state.success = False
        state.error = event.message
        state.frozen = True

    elif isinstance(event, Done):
        if state.success is not False:
            state.success = True
        state.frozen = True


class SessionReconciler:
    """
    Keeps one view state per session id.

    Sessions never share state; removing a session's entry is all it takes to
    abandon it.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, SessionState] = {}

    def start(self, session_id: str, format: str | None = None) -> SessionState:
        """Begin a new turn for the session, replacing any previous view."""
        state = SessionState(session_id=session_id, format=format)
        self._sessions[session_id] = state
        return state

    def set_format(self, session_id: str, format: str) -> None:
        state = self._sessions.get(session_id) or self.start(session_id)
        state.format = format

    def apply(self, session_id: str, events: Iterable[SemanticEvent]) -> SessionView:
        """
        Fold events into the session's view.

        Args:
            session_id: Session identifier
            events: Events in production order

        Returns:
            Snapshot of the session after all events are applied
        """
        state = self._sessions.get(session_id)
        if state is None:
            state = self.start(session_id)
        for event in events:
            fold(state, event)
        return state.snapshot()

    def view(self, session_id: str) -> SessionView | None:
        """Current snapshot for the session, if any."""
        state = self._sessions.get(session_id)
        return state.snapshot() if state else None

    def is_frozen(self, session_id: str) -> bool:
        state = self._sessions.get(session_id)
        return bool(state and state.frozen)

    def discard(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def reset(self) -> None:
        """Forget every session."""
        self._sessions.clear()

    def session_ids(self) -> list[str]:
        return list(self._sessions)
