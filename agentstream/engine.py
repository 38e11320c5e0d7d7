"""
Stream engine: turns transport chunks into session views.

Usage:
    engine = StreamEngine()
    view = engine.feed(Chunk(session_id="s1", content='{"type": ...}', finished=False))
    print(view.answer)

Each chunk is one synchronous fold step. Sessions are independent: every
session id owns its own parse state and view, and a failure in one session is
contained in that session's view.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import logging
from typing import Any

from .config import EngineConfig
from .envelope import EnvelopeCursor, flush, push
from .events import Done, Failed, SemanticEvent
from .exceptions import AgentStreamError, UnboundedBufferError, UpstreamFailureError
from .models import SessionView
from .protocols import JSON_GRAMMARS, Format, classify_envelope, detect_format, raw, transcript
from .reconciler import SessionReconciler
from .sanitize import sanitize

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]
Subscribe = Callable[[str, Handler], Any]
Sink = Callable[[SessionView], None]


@dataclass(frozen=True)
class Chunk:
    """One delivery unit of raw text for a session."""

    session_id: str
    content: str
    finished: bool = False

    @classmethod
    def from_payload(cls, payload: Any) -> Chunk:
        """Build from a transport payload (dict or object with ``payload``)."""
        data = _unwrap_payload(payload)
        session_id = data.get("session_id", data.get("sessionId"))
        if session_id is None:
            raise ValueError("Chunk payload has no session id")
        return cls(
            session_id=str(session_id),
            content=data.get("content") or "",
            finished=bool(data.get("finished", False)),
        )


def _unwrap_payload(payload: Any) -> dict[str, Any]:
    data = getattr(payload, "payload", payload)
    if isinstance(data, dict) and isinstance(data.get("payload"), dict):
        # Event envelope delivered as a plain mapping
        data = data["payload"]
    if not isinstance(data, dict):
        raise ValueError(f"Unsupported payload type: {type(data).__name__}")
    return data


@dataclass
class _ParseState:
    """Per-session parse state; never shared between sessions."""

    format: Format | None = None
    pending: str = ""
    cursor: EnvelopeCursor | None = None
    grammar_state: Any = None
    failed: bool = False
    skipped: int = 0


class StreamEngine:
    """
    Incremental multi-protocol parser and reconciler.

    Call ``feed`` (or ``on_chunk`` with a transport payload) for every chunk in
    delivery order; each call returns the session's current ``SessionView``.
    """

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or EngineConfig.from_env()
        self.reconciler = SessionReconciler()
        self._sessions: dict[str, _ParseState] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def feed(self, chunk: Chunk) -> SessionView:
        """Process one chunk and return the updated view of its session."""
        session_id = chunk.session_id
        state = self._sessions.get(session_id)
        if state is None:
            state = _ParseState()
            self._sessions[session_id] = state
            self.reconciler.start(session_id)

        events: list[SemanticEvent] = []
        if state.failed:
            state.skipped += len(chunk.content)
        else:
            try:
                self._parse(session_id, state, sanitize(chunk.content), chunk.finished, events)
            except AgentStreamError as e:
                logger.warning("Session %s failed: %s", session_id, e.message)
                state.failed = True
                events.append(Failed(message=e.message))
            else:
                if any(isinstance(event, Failed) for event in events):
                    logger.debug("Session %s reported failure; ignoring the rest of the turn", session_id)
                    state.failed = True

        if chunk.finished:
            events.append(Done())
            if state.skipped:
                logger.debug("Session %s dropped %d chars after failure", session_id, state.skipped)
            del self._sessions[session_id]
        elif state.failed:
            # Release buffered text; nothing more will be parsed this turn.
            state.pending = ""
            state.cursor = None
            state.grammar_state = None

        return self.reconciler.apply(session_id, events)

    def on_chunk(self, payload: Any) -> SessionView:
        """Transport handler for stream events."""
        return self.feed(Chunk.from_payload(payload))

    def on_error(self, payload: Any) -> SessionView:
        """
        Transport handler for the error channel.

        Accepts ``{"session_id" | "sessionId": ..., "message": ...}``.
        """
        data = _unwrap_payload(payload)
        session_id = str(data.get("session_id", data.get("sessionId", "")))
        error = UpstreamFailureError(str(data.get("message") or "Agent process failed"))
        state = self._sessions.get(session_id)
        if state is None:
            if self.reconciler.view(session_id) is None:
                self.reconciler.start(session_id)
        else:
            state.failed = True
            state.pending = ""
            state.cursor = None
            state.grammar_state = None
        logger.warning("Session %s reported error: %s", session_id, error.message[:200])
        return self.reconciler.apply(session_id, [Failed(message=error.message)])

    def attach(self, subscribe: Subscribe, sink: Sink | None = None) -> list[Any]:
        """
        Subscribe to a transport.

        Args:
            subscribe: Function ``subscribe(event_name, handler)``
            sink: Receives every view produced by the handlers

        Returns:
            Whatever ``subscribe`` returned for each subscription (unlisten handles)
        """

        def _stream_handler(payload: Any) -> None:
            try:
                view = self.on_chunk(payload)
            except ValueError as e:
                logger.warning("Dropping malformed chunk payload: %s", e)
                return
            if sink:
                sink(view)

        def _error_handler(payload: Any) -> None:
            try:
                view = self.on_error(payload)
            except ValueError as e:
                logger.warning("Dropping malformed error payload: %s", e)
                return
            if sink:
                sink(view)

        return [
            subscribe(self.config.stream_event, _stream_handler),
            subscribe(self.config.error_event, _error_handler),
        ]

    def view(self, session_id: str) -> SessionView | None:
        return self.reconciler.view(session_id)

    def format_of(self, session_id: str) -> Format | None:
        state = self._sessions.get(session_id)
        return state.format if state else None

    def active_sessions(self) -> list[str]:
        """Session ids with an open (unfinished) turn."""
        return list(self._sessions)

    def discard(self, session_id: str) -> None:
        """Abandon a session: drop its buffer and its view."""
        self._sessions.pop(session_id, None)
        self.reconciler.discard(session_id)

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def _parse(
        self,
        session_id: str,
        state: _ParseState,
        text: str,
        final: bool,
        events: list[SemanticEvent],
    ) -> None:
        """Parse sanitized text, appending events as they are produced."""
        if state.format is None:
            state.pending += text
            detected = detect_format(state.pending, final=final)
            if detected is None:
                if len(state.pending) > self.config.max_buffer_chars:
                    raise UnboundedBufferError(len(state.pending), self.config.max_buffer_chars)
                return
            text, state.pending = state.pending, ""
            self._select(state, detected)
            self.reconciler.set_format(session_id, detected.value)

        if state.format == Format.TRANSCRIPT:
            events.extend(transcript.feed(state.grammar_state, text, final=final))
            return

        if state.format == Format.RAW:
            events.extend(raw.feed(state.grammar_state, text))
            return

        assert state.cursor is not None
        if state.format == Format.JSON:
            # Kept until the first envelope picks a grammar, in case none does.
            state.pending += text
        for envelope in push(state.cursor, text):
            if state.format == Format.JSON and not self._classify(session_id, state, envelope):
                self._pass_through(session_id, state, events)
                return
            events.extend(JSON_GRAMMARS[state.format].feed(state.grammar_state, envelope))
        if state.format == Format.JSON and len(state.pending) > self.config.max_buffer_chars:
            raise UnboundedBufferError(len(state.pending), self.config.max_buffer_chars)
        if final:
            if state.format == Format.JSON and not state.cursor.in_value and state.pending.strip():
                # Only framing or log lines arrived; show them rather than nothing.
                self._pass_through(session_id, state, events)
                return
            flush(state.cursor)

    def _select(self, state: _ParseState, detected: Format) -> None:
        state.format = detected
        if detected == Format.TRANSCRIPT:
            state.grammar_state = transcript.initial_state(
                agent_names=self.config.agent_names, max_chars=self.config.max_buffer_chars
            )
        elif detected == Format.RAW:
            state.grammar_state = raw.initial_state()
        else:
            state.cursor = EnvelopeCursor(max_chars=self.config.max_buffer_chars)

    def _classify(self, session_id: str, state: _ParseState, envelope: Any) -> bool:
        """Pick the JSON grammar from the first envelope's shape."""
        detected = classify_envelope(envelope)
        if detected is None:
            return False
        state.format = detected
        state.pending = ""
        state.grammar_state = JSON_GRAMMARS[detected].initial_state()
        self.reconciler.set_format(session_id, detected.value)
        return True

    def _pass_through(self, session_id: str, state: _ParseState, events: list[SemanticEvent]) -> None:
        """Show a JSON stream of unknown shape verbatim, from its first character."""
        logger.debug("Session %s: first envelope has no known type, passing output through", session_id)
        text, state.pending = state.pending, ""
        state.cursor = None
        self._select(state, Format.RAW)
        self.reconciler.set_format(session_id, Format.RAW.value)
        events.extend(raw.feed(state.grammar_state, text))
