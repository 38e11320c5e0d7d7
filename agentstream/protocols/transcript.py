"""
Plain-transcript grammar.

Line-oriented state machine over transcripts such as::

    Agent: codex | Command: how are you?
    [2025-09-04T00:48:13] OpenAI Codex v0.23.0 (research preview)
    --------
    model: gpt-5
    --------
    [2025-09-04T00:48:12]
    Working
    • Considering structured output
    [2025-09-04T00:48:17] thinking
    I will reply concisely.
    [2025-09-04T00:48:18] codex
    I'm doing well, thanks!
    [2025-09-04T00:48:19] tokens used: 5347

Only complete lines are interpreted; the trailing partial line waits for more
text (or for ``final=True``). The same state machine backs both the streaming
dispatcher and the batch parser, so their results agree by construction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
import re

from ..config import DEFAULT_AGENT_NAMES, DEFAULT_MAX_BUFFER_CHARS
from ..events import (
    AnswerDelta,
    Done,
    Failed,
    MetaUpdated,
    SemanticEvent,
    StepCompleted,
    StepFailed,
    StepStarted,
    ThinkingDelta,
    TokensUsed,
)
from ..exceptions import UnboundedBufferError

logger = logging.getLogger(__name__)

HEADER_RE = re.compile(r"^Agent:\s*([^|]+)\|\s*Command:\s*(.*)$", re.IGNORECASE)
RULE_RE = re.compile(r"^-{3,}$")
# Block openers carry an ISO timestamp; other bracketed lines ([docs](url), [1] ref) are text.
TIMESTAMP_RE = re.compile(r"^\[(\d{4}-\d{2}-\d{2}T[^\]]*)\]\s*(.*)$")
META_RE = re.compile(r"^([^:]+):\s*(.*)$")
TOKENS_RE = re.compile(r"^tokens used:\s*(\d[\d,]*)", re.IGNORECASE)
WORKING_RE = re.compile(r"^working\b", re.IGNORECASE)
THINKING_RE = re.compile(r"^thinking\b\s*(.*)$", re.IGNORECASE)
INSTRUCTIONS_RE = re.compile(r"^user instructions:\s*(.*)$", re.IGNORECASE)
ERROR_RE = re.compile(r"^(?:error:|❌)\s*(.*)$", re.IGNORECASE)
BULLET_RE = re.compile(r"^\s*[|│•*-]")
BULLET_PREFIX_RE = re.compile(r"^\s*(?:[|│]+\s*)?(?:[•*-]\s*)?")
SUCCESS_MARK = "✅"

WORKING_STEP_PREFIX = "working-"
ERROR_STEP_PREFIX = "error-"


class Phase(str, Enum):
    HEADER = "header"
    PREAMBLE = "preamble"
    META = "meta"
    BODY = "body"


class Block(str, Enum):
    NONE = "none"
    PENDING = "pending"
    WORKING = "working"
    THINKING = "thinking"
    ANSWER = "answer"
    INSTRUCTIONS = "instructions"
    OTHER = "other"


@dataclass
class TextCapture:
    """
    Emits captured text as deltas with leading and trailing blank lines removed.

    Blank lines are held back until a non-blank line follows them, so the
    concatenated deltas never end with a newline.
    """

    started: bool = False
    pending_blank: int = 0
    lines: list[str] = field(default_factory=list)

    def new_block(self) -> None:
        if self.started:
            self.pending_blank = max(self.pending_blank, 1)

    def add(self, line: str) -> str | None:
        line = line.rstrip()
        if not line.strip():
            if self.started:
                self.pending_blank += 1
            return None
        if not self.started:
            self.started = True
            delta = line
        else:
            delta = "\n" * (self.pending_blank + 1) + line
        self.pending_blank = 0
        self.lines.append(line)
        return delta

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


@dataclass
class TranscriptState:
    agent_names: tuple[str, ...] = DEFAULT_AGENT_NAMES
    max_chars: int = DEFAULT_MAX_BUFFER_CHARS
    phase: Phase = Phase.HEADER
    partial: str = ""

    agent: str | None = None
    command: str | None = None
    provider_line: str | None = None
    meta: dict[str, str] = field(default_factory=dict)
    # Metadata is only read between the first pair of rule lines.
    meta_closed: bool = False

    block: Block = Block.NONE
    thinking: TextCapture = field(default_factory=TextCapture)
    answer: TextCapture = field(default_factory=TextCapture)
    instructions: TextCapture = field(default_factory=TextCapture)

    working_count: int = 0
    open_step: str | None = None
    last_entry: str | None = None
    error_count: int = 0

    tokens_used: int | None = None
    error: str | None = None
    terminal: bool = False

    @property
    def user_instructions(self) -> str | None:
        return self.instructions.text or None


def initial_state(
    agent_names: tuple[str, ...] = DEFAULT_AGENT_NAMES,
    max_chars: int = DEFAULT_MAX_BUFFER_CHARS,
) -> TranscriptState:
    return TranscriptState(agent_names=tuple(name.lower() for name in agent_names), max_chars=max_chars)


def _is_agent_name(state: TranscriptState, text: str) -> bool:
    name = text.strip().lower()
    if state.agent and name == state.agent.lower():
        return True
    return name in state.agent_names


def _close_block(state: TranscriptState) -> list[SemanticEvent]:
    events: list[SemanticEvent] = []
    if state.open_step:
        events.append(StepCompleted(id=state.open_step))
        state.open_step = None
    state.last_entry = None
    state.block = Block.NONE
    return events


def _working_entry(state: TranscriptState, line: str) -> list[SemanticEvent]:
    entry = BULLET_PREFIX_RE.sub("", line, count=1).strip()
    if not entry or entry == state.last_entry:
        return []
    events: list[SemanticEvent] = []
    if state.open_step:
        events.append(StepCompleted(id=state.open_step))
    state.working_count += 1
    step_id = f"{WORKING_STEP_PREFIX}{state.working_count}"
    events.append(StepStarted(id=step_id, label=entry))
    state.open_step = step_id
    state.last_entry = entry
    return events


def _capture(state: TranscriptState, line: str) -> list[SemanticEvent]:
    if state.block == Block.THINKING:
        delta = state.thinking.add(line)
        return [ThinkingDelta(text_delta=delta)] if delta is not None else []
    if state.block == Block.ANSWER:
        delta = state.answer.add(line)
        return [AnswerDelta(text_delta=delta)] if delta is not None else []
    if state.block == Block.INSTRUCTIONS:
        state.instructions.add(line)
    return []


def _tokens(state: TranscriptState, raw_count: str) -> list[SemanticEvent]:
    events = _close_block(state)
    count = int(raw_count.replace(",", ""))
    state.tokens_used = count
    events.append(TokensUsed(count=count))
    if not state.terminal:
        state.terminal = True
        events.append(Failed(message=state.error) if state.error else Done())
    return events


def _error_marker(state: TranscriptState, message: str) -> list[SemanticEvent]:
    events = _close_block(state)
    message = message.strip() or "Agent reported an error"
    if state.error is None:
        state.error = f"Error: {message}"
    state.error_count += 1
    step_id = f"{ERROR_STEP_PREFIX}{state.error_count}"
    events.extend([StepStarted(id=step_id, label=message), StepFailed(id=step_id)])
    return events


def _open_block(state: TranscriptState, text: str) -> list[SemanticEvent]:
    """Classify a block by its first text and start it."""
    tokens = TOKENS_RE.match(text)
    if tokens:
        return _tokens(state, tokens.group(1))

    error = ERROR_RE.match(text)
    if error:
        return _error_marker(state, error.group(1))

    if WORKING_RE.match(text):
        state.block = Block.WORKING
        return []

    thinking = THINKING_RE.match(text)
    if thinking:
        state.block = Block.THINKING
        state.thinking.new_block()
        return _capture(state, thinking.group(1))

    instructions = INSTRUCTIONS_RE.match(text)
    if instructions:
        state.block = Block.INSTRUCTIONS
        state.instructions.new_block()
        return _capture(state, instructions.group(1))

    if _is_agent_name(state, text):
        state.block = Block.ANSWER
        state.answer.new_block()
        return []

    state.block = Block.OTHER
    return []


def _body_line(state: TranscriptState, line: str) -> list[SemanticEvent]:
    stripped = line.strip()

    stamp = TIMESTAMP_RE.match(stripped)
    if stamp:
        events = _close_block(state)
        rest = stamp.group(2).strip()
        if rest:
            events.extend(_open_block(state, rest))
        else:
            state.block = Block.PENDING
        return events

    tokens = TOKENS_RE.match(stripped)
    if tokens:
        return _tokens(state, tokens.group(1))
    if stripped.startswith("❌"):
        return _error_marker(state, stripped[1:])
    if stripped.startswith(SUCCESS_MARK):
        return _close_block(state)

    if state.block == Block.PENDING:
        if not stripped:
            return []
        return _open_block(state, stripped)

    if state.block == Block.NONE:
        if not stripped:
            return []
        if BULLET_RE.match(line):
            state.block = Block.WORKING
            return _working_entry(state, line)
        if WORKING_RE.match(stripped) or THINKING_RE.match(stripped):
            return _open_block(state, stripped)
        return []

    if state.block == Block.WORKING:
        if BULLET_RE.match(line):
            return _working_entry(state, line)
        if THINKING_RE.match(stripped):
            events = _close_block(state)
            events.extend(_open_block(state, stripped))
            return events
        return []

    if state.block == Block.OTHER:
        return []

    return _capture(state, line)


def _line(state: TranscriptState, line: str) -> list[SemanticEvent]:
    line = line.rstrip("\r")
    stripped = line.strip()

    if state.phase == Phase.HEADER:
        if not stripped:
            return []
        header = HEADER_RE.match(stripped)
        if header:
            state.agent = header.group(1).strip()
            state.command = header.group(2).strip()
            state.phase = Phase.PREAMBLE
            return [
                MetaUpdated(key="agent", value=state.agent),
                MetaUpdated(key="command", value=state.command),
            ]
        # No header: the whole text is body.
        state.phase = Phase.BODY

    if RULE_RE.match(stripped):
        if state.phase == Phase.META:
            state.phase = Phase.BODY
            state.meta_closed = True
            return []
        if state.block in (Block.THINKING, Block.ANSWER):
            # A markdown rule inside captured text
            return _capture(state, line)
        events = _close_block(state)
        if not state.meta_closed:
            state.phase = Phase.META
        return events

    if state.phase == Phase.PREAMBLE:
        stamp = TIMESTAMP_RE.match(stripped)
        if stamp and state.provider_line is None:
            rest = stamp.group(2).strip()
            if rest and not _is_known_block(state, rest):
                state.provider_line = rest
                return [MetaUpdated(key="provider", value=rest)]
        if stamp or WORKING_RE.match(stripped) or THINKING_RE.match(stripped):
            state.phase = Phase.BODY
            return _body_line(state, line)
        return []

    if state.phase == Phase.META:
        if TIMESTAMP_RE.match(stripped):
            # Closing rule missing; the body has started.
            state.phase = Phase.BODY
            state.meta_closed = True
            return _body_line(state, line)
        pair = META_RE.match(stripped)
        if pair:
            key, value = pair.group(1).strip(), pair.group(2).strip()
            state.meta[key] = value
            return [MetaUpdated(key=key, value=value)]
        return []

    return _body_line(state, line)


def _is_known_block(state: TranscriptState, text: str) -> bool:
    return bool(
        TOKENS_RE.match(text)
        or ERROR_RE.match(text)
        or WORKING_RE.match(text)
        or THINKING_RE.match(text)
        or INSTRUCTIONS_RE.match(text)
        or _is_agent_name(state, text)
    )


def _finish(state: TranscriptState) -> list[SemanticEvent]:
    events = _close_block(state)
    if state.error and not state.terminal:
        state.terminal = True
        events.append(Failed(message=state.error))
    return events


def feed(state: TranscriptState, text: str, final: bool = False) -> list[SemanticEvent]:
    """
    Consume transcript text.

    Args:
        state: Session grammar state, mutated in place
        text: Newly arrived text
        final: True when the turn has ended; flushes the trailing partial line

    Returns:
        Semantic events for every line completed by this text

    Raises:
        UnboundedBufferError: If a single line grows past the buffer bound
    """
    data = state.partial + text
    lines = data.split("\n")
    state.partial = lines.pop()
    events: list[SemanticEvent] = []
    for line in lines:
        events.extend(_line(state, line))

    if final:
        if state.partial:
            events.extend(_line(state, state.partial))
            state.partial = ""
        events.extend(_finish(state))
    elif len(state.partial) > state.max_chars:
        raise UnboundedBufferError(len(state.partial), state.max_chars)
    return events
