"""
Semantic events produced by the protocol grammars.

Grammars translate wire payloads into this small vocabulary; the reconciler is
the only consumer.
"""

from dataclasses import dataclass, field
from enum import Enum


class SemanticEventType(str, Enum):
    """Semantic event types."""

    # Working steps
    STEP_STARTED = "step-started"
    STEP_DELTA = "step-delta"
    STEP_COMPLETED = "step-completed"
    STEP_FAILED = "step-failed"

    # Text buffers
    THINKING_DELTA = "thinking-delta"
    ANSWER_DELTA = "answer-delta"
    ANSWER_FINAL = "answer-final"

    # Header and metadata fields (agent, command, model, ...)
    META_UPDATED = "meta-updated"

    # Usage
    TOKENS_USED = "tokens-used"

    # Terminal events
    FAILED = "failed"
    DONE = "done"


@dataclass(frozen=True)
class SemanticEvent:
    """Base class for all semantic events."""

    type: SemanticEventType = field(init=False)


@dataclass(frozen=True)
class StepStarted(SemanticEvent):
    """A working step was first seen."""

    id: str
    label: str
    type: SemanticEventType = field(default=SemanticEventType.STEP_STARTED, init=False)


@dataclass(frozen=True)
class StepDelta(SemanticEvent):
    """More detail text for a step."""

    id: str
    text_delta: str
    type: SemanticEventType = field(default=SemanticEventType.STEP_DELTA, init=False)


@dataclass(frozen=True)
class StepCompleted(SemanticEvent):
    """A step finished successfully."""

    id: str
    type: SemanticEventType = field(default=SemanticEventType.STEP_COMPLETED, init=False)


@dataclass(frozen=True)
class StepFailed(SemanticEvent):
    """A step finished with an error reported by the producer."""

    id: str
    message: str = ""
    type: SemanticEventType = field(default=SemanticEventType.STEP_FAILED, init=False)


@dataclass(frozen=True)
class ThinkingDelta(SemanticEvent):
    """Reasoning text to append."""

    text_delta: str
    type: SemanticEventType = field(default=SemanticEventType.THINKING_DELTA, init=False)


@dataclass(frozen=True)
class AnswerDelta(SemanticEvent):
    """Answer text to append."""

    text_delta: str
    type: SemanticEventType = field(default=SemanticEventType.ANSWER_DELTA, init=False)


@dataclass(frozen=True)
class AnswerFinal(SemanticEvent):
    """Authoritative answer text; replaces whatever was accumulated."""

    text: str
    type: SemanticEventType = field(default=SemanticEventType.ANSWER_FINAL, init=False)


@dataclass(frozen=True)
class MetaUpdated(SemanticEvent):
    """A header or metadata field became known."""

    key: str
    value: str
    type: SemanticEventType = field(default=SemanticEventType.META_UPDATED, init=False)


@dataclass(frozen=True)
class TokensUsed(SemanticEvent):
    """Total token count reported by the producer."""

    count: int
    type: SemanticEventType = field(default=SemanticEventType.TOKENS_USED, init=False)


@dataclass(frozen=True)
class Failed(SemanticEvent):
    """The turn failed; buffers freeze."""

    message: str
    type: SemanticEventType = field(default=SemanticEventType.FAILED, init=False)


@dataclass(frozen=True)
class Done(SemanticEvent):
    """The turn finished; buffers freeze."""

    type: SemanticEventType = field(default=SemanticEventType.DONE, init=False)
