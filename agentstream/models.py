"""Immutable view models handed to the UI layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping


class StepStatus(str, Enum):
    """Status of a working step. Transitions only move forward."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]

    @property
    def is_terminal(self) -> bool:
        return self in (StepStatus.COMPLETED, StepStatus.FAILED)


_STATUS_RANK = {
    StepStatus.PENDING: 0,
    StepStatus.IN_PROGRESS: 1,
    StepStatus.COMPLETED: 2,
    StepStatus.FAILED: 2,
}


def frozen_mapping(data: Mapping[str, str] | None) -> Mapping[str, str]:
    return MappingProxyType(dict(data or {}))


@dataclass(frozen=True)
class Step:
    """One working step, in first-seen order."""

    id: str
    label: str
    status: StepStatus = StepStatus.PENDING
    detail: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "detail": self.detail,
            "status": self.status.value,
        }


@dataclass(frozen=True)
class SessionView:
    """Snapshot of one session's turn, recomputed after every chunk."""

    session_id: str
    steps: tuple[Step, ...] = ()
    thinking: str = ""
    answer: str = ""
    tokens_used: int | None = None
    success: bool | None = None
    is_streaming: bool = True
    format: str | None = None
    error: str | None = None
    meta: Mapping[str, str] = field(default_factory=lambda: frozen_mapping(None))

    def step(self, step_id: str) -> Step | None:
        """Find a step by id."""
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    @property
    def failed(self) -> bool:
        return self.success is False

    def to_dict(self) -> dict[str, Any]:
        """Serialize to plain JSON-compatible types."""
        return {
            "session_id": self.session_id,
            "steps": [step.to_dict() for step in self.steps],
            "thinking": self.thinking,
            "answer": self.answer,
            "tokens_used": self.tokens_used,
            "success": self.success,
            "is_streaming": self.is_streaming,
            "format": self.format,
            "error": self.error,
            "meta": dict(self.meta),
        }


@dataclass(frozen=True)
class TranscriptHeader:
    """The ``Agent: <agent> | Command: <command>`` line."""

    agent: str | None = None
    command: str | None = None


@dataclass(frozen=True)
class TranscriptDocument:
    """Result of parsing one complete plain-text transcript."""

    header: TranscriptHeader = field(default_factory=TranscriptHeader)
    meta: Mapping[str, str] = field(default_factory=lambda: frozen_mapping(None))
    working: tuple[str, ...] = ()
    thinking: str = ""
    answer: str = ""
    tokens_used: int | None = None
    success: bool = True
    provider_line: str | None = None
    user_instructions: str | None = None
    error: str | None = None

    @property
    def is_structured(self) -> bool:
        """True if anything beyond free text was recognized."""
        return bool(
            self.header.agent
            or self.meta
            or self.answer
            or self.thinking
            or self.tokens_used is not None
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to plain JSON-compatible types."""
        return {
            "header": {"agent": self.header.agent, "command": self.header.command},
            "meta": dict(self.meta),
            "working": list(self.working),
            "thinking": self.thinking,
            "answer": self.answer,
            "tokens_used": self.tokens_used,
            "success": self.success,
            "provider_line": self.provider_line,
            "user_instructions": self.user_instructions,
            "error": self.error,
        }
