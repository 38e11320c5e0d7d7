"""
Exception classes for agentstream.

Every failure inside one session's fold is one of these. The engine catches
them at its boundary and turns them into a failed ``SessionView``.
"""

from typing import Any


class AgentStreamError(Exception):
    """Base exception for all agentstream errors."""

    def __init__(self, message: str, code: str | None = None, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class UnboundedBufferError(AgentStreamError):
    """Raised when buffered text grows past the safety bound without completing a value."""

    def __init__(self, buffered: int, limit: int, **kwargs: Any) -> None:
        message = (
            f"Parse error: {buffered} buffered characters without a complete value "
            f"(limit {limit})"
        )
        super().__init__(message, code="unbounded_buffer", **kwargs)
        self.buffered = buffered
        self.limit = limit


class MalformedEnvelopeError(AgentStreamError):
    """Raised when a structurally complete value is not valid JSON."""

    def __init__(self, message: str, fragment: str = "", **kwargs: Any) -> None:
        super().__init__(message, code="malformed_envelope", **kwargs)
        self.fragment = fragment

    @classmethod
    def from_fragment(cls, fragment: str, reason: str) -> "MalformedEnvelopeError":
        """Create error for an undecodable fragment, keeping a short preview."""
        preview = fragment[:200]
        return cls(f"Parse error: malformed JSON envelope ({reason}): {preview}", fragment)


class UnknownFormatError(AgentStreamError):
    """Raised when text matches none of the known wire formats."""

    def __init__(self, message: str = "Unrecognized stream format", **kwargs: Any) -> None:
        super().__init__(message, code="unknown_format", **kwargs)


class UpstreamFailureError(AgentStreamError):
    """Raised when the producing agent itself reports an error."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(message, code="upstream_failure", **kwargs)


class ConfigError(AgentStreamError):
    """Raised when configuration values are invalid."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(message, code="config_error", **kwargs)


class SourceError(AgentStreamError):
    """Raised when a chunk source cannot be read."""

    def __init__(self, message: str, source: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, code="source_error", **kwargs)
        self.source = source
