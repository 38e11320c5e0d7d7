"""
agentstream - incremental parser for command-line agent output.

Turns chunked stdout of Codex, Claude and other CLI agents into a continuously
updated session view, and parses finished plain-text transcripts.
"""

__version__ = "0.1.0"

from .batch import parse_transcript
from .config import EngineConfig
from .engine import Chunk, StreamEngine
from .exceptions import (
    AgentStreamError,
    ConfigError,
    MalformedEnvelopeError,
    SourceError,
    UnboundedBufferError,
    UnknownFormatError,
    UpstreamFailureError,
)
from .models import SessionView, Step, StepStatus, TranscriptDocument, TranscriptHeader
from .protocols import Format, detect_format
from .sanitize import sanitize

__all__ = [
    "AgentStreamError",
    "Chunk",
    "ConfigError",
    # Configuration
    "EngineConfig",
    "Format",
    "MalformedEnvelopeError",
    "SessionView",
    "SourceError",
    "Step",
    "StepStatus",
    # Main entry points
    "StreamEngine",
    "TranscriptDocument",
    "TranscriptHeader",
    "UnboundedBufferError",
    "UnknownFormatError",
    "UpstreamFailureError",
    "detect_format",
    "parse_transcript",
    "sanitize",
]
