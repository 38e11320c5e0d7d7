"""
Engine configuration.

Values resolve in the order: explicit argument, environment variable, default.
"""

from __future__ import annotations

from dataclasses import dataclass
import os

from .exceptions import ConfigError

DEFAULT_MAX_BUFFER_CHARS = 4 * 1024 * 1024
DEFAULT_AGENT_NAMES: tuple[str, ...] = ("codex", "claude", "gemini")
DEFAULT_STREAM_EVENT = "cli-stream"
DEFAULT_ERROR_EVENT = "cli-error"

MAX_BUFFER_ENV = "AGENTSTREAM_MAX_BUFFER_CHARS"
AGENT_NAMES_ENV = "AGENTSTREAM_AGENT_NAMES"


@dataclass(frozen=True)
class EngineConfig:
    """Settings shared by every session of one engine."""

    max_buffer_chars: int = DEFAULT_MAX_BUFFER_CHARS
    agent_names: tuple[str, ...] = DEFAULT_AGENT_NAMES
    stream_event: str = DEFAULT_STREAM_EVENT
    error_event: str = DEFAULT_ERROR_EVENT

    def __post_init__(self) -> None:
        if self.max_buffer_chars <= 0:
            raise ConfigError(f"max_buffer_chars must be positive, got {self.max_buffer_chars}")
        if not self.agent_names:
            raise ConfigError("agent_names must not be empty")

    @classmethod
    def from_env(
        cls,
        max_buffer_chars: int | None = None,
        agent_names: tuple[str, ...] | None = None,
        **kwargs: str,
    ) -> EngineConfig:
        """
        Build a config from explicit values, falling back to environment variables.

        Args:
            max_buffer_chars: Safety bound for unparsed text per session. If not
                provided, uses AGENTSTREAM_MAX_BUFFER_CHARS or the default
            agent_names: Names whose transcript blocks hold the answer. If not
                provided, uses comma-separated AGENTSTREAM_AGENT_NAMES or the default
            **kwargs: Remaining fields passed through unchanged

        Raises:
            ConfigError: If an environment value cannot be parsed
        """
        if max_buffer_chars is None:
            raw_limit = os.getenv(MAX_BUFFER_ENV)
            if raw_limit:
                try:
                    max_buffer_chars = int(raw_limit.replace("_", ""))
                except ValueError as e:
                    raise ConfigError(
                        f"{MAX_BUFFER_ENV} must be an integer, got {raw_limit!r}"
                    ) from e
            else:
                max_buffer_chars = DEFAULT_MAX_BUFFER_CHARS

        if agent_names is None:
            raw_names = os.getenv(AGENT_NAMES_ENV)
            if raw_names:
                agent_names = tuple(
                    name.strip().lower() for name in raw_names.split(",") if name.strip()
                )
            else:
                agent_names = DEFAULT_AGENT_NAMES

        return cls(max_buffer_chars=max_buffer_chars, agent_names=agent_names, **kwargs)
