"""Unit tests for engine configuration."""

import os

import pytest

from agentstream.config import (
    AGENT_NAMES_ENV,
    DEFAULT_AGENT_NAMES,
    DEFAULT_ERROR_EVENT,
    DEFAULT_MAX_BUFFER_CHARS,
    DEFAULT_STREAM_EVENT,
    MAX_BUFFER_ENV,
    EngineConfig,
)
from agentstream.exceptions import ConfigError


@pytest.mark.unit
class TestEngineConfig:
    """Test cases for EngineConfig."""

    def test_defaults(self):
        """Test default values without environment."""
        config = EngineConfig.from_env()

        assert config.max_buffer_chars == DEFAULT_MAX_BUFFER_CHARS
        assert config.agent_names == DEFAULT_AGENT_NAMES
        assert config.stream_event == DEFAULT_STREAM_EVENT
        assert config.error_event == DEFAULT_ERROR_EVENT

    def test_environment_values(self):
        """Test values read from environment variables."""
        os.environ[MAX_BUFFER_ENV] = "1_000"
        os.environ[AGENT_NAMES_ENV] = "Codex, aider ,"

        config = EngineConfig.from_env()

        assert config.max_buffer_chars == 1000
        assert config.agent_names == ("codex", "aider")

    def test_explicit_values_win(self):
        """Test explicit arguments override the environment."""
        os.environ[MAX_BUFFER_ENV] = "1000"
        os.environ[AGENT_NAMES_ENV] = "aider"

        config = EngineConfig.from_env(max_buffer_chars=50, agent_names=("goose",), stream_event="out")

        assert config.max_buffer_chars == 50
        assert config.agent_names == ("goose",)
        assert config.stream_event == "out"

    def test_invalid_environment_value(self):
        """Test a non-integer bound raises ConfigError."""
        os.environ[MAX_BUFFER_ENV] = "lots"

        with pytest.raises(ConfigError) as exc_info:
            EngineConfig.from_env()

        assert MAX_BUFFER_ENV in exc_info.value.message
        assert exc_info.value.code == "config_error"

    @pytest.mark.parametrize("limit", [0, -1])
    def test_non_positive_bound(self, limit):
        """Test the buffer bound must be positive."""
        with pytest.raises(ConfigError):
            EngineConfig(max_buffer_chars=limit)

    def test_empty_agent_names(self):
        """Test at least one agent name is required."""
        with pytest.raises(ConfigError):
            EngineConfig(agent_names=())

    def test_frozen(self):
        """Test configs cannot be changed after creation."""
        config = EngineConfig()

        with pytest.raises(AttributeError):
            config.max_buffer_chars = 10
