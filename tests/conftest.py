"""
Root pytest configuration and fixtures for agentstream.

Provides captured agent output samples and helpers for feeding them through
the engine.
"""

import json
import os
from pathlib import Path
import sys

import pytest
import responses

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from agentstream.config import EngineConfig  # noqa: E402
from agentstream.engine import Chunk, StreamEngine  # noqa: E402

CODEX_TRANSCRIPT = """Agent: codex | Command: how are you?
[2025-09-04T00:48:13] OpenAI Codex v0.23.0 (research preview)
--------
workdir: /tmp/ws
model: gpt-5
provider: openai
approval: never
sandbox: read-only
reasoning effort: medium
reasoning summaries: auto
--------
[2025-09-04T00:48:12]
Working
• Considering structured output
| Designing a parser for structured markers
| Planning tests for parser and components

[2025-09-04T00:48:13] User instructions:
how are you?

[2025-09-04T00:48:17] thinking

I will reply concisely.

[2025-09-04T00:48:18] codex

I’m doing well, thanks! How can I help you today?
[2025-09-04T00:48:19] tokens used: 5347
"""

CLAUDE_MODEL = "claude-opus-4-1-20250805"

CLAUDE_SYSTEM_SPLIT_HEAD = (
    '{"type":"system","subtype":"init","cwd":"/tmp","session_id":"sSplit","tools":["'
)
CLAUDE_SYSTEM_SPLIT_TAIL = (
    '__supabase__rebase_branch","ListMcpResourcesTool"],"mcp_servers":[],'
    f'"model":"{CLAUDE_MODEL}","permissionMode":"default","slash_commands":[],'
    '"apiKeySource":"none","output_style":"default","uuid":"split-uuid"}'
)
CLAUDE_PARTIAL_BODY = (
    '{"type":"message_start","message":{"id":"msgSplit","type":"message","role":"assistant",'
    f'"model":"{CLAUDE_MODEL}","content":[]}}}}'
    '{"type":"content_block_start","index":0,"content_block":{"type":"text","text":""}}'
    '{"type":"content_block_delta","index":0,"delta":{"type":"text_delta",'
    '"text":"Analyzing connected MCP servers."}}'
    '{"type":"content_block_stop","index":0}'
    '{"type":"message_stop"}'
    '{"type":"result","subtype":"success","is_error":false,"duration_ms":42,'
    '"result":"Finished.","session_id":"sSplit","uuid":"resSplit"}'
)


def _claude_assistant_text(text: str, uuid: str) -> dict:
    return {
        "type": "assistant",
        "message": {
            "id": "m1",
            "type": "message",
            "role": "assistant",
            "model": CLAUDE_MODEL,
            "content": [{"type": "text", "text": text}],
        },
        "session_id": "s1",
        "uuid": uuid,
    }


@pytest.fixture
def codex_transcript():
    """Finished Codex plain-text transcript."""
    return CODEX_TRANSCRIPT


@pytest.fixture
def claude_stream():
    """Claude stream-json output: init, three assistant texts, result (no separators)."""
    envelopes = [
        {
            "type": "system",
            "subtype": "init",
            "cwd": "/tmp",
            "session_id": "s1",
            "tools": ["Bash"],
            "model": CLAUDE_MODEL,
        },
        _claude_assistant_text("Considering structured output", "a1"),
        _claude_assistant_text("Designing a parser for structured markers", "a2"),
        _claude_assistant_text("Planning tests for parser and components", "a3"),
        {
            "type": "result",
            "subtype": "success",
            "is_error": False,
            "duration_ms": 100,
            "result": "Done.",
            "session_id": "s1",
            "usage": {"input_tokens": 120, "output_tokens": 30},
        },
    ]
    return "".join(json.dumps(envelope) for envelope in envelopes)


@pytest.fixture
def claude_split_chunks():
    """Claude stream whose init envelope is split inside the tools array."""
    return [CLAUDE_SYSTEM_SPLIT_HEAD, CLAUDE_SYSTEM_SPLIT_TAIL, CLAUDE_PARTIAL_BODY]


@pytest.fixture
def items_stream():
    """Codex JSON item stream with a command, reasoning, answer and usage."""
    envelopes = [
        {"type": "thread.started", "thread_id": "t1"},
        {"type": "turn.started"},
        {
            "type": "item.completed",
            "item": {"id": "item_0", "type": "reasoning", "text": "**Listing files**"},
        },
        {
            "type": "item.started",
            "item": {
                "id": "item_1",
                "type": "command_execution",
                "command": "bash -lc ls",
                "aggregated_output": "",
                "status": "in_progress",
            },
        },
        {
            "type": "item.completed",
            "item": {
                "id": "item_1",
                "type": "command_execution",
                "command": "bash -lc ls",
                "aggregated_output": "README.md\nsrc\n",
                "exit_code": 0,
                "status": "completed",
            },
        },
        {
            "type": "item.completed",
            "item": {"id": "item_2", "type": "agent_message", "text": "Two entries: README.md and src."},
        },
        {
            "type": "turn.completed",
            "usage": {"input_tokens": 2000, "cached_input_tokens": 500, "output_tokens": 120},
        },
    ]
    return "\n".join(json.dumps(envelope) for envelope in envelopes) + "\n"


@pytest.fixture
def engine():
    """Engine with default configuration."""
    return StreamEngine(EngineConfig())


@pytest.fixture
def replay():
    """Feed chunks for one session and finish the turn; returns the final view."""

    def _replay(engine, chunks, session_id="s1", finish=True):
        view = None
        for content in chunks:
            view = engine.feed(Chunk(session_id=session_id, content=content))
        if finish:
            view = engine.feed(Chunk(session_id=session_id, content="", finished=True))
        return view

    return _replay


@pytest.fixture(autouse=True)
def clean_environment():
    """Remove agentstream environment variables before each test."""
    original_env = os.environ.copy()

    for key in list(os.environ.keys()):
        if key.startswith("AGENTSTREAM_"):
            del os.environ[key]

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def mock_requests():
    """Mock HTTP requests using responses library."""
    with responses.RequestsMock() as rsps:
        yield rsps
