"""Tests for the items, responses and raw grammars."""

import pytest

from agentstream.events import (
    AnswerDelta,
    AnswerFinal,
    Failed,
    StepCompleted,
    StepDelta,
    StepFailed,
    StepStarted,
    ThinkingDelta,
    TokensUsed,
)
from agentstream.protocols import items, raw, responses


@pytest.mark.unit
class TestItemsGrammar:
    """Test cases for the item-based streaming-events grammar."""

    def test_agent_message_completed(self):
        """A completed agent message becomes the final answer."""
        state = items.initial_state()
        envelope = {"type": "item.completed", "item": {"type": "agent_message", "text": "Hello from Codex"}}
        assert items.feed(state, envelope) == [AnswerFinal(text="Hello from Codex")]

    def test_multiple_agent_messages_are_joined(self):
        """Every agent message of the turn stays in the answer."""
        state = items.initial_state()
        items.feed(state, {"type": "item.completed", "item": {"type": "agent_message", "text": "One"}})
        events = items.feed(
            state, {"type": "item.completed", "item": {"type": "agent_message", "text": "Two"}}
        )
        assert events == [AnswerFinal(text="One\n\nTwo")]

    def test_agent_message_started_is_ignored(self):
        """Only completed messages carry final text."""
        state = items.initial_state()
        envelope = {"type": "item.started", "item": {"type": "agent_message", "text": "partial"}}
        assert items.feed(state, envelope) == []

    def test_reasoning_items(self):
        """Reasoning items become thinking text separated by a blank line."""
        state = items.initial_state()
        first = items.feed(state, {"type": "item.completed", "item": {"type": "reasoning", "text": "A"}})
        second = items.feed(state, {"type": "item.completed", "item": {"type": "reasoning", "text": "B"}})
        assert first == [ThinkingDelta(text_delta="A")]
        assert second == [ThinkingDelta(text_delta="\n\nB")]

    def test_command_execution_lifecycle(self):
        """A command item surfaces as a step with streamed output."""
        state = items.initial_state()
        item = {"id": "c1", "type": "command_execution", "command": "ls", "status": "in_progress"}

        started = items.feed(state, {"type": "item.started", "item": {**item, "aggregated_output": "a\n"}})
        assert started == [StepStarted(id="c1", label="ls"), StepDelta(id="c1", text_delta="a\n")]

        completed = items.feed(
            state,
            {
                "type": "item.completed",
                "item": {**item, "aggregated_output": "a\nb\n", "status": "completed"},
            },
        )
        assert completed == [
            StepStarted(id="c1", label="ls"),
            StepDelta(id="c1", text_delta="b\n"),
            StepCompleted(id="c1"),
        ]

    def test_failed_command(self):
        """A failed status fails the step."""
        state = items.initial_state()
        envelope = {
            "type": "item.completed",
            "item": {"id": "c2", "type": "command_execution", "command": "false", "status": "failed"},
        }
        assert items.feed(state, envelope) == [StepStarted(id="c2", label="false"), StepFailed(id="c2")]

    def test_file_change_detail(self):
        """File changes list each path with its action."""
        state = items.initial_state()
        envelope = {
            "type": "item.completed",
            "item": {
                "id": "f1",
                "type": "file_change",
                "changes": [{"path": "a.py", "kind": "add"}, {"path": "b.py", "kind": "update"}],
                "status": "completed",
            },
        }
        events = items.feed(state, envelope)
        assert StepDelta(id="f1", text_delta="Created: a.py\nModified: b.py") in events
        assert events[-1] == StepCompleted(id="f1")

    def test_turn_completed_usage(self):
        """Usage is reported as input plus output tokens."""
        state = items.initial_state()
        envelope = {"type": "turn.completed", "usage": {"input_tokens": 10, "output_tokens": 5}}
        assert items.feed(state, envelope) == [TokensUsed(count=15)]

    def test_turn_failed(self):
        """A failed turn fails the session with the producer's message."""
        state = items.initial_state()
        envelope = {"type": "turn.failed", "error": {"message": "stream disconnected"}}
        assert items.feed(state, envelope) == [Failed(message="Error: stream disconnected")]

    @pytest.mark.parametrize(
        "envelope",
        [
            {"type": "thread.started", "thread_id": "t"},
            {"type": "turn.started"},
            {"type": "something.new", "payload": 1},
            {"type": "item.completed", "item": {"type": "future_item"}},
            {"type": "item.completed"},
        ],
    )
    def test_ignored_envelopes(self, envelope):
        """Unknown or informational envelopes produce nothing."""
        assert items.feed(items.initial_state(), envelope) == []


@pytest.mark.unit
class TestResponsesGrammar:
    """Test cases for the delta/response grammar."""

    def test_deltas_append(self):
        """Each delta becomes answer text."""
        state = responses.initial_state()
        first = responses.feed(state, {"type": "response.output_text.delta", "delta": {"text": "Hello"}})
        second = responses.feed(state, {"type": "response.output_text.delta", "delta": " world"})
        assert first == [AnswerDelta(text_delta="Hello")]
        assert second == [AnswerDelta(text_delta=" world")]

    @pytest.mark.parametrize(
        "delta,expected",
        [
            ({"content": [{"text": "a"}, {"text": "b"}]}, "ab"),
            ({"delta": "c"}, "c"),
            ([{"text": "d"}, "e"], "de"),
            (None, ""),
        ],
    )
    def test_delta_shapes(self, delta, expected):
        """Delta payloads come in several shapes."""
        assert responses.extract_delta_text(delta) == expected

    def test_completed_replaces(self):
        """The completed response is authoritative."""
        state = responses.initial_state()
        envelope = {
            "type": "response.completed",
            "response": {
                "output": [
                    {"type": "reasoning", "text": "ignored"},
                    {"type": "output_text", "text": "Hello world"},
                ]
            },
        }
        assert responses.feed(state, envelope) == [AnswerFinal(text="Hello world")]

    def test_completed_nested_message_content(self):
        """Output text nested in a message block is found."""
        response = {
            "output": [
                {"type": "message", "content": [{"type": "output_text", "text": "Nested"}]},
            ]
        }
        assert responses.extract_response_text(response) == "Nested"

    def test_completed_falls_back_to_text(self):
        """Without output blocks the response text is used."""
        assert responses.extract_response_text({"text": "Plain"}) == "Plain"
        assert responses.extract_response_text({"output": []}) is None

    def test_error(self):
        """An error is shown as the answer and fails the session."""
        state = responses.initial_state()
        events = responses.feed(state, {"type": "response.error", "error": {"message": "Agent failed"}})
        assert events == [
            AnswerFinal(text="Error: Agent failed"),
            Failed(message="Error: Agent failed"),
        ]

    def test_error_without_message(self):
        """A missing message still produces a readable error."""
        events = responses.feed(responses.initial_state(), {"type": "response.error"})
        assert events[-1] == Failed(message=f"Error: {responses.DEFAULT_ERROR_MESSAGE}")


@pytest.mark.unit
class TestRawGrammar:
    """Test cases for raw pass-through."""

    def test_text_passes_through(self):
        """Every chunk becomes answer text verbatim."""
        state = raw.initial_state()
        assert raw.feed(state, "some output\n") == [AnswerDelta(text_delta="some output\n")]
        assert raw.feed(state, "") == []

    def test_stateless_grammars(self):
        """Raw and responses grammars keep nothing between inputs."""
        assert raw.initial_state() is None
        assert responses.initial_state() is None
        assert responses.feed(None, {"type": "response.delta", "delta": "x"}) == [AnswerDelta(text_delta="x")]
