"""Tests for CLI display components."""

import io
import json

import pytest
from rich.console import Console

from agentstream import parse_transcript
from agentstream.cli.display import (
    CompactDisplay,
    JsonDisplay,
    VerboseDisplay,
    _normalize_markdown,
    _shorten,
    create_display,
    render_transcript,
)
from agentstream.models import SessionView, Step, StepStatus


@pytest.fixture
def console():
    return Console(file=io.StringIO(), width=100, color_system=None)


def output(console):
    return console.file.getvalue()


@pytest.mark.unit
class TestCompactDisplay:
    """Test cases for CompactDisplay."""

    def test_prints_answer_growth(self, console):
        """Test only new answer text is printed."""
        display = CompactDisplay(console=console)
        display.on_view(SessionView(session_id="s", answer="Hel"))
        display.on_view(SessionView(session_id="s", answer="Hello"))
        display.finish(SessionView(session_id="s", answer="Hello", success=True, is_streaming=False))

        assert output(console) == "Hello\n"

    def test_replaced_answer_is_reprinted(self, console):
        """Test a final answer that differs from the streamed one is printed again."""
        display = CompactDisplay(console=console)
        display.on_view(SessionView(session_id="s", answer="draft"))
        display.finish(SessionView(session_id="s", answer="Final", success=True, is_streaming=False))

        assert output(console) == "draft\nFinal\n"

    def test_error_is_printed(self, console):
        """Test a failed session prints its error."""
        display = CompactDisplay(console=console)
        display.finish(SessionView(session_id="s", success=False, error="Error: boom", is_streaming=False))

        assert "❌ Error: boom" in output(console)


@pytest.mark.unit
class TestVerboseDisplay:
    """Test cases for VerboseDisplay."""

    def test_steps_thinking_and_answer(self, console):
        """Test each part of the view is rendered once."""
        display = VerboseDisplay(console=console)
        running = Step(id="a", label="Read files", status=StepStatus.IN_PROGRESS)
        done = Step(id="a", label="Read files", status=StepStatus.COMPLETED, detail="README.md\nsrc")

        display.on_view(SessionView(session_id="s", meta={"model": "gpt-5"}, steps=(running,)))
        display.on_view(SessionView(session_id="s", meta={"model": "gpt-5"}, steps=(running,), thinking="Hmm"))
        display.on_view(SessionView(session_id="s", meta={"model": "gpt-5"}, steps=(done,), thinking="Hmm"))
        display.finish(
            SessionView(
                session_id="s",
                steps=(done,),
                thinking="Hmm",
                answer="All **good**",
                tokens_used=1234,
                success=True,
                is_streaming=False,
            )
        )

        text = output(console)
        assert text.count("model: gpt-5") == 1
        assert text.count("⚡ Read files") == 1
        assert "✅ Read files (README.md src)" in text
        assert "🧠 Thinking..." in text
        assert "Hmm" in text
        assert "Answer" in text
        assert "All good" in text
        assert "tokens used: 1,234" in text

    def test_failure_panel(self, console):
        """Test a failed session shows an error panel."""
        display = VerboseDisplay(console=console)
        display.finish(SessionView(session_id="s", success=False, error="Parse error: bad", is_streaming=False))

        assert "Parse error: bad" in output(console)


@pytest.mark.unit
class TestJsonDisplay:
    """Test cases for JsonDisplay."""

    def test_one_line_per_changed_view(self, console):
        """Test unchanged views are not repeated."""
        display = JsonDisplay(console=console)
        view = SessionView(session_id="s", answer="x")
        display.on_view(view)
        display.on_view(view)
        display.finish(SessionView(session_id="s", answer="x", success=True, is_streaming=False))

        lines = output(console).splitlines()
        assert len(lines) == 2
        assert json.loads(lines[0])["answer"] == "x"
        assert json.loads(lines[1])["success"] is True


@pytest.mark.unit
class TestHelpers:
    """Test cases for display helpers."""

    def test_create_display(self, console):
        """Test the factory picks the display class."""
        assert isinstance(create_display("compact", console), CompactDisplay)
        assert isinstance(create_display("json", console), JsonDisplay)
        assert isinstance(create_display("verbose", console), VerboseDisplay)

    def test_shorten(self):
        """Test whitespace is collapsed and long text truncated."""
        assert _shorten("a\n  b") == "a b"
        assert _shorten("x" * 100, limit=10) == "xxxxxxx..."

    def test_task_lists(self):
        """Test task list checkboxes become symbols."""
        assert _normalize_markdown("- [x] done\n- [ ] open") == "- ☑ done\n- ☐ open"

    def test_render_transcript(self, console, codex_transcript):
        """Test a parsed transcript renders header, meta and footer."""
        render_transcript(parse_transcript(codex_transcript), console=console)

        text = output(console)
        assert "codex › how are you?" in text
        assert "OpenAI Codex v0.23.0" in text
        assert "gpt-5" in text
        assert "✅ Considering structured output" in text
        assert "I will reply concisely." in text
        assert "tokens used: 5,347" in text
        assert "Error" not in text
