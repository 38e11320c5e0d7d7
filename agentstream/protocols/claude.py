"""
Claude ``stream-json`` grammar.

Handles both whole-message envelopes (``system``, ``assistant``, ``user``,
``result``) and partial-message streaming (``message_start``,
``content_block_*``), optionally wrapped in ``stream_event``. Assistant text
before the final result is surfaced as working steps; the ``result`` envelope
carries the answer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import logging
from typing import Any

from ..events import (
    AnswerFinal,
    Failed,
    MetaUpdated,
    SemanticEvent,
    StepCompleted,
    StepDelta,
    StepFailed,
    StepStarted,
    ThinkingDelta,
    TokensUsed,
)

logger = logging.getLogger(__name__)

_LABEL_KEYS = ("command", "cmd", "code", "file_path", "path", "pattern", "query", "url", "message")


@dataclass
class _Block:
    kind: str
    text: str = ""
    tool_id: str | None = None
    name: str = "Tool"
    input: Any = None
    partial: str = ""


@dataclass
class ClaudeState:
    model: str | None = None
    blocks: dict[int, _Block] = field(default_factory=dict)
    text_steps: int = 0
    thinking_emitted: bool = False


def initial_state() -> ClaudeState:
    return ClaudeState()


def format_tool_label(name: str, tool_input: Any) -> str:
    """Render a tool call as ``Name: <main argument> - <description>``."""
    parts: list[str] = []
    description = None
    if isinstance(tool_input, dict):
        for key in _LABEL_KEYS:
            value = tool_input.get(key)
            if isinstance(value, str) and value.strip():
                parts.append(value.strip())
                break
        else:
            args = tool_input.get("args")
            if isinstance(args, list) and args:
                parts.append(" ".join(str(arg) for arg in args).strip())
        raw_description = tool_input.get("description")
        if isinstance(raw_description, str) and raw_description.strip():
            description = raw_description.strip()
    elif isinstance(tool_input, str) and tool_input.strip():
        parts.append(tool_input.strip())

    if description:
        parts.append(f"- {description}" if parts else description)
    label = " ".join(parts)
    return f"{name}: {label}" if label else name


def _tool_result_text(content: Any) -> str:
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        pieces = []
        for entry in content:
            if isinstance(entry, str):
                pieces.append(entry)
            elif isinstance(entry, dict):
                for key in ("text", "data"):
                    if isinstance(entry.get(key), str):
                        pieces.append(entry[key])
                        break
        return " ".join(piece for piece in pieces if piece).strip()
    return ""


def _text_step(state: ClaudeState, text: str) -> list[SemanticEvent]:
    text = text.strip()
    if not text:
        return []
    state.text_steps += 1
    step_id = f"text-{state.text_steps}"
    return [StepStarted(id=step_id, label=text), StepCompleted(id=step_id)]


def _thinking(state: ClaudeState, text: str, separate: bool = True) -> list[SemanticEvent]:
    if not text:
        return []
    prefix = "\n\n" if separate and state.thinking_emitted else ""
    state.thinking_emitted = True
    return [ThinkingDelta(text_delta=prefix + text)]


def _tool_result(tool_id: Any, content: Any, is_error: bool) -> list[SemanticEvent]:
    if not isinstance(tool_id, str) or not tool_id:
        return []
    events: list[SemanticEvent] = []
    text = _tool_result_text(content)
    if is_error:
        events.append(StepFailed(id=tool_id, message=text))
        return events
    if text:
        events.append(StepDelta(id=tool_id, text_delta=text))
    events.append(StepCompleted(id=tool_id))
    return events


def _set_model(state: ClaudeState, model: Any) -> list[SemanticEvent]:
    if not isinstance(model, str) or not model or model == state.model:
        return []
    state.model = model
    return [MetaUpdated(key="model", value=model)]


def _handle_assistant(state: ClaudeState, message: dict[str, Any]) -> list[SemanticEvent]:
    events = _set_model(state, message.get("model"))
    for part in message.get("content") or []:
        if not isinstance(part, dict):
            continue
        part_type = part.get("type")
        if part_type == "text" and isinstance(part.get("text"), str):
            events.extend(_text_step(state, part["text"]))
        elif part_type == "thinking" and isinstance(part.get("thinking"), str):
            events.extend(_thinking(state, part["thinking"]))
        elif part_type == "tool_use":
            tool_id = part.get("id")
            if isinstance(tool_id, str) and tool_id:
                name = part.get("name") or "Tool"
                events.append(StepStarted(id=tool_id, label=format_tool_label(name, part.get("input"))))
    return events


def _handle_user(message: dict[str, Any]) -> list[SemanticEvent]:
    events: list[SemanticEvent] = []
    for part in message.get("content") or []:
        if isinstance(part, dict) and part.get("type") == "tool_result":
            events.extend(
                _tool_result(part.get("tool_use_id"), part.get("content"), bool(part.get("is_error")))
            )
    return events


def _block_index(envelope: dict[str, Any]) -> int:
    index = envelope.get("index")
    return index if isinstance(index, int) else 0


def _handle_block_start(state: ClaudeState, envelope: dict[str, Any]) -> list[SemanticEvent]:
    block = envelope.get("content_block")
    if not isinstance(block, dict):
        return []
    index = _block_index(envelope)
    block_type = block.get("type")
    if block_type == "tool_use":
        tool_input = block.get("input")
        state.blocks[index] = _Block(
            kind="tool_use",
            tool_id=block.get("id") or f"block-{index}",
            name=block.get("name") or "Tool",
            input=tool_input if tool_input else None,
        )
    elif block_type in ("text", "thinking"):
        state.blocks[index] = _Block(kind=block_type)
        if block_type == "thinking" and state.thinking_emitted:
            return [ThinkingDelta(text_delta="\n\n")]
    return []


def _handle_block_delta(state: ClaudeState, envelope: dict[str, Any]) -> list[SemanticEvent]:
    block = state.blocks.get(_block_index(envelope))
    delta = envelope.get("delta")
    if block is None or not isinstance(delta, dict):
        return []
    if block.kind == "thinking" and isinstance(delta.get("thinking"), str):
        return _thinking(state, delta["thinking"], separate=False)
    if block.kind == "text" and isinstance(delta.get("text"), str):
        block.text += delta["text"]
    elif block.kind == "tool_use" and isinstance(delta.get("partial_json"), str):
        block.partial += delta["partial_json"]
    return []


def _handle_block_stop(state: ClaudeState, envelope: dict[str, Any]) -> list[SemanticEvent]:
    block = state.blocks.pop(_block_index(envelope), None)
    if block is None:
        return []
    if block.kind == "text":
        return _text_step(state, block.text)
    if block.kind == "tool_use" and block.tool_id:
        tool_input = block.input
        if tool_input is None and block.partial:
            try:
                tool_input = json.loads(block.partial)
            except json.JSONDecodeError:
                logger.debug("Unparseable tool input for %s: %s", block.tool_id, block.partial[:200])
        return [StepStarted(id=block.tool_id, label=format_tool_label(block.name, tool_input))]
    return []


def _handle_result(envelope: dict[str, Any]) -> list[SemanticEvent]:
    events: list[SemanticEvent] = []
    usage = envelope.get("usage")
    if isinstance(usage, dict):
        counts = [usage.get("input_tokens"), usage.get("output_tokens")]
        total = sum(count for count in counts if isinstance(count, int))
        if total:
            events.append(TokensUsed(count=total))

    result = envelope.get("result")
    subtype = envelope.get("subtype")
    if envelope.get("is_error") or (isinstance(subtype, str) and subtype.startswith("error")):
        detail = result if isinstance(result, str) and result else subtype or "unknown error"
        events.append(Failed(message=f"Error: {detail}"))
    elif isinstance(result, str):
        events.append(AnswerFinal(text=result))
    return events


def feed(state: ClaudeState, envelope: Any) -> list[SemanticEvent]:
    """Translate one envelope into semantic events."""
    if not isinstance(envelope, dict):
        return []
    event_type = envelope.get("type")

    if event_type == "stream_event":
        return feed(state, envelope.get("event"))

    if event_type == "system":
        return _set_model(state, envelope.get("model"))

    if event_type in ("assistant", "user"):
        message = envelope.get("message")
        if not isinstance(message, dict):
            return []
        return _handle_assistant(state, message) if event_type == "assistant" else _handle_user(message)

    if event_type == "message_start":
        message = envelope.get("message")
        return _set_model(state, message.get("model")) if isinstance(message, dict) else []

    if event_type == "content_block_start":
        return _handle_block_start(state, envelope)

    if event_type == "content_block_delta":
        return _handle_block_delta(state, envelope)

    if event_type == "content_block_stop":
        return _handle_block_stop(state, envelope)

    if event_type == "tool_result":
        return _tool_result(
            envelope.get("tool_use_id") or envelope.get("id"),
            envelope.get("content") if envelope.get("content") is not None else envelope.get("result"),
            bool(envelope.get("is_error")),
        )

    if event_type == "result":
        return _handle_result(envelope)

    logger.debug("Ignoring %s event", event_type)
    return []
