"""
Item-based streaming-events grammar (``codex exec --json`` style).

Envelopes look like ``{"type": "item.completed", "item": {...}}`` plus
thread/turn bookkeeping events. Unknown event and item types are ignored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any

from ..events import (
    AnswerFinal,
    Failed,
    SemanticEvent,
    StepCompleted,
    StepDelta,
    StepFailed,
    StepStarted,
    ThinkingDelta,
    TokensUsed,
)

logger = logging.getLogger(__name__)

ITEM_EVENT_TYPES = ("item.started", "item.updated", "item.completed")
TOOL_ITEM_TYPES = (
    "command_execution",
    "file_change",
    "mcp_tool_call",
    "web_search",
    "todo_list",
    "error",
)
MESSAGE_SEPARATOR = "\n\n"


@dataclass
class ItemsState:
    messages: list[str] = field(default_factory=list)
    thinking_emitted: bool = False
    step_details: dict[str, str] = field(default_factory=dict)
    step_counter: int = 0


def initial_state() -> ItemsState:
    return ItemsState()


def _count(value: Any) -> int:
    return value if isinstance(value, int) and not isinstance(value, bool) else 0


def _step_label(item: dict[str, Any]) -> str:
    item_type = item.get("type")
    if item_type == "command_execution":
        return str(item.get("command") or "Command")
    if item_type == "file_change":
        return "File updates"
    if item_type == "mcp_tool_call":
        return f"{item.get('server', 'mcp')}/{item.get('tool', 'tool')}"
    if item_type == "web_search":
        return f"Search: {item.get('query', '')}".rstrip()
    if item_type == "todo_list":
        return "To-do list"
    return "Error"


def _step_detail(item: dict[str, Any]) -> str:
    item_type = item.get("type")
    if item_type == "command_execution":
        output = item.get("aggregated_output")
        return output if isinstance(output, str) else ""
    if item_type == "file_change":
        lines = []
        for change in item.get("changes") or []:
            if not isinstance(change, dict):
                continue
            kind = change.get("kind")
            action = "Created" if kind == "add" else "Deleted" if kind == "delete" else "Modified"
            lines.append(f"{action}: {change.get('path', '')}")
        return "\n".join(lines)
    if item_type == "todo_list":
        lines = []
        for todo in item.get("items") or []:
            if isinstance(todo, dict):
                mark = "✓" if todo.get("completed") else "•"
                lines.append(f"{mark} {todo.get('text', '')}")
        return "\n".join(lines)
    if item_type == "error":
        return str(item.get("message") or "")
    return ""


def _item_status(event_type: str, item: dict[str, Any]) -> str:
    status = item.get("status")
    if item.get("type") == "error" or status == "failed":
        return "failed"
    if isinstance(status, str) and status:
        return status
    return "completed" if event_type == "item.completed" else "in_progress"


def _handle_tool_item(state: ItemsState, event_type: str, item: dict[str, Any]) -> list[SemanticEvent]:
    item_id = item.get("id")
    if not isinstance(item_id, str) or not item_id:
        state.step_counter += 1
        item_id = f"item-{state.step_counter}"

    events: list[SemanticEvent] = [StepStarted(id=item_id, label=_step_label(item))]

    detail = _step_detail(item)
    sent = state.step_details.get(item_id, "")
    if detail and detail != sent:
        if detail.startswith(sent):
            events.append(StepDelta(id=item_id, text_delta=detail[len(sent) :]))
            state.step_details[item_id] = detail
        else:
            logger.debug("Detail for item %s diverged from what was sent; keeping original", item_id)

    status = _item_status(event_type, item)
    if status == "failed":
        events.append(StepFailed(id=item_id))
    elif status == "completed":
        events.append(StepCompleted(id=item_id))
    return events


def feed(state: ItemsState, envelope: Any) -> list[SemanticEvent]:
    """Translate one envelope into semantic events."""
    if not isinstance(envelope, dict):
        return []
    event_type = envelope.get("type")

    if event_type == "turn.completed":
        usage = envelope.get("usage")
        if isinstance(usage, dict):
            total = _count(usage.get("input_tokens")) + _count(usage.get("output_tokens"))
            return [TokensUsed(count=total)]
        return []

    if event_type == "turn.failed":
        error = envelope.get("error")
        message = error.get("message") if isinstance(error, dict) else None
        return [Failed(message=f"Error: {message or 'turn failed'}")]

    if event_type not in ITEM_EVENT_TYPES:
        logger.debug("Ignoring %s event", event_type)
        return []

    item = envelope.get("item")
    if not isinstance(item, dict):
        return []
    item_type = item.get("type")

    if item_type == "agent_message":
        text = item.get("text")
        if event_type != "item.completed" or not isinstance(text, str):
            return []
        state.messages.append(text)
        return [AnswerFinal(text=MESSAGE_SEPARATOR.join(state.messages))]

    if item_type == "reasoning":
        text = item.get("text")
        if event_type != "item.completed" or not isinstance(text, str) or not text:
            return []
        prefix = MESSAGE_SEPARATOR if state.thinking_emitted else ""
        state.thinking_emitted = True
        return [ThinkingDelta(text_delta=prefix + text)]

    if item_type in TOOL_ITEM_TYPES:
        return _handle_tool_item(state, event_type, item)

    logger.debug("Ignoring item type %s", item_type)
    return []
