"""
CLI display components for session views.

The engine returns a full ``SessionView`` after every chunk; displays diff each
view against what they already rendered:
- VerboseDisplay: steps with status icons, thinking, answer panel
- CompactDisplay: answer text only
- JsonDisplay: one serialized view per update, for scripting
"""

from abc import ABC, abstractmethod
import json
import re

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from ..models import SessionView, StepStatus, TranscriptDocument

STATUS_ICONS = {
    StepStatus.PENDING: "[dim]…[/dim]",
    StepStatus.IN_PROGRESS: "[bold cyan]⚡[/bold cyan]",
    StepStatus.COMPLETED: "[green]✅[/green]",
    StepStatus.FAILED: "[red]❌[/red]",
}


class ViewDisplay(ABC):
    """Base class for session view renderers."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()
        self.last_view: SessionView | None = None

    def start(self) -> None:
        """Called before the first view."""

    def on_view(self, view: SessionView) -> None:
        """Render whatever changed since the previous view."""
        self.render(view)
        self.last_view = view

    @abstractmethod
    def render(self, view: SessionView) -> None:
        """Render one update."""

    @abstractmethod
    def finish(self, view: SessionView) -> None:
        """Called with the final view of the turn."""


class CompactDisplay(ViewDisplay):
    """
    Compact display showing only answer text.

    Answer text is printed as it grows. When the agent replaces the answer
    (a final message that differs from the streamed text), the final text is
    printed once more at the end.
    """

    def __init__(self, console: Console | None = None) -> None:
        super().__init__(console=console)
        self.printed = ""

    def render(self, view: SessionView) -> None:
        if view.answer.startswith(self.printed) and len(view.answer) > len(self.printed):
            self.console.out(view.answer[len(self.printed) :], end="", highlight=False)
            self.printed = view.answer

    def finish(self, view: SessionView) -> None:
        if view.answer != self.printed:
            if self.printed:
                self.console.out("")
            self.console.out(view.answer, end="", highlight=False)
            self.printed = view.answer
        if self.printed:
            self.console.out("")
        if view.failed and view.error:
            self.console.print(f"[red]❌ {view.error}[/red]", highlight=False)


class VerboseDisplay(ViewDisplay):
    """Rich display: step progress, thinking text, and a markdown answer panel."""

    def __init__(self, console: Console | None = None) -> None:
        super().__init__(console=console)
        self.step_status: dict[str, StepStatus] = {}
        self.thinking_chars = 0
        self.thinking_active = False
        self.meta_shown: set[str] = set()

    def render(self, view: SessionView) -> None:
        for key, value in view.meta.items():
            if key not in self.meta_shown:
                self.meta_shown.add(key)
                self.console.print(f"[dim]{key}: {value}[/dim]", highlight=False)

        if len(view.thinking) > self.thinking_chars:
            if not self.thinking_active:
                self.console.print("\n[dim cyan]🧠 Thinking...[/dim cyan]")
                self.thinking_active = True
            self.console.print(
                view.thinking[self.thinking_chars :], end="", style="dim italic cyan", highlight=False
            )
            self.thinking_chars = len(view.thinking)

        for step in view.steps:
            previous = self.step_status.get(step.id)
            if previous == step.status:
                continue
            self._end_thinking()
            self.step_status[step.id] = step.status
            line = f"{STATUS_ICONS[step.status]} {step.label}"
            if step.status.is_terminal and step.detail:
                line += f" [dim]({_shorten(step.detail)})[/dim]"
            self.console.print(line, highlight=False)

    def _end_thinking(self) -> None:
        if self.thinking_active:
            self.console.print()
            self.thinking_active = False

    def finish(self, view: SessionView) -> None:
        self._end_thinking()
        if view.answer:
            self.console.print(build_markdown_panel(view.answer))
        if view.tokens_used is not None:
            self.console.print(f"[dim]tokens used: {view.tokens_used:,}[/dim]")
        if view.failed:
            self.console.print(
                Panel(
                    f"[red]{view.error or 'Session failed'}[/red]",
                    title="[red]❌ Error[/red]",
                    border_style="red",
                )
            )


class JsonDisplay(ViewDisplay):
    """Outputs each view as a JSON line for machine consumption."""

    def render(self, view: SessionView) -> None:
        if self.last_view == view:
            return
        self.console.out(json.dumps(view.to_dict(), ensure_ascii=False), highlight=False)

    def finish(self, view: SessionView) -> None:
        if self.last_view != view:
            self.render(view)
            self.last_view = view


def _shorten(text: str, limit: int = 80) -> str:
    text = " ".join(text.split())
    return text if len(text) <= limit else text[: limit - 3] + "..."


_TASK_LIST_PATTERN = re.compile(r"^(\s*[-*]\s+)\[([ xX])\]\s+(.*)$", flags=re.MULTILINE)


def _normalize_markdown(text: str) -> str:
    """Apply small GitHub-flavored markdown tweaks Rich lacks natively."""

    def replace(match: re.Match[str]) -> str:
        prefix, state, content = match.groups()
        symbol = "☑" if state.lower() == "x" else "☐"
        return f"{prefix}{symbol} {content}"

    return _TASK_LIST_PATTERN.sub(replace, text)


def build_markdown_panel(text: str, *, title: str = "[cyan]Answer[/cyan]") -> Panel:
    """Render answer markdown inside a panel."""
    normalized = _normalize_markdown(text)
    if normalized.strip():
        content: Markdown | str = Markdown(normalized, code_theme="monokai", justify="left")
        panel_title: str | None = title
    else:
        content = "[dim]No answer.[/dim]"
        panel_title = None
    return Panel(content, title=panel_title, border_style="cyan", expand=True)


def render_transcript(document: TranscriptDocument, console: Console | None = None) -> None:
    """Print a parsed transcript document."""
    console = console or Console()
    header = document.header
    if header.agent or header.command:
        console.print(
            f"[bold]{header.agent or 'unknown agent'}[/bold] [dim]›[/dim] {header.command or ''}",
            highlight=False,
        )
    if document.provider_line:
        console.print(f"[dim]{document.provider_line}[/dim]", highlight=False)

    if document.meta:
        table = Table(show_header=False, box=None, pad_edge=False)
        table.add_column(style="dim")
        table.add_column()
        for key, value in document.meta.items():
            table.add_row(key, value)
        console.print(table)

    if document.user_instructions:
        console.print(Panel(document.user_instructions, title="User instructions", border_style="dim"))

    for entry in document.working:
        console.print(f"{STATUS_ICONS[StepStatus.COMPLETED]} {entry}", highlight=False)

    if document.thinking:
        console.print("\n[dim cyan]🧠 Thinking[/dim cyan]")
        console.print(document.thinking, style="dim italic cyan", highlight=False)

    if document.answer:
        console.print(build_markdown_panel(document.answer))
    if document.tokens_used is not None:
        console.print(f"[dim]tokens used: {document.tokens_used:,}[/dim]")
    if not document.success:
        console.print(
            Panel(
                f"[red]{document.error or 'Agent reported an error'}[/red]",
                title="[red]❌ Error[/red]",
                border_style="red",
            )
        )


def create_display(format: str = "verbose", console: Console | None = None) -> ViewDisplay:
    """
    Factory function to create the display for an output format.

    Args:
        format: Display format ("verbose", "compact", or "json")
        console: Console to render to (stdout when None)
    """
    if format == "compact":
        return CompactDisplay(console=console)
    elif format == "json":
        return JsonDisplay(console=console)
    else:  # "verbose" is default
        return VerboseDisplay(console=console)
