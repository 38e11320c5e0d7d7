"""Stream commands: replay captured agent output through the engine."""

from __future__ import annotations

from argparse import ArgumentParser, Namespace
from collections.abc import Iterator
from typing import ClassVar

from ...engine import Chunk, StreamEngine
from ...protocols import Format
from ..base import CommandGroup, SourceCommand
from ..display import create_display

OUTPUT_FORMATS = ("verbose", "compact", "json")


class StreamCommandGroup(CommandGroup):
    """Agent output stream command group."""

    name = "stream"
    aliases: ClassVar[list[str]] = ["s"]
    description = "Parse agent output streams"

    def __init__(self) -> None:
        super().__init__()
        self.add_subcommand(ReplayCommand())
        self.add_subcommand(DetectCommand())


class ReplayCommand(SourceCommand):
    """Feed a captured stream through the engine chunk by chunk."""

    name = "replay"
    aliases: ClassVar[list[str]] = ["r"]
    description = "Replay a captured agent stream and render each update"

    def add_arguments(self, parser: ArgumentParser) -> None:
        super().add_arguments(parser)
        parser.add_argument("--session-id", default="replay", help="Session id for the chunks")
        parser.add_argument(
            "--output",
            choices=OUTPUT_FORMATS,
            default="verbose",
            help="Output format (default: verbose)",
        )

    def run(self, args: Namespace, engine: StreamEngine, chunks: Iterator[str]) -> int:
        display = create_display(args.output)
        display.start()
        for content in chunks:
            display.on_view(engine.feed(Chunk(session_id=args.session_id, content=content)))

        view = engine.feed(Chunk(session_id=args.session_id, content="", finished=True))
        display.finish(view)
        return 0 if view.success else 1


class DetectCommand(SourceCommand):
    """Report which wire format a captured stream uses."""

    name = "detect"
    aliases: ClassVar[list[str]] = ["d"]
    description = "Detect the wire format of a captured agent stream"

    session_id = "detect"

    def run(self, args: Namespace, engine: StreamEngine, chunks: Iterator[str]) -> int:
        view = None
        for content in chunks:
            view = engine.feed(Chunk(session_id=self.session_id, content=content))
            # "json" is provisional until the first envelope picks a grammar.
            if view.format not in (None, Format.JSON.value):
                break
        else:
            view = engine.feed(Chunk(session_id=self.session_id, content="", finished=True))

        if view.format is None:
            print("unknown")
            return 1
        print(view.format)
        return 0
