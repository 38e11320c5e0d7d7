"""Transcript commands: parse finished plain-text transcripts."""

from __future__ import annotations

from argparse import ArgumentParser, Namespace
import json
from pathlib import Path
from typing import TYPE_CHECKING, ClassVar

from ...batch import parse_transcript
from ...config import DEFAULT_AGENT_NAMES
from ..base import Command, CommandGroup
from ..display import render_transcript

if TYPE_CHECKING:
    from ...config import EngineConfig


class TranscriptCommandGroup(CommandGroup):
    """Plain-text transcript command group."""

    name = "transcript"
    aliases: ClassVar[list[str]] = ["t"]
    description = "Work with finished agent transcripts"

    def __init__(self) -> None:
        super().__init__()
        self.add_subcommand(ParseCommand())


class ParseCommand(Command):
    """Parse a transcript file into its document structure."""

    name = "parse"
    aliases: ClassVar[list[str]] = ["p"]
    description = "Parse a finished transcript file"

    def add_arguments(self, parser: ArgumentParser) -> None:
        parser.add_argument("path", help="Transcript file")
        parser.add_argument("--json", action="store_true", help="Print the document as JSON")

    def execute(self, args: Namespace, config: EngineConfig | None = None) -> int:
        try:
            raw = Path(args.path).read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            print(f"❌ Cannot read {args.path}: {e.strerror or e}")
            return 1

        agent_names = config.agent_names if config else DEFAULT_AGENT_NAMES
        document = parse_transcript(raw, agent_names=agent_names)

        if args.json:
            print(json.dumps(document.to_dict(), indent=2, ensure_ascii=False))
        else:
            render_transcript(document)
        return 0 if document.success else 1
