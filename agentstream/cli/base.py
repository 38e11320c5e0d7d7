"""
Command classes for the agentstream CLI.

``main`` resolves an ``EngineConfig`` once and hands it to the command it
picked. Groups route it on to a subcommand; ``SourceCommand`` subclasses get a
fresh ``StreamEngine`` built from it together with the chunks of their source.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from argparse import ArgumentParser, Namespace
from collections.abc import Iterator
import logging
from typing import ClassVar

from ..config import EngineConfig
from ..engine import StreamEngine
from ..exceptions import SourceError
from ..sources import DEFAULT_CHUNK_SIZE, iter_chunks

logger = logging.getLogger(__name__)


class Command(ABC):
    """
    A named CLI command.

    Concrete subclasses must set ``name`` and ``description``; intermediate
    bases mark themselves with ``abstract = True`` in their own body.
    """

    name: str = ""
    aliases: ClassVar[list[str]] = []
    description: str = ""
    abstract: ClassVar[bool] = True

    def __init_subclass__(cls, **kwargs: object) -> None:
        super().__init_subclass__(**kwargs)
        if vars(cls).get("abstract", False):
            return
        for attribute in ("name", "description"):
            if not getattr(cls, attribute):
                raise ValueError(f"Command class {cls.__name__} must define a '{attribute}' attribute")

    @abstractmethod
    def add_arguments(self, parser: ArgumentParser) -> None:
        """Add this command's arguments to its subparser."""

    @abstractmethod
    def execute(self, args: Namespace, config: EngineConfig | None = None) -> int:
        """
        Run the command.

        Args:
            args: Parsed command arguments
            config: Engine configuration (resolved from the environment when None)

        Returns:
            Process exit code
        """

    def get_all_names(self) -> list[str]:
        """Primary name followed by aliases."""
        return [self.name, *self.aliases]


class CommandGroup(Command):
    """
    A command whose subcommands are chosen by the next positional argument.

    Examples: stream (replay, detect), transcript (parse)
    """

    abstract: ClassVar[bool] = True

    def __init__(self) -> None:
        self.subcommands: list[Command] = []
        self._by_name: dict[str, Command] = {}

    @property
    def dest(self) -> str:
        """Namespace attribute that holds the chosen subcommand name."""
        return f"{self.name}_command"

    def add_subcommand(self, command: Command) -> None:
        """
        Add a subcommand, reachable by its name and every alias.

        Raises:
            ValueError: If one of its names is already used in this group
        """
        names = command.get_all_names()
        taken = [name for name in names if name in self._by_name]
        if taken:
            raise ValueError(f"Subcommand '{taken[0]}' is already in '{self.name}'")
        self.subcommands.append(command)
        self._by_name.update(dict.fromkeys(names, command))

    def get_subcommands(self) -> list[Command]:
        return self.subcommands.copy()

    def add_arguments(self, parser: ArgumentParser) -> None:
        if not self.subcommands:
            return
        subparsers = parser.add_subparsers(dest=self.dest, help=f"{self.description} commands")
        for command in self.subcommands:
            command.add_arguments(
                subparsers.add_parser(command.name, aliases=command.aliases, help=command.description)
            )

    def execute(self, args: Namespace, config: EngineConfig | None = None) -> int:
        chosen = getattr(args, self.dest, None)
        command = self._by_name.get(chosen) if chosen else None
        if command is not None:
            return command.execute(args, config)

        if chosen:
            print(f"Error: Unknown subcommand '{chosen}' for '{self.name}'")
        else:
            print(f"Error: No subcommand specified for '{self.name}'")
            print(f"Available subcommands: {', '.join(cmd.name for cmd in self.subcommands)}")
        return 1


class SourceCommand(Command):
    """
    A command that feeds one chunk source through a fresh engine.

    Subclasses implement ``run``. Failures to read the source are reported
    here and exit with status 1.
    """

    abstract: ClassVar[bool] = True

    def add_arguments(self, parser: ArgumentParser) -> None:
        parser.add_argument("source", help="File path, '-' for stdin, or an http(s) URL")
        parser.add_argument(
            "--chunk-size",
            type=int,
            default=DEFAULT_CHUNK_SIZE,
            help=f"Bytes per chunk fed to the engine (default: {DEFAULT_CHUNK_SIZE})",
        )

    def execute(self, args: Namespace, config: EngineConfig | None = None) -> int:
        engine = StreamEngine(config)
        try:
            return self.run(args, engine, iter_chunks(args.source, args.chunk_size))
        except SourceError as e:
            logger.debug("Source %s failed", e.source)
            print(f"❌ {e.message}")
            return 1

    @abstractmethod
    def run(self, args: Namespace, engine: StreamEngine, chunks: Iterator[str]) -> int:
        """
        Consume the source.

        Args:
            args: Parsed command arguments
            engine: Engine built from the resolved configuration
            chunks: Text chunks of ``args.source``; reading may raise SourceError

        Returns:
            Process exit code
        """
