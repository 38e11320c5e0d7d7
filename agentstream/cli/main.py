"""
Main CLI entry point for agentstream.

Replays captured agent streams and parses finished transcripts.
"""

import argparse
import sys

from agentstream import __version__

from ..config import EngineConfig
from ..exceptions import ConfigError
from .registry import registry
from .util import configure_logging, graceful_main


def _real_main(argv: list[str]) -> int:
    """Real main CLI logic that handles command parsing and execution."""
    registry.auto_discover_commands()

    parser = argparse.ArgumentParser(
        prog="agentstream",
        description="agentstream - parse command-line agent output streams",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--max-buffer-chars",
        type=int,
        help="Buffer bound per session (or set AGENTSTREAM_MAX_BUFFER_CHARS)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    for command in registry.get_primary_commands():
        subparser = subparsers.add_parser(
            command.name, aliases=command.aliases, help=command.description
        )
        command.add_arguments(subparser)

    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if not args.command:
        parser.print_help()
        return 0

    try:
        config = EngineConfig.from_env(max_buffer_chars=args.max_buffer_chars)
    except ConfigError as e:
        print(f"❌ {e.message}")
        return 1

    try:
        command = registry.get_command(args.command)
    except KeyError:
        print(f"❌ Unknown command: {args.command}")
        return 1

    try:
        return command.execute(args, config)
    except Exception as e:
        print(f"❌ Command execution failed: {e}")
        return 1


def main() -> None:
    """Main CLI entry point with graceful interrupt handling."""
    code = graceful_main(_real_main, sys.argv[1:])
    raise SystemExit(code)


if __name__ == "__main__":
    main()
