"""
Process-level helpers for the CLI: log setup and interrupt handling.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
import contextlib
import logging
import signal
import sys
from typing import Any

CANCELLED_EXIT = 130  # POSIX: 128 + SIGINT (2)
CANCELLED_MESSAGE = "✖ Cancelled by user"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(verbose: bool = False) -> None:
    """Send log records to stderr; debug level when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )


def _report_cancelled() -> None:
    sys.stderr.write(f"\n{CANCELLED_MESSAGE}\n")
    sys.stderr.flush()


def _raise_interrupt(_signum: int, _frame: Any) -> None:
    raise KeyboardInterrupt()


@contextlib.contextmanager
def cancellable() -> Iterator[None]:
    """
    Treat SIGTERM like Ctrl-C and keep interrupt tracebacks off the terminal.

    The previous SIGTERM handler and ``sys.excepthook`` are restored on exit.
    """
    previous_hook = sys.excepthook
    previous_term = signal.signal(signal.SIGTERM, _raise_interrupt)

    def _hook(exc_type: type[BaseException], exc: BaseException, tb: Any) -> Any:
        if issubclass(exc_type, KeyboardInterrupt):
            _report_cancelled()
            sys.exit(CANCELLED_EXIT)
        return previous_hook(exc_type, exc, tb)

    sys.excepthook = _hook
    try:
        yield
    finally:
        sys.excepthook = previous_hook
        signal.signal(signal.SIGTERM, previous_term)


def graceful_main(fn: Callable[[list[str]], int], argv: list[str]) -> int:
    """
    Run ``fn(argv)`` inside ``cancellable``.

    Returns:
        ``fn``'s exit code, or CANCELLED_EXIT when interrupted
    """
    try:
        with cancellable():
            return int(fn(argv) or 0)
    except KeyboardInterrupt:
        _report_cancelled()
        return CANCELLED_EXIT
