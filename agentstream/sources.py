"""
Chunk sources for replaying captured agent output.

Each source yields text chunks of arbitrary size, decoded incrementally so a
multi-byte character split across reads never produces replacement glyphs.
"""

from __future__ import annotations

import codecs
from collections.abc import Iterator
import logging
import os
import sys
from typing import IO

import requests

from .exceptions import SourceError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64
STDIN_SOURCE = "-"


def _decoded(raw_chunks: Iterator[bytes]) -> Iterator[str]:
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    for raw in raw_chunks:
        text = decoder.decode(raw)
        if text:
            yield text
    tail = decoder.decode(b"", final=True)
    if tail:
        yield tail


def iter_file_chunks(path: str | os.PathLike, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[str]:
    """
    Read a file as a sequence of text chunks.

    Args:
        path: File to read
        chunk_size: Bytes per read

    Raises:
        SourceError: If the file cannot be opened
    """
    if chunk_size <= 0:
        raise SourceError(f"Chunk size must be positive, got {chunk_size}", source=str(path))
    try:
        handle = open(path, "rb")
    except OSError as e:
        raise SourceError(f"Cannot read {path}: {e.strerror or e}", source=str(path)) from e

    with handle:
        yield from _decoded(iter(lambda: handle.read(chunk_size), b""))


def iter_stream_chunks(stream: IO[str], chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[str]:
    """Read an already-open text stream (e.g. stdin)."""
    for chunk in iter(lambda: stream.read(chunk_size), ""):
        yield chunk


def iter_url_chunks(
    url: str, chunk_size: int = DEFAULT_CHUNK_SIZE, timeout: int = 30
) -> Iterator[str]:
    """
    Stream a response body over HTTP.

    Raises:
        SourceError: If the request fails or returns an error status
    """
    try:
        with requests.get(url, stream=True, timeout=timeout) as response:
            response.raise_for_status()
            yield from _decoded(response.iter_content(chunk_size=chunk_size))
    except requests.HTTPError as e:
        raise SourceError(
            f"Fetching {url} failed with status {e.response.status_code}", source=url
        ) from e
    except requests.RequestException as e:
        raise SourceError(f"Failed to fetch {url}: {e}", source=url) from e


def iter_chunks(
    source: str, chunk_size: int = DEFAULT_CHUNK_SIZE, stdin: IO[str] | None = None
) -> Iterator[str]:
    """Pick the reader for a file path, ``-`` (stdin) or an http(s) URL."""
    if source == STDIN_SOURCE:
        return iter_stream_chunks(stdin or sys.stdin, chunk_size)
    if source.startswith(("http://", "https://")):
        logger.debug("Streaming chunks from %s", source)
        return iter_url_chunks(source, chunk_size)
    return iter_file_chunks(source, chunk_size)
