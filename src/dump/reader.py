from __future__ import annotations

import gzip
import io
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TextIO

"""Dump file reader.

open_dump() opens the export file (optionally gzip compressed) as a text
stream; failures to open or decompress surface immediately as DumpOpenError
so that nothing is processed from a bad input.

Lines are opaque: bytes that are not valid UTF-8 are carried through as
surrogate escapes (ENCODING_ERRORS) and written back out unchanged by the
transport and the failed-lines sink.

iter_lines() yields lines without their line terminator. Any error raised
while reading (truncated gzip, stream closed underneath us) is raised as
DumpReadError after the lines read so far have been yielded.
"""

__all__ = [
    "DumpOpenError",
    "DumpReadError",
    "open_dump",
    "iter_lines",
    "ENCODING_ERRORS",
]

ENCODING_ERRORS = "surrogateescape"


class DumpOpenError(Exception):
    """Raised when the input cannot be opened or decompressed."""


class DumpReadError(Exception):
    """Raised when reading fails part-way through the stream."""


@contextmanager
def open_dump(path: Path | str, compressed: bool = False) -> Iterator[TextIO]:
    """Open a dump file for reading, transparently decompressing gzip input."""
    try:
        raw = open(path, "rb")
    except OSError as e:
        raise DumpOpenError(str(e)) from e

    try:
        if compressed:
            gz = gzip.GzipFile(fileobj=raw, mode="rb")
            try:
                # force the header to be parsed now so a non-gzip file fails fast
                gz.peek(1)
            except (OSError, EOFError) as e:
                gz.close()
                raise DumpOpenError(f"could not decompress {path}: {e}") from e
            binary: io.BufferedIOBase = gz  # type: ignore[assignment]
        else:
            binary = raw
        # undecodable bytes survive as surrogates and are restored on output
        text = io.TextIOWrapper(binary, encoding="utf-8", errors=ENCODING_ERRORS, newline="\n")
        try:
            yield text
        finally:
            text.close()
    finally:
        raw.close()


def iter_lines(stream: TextIO) -> Iterator[str]:
    """Yield lines of `stream` with trailing CR/LF removed."""
    it = iter(stream)
    while True:
        try:
            line = next(it)
        except StopIteration:
            return
        except (OSError, EOFError, ValueError) as e:
            # ValueError covers reads on a closed file
            raise DumpReadError(str(e)) from e
        yield line.rstrip("\r\n")
