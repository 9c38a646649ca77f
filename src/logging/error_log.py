from __future__ import annotations

import sys
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import TextIO

from src.dump.reader import ENCODING_ERRORS
from src.models.error_record import ErrorRecord

"""Error log buffering and failed-lines capture.

- ErrorLogBuffer: JSON Lines records, one per rejected batch, written once at
  the end of the run to `logs/errors-YYYYMMDD-HHMMSS.log` (UTC).
- FailedLinesSink: the points of a rejected batch, copied verbatim so that an
  operator can re-run the importer on just the failed subset. Written
  immediately (not buffered) so nothing is lost if the run is interrupted.

Both files are created lazily; a clean run leaves no files behind.
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
    "FailedLinesSink",
    "STDOUT_TARGET",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"
STDOUT_TARGET = "-"


def _stamp() -> str:
    return datetime.now(UTC).strftime(TIMESTAMP_FMT)


class ErrorLogBuffer:
    """In-memory buffer for error records. Flush writes JSON Lines.

    - flush() appends everything buffered to the log file (created on first use)
    - no thread safety needed (serial pipeline)
    """
    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None
        self._logs_dir = logs_dir if logs_dir is not None else LOGS_DIR

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            self._file_path = self._logs_dir / f"errors-{_stamp()}.log"
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered records. Returns the log path, or None if nothing was written."""
        if not self._records:
            return None
        fp = self.file_path
        with fp.open("a", encoding="utf-8", errors=ENCODING_ERRORS) as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp


class FailedLinesSink:
    """Durable capture of points from batches the transport rejected.

    target:
        None  -> `logs/failed-YYYYMMDD-HHMMSS.lp`
        "-"   -> stdout
        other -> that file path (appended to)
    """
    def __init__(self, target: str | None = None, logs_dir: Path | None = None,
                 stream: TextIO | None = None) -> None:
        self._target = target
        self._logs_dir = logs_dir if logs_dir is not None else LOGS_DIR
        self._stream = stream
        self._file_path: Path | None = None
        self.captured = 0

    @property
    def to_stdout(self) -> bool:
        return self._target == STDOUT_TARGET

    @property
    def file_path(self) -> Path | None:
        if self.to_stdout:
            return None
        return self._resolve_file()

    def _resolve_file(self) -> Path:
        if self._file_path is None:
            if self._target:
                path = Path(self._target)
                path.parent.mkdir(parents=True, exist_ok=True)
            else:
                self._logs_dir.mkdir(parents=True, exist_ok=True)
                path = self._logs_dir / f"failed-{_stamp()}.lp"
            self._file_path = path
        return self._file_path

    @property
    def description(self) -> str | None:
        """Where captured lines went, or None if nothing was captured."""
        if not self.captured:
            return None
        if self.to_stdout:
            return "<stdout>"
        return str(self.file_path)

    def write(self, lines: Sequence[str]) -> None:
        """Append `lines` verbatim. Raises OSError if the target cannot be written."""
        if not lines:
            return
        payload = "\n".join(lines) + "\n"
        if self.to_stdout:
            self._write_stream(payload)
        else:
            with self._resolve_file().open("a", encoding="utf-8", errors=ENCODING_ERRORS) as f:
                f.write(payload)
        self.captured += len(lines)

    def _write_stream(self, payload: str) -> None:
        out = self._stream if self._stream is not None else sys.stdout
        buffer = getattr(out, "buffer", None)
        if buffer is None:
            out.write(payload)
            out.flush()
            return
        # bytes bypass the text layer so undecodable input is reproduced exactly
        out.flush()
        buffer.write(payload.encode("utf-8", ENCODING_ERRORS))
        buffer.flush()
