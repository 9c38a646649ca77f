from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

"""Processing result models for the line-protocol dump importer.

ImportResult aggregates the final counters of a run together with timing
metrics used by the SUMMARY line, and carries the terminal error (if any)
that the CLI maps to a process exit code.
"""


def failed_points_message(failed: int) -> str:
    """Render the pluralized failure message.

    >>> failed_points_message(1)
    '1 point was not inserted'
    >>> failed_points_message(3)
    '3 points were not inserted'
    """
    plural = " was" if failed == 1 else "s were"
    return f"{failed} point{plural} not inserted"


@dataclass(frozen=True)
class ImportResult:
    """Aggregated results of one import run."""
    total_commands: int  # schema commands issued
    total_inserts: int  # points written successfully
    failed_inserts: int  # points in batches the transport rejected
    schema_command: str | None  # command actually issued (after overrides)
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float  # end - start
    throughput_points_per_sec: float  # (inserts + failures) / elapsed
    error: str | None = None  # terminal error message, None on success
    failed_lines_path: str | None = None  # capture sink target, if anything was captured

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def attempted(self) -> int:
        return self.total_inserts + self.failed_inserts
