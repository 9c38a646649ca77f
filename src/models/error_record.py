from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for error logging.

One record is produced per rejected batch and written as a JSON line to the
run's error log. The record does not carry the points themselves; those go
verbatim to the failed-lines capture file so they can be re-imported.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        database: Target database of the failed write
        retention_policy: Target retention policy ("" when server default)
        points: Number of points in the failed batch
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Transport error message
    """
    timestamp: str  # ISO8601 UTC
    database: str
    retention_policy: str
    points: int
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(
        database: str, retention_policy: str, points: int, error_type: str, message: str
    ) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            database=database,
            retention_policy=retention_policy,
            points=points,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        # dataclass -> dict keeps the key set fixed
        return json.dumps(asdict(self), ensure_ascii=False)
