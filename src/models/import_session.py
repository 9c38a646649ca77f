from __future__ import annotations

from dataclasses import dataclass, field

from .config_models import DEFAULT_BATCH_SIZE

"""ImportSession: the single mutable state object of an import run.

Created once per run by the orchestrator and passed explicitly to the
directive processor, the accumulator and the batch writer. Counters are
read-only once the stream has ended.
"""

__all__ = [
    "ImportSession",
]


@dataclass
class ImportSession:
    target_database: str = ""
    target_retention_policy: str = ""
    schema_command: str | None = None  # pending CREATE DATABASE statement
    total_commands: int = 0
    total_inserts: int = 0
    failed_inserts: int = 0
    batch_size: int = DEFAULT_BATCH_SIZE
    batch: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")

    @property
    def processed(self) -> int:
        """Points handed to the transport so far (successes + failures)."""
        return self.total_inserts + self.failed_inserts

    @property
    def batch_full(self) -> bool:
        return len(self.batch) >= self.batch_size

    def clear_batch(self) -> None:
        # clear() keeps the same list object, so callers holding it see the reset
        self.batch.clear()
