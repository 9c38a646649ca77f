from __future__ import annotations

import time
from collections.abc import Callable
from datetime import timedelta

from ..logging.init import get_logger
from ..models.import_session import ImportSession
from .batch_writer import BatchWriter

"""Fixed-capacity batch accumulator.

Data lines are appended to the session batch; when it reaches capacity the
BatchWriter flushes it synchronously and the batch is emptied in place.

Every time the processed count (inserted + failed) crosses a multiple of the
report interval, a throughput line is sent to the status sink. Reporting
never changes control flow or counters.
"""

__all__ = [
    "BatchAccumulator",
]

logger = get_logger("accumulator")


class BatchAccumulator:
    def __init__(
        self,
        session: ImportSession,
        writer: BatchWriter,
        *,
        report_interval: int = 100_000,
        clock: Callable[[], float] = time.monotonic,
        status: Callable[[str], None] | None = None,
        on_flush: Callable[[int], None] | None = None,
    ) -> None:
        self.session = session
        self.writer = writer
        self.report_interval = report_interval
        self.clock = clock
        self.status = status if status is not None else logger.info
        self.on_flush = on_flush
        self._reported_marks = 0

    def accept(self, line: str, started_at: float) -> None:
        """Buffer one data line, flushing when the batch is full."""
        self.session.batch.append(line)
        if self.session.batch_full:
            self.flush(started_at)

    def flush(self, started_at: float | None = None) -> None:
        """Hand the current batch to the writer and empty it."""
        size = len(self.session.batch)
        self.writer.flush()
        self.session.clear_batch()
        if self.on_flush is not None and size:
            self.on_flush(size)
        if started_at is not None:
            self._maybe_report(started_at)

    def _maybe_report(self, started_at: float) -> None:
        if self.report_interval <= 0:
            return
        processed = self.session.processed
        marks = processed // self.report_interval
        if marks <= self._reported_marks:
            return
        self._reported_marks = marks
        elapsed = self.clock() - started_at
        pps = int(processed / elapsed) if elapsed > 0 else processed
        self.status(
            f"Processed {processed} lines.  Time elapsed: {timedelta(seconds=elapsed)}.  "
            f"Points per second (PPS): {pps}"
        )
