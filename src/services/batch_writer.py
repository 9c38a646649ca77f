from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from ..db.transport import Transport, TransportError
from ..logging.error_log import ErrorLogBuffer, ErrorRecord, FailedLinesSink
from ..logging.init import get_logger
from ..models.import_session import ImportSession
from .throttle import RateWindow

"""Rate-throttled batch flush.

BatchWriter.flush() sends the session's current batch as one transport call:

1. wait on the RateWindow until the batch fits under the pps ceiling
2. write the newline-joined lines to the session's target database / rp
3. on failure: log, count them as failed, copy the lines verbatim to the
   FailedLinesSink and record an ErrorRecord; on success count them as inserted
4. reset the RateWindow whatever the outcome

A batch succeeds or fails as a whole. Neither write failures nor a capture
sink that cannot be written abort the run.
"""

__all__ = [
    "BatchWriter",
    "FlushMetrics",
]

logger = get_logger("batch_writer")


@dataclass(frozen=True)
class FlushMetrics:
    """Timing data for a single flush."""
    batch_size: int
    waited_ticks: int  # timer ticks spent throttled before the write
    elapsed_seconds: float  # time spent in the transport call
    succeeded: bool


class BatchWriter:
    def __init__(
        self,
        transport: Transport,
        session: ImportSession,
        window: RateWindow,
        failed_sink: FailedLinesSink,
        *,
        precision: str = "ns",
        consistency: str = "any",
        error_log: ErrorLogBuffer | None = None,
        metrics_callback: Callable[[FlushMetrics], None] | None = None,
    ) -> None:
        self.transport = transport
        self.session = session
        self.window = window
        self.failed_sink = failed_sink
        self.precision = precision
        self.consistency = consistency
        self.error_log = error_log
        self.metrics_callback = metrics_callback
        self.flushes = 0

    def flush(self) -> None:
        """Write the current batch. The caller clears the batch afterwards."""
        batch = self.session.batch
        self.flushes += 1
        if not batch:
            # end-of-stream flush with nothing buffered: no request to make
            self.window.reset()
            return

        size = len(batch)
        waited = self.window.acquire(size)

        start = time.perf_counter()
        succeeded = True
        try:
            self.transport.write_line_protocol(
                "\n".join(batch),
                self.session.target_database,
                self.session.target_retention_policy,
                self.precision,
                self.consistency,
            )
        except TransportError as e:
            succeeded = False
            self._record_failure(batch, e)
        else:
            self.session.total_inserts += size
        finally:
            self.window.reset()

        if self.metrics_callback is not None:
            self.metrics_callback(
                FlushMetrics(
                    batch_size=size,
                    waited_ticks=waited,
                    elapsed_seconds=time.perf_counter() - start,
                    succeeded=succeeded,
                )
            )

    def _record_failure(self, batch: list[str], error: TransportError) -> None:
        size = len(batch)
        logger.error("error writing batch: %s", error)
        self.session.failed_inserts += size
        try:
            self.failed_sink.write(batch)
        except OSError as e:
            # the points stay counted as failed; only their copy is lost
            logger.error("could not capture %d failed points: %s", size, e)
        if self.error_log is not None:
            self.error_log.append(
                ErrorRecord.create(
                    database=self.session.target_database,
                    retention_policy=self.session.target_retention_policy,
                    points=size,
                    error_type="WRITE_FAILED",
                    message=str(error),
                )
            )
