from __future__ import annotations

import time
from collections.abc import Callable

"""Points-per-second write throttle.

The measured rate is "points flushed per second since the last flush
attempt": the points of the pending batch plus anything counted since the
window was last reset, divided by the time since that reset. It is not a
sliding window. A flush is allowed once that rate, truncated to whole points
per second, is within the limit, so a batch of N points goes out no earlier
than N / (pps + 1) seconds after the previous attempt, and sustained
throughput stays below pps + 1 per second plus one batch.

Waiting is a polling loop on a fine timer (one microsecond by default): the
pipeline has nothing else to do while throttled, and a short quantum lands
closer to the target rate than a coarse one. While the writer waits, no input
is read, so the throttle also caps input consumption.

The clock and sleep functions are injectable so tests can drive time.
"""

__all__ = [
    "RateWindow",
    "DEFAULT_RESOLUTION",
]

DEFAULT_RESOLUTION = 1e-6  # seconds


class RateWindow:
    """Tracks points written since the last flush attempt and gates writes.

    Args:
        pps: points-per-second ceiling; 0 or negative disables throttling
        clock: monotonic time source in seconds
        sleep: blocking wait used between rate checks
        resolution: length of one timer tick in seconds
    """

    def __init__(
        self,
        pps: int = 0,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        resolution: float = DEFAULT_RESOLUTION,
    ) -> None:
        self.pps = pps
        self.clock = clock
        self.sleep = sleep
        self.resolution = resolution
        self.points_since_last_write = 0
        self.last_write = clock()
        self.waits = 0  # total ticks spent throttled, for diagnostics

    @property
    def enabled(self) -> bool:
        return self.pps > 0

    def prime(self) -> None:
        """Start the window now (called right before the first data line)."""
        self.points_since_last_write = 0
        self.last_write = self.clock()

    def current_rate(self) -> float:
        elapsed = self.clock() - self.last_write
        if elapsed <= 0:
            # clock granularity: treat the raw count as the rate
            return float(self.points_since_last_write)
        return self.points_since_last_write / elapsed

    def acquire(self, points: int) -> int:
        """Block until `points` may be written. Returns the number of ticks waited."""
        waited = 0
        while True:
            self.points_since_last_write += points
            # compared in whole points per second
            if not self.enabled or int(self.current_rate()) <= self.pps:
                return waited
            self.sleep(self.resolution)
            waited += 1
            self.waits += 1
            # this attempt did not complete; it is counted again on retry
            self.points_since_last_write -= points

    def reset(self) -> None:
        """Close the window after a flush attempt, successful or not."""
        self.points_since_last_write = 0
        self.last_write = self.clock()
