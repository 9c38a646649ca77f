from __future__ import annotations

from ..models.processing_result import ImportResult

"""Summary line rendering service.

Format:
SUMMARY commands={n} inserts={n} failed={n} elapsed_sec={x} throughput_pps={y}
"""


def _format_number(value: float) -> str:
    # integers without ".0", tiny values without scientific notation
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.2f}".rstrip("0").rstrip(".")


def render_summary_line(result: ImportResult) -> str:
    """Render a SUMMARY line from an ImportResult.

    Examples:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2023, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2023, 1, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> result = ImportResult(
        ...     total_commands=1, total_inserts=1000, failed_inserts=0,
        ...     schema_command="CREATE DATABASE db", start_time=start, end_time=end,
        ...     elapsed_seconds=2.0, throughput_points_per_sec=500.0,
        ... )
        >>> render_summary_line(result)
        'SUMMARY commands=1 inserts=1000 failed=0 elapsed_sec=2 throughput_pps=500'
    """
    return (
        f"SUMMARY commands={result.total_commands} "
        f"inserts={result.total_inserts} "
        f"failed={result.failed_inserts} "
        f"elapsed_sec={_format_number(result.elapsed_seconds)} "
        f"throughput_pps={_format_number(result.throughput_points_per_sec)}"
    )


def render_counter_lines(result: ImportResult) -> list[str]:
    """Per-counter report lines, printed when at least one insert was attempted."""
    return [
        f"Processed {result.total_commands} commands",
        f"Processed {result.total_inserts} inserts",
        f"Failed {result.failed_inserts} inserts",
    ]
