from __future__ import annotations

import time
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

from ..db.transport import Transport, TransportError
from ..dump.reader import DumpOpenError, DumpReadError, iter_lines, open_dump
from ..logging.error_log import ErrorLogBuffer, FailedLinesSink
from ..logging.init import get_logger
from ..models.config_models import ImportConfig
from ..models.import_session import ImportSession
from ..models.processing_result import ImportResult, failed_points_message
from .accumulator import BatchAccumulator
from .batch_writer import BatchWriter, FlushMetrics
from .directives import DirectiveProcessor
from .progress import ProgressTracker
from .summary import render_counter_lines
from .throttle import DEFAULT_RESOLUTION, RateWindow

logger = get_logger("orchestrator")

"""Service orchestration for the dump importer.

run_import() drives one import run end to end:

1. check the server answers (fatal otherwise)
2. open the dump, decompressing if configured (fatal otherwise)
3. scan the schema section, then on the "# DML" marker apply the overrides
   and issue the schema command before any point is written
4. scan the data section, batching and writing points under the pps ceiling
5. flush what is left, write the error log, and fold the counters into an
   ImportResult whose `error` is set when the run did not fully succeed

Fatal setup problems raise ProcessingError. Read errors and failed batches
do not raise; they end up in ImportResult.error.
"""


class ProcessingError(Exception):
    """Fatal error that prevents an import run from starting."""
    pass


def apply_overrides(
    session: ImportSession,
    database_override: str | None,
    retention_policy_override: str | None,
) -> None:
    """Apply CLI/config overrides on top of what the schema section declared.

    A database override replaces the extracted schema command entirely and
    pins the target database; a retention-policy override pins the target
    retention policy.
    """
    if database_override:
        session.schema_command = f"CREATE DATABASE {database_override}"
        session.target_database = database_override
    if retention_policy_override:
        session.target_retention_policy = retention_policy_override


def execute_command(transport: Transport, session: ImportSession, command: str) -> None:
    """Issue a command, counting it. Errors are logged, never raised."""
    session.total_commands += 1
    try:
        transport.query(command, session.target_database)
    except TransportError as e:
        logger.error("error: %s", e)


def run_import(
    config: ImportConfig,
    transport: Transport,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
    resolution: float = DEFAULT_RESOLUTION,
    failed_sink: FailedLinesSink | None = None,
    error_log: ErrorLogBuffer | None = None,
) -> ImportResult:
    """Import the dump described by `config` through `transport`.

    Args:
        config: resolved import configuration
        transport: connected server client (see src.db.transport.Transport)
        clock, sleep, resolution: time sources for the pps throttle
        failed_sink: capture for rejected points (default from config)
        error_log: JSON Lines error log (default: logs/errors-*.log)

    Returns:
        ImportResult with final counters and the terminal error, if any

    Raises:
        ProcessingError: the server is unreachable, no input path was given,
            or the input cannot be opened or decompressed
    """
    try:
        transport.ping()
    except TransportError as e:
        addr = getattr(transport, "addr", "server")
        raise ProcessingError(f"failed to connect to {addr}: {e}") from e

    if not config.path:
        raise ProcessingError("file argument required")

    start_time = datetime.now(UTC)
    session = ImportSession(batch_size=config.batch_size)
    sink = failed_sink if failed_sink is not None else FailedLinesSink(config.failed_lines_path)
    errors = error_log if error_log is not None else ErrorLogBuffer()
    window = RateWindow(config.pps, clock=clock, sleep=sleep, resolution=resolution)
    read_error: DumpReadError | None = None

    def on_data_section(s: ImportSession) -> None:
        apply_overrides(s, config.destination_database, config.retention_policy)
        if s.schema_command:
            execute_command(transport, s, s.schema_command)
        else:
            logger.warning("no schema command found before data section")
        window.prime()

    try:
        with open_dump(Path(config.path), compressed=config.compressed) as stream:
            with ProgressTracker(description="Importing points") as progress:

                def on_flush_metrics(m: FlushMetrics) -> None:
                    logger.debug(
                        "flushed %d points in %.3fs after %d throttle ticks (ok=%s)",
                        m.batch_size, m.elapsed_seconds, m.waited_ticks, m.succeeded,
                    )
                    progress.set_postfix(failed=session.failed_inserts)

                writer = BatchWriter(
                    transport,
                    session,
                    window,
                    sink,
                    precision=config.precision,
                    consistency=config.write_consistency,
                    error_log=errors,
                    metrics_callback=on_flush_metrics,
                )
                accumulator = BatchAccumulator(
                    session,
                    writer,
                    report_interval=config.report_interval,
                    clock=clock,
                    on_flush=progress.update,
                )
                processor = DirectiveProcessor(
                    session,
                    accumulator,
                    database_override=config.destination_database,
                    retention_policy_override=config.retention_policy,
                    on_data_section=on_data_section,
                    clock=clock,
                )
                try:
                    processor.feed_all(iter_lines(stream))
                except DumpReadError as e:
                    read_error = e
                # buffered points are written even when reading stopped early
                processor.finish()
    except DumpOpenError as e:
        raise ProcessingError(f"cannot open input: {e}") from e

    try:
        log_path = errors.flush()
        if log_path is not None:
            logger.info("error log written to %s", log_path)
    except OSError as e:
        logger.warning("failed to write error log: %s", e)

    end_time = datetime.now(UTC)
    elapsed = (end_time - start_time).total_seconds()
    attempted = session.processed
    throughput = attempted / elapsed if elapsed > 0 else 0.0

    error: str | None = None
    if read_error is not None:
        error = f"reading input: {read_error}"
    elif session.failed_inserts > 0:
        error = failed_points_message(session.failed_inserts)

    result = ImportResult(
        total_commands=session.total_commands,
        total_inserts=session.total_inserts,
        failed_inserts=session.failed_inserts,
        schema_command=session.schema_command,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=elapsed,
        throughput_points_per_sec=throughput,
        error=error,
        failed_lines_path=sink.description,
    )

    if result.attempted > 0:
        for line in render_counter_lines(result):
            logger.info(line)
    if sink.description is not None:
        logger.info("failed points written to %s", sink.description)
    return result
