from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from enum import Enum

from ..logging.init import get_logger
from ..models.import_session import ImportSession
from .accumulator import BatchAccumulator

"""Directive processor: a two-state scanner over the dump's lines.

    SCANNING_SCHEMA --(line starting with "# DML")--> SCANNING_DATA

SCANNING_SCHEMA: comments and blank lines are skipped; the last other line
becomes the session's schema command (last-write-wins). The marker line is
consumed.

SCANNING_DATA: "# CONTEXT-DATABASE:" / "# CONTEXT-RETENTION-POLICY:" lines
retarget all following data lines unless the corresponding override is set
(points already buffered for the previous target are flushed first); other
comments and blank lines are skipped; everything else is a data line and
goes to the accumulator untouched.

finish() closes the stream: if the marker never appeared the data section is
entered anyway (so the schema command is still issued), then the accumulator
is flushed exactly once.
"""

__all__ = [
    "ScanState",
    "LineKind",
    "classify_line",
    "directive_value",
    "DirectiveProcessor",
    "DML_MARKER",
    "CONTEXT_DATABASE",
    "CONTEXT_RETENTION_POLICY",
]

DDL_MARKER = "# DDL"
DML_MARKER = "# DML"
CONTEXT_DATABASE = "# CONTEXT-DATABASE:"
CONTEXT_RETENTION_POLICY = "# CONTEXT-RETENTION-POLICY:"
COMMENT_PREFIX = "#"

logger = get_logger("directives")


class ScanState(Enum):
    SCANNING_SCHEMA = "scanning_schema"
    SCANNING_DATA = "scanning_data"


class LineKind(Enum):
    BLANK = "blank"
    DDL_MARKER = "ddl_marker"
    DML_MARKER = "dml_marker"
    CONTEXT_DATABASE = "context_database"
    CONTEXT_RETENTION_POLICY = "context_retention_policy"
    COMMENT = "comment"
    DATA = "data"


def classify_line(line: str) -> LineKind:
    """Classify a raw line. Prefix checks are made on the unstripped line."""
    if line.startswith(DML_MARKER):
        return LineKind.DML_MARKER
    if line.startswith(DDL_MARKER):
        return LineKind.DDL_MARKER
    if line.startswith(CONTEXT_DATABASE):
        return LineKind.CONTEXT_DATABASE
    if line.startswith(CONTEXT_RETENTION_POLICY):
        return LineKind.CONTEXT_RETENTION_POLICY
    if line.startswith(COMMENT_PREFIX):
        return LineKind.COMMENT
    if not line.strip():
        return LineKind.BLANK
    return LineKind.DATA


def directive_value(line: str) -> str:
    """Text after the first colon, trimmed.

    >>> directive_value("# CONTEXT-DATABASE: telegraf")
    'telegraf'
    """
    return line.partition(":")[2].strip()


class DirectiveProcessor:
    """Routes lines of one dump into an ImportSession.

    Args:
        session: run state; schema command and targets are written here
        accumulator: receives data lines
        database_override: when set, CONTEXT-DATABASE lines are ignored
        retention_policy_override: when set, CONTEXT-RETENTION-POLICY lines are ignored
        on_data_section: called once, on the transition to SCANNING_DATA,
            before any data line is accepted
    """

    def __init__(
        self,
        session: ImportSession,
        accumulator: BatchAccumulator,
        *,
        database_override: str | None = None,
        retention_policy_override: str | None = None,
        on_data_section: Callable[[ImportSession], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.session = session
        self.accumulator = accumulator
        self.database_override = database_override or None
        self.retention_policy_override = retention_policy_override or None
        self.on_data_section = on_data_section
        self.clock = clock
        self.state = ScanState.SCANNING_SCHEMA
        self.marker_found = False
        self.finished = False
        self.started_at: float | None = None
        self.data_lines = 0

    def feed(self, line: str) -> None:
        if self.finished:
            raise RuntimeError("feed() called after finish()")
        kind = classify_line(line)
        if self.state is ScanState.SCANNING_SCHEMA:
            self._scan_schema(line, kind)
        else:
            self._scan_data(line, kind)

    def feed_all(self, lines: Iterable[str]) -> None:
        for line in lines:
            self.feed(line)

    def finish(self) -> None:
        """End of stream: make sure the data section ran, then flush once."""
        if self.finished:
            return
        if self.state is ScanState.SCANNING_SCHEMA:
            logger.debug("no %r marker found before end of input", DML_MARKER)
            self._enter_data_section()
        self.finished = True
        self.accumulator.flush(self.started_at)

    def _scan_schema(self, line: str, kind: LineKind) -> None:
        if kind is LineKind.DML_MARKER:
            self.marker_found = True
            self._enter_data_section()
            return
        if kind is LineKind.DATA:
            self.session.schema_command = line

    def _scan_data(self, line: str, kind: LineKind) -> None:
        if kind is LineKind.CONTEXT_DATABASE:
            if self.database_override is None:
                value = directive_value(line)
                self._retarget(value, self.session.target_retention_policy)
                self.session.target_database = value
        elif kind is LineKind.CONTEXT_RETENTION_POLICY:
            if self.retention_policy_override is None:
                value = directive_value(line)
                self._retarget(self.session.target_database, value)
                self.session.target_retention_policy = value
        elif kind is LineKind.DATA:
            if self.started_at is None:
                raise RuntimeError("data line routed before the data section started")
            self.data_lines += 1
            self.accumulator.accept(line, self.started_at)

    def _retarget(self, database: str, retention_policy: str) -> None:
        # buffered points belong to the old target; a batch never spans two
        if not self.session.batch:
            return
        if (database, retention_policy) == (
            self.session.target_database,
            self.session.target_retention_policy,
        ):
            return
        self.accumulator.flush(self.started_at)

    def _enter_data_section(self) -> None:
        self.state = ScanState.SCANNING_DATA
        if self.on_data_section is not None:
            self.on_data_section(self.session)
        self.started_at = self.clock()
