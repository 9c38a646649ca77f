from __future__ import annotations

import io

import pytest

from src.logging.error_log import FailedLinesSink
from src.models.import_session import ImportSession
from src.services.accumulator import BatchAccumulator
from src.services.batch_writer import BatchWriter
from src.services.directives import (
    DirectiveProcessor,
    LineKind,
    ScanState,
    classify_line,
    directive_value,
)
from src.services.throttle import RateWindow


def _processor(transport, clock, *, batch_size=5000, db_override=None, rp_override=None, on_data_section=None):
    session = ImportSession(batch_size=batch_size)
    window = RateWindow(0, clock=clock, sleep=clock.sleep)
    writer = BatchWriter(transport, session, window, FailedLinesSink("-", stream=io.StringIO()))
    acc = BatchAccumulator(session, writer, clock=clock)
    proc = DirectiveProcessor(
        session,
        acc,
        database_override=db_override,
        retention_policy_override=rp_override,
        on_data_section=on_data_section,
        clock=clock,
    )
    return proc, session, writer


@pytest.mark.parametrize(
    "line,kind",
    [
        ("", LineKind.BLANK),
        ("   \t", LineKind.BLANK),
        ("# DDL", LineKind.DDL_MARKER),
        ("# DML", LineKind.DML_MARKER),
        ("# DML extra", LineKind.DML_MARKER),
        ("# CONTEXT-DATABASE: foo", LineKind.CONTEXT_DATABASE),
        ("# CONTEXT-RETENTION-POLICY:autogen", LineKind.CONTEXT_RETENTION_POLICY),
        ("# writing block 3", LineKind.COMMENT),
        ("#no space", LineKind.COMMENT),
        ("CREATE DATABASE foo", LineKind.DATA),
        ("cpu,host=a value=1 1000", LineKind.DATA),
        ("  cpu value=1", LineKind.DATA),
    ],
)
def test_classify_line(line, kind):
    assert classify_line(line) is kind


def test_directive_value_takes_text_after_first_colon():
    assert directive_value("# CONTEXT-DATABASE: foo ") == "foo"
    assert directive_value("# CONTEXT-DATABASE:foo") == "foo"
    assert directive_value("# CONTEXT-RETENTION-POLICY: a:b") == "a:b"
    assert directive_value("# CONTEXT-DATABASE:") == ""


def test_schema_phase_last_statement_wins(fake_transport, fake_clock):
    proc, session, _ = _processor(fake_transport, fake_clock)
    proc.feed_all([
        "# DDL",
        "",
        "CREATE DATABASE first",
        "# comment",
        "CREATE DATABASE second",
    ])
    assert proc.state is ScanState.SCANNING_SCHEMA
    assert session.schema_command == "CREATE DATABASE second"


def test_marker_transitions_and_is_not_data(fake_transport, fake_clock):
    seen: list[str | None] = []
    proc, session, writer = _processor(
        fake_transport, fake_clock, on_data_section=lambda s: seen.append(s.schema_command)
    )
    proc.feed_all(["# DDL", "CREATE DATABASE foo", "# DML"])

    assert proc.state is ScanState.SCANNING_DATA
    assert proc.marker_found is True
    assert seen == ["CREATE DATABASE foo"]
    assert session.batch == []
    assert proc.data_lines == 0


def test_schema_phase_is_idempotent_under_repetition(fake_transport, fake_clock):
    segment = ["# DDL", "CREATE DATABASE foo", ""]
    once, s1, _ = _processor(fake_transport, fake_clock)
    twice, s2, _ = _processor(fake_transport, fake_clock)

    once.feed_all(segment)
    twice.feed_all(segment + segment)

    assert s1.schema_command == s2.schema_command == "CREATE DATABASE foo"


def test_marker_never_found_is_terminal_state(fake_transport, fake_clock):
    calls: list[ImportSession] = []
    proc, session, writer = _processor(fake_transport, fake_clock, on_data_section=calls.append)
    proc.feed_all(["CREATE DATABASE foo", "cpu v=1"])
    assert proc.state is ScanState.SCANNING_SCHEMA

    proc.finish()

    assert proc.marker_found is False
    assert len(calls) == 1
    assert writer.flushes == 1
    # the last pre-marker line is taken as the schema command, nothing is written
    assert session.schema_command == "cpu v=1"
    assert fake_transport.writes == []


def test_empty_stream_still_flushes_once(fake_transport, fake_clock):
    proc, session, writer = _processor(fake_transport, fake_clock)
    proc.finish()
    proc.finish()
    assert writer.flushes == 1
    assert session.schema_command is None


def test_context_lines_set_targets(fake_transport, fake_clock):
    proc, session, _ = _processor(fake_transport, fake_clock)
    proc.feed_all([
        "# DML",
        "# CONTEXT-DATABASE: foo",
        "# CONTEXT-RETENTION-POLICY: rp1",
        "m v=1 0",
    ])
    proc.finish()

    assert session.target_database == "foo"
    assert session.target_retention_policy == "rp1"
    assert fake_transport.writes[0].database == "foo"
    assert fake_transport.writes[0].retention_policy == "rp1"


def test_database_override_wins_over_every_context_line(fake_transport, fake_clock):
    def pin(s: ImportSession) -> None:
        s.target_database = "bar"

    proc, session, _ = _processor(fake_transport, fake_clock, batch_size=1, db_override="bar", on_data_section=pin)
    proc.feed_all([
        "# DML",
        "# CONTEXT-DATABASE: foo",
        "m v=1 0",
        "# CONTEXT-DATABASE: baz",
        "m v=2 0",
    ])
    proc.finish()

    assert session.target_database == "bar"
    assert {w.database for w in fake_transport.writes} == {"bar"}


def test_retention_policy_override_ignores_context(fake_transport, fake_clock):
    def pin(s: ImportSession) -> None:
        s.target_retention_policy = "forever"

    proc, session, _ = _processor(fake_transport, fake_clock, rp_override="forever", on_data_section=pin)
    proc.feed_all(["# DML", "# CONTEXT-RETENTION-POLICY: autogen", "m v=1 0"])
    proc.finish()

    assert fake_transport.writes[0].retention_policy == "forever"


def test_comments_and_blanks_skipped_in_data_phase(fake_transport, fake_clock):
    proc, session, _ = _processor(fake_transport, fake_clock)
    proc.feed_all(["# DML", "", "# writing block", "# DDL", "# DML", "m v=1 0", "   "])
    proc.finish()
    assert proc.data_lines == 1
    assert fake_transport.written_lines == ["m v=1 0"]


def test_context_change_flushes_pending_points_for_old_target(fake_transport, fake_clock):
    proc, session, writer = _processor(fake_transport, fake_clock)
    proc.feed_all([
        "# DML",
        "# CONTEXT-DATABASE: a",
        "m v=1 0",
        "m v=2 0",
        "# CONTEXT-DATABASE: a",
        "m v=3 0",
        "# CONTEXT-DATABASE: b",
        "m v=4 0",
    ])
    proc.finish()

    assert [(w.database, w.lines) for w in fake_transport.writes] == [
        ("a", ["m v=1 0", "m v=2 0", "m v=3 0"]),
        ("b", ["m v=4 0"]),
    ]


def test_data_lines_forwarded_verbatim(fake_transport, fake_clock):
    proc, _, _ = _processor(fake_transport, fake_clock)
    raw = 'weather,location=us\\ midwest temperature=82,note="a # b" 1465839830100400200'
    proc.feed_all(["# DML", raw])
    proc.finish()
    assert fake_transport.written_lines == [raw]


def test_feed_after_finish_raises(fake_transport, fake_clock):
    proc, _, _ = _processor(fake_transport, fake_clock)
    proc.finish()
    with pytest.raises(RuntimeError):
        proc.feed("m v=1")


def test_data_line_without_data_section_start_is_rejected(fake_transport, fake_clock):
    proc, _, _ = _processor(fake_transport, fake_clock)
    proc.state = ScanState.SCANNING_DATA
    with pytest.raises(RuntimeError, match="before the data section"):
        proc.feed("m v=1 0")
