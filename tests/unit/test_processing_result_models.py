from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from src.models.import_session import ImportSession
from src.models.processing_result import ImportResult, failed_points_message

"""Unit tests for the result and session models."""


def _result(**overrides) -> ImportResult:
    start = datetime(2026, 1, 1, tzinfo=UTC)
    values = dict(
        total_commands=1,
        total_inserts=100,
        failed_inserts=0,
        schema_command="CREATE DATABASE db",
        start_time=start,
        end_time=start + timedelta(seconds=2),
        elapsed_seconds=2.0,
        throughput_points_per_sec=50.0,
    )
    values.update(overrides)
    return ImportResult(**values)


class TestImportResult:
    def test_success_defaults(self):
        result = _result()
        assert result.succeeded is True
        assert result.error is None
        assert result.failed_lines_path is None
        assert result.attempted == 100

    def test_failure(self):
        result = _result(total_inserts=90, failed_inserts=10, error=failed_points_message(10))
        assert result.succeeded is False
        assert result.attempted == 100
        assert result.error == "10 points were not inserted"


@pytest.mark.parametrize(
    ("failed", "expected"),
    [
        (1, "1 point was not inserted"),
        (2, "2 points were not inserted"),
        (5000, "5000 points were not inserted"),
    ],
)
def test_failed_points_message(failed, expected):
    assert failed_points_message(failed) == expected


class TestImportSession:
    def test_batch_full_and_clear(self):
        session = ImportSession(batch_size=2)
        session.batch.extend(["a v=1", "b v=1"])
        assert session.batch_full
        batch = session.batch
        session.clear_batch()
        assert session.batch == []
        assert batch is session.batch

    def test_rejects_non_positive_batch_size(self):
        with pytest.raises(ValueError):
            ImportSession(batch_size=0)
