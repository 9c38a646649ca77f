from __future__ import annotations

import json
from dataclasses import FrozenInstanceError

import pytest

from src.models.error_record import ErrorRecord

"""Unit tests for ErrorRecord model."""


def test_error_record_create_fills_timestamp():
    rec = ErrorRecord.create(
        database="telegraf",
        retention_policy="",
        points=42,
        error_type="WRITE_FAILED",
        message="database not found: telegraf",
    )

    assert rec.timestamp.endswith("Z")
    assert "+00:00" not in rec.timestamp
    assert rec.retention_policy == ""
    assert rec.points == 42


def test_error_record_json_keeps_non_ascii():
    rec = ErrorRecord("2026-01-01T00:00:00Z", "métriques", "autogen", 3, "WRITE_FAILED", "échec")
    line = rec.to_json_line()
    assert "métriques" in line
    assert json.loads(line) == {
        "timestamp": "2026-01-01T00:00:00Z",
        "database": "métriques",
        "retention_policy": "autogen",
        "points": 3,
        "error_type": "WRITE_FAILED",
        "message": "échec",
    }


def test_error_record_is_frozen():
    rec = ErrorRecord.create("db", "rp", 1, "WRITE_FAILED", "boom")
    with pytest.raises(FrozenInstanceError):
        rec.points = 2  # type: ignore[misc]
