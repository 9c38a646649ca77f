from __future__ import annotations

import time
from pathlib import Path

from scripts.gen_dump_dataset import generate_dump_lines, write_dump
from src.logging.error_log import ErrorLogBuffer, FailedLinesSink
from src.models.config_models import ImportConfig
from src.services.orchestrator import run_import

"""Performance smoke test: pipeline overhead with a no-op transport.

100k points through scanner, accumulator and writer with batch size 5000.
The budget is deliberately lenient so CI stays stable; it only catches
accidental quadratic behaviour.
"""

POINTS = 100_000


class NullTransport:
    def __init__(self) -> None:
        self.points = 0
        self.batches = 0

    def ping(self) -> str:
        return "null"

    def query(self, command: str, database: str = "") -> dict:
        return {}

    def write_line_protocol(self, body, database, retention_policy="", precision="ns", consistency="any") -> None:
        self.batches += 1
        self.points += body.count("\n") + 1


def test_generator_layout():
    lines = list(generate_dump_lines(3, "perf", "autogen", context_every=2))
    assert lines[:5] == [
        "# DDL",
        "CREATE DATABASE perf WITH NAME autogen",
        "# DML",
        "# CONTEXT-DATABASE:perf",
        "# CONTEXT-RETENTION-POLICY:autogen",
    ]
    assert sum(1 for line in lines if not line.startswith("#")) == 4  # schema + 3 points


def test_pipeline_throughput_budget(temp_workdir: Path, capsys):
    path = temp_workdir / "data" / "perf.txt.gz"
    write_dump(path, POINTS, compressed=True, context_every=25_000)
    capsys.readouterr()
    transport = NullTransport()

    start = time.perf_counter()
    result = run_import(
        ImportConfig(path=str(path), compressed=True),
        transport,
        failed_sink=FailedLinesSink(logs_dir=temp_workdir / "logs"),
        error_log=ErrorLogBuffer(logs_dir=temp_workdir / "logs"),
    )
    elapsed = time.perf_counter() - start

    assert result.succeeded
    assert result.total_inserts == POINTS
    assert transport.points == POINTS
    assert transport.batches == POINTS // 5000
    assert elapsed < 30.0, f"pipeline too slow: {elapsed:.2f}s for {POINTS} points"
