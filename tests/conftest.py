# Shared pytest fixtures
from __future__ import annotations

import gzip
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from src.db.transport import TransportError


class FakeClock:
    """Monotonic clock whose sleep() just advances time."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@dataclass
class WriteCall:
    body: str
    database: str
    retention_policy: str
    precision: str
    consistency: str

    @property
    def lines(self) -> list[str]:
        return self.body.split("\n")


@dataclass
class FakeTransport:
    """In-memory stand-in for InfluxClient.

    fail_writes: indices (0-based) of write calls that should fail
    """
    fail_writes: set[int] = field(default_factory=set)
    fail_all_writes: bool = False
    ping_error: str | None = None
    query_error: str | None = None
    clock: FakeClock | None = None
    pings: int = 0
    queries: list[tuple[str, str]] = field(default_factory=list)
    writes: list[WriteCall] = field(default_factory=list)
    write_times: list[float] = field(default_factory=list)
    addr: str = "http://fake:8086"
    closed: bool = False

    def ping(self) -> str:
        self.pings += 1
        if self.ping_error:
            raise TransportError(self.ping_error)
        return "fake"

    def query(self, command: str, database: str = "") -> dict[str, Any]:
        self.queries.append((command, database))
        if self.query_error:
            raise TransportError(self.query_error)
        return {"results": [{"statement_id": 0}]}

    def write_line_protocol(self, body, database, retention_policy="", precision="ns", consistency="any") -> None:
        index = len(self.writes)
        self.writes.append(WriteCall(body, database, retention_policy, precision, consistency))
        if self.clock is not None:
            self.write_times.append(self.clock())
        if self.fail_all_writes or index in self.fail_writes:
            raise TransportError("partial write: points beyond retention policy dropped=3")

    def close(self) -> None:
        self.closed = True

    @property
    def written_lines(self) -> list[str]:
        return [line for w in self.writes for line in w.lines]


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def sample_dump_text() -> str:
    return (
        "# DDL\n"
        "CREATE DATABASE foo\n"
        "# DML\n"
        "# CONTEXT-DATABASE: foo\n"
        "m,t=1 v=1 0\n"
    )


@pytest.fixture()
def write_dump(temp_workdir: Path):
    """Write dump text (optionally gzipped) under data/ and return its path."""
    def _write(text: str, name: str = "dump.txt", compressed: bool = False) -> Path:
        path = temp_workdir / "data" / name
        if compressed:
            with gzip.open(path, "wt", encoding="utf-8") as f:
                f.write(text)
        else:
            path.write_text(text, encoding="utf-8")
        return path
    return _write


@pytest.fixture()
def sample_config_yaml() -> str:
    return """path: ./data/dump.txt
compressed: false
pps: 0
precision: s
write_consistency: one
batch_size: 1000
connection:
  host: influx.example.com
  port: 8087
  username: importer
  password: secret
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg
