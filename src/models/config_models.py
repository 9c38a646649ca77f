from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the line-protocol dump importer.

These are the resolved, typed settings the pipeline runs with. The loader in
src/config/loader.py builds them from YAML + environment, and the CLI applies
flag overrides with dataclasses.replace().
"""

DEFAULT_BATCH_SIZE = 5000
DEFAULT_REPORT_INTERVAL = 100_000


@dataclass(frozen=True)
class ConnectionConfig:
    """Connection settings for the destination InfluxDB HTTP API.

    Environment variables (INFLUX_HOST, INFLUX_PORT, INFLUX_USERNAME,
    INFLUX_PASSWORD) take precedence over values from the config file.
    """
    host: str = "localhost"
    port: int = 8086
    username: str | None = None
    password: str | None = None
    ssl: bool = False
    unsafe_ssl: bool = False  # skip certificate verification
    timeout: float = 30.0

    @property
    def url(self) -> str:
        scheme = "https" if self.ssl else "http"
        return f"{scheme}://{self.host}:{self.port}"


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object for one import run."""
    path: str | None = None  # dump file to import
    compressed: bool = False  # gzip input
    pps: int = 0  # points per second ceiling, 0 = unlimited
    destination_database: str | None = None  # overrides CREATE DATABASE and CONTEXT-DATABASE
    retention_policy: str | None = None  # overrides CONTEXT-RETENTION-POLICY
    precision: str = "ns"
    write_consistency: str = "any"
    batch_size: int = DEFAULT_BATCH_SIZE
    report_interval: int = DEFAULT_REPORT_INTERVAL
    failed_lines_path: str | None = None  # None -> logs/failed-*.lp, "-" -> stdout
    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
