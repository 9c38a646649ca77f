from __future__ import annotations

import argparse
import dataclasses
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from dotenv import load_dotenv

from src.config.loader import ConfigError, load_config
from src.db.transport import InfluxClient
from src.logging.init import get_logger, log_summary, set_debug, setup_logging
from src.models.config_models import ConnectionConfig, ImportConfig
from src.services.orchestrator import ProcessingError, run_import
from src.services.summary import render_summary_line

"""CLI entrypoint.

Flow:
- Load .env (connection credentials), then the optional YAML config
- Apply command-line flags on top of the config
- Connect, run the import, print the SUMMARY line
- Map the outcome to an exit code
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2


@contextmanager
def _influx_client(cfg: ConnectionConfig) -> Iterator[InfluxClient]:  # pragma: no cover (thin wrapper)
    """One HTTP session per run, closed when the run ends."""
    client = InfluxClient(cfg)
    try:
        yield client
    finally:
        client.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv. Failures only warn."""
    try:
        if path.exists():
            load_dotenv(dotenv_path=path, override=override)
    except OSError as e:  # pragma: no cover
        get_logger().warning(f"failed to load .env: {e}")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Line-protocol dump -> InfluxDB importer")
    p.add_argument("--config", type=Path, help="YAML config file")
    p.add_argument("--path", help="Dump file to import")
    p.add_argument("--compressed", action="store_true", default=None, help="Input is gzip compressed")
    p.add_argument("--pps", type=int, help="Points per second limit (0 = unlimited)")
    p.add_argument("--database", help="Destination database, overrides the dump's CREATE DATABASE and CONTEXT-DATABASE")
    p.add_argument("--retention-policy", help="Destination retention policy, overrides CONTEXT-RETENTION-POLICY")
    p.add_argument("--precision", help="Write precision (ns, u, ms, s, m, h)")
    p.add_argument("--consistency", help="Write consistency (any, one, quorum, all)")
    p.add_argument("--batch-size", type=int, help="Points per write request")
    p.add_argument("--failed-lines", help="Where to copy points that failed to import ('-' = stdout)")
    p.add_argument("--host", help="Server host")
    p.add_argument("--port", type=int, help="Server port")
    p.add_argument("--username", help="Username")
    p.add_argument("--password", help="Password")
    p.add_argument("--ssl", action="store_true", default=None, help="Use HTTPS")
    p.add_argument("--unsafe-ssl", action="store_true", default=None, help="Skip TLS certificate verification")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _apply_flags(cfg: ImportConfig, args: argparse.Namespace) -> ImportConfig:
    """Command-line flags win over config file and environment."""
    conn_flags = {
        "host": args.host,
        "port": args.port,
        "username": args.username,
        "password": args.password,
        "ssl": args.ssl,
        "unsafe_ssl": args.unsafe_ssl,
    }
    conn_changes = {k: v for k, v in conn_flags.items() if v is not None}
    import_flags = {
        "path": args.path,
        "compressed": args.compressed,
        "pps": args.pps,
        "destination_database": args.database,
        "retention_policy": args.retention_policy,
        "precision": args.precision,
        "write_consistency": args.consistency,
        "batch_size": args.batch_size,
        "failed_lines_path": args.failed_lines,
    }
    changes = {k: v for k, v in import_flags.items() if v is not None}
    if conn_changes:
        changes["connection"] = dataclasses.replace(cfg.connection, **conn_changes)
    return dataclasses.replace(cfg, **changes)


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None -> read sys.argv; an explicit [] must not pick up pytest's arguments
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)

    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = _apply_flags(load_config(args.config), args)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if cfg.batch_size <= 0:
        logger.error(f"config: batch size must be positive, got {cfg.batch_size}")
        return EXIT_FATAL
    if cfg.pps < 0:
        logger.error(f"config: pps must not be negative, got {cfg.pps}")
        return EXIT_FATAL

    logger.info(f"Importing {cfg.path} into {cfg.connection.url}")

    try:
        with _influx_client(cfg.connection) as client:
            result = run_import(cfg, client)
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL

    log_summary(render_summary_line(result)[len("SUMMARY "):])

    if not result.succeeded:
        logger.error(f"import: {result.error}")
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
