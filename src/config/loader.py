from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from src.models.config_models import ConnectionConfig, ImportConfig

"""Config loader.

Responsibilities:
- Load an optional YAML config file
- Validate it against the bundled JSON schema (config_schema.json)
- Resolve connection settings: environment variables (INFLUX_HOST,
  INFLUX_PORT, INFLUX_USERNAME, INFLUX_PASSWORD; usually from .env) win over
  the file, the file wins over defaults
- Return frozen dataclasses; CLI flags are applied afterwards by the caller
"""

SCHEMA_PATH = Path(__file__).parent / "config_schema.json"

ENV_HOST = "INFLUX_HOST"
ENV_PORT = "INFLUX_PORT"
ENV_USERNAME = "INFLUX_USERNAME"
ENV_PASSWORD = "INFLUX_PASSWORD"


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: if the schema file is missing or invalid, or the config
            data fails validation (unknown keys, wrong types, out of range).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _resolve_connection(raw: Mapping[str, Any], env: Mapping[str, str]) -> ConnectionConfig:
    defaults = ConnectionConfig()
    port_raw = env.get(ENV_PORT) or raw.get("port") or defaults.port
    try:
        port = int(port_raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"invalid port: {port_raw!r}") from e
    return ConnectionConfig(
        host=env.get(ENV_HOST) or raw.get("host") or defaults.host,
        port=port,
        username=env.get(ENV_USERNAME) or raw.get("username"),
        password=env.get(ENV_PASSWORD) or raw.get("password"),
        ssl=bool(raw.get("ssl", defaults.ssl)),
        unsafe_ssl=bool(raw.get("unsafe_ssl", defaults.unsafe_ssl)),
        timeout=float(raw.get("timeout", defaults.timeout)),
    )


def build_config(data: Mapping[str, Any], env: Mapping[str, str] | None = None) -> ImportConfig:
    """Build an ImportConfig from already-validated config data."""
    if env is None:
        env = os.environ
    defaults = ImportConfig()
    return ImportConfig(
        path=data.get("path"),
        compressed=data.get("compressed", defaults.compressed),
        pps=data.get("pps", defaults.pps),
        destination_database=data.get("destination_database"),
        retention_policy=data.get("retention_policy"),
        precision=data.get("precision", defaults.precision),
        write_consistency=data.get("write_consistency", defaults.write_consistency),
        batch_size=data.get("batch_size", defaults.batch_size),
        report_interval=data.get("report_interval", defaults.report_interval),
        failed_lines_path=data.get("failed_lines_path"),
        connection=_resolve_connection(data.get("connection") or {}, env),
    )


def load_config(path: Path | None, env: Mapping[str, str] | None = None) -> ImportConfig:
    """Load and validate the YAML config at `path` (None = defaults + env only)."""
    if path is None:
        return build_config({}, env)
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping, got {type(data).__name__}")

    _validate_config_schema(data)
    return build_config(data, env)
