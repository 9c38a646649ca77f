from __future__ import annotations

from typing import Any, Protocol

import requests

from src import __version__
from src.dump.reader import ENCODING_ERRORS
from src.logging.init import get_logger
from src.models.config_models import ConnectionConfig

"""InfluxDB 1.x HTTP transport.

The pipeline only needs three calls, described by the Transport protocol:

- ping()                 connection check before anything is read
- query(command, db)     used for the CREATE DATABASE statement
- write_line_protocol()  one call per batch, body = newline-joined points

Every failure (network, HTTP status, error embedded in a query response) is
raised as TransportError. Calls are at-most-once: this module never retries.
"""

__all__ = [
    "Transport",
    "TransportError",
    "InfluxClient",
    "USER_AGENT",
]

USER_AGENT = f"lp-dump-importer/{__version__}"

logger = get_logger("transport")


class TransportError(Exception):
    """Raised for any failed request against the destination server."""
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class Transport(Protocol):
    def ping(self) -> str: ...

    def query(self, command: str, database: str = "") -> dict[str, Any]: ...

    def write_line_protocol(
        self,
        body: str,
        database: str,
        retention_policy: str = "",
        precision: str = "ns",
        consistency: str = "any",
    ) -> None: ...


def _error_from_response(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        text = response.text.strip()
        return text or f"HTTP {response.status_code}"
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return f"HTTP {response.status_code}"


class InfluxClient:
    """Thin requests.Session wrapper speaking the InfluxDB 1.x HTTP API.

    One session is opened per run and reused for every command and batch.
    """

    def __init__(self, config: ConnectionConfig, session: requests.Session | None = None) -> None:
        self.config = config
        self.session = session if session is not None else requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT, "Connection": "keep-alive"})
        if config.username:
            self.session.auth = (config.username, config.password or "")
        self.session.verify = not config.unsafe_ssl

    @property
    def addr(self) -> str:
        return self.config.url

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = f"{self.config.url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.config.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise TransportError(f"{method} {path} failed: {e}") from e
        if response.status_code >= 300:
            raise TransportError(_error_from_response(response), status_code=response.status_code)
        return response

    def ping(self) -> str:
        """Check the server is reachable. Returns the reported server version."""
        response = self._request("GET", "/ping")
        version = response.headers.get("X-Influxdb-Version", "unknown")
        logger.debug("connected to %s version %s", self.addr, version)
        return version

    def query(self, command: str, database: str = "") -> dict[str, Any]:
        params = {"q": command}
        if database:
            params["db"] = database
        response = self._request("POST", "/query", params=params)
        try:
            payload = response.json()
        except ValueError as e:
            raise TransportError(f"invalid query response: {e}") from e
        # errors may be reported with a 200 status, either top-level or per statement
        if payload.get("error"):
            raise TransportError(str(payload["error"]))
        for result in payload.get("results", []):
            if isinstance(result, dict) and result.get("error"):
                raise TransportError(str(result["error"]))
        return payload

    def write_line_protocol(
        self,
        body: str,
        database: str,
        retention_policy: str = "",
        precision: str = "ns",
        consistency: str = "any",
    ) -> None:
        params = {"db": database, "precision": precision, "consistency": consistency}
        if retention_policy:
            params["rp"] = retention_policy
        self._request(
            "POST",
            "/write",
            params=params,
            data=body.encode("utf-8", ENCODING_ERRORS),
            headers={"Content-Type": "text/plain; charset=utf-8"},
        )

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> InfluxClient:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
