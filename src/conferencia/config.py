"""Runtime settings for the offline client.

Values are resolved in this order: explicit keyword arguments, environment
variables, then defaults.  A TOML file can be used instead of the
environment::

    [conferencia]
    api_base      = "https://api.example.com"
    timeout       = 12.0
    db_path       = "conferencia.duckdb"
    probe_url     = "https://api.example.com/"
    probe_interval = 5.0
    retain_failed = false

Environment variables:
    CONFERENCIA_API_BASE        – base URL of the checklist API
    CONFERENCIA_TIMEOUT         – per-request timeout in seconds
    CONFERENCIA_DB_PATH         – DuckDB file holding the offline queue
    CONFERENCIA_PROBE_URL       – URL used to probe connectivity
    CONFERENCIA_PROBE_INTERVAL  – seconds between connectivity probes
    CONFERENCIA_RETAIN_FAILED   – keep failed records queued after a drain
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

DEFAULT_API_BASE = "https://apidocker-bhc9f4hxb3hggrfz.brazilsouth-01.azurewebsites.net"
DEFAULT_TIMEOUT = 12.0
DEFAULT_DB_PATH = "conferencia.duckdb"
DEFAULT_PROBE_INTERVAL = 5.0

_TRUTHY = {"1", "true", "yes", "on", "sim"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in _TRUTHY


@dataclass
class Settings:
    api_base: str = DEFAULT_API_BASE
    timeout: float = DEFAULT_TIMEOUT
    db_path: str = DEFAULT_DB_PATH
    probe_url: str = ""
    probe_interval: float = DEFAULT_PROBE_INTERVAL
    retain_failed: bool = False

    def __post_init__(self) -> None:
        self.api_base = self.api_base.rstrip("/")
        self.timeout = float(self.timeout)
        self.probe_interval = float(self.probe_interval)
        if not self.probe_url:
            self.probe_url = self.api_base + "/"

    @classmethod
    def from_env(cls, **overrides: Any) -> "Settings":
        """Build settings from ``CONFERENCIA_*`` variables; *overrides* win."""
        values: dict[str, Any] = {
            "api_base": os.getenv("CONFERENCIA_API_BASE", DEFAULT_API_BASE),
            "timeout": os.getenv("CONFERENCIA_TIMEOUT", DEFAULT_TIMEOUT),
            "db_path": os.getenv("CONFERENCIA_DB_PATH", DEFAULT_DB_PATH),
            "probe_url": os.getenv("CONFERENCIA_PROBE_URL", ""),
            "probe_interval": os.getenv("CONFERENCIA_PROBE_INTERVAL", DEFAULT_PROBE_INTERVAL),
            "retain_failed": _env_bool("CONFERENCIA_RETAIN_FAILED", False),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @classmethod
    def from_toml(cls, path: Path | str) -> "Settings":
        """Load the ``[conferencia]`` table of a TOML file."""
        with open(path, "rb") as fh:
            data = tomllib.load(fh)
        table = data.get("conferencia", data)
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in table.items() if k in known})


def configure_logging(level: int | str = logging.INFO) -> None:
    """Attach a stderr handler to the ``conferencia`` logger."""
    logger = logging.getLogger("conferencia")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        logger.addHandler(handler)
    logger.setLevel(level)
