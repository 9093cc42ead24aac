"""Configuration management for the userhub services."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

import yaml

from .database import resolve_database_path


DEFAULT_API_PORT = 3001
DEFAULT_API_URL = "http://localhost:3001"


def _parse_port(value: object, *, field: str) -> int:
    try:
        port = int(str(value).strip())
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{field} must be an integer, got {value!r}") from exc
    if not 0 < port < 65536:
        raise ValueError(f"{field} must be between 1 and 65535, got {port}")
    return port


def _parse_origins(value: object) -> Tuple[str, ...]:
    if isinstance(value, (list, tuple)):
        items = [str(item).strip() for item in value]
    else:
        items = [item.strip() for item in str(value).split(",")]
    origins = tuple(item for item in items if item)
    return origins or ("*",)


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection parameters for the relational store.

    A configured ``host`` selects PostgreSQL; otherwise the SQLite file at
    ``path`` is used.
    """

    host: Optional[str] = None
    port: int = 5432
    name: str = "userdb"
    user: str = "postgres"
    password: Optional[str] = None
    path: Optional[Path] = None

    @property
    def backend(self) -> str:
        return "postgres" if self.host else "sqlite"

    def sqlite_path(self) -> Path:
        return resolve_database_path(str(self.path) if self.path is not None else None)

    @staticmethod
    def from_dict(data: Mapping[str, object], base_path: Path | None = None) -> "DatabaseSettings":
        """Create :class:`DatabaseSettings` from the ``database`` section of a config file."""
        host = str(data["host"]).strip() if data.get("host") else None
        raw_path = data.get("path")
        path: Optional[Path] = None
        if raw_path:
            expanded = Path(str(raw_path)).expanduser()
            if not expanded.is_absolute() and base_path is not None:
                expanded = base_path / expanded
            path = expanded.resolve(strict=False)

        return DatabaseSettings(
            host=host or None,
            port=_parse_port(data.get("port", 5432), field="database.port"),
            name=str(data.get("name", "userdb")),
            user=str(data.get("user", "postgres")),
            password=str(data["password"]) if data.get("password") is not None else None,
            path=path,
        )


@dataclass(frozen=True)
class Settings:
    """Settings shared by the API service, the web frontend and the CLI."""

    database: DatabaseSettings
    port: int = DEFAULT_API_PORT
    api_url: str = DEFAULT_API_URL
    cors_origins: Tuple[str, ...] = ("*",)


def _read_config_file(config_path: Path) -> Dict[str, object]:
    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Configuration file {config_path} must contain a mapping")
    return raw


def load_settings(
    config_path: Optional[Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Load settings from an optional YAML file, overridden by environment variables."""

    env = os.environ if environ is None else environ

    if config_path is None and env.get("USERHUB_CONFIG"):
        config_path = Path(env["USERHUB_CONFIG"]).expanduser().resolve(strict=False)

    raw: Dict[str, object] = {}
    base_path: Path | None = None
    if config_path is not None:
        raw = _read_config_file(config_path)
        base_path = config_path.parent

    database_raw = raw.get("database") or {}
    if not isinstance(database_raw, dict):
        raise ValueError("The 'database' configuration section must be a mapping")
    database_data: Dict[str, object] = dict(database_raw)

    overrides = {
        "host": "DB_HOST",
        "port": "DB_PORT",
        "name": "DB_NAME",
        "user": "DB_USER",
        "password": "DB_PASSWORD",
        "path": "USERHUB_DB_PATH",
    }
    for key, variable in overrides.items():
        value = env.get(variable)
        if not value:
            continue
        if key == "path":
            value = str(resolve_database_path(value))
        database_data[key] = value

    port = env.get("PORT") or raw.get("port", DEFAULT_API_PORT)
    api_url = env.get("USERHUB_API_URL") or raw.get("api_url") or DEFAULT_API_URL
    origins = env.get("USERHUB_CORS_ORIGINS") or raw.get("cors_origins") or "*"

    return Settings(
        database=DatabaseSettings.from_dict(database_data, base_path=base_path),
        port=_parse_port(port, field="port"),
        api_url=str(api_url).strip().rstrip("/"),
        cors_origins=_parse_origins(origins),
    )


__all__ = ["DatabaseSettings", "Settings", "load_settings"]
