from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from userhub.config import DatabaseSettings, load_settings


def test_defaults_select_sqlite() -> None:
    settings = load_settings(environ={})

    assert settings.database.backend == "sqlite"
    assert settings.database.sqlite_path().name == "userhub.sqlite3"
    assert settings.port == 3001
    assert settings.api_url == "http://localhost:3001"
    assert settings.cors_origins == ("*",)


def test_environment_selects_postgres() -> None:
    settings = load_settings(
        environ={
            "DB_HOST": "db.internal",
            "DB_PORT": "6543",
            "DB_NAME": "directory",
            "DB_USER": "app",
            "DB_PASSWORD": "s3cret",
            "PORT": "8080",
            "USERHUB_API_URL": "https://users.example.com/",
            "USERHUB_CORS_ORIGINS": "https://a.example.com, https://b.example.com",
        }
    )

    assert settings.database == DatabaseSettings(
        host="db.internal",
        port=6543,
        name="directory",
        user="app",
        password="s3cret",
    )
    assert settings.database.backend == "postgres"
    assert settings.port == 8080
    assert settings.api_url == "https://users.example.com"
    assert settings.cors_origins == ("https://a.example.com", "https://b.example.com")


def test_yaml_file_is_overridden_by_environment(tmp_path: Path) -> None:
    config_path = tmp_path / "userhub.yaml"
    config_path.write_text(
        textwrap.dedent(
            """
            port: 4000
            api_url: http://api.local:4000
            cors_origins:
              - http://dashboard.local
            database:
              path: data/users.sqlite3
            """
        ),
        encoding="utf-8",
    )

    settings = load_settings(config_path, environ={"PORT": "4100"})

    assert settings.port == 4100
    assert settings.api_url == "http://api.local:4000"
    assert settings.cors_origins == ("http://dashboard.local",)
    assert settings.database.backend == "sqlite"
    assert settings.database.sqlite_path() == (tmp_path / "data" / "users.sqlite3").resolve()


def test_config_path_from_environment(tmp_path: Path) -> None:
    config_path = tmp_path / "settings.yaml"
    config_path.write_text("database:\n  host: pg.local\n", encoding="utf-8")

    settings = load_settings(environ={"USERHUB_CONFIG": str(config_path)})

    assert settings.database.host == "pg.local"
    assert settings.database.port == 5432


def test_sqlite_path_from_environment(tmp_path: Path) -> None:
    target = tmp_path / "custom.sqlite3"

    settings = load_settings(environ={"USERHUB_DB_PATH": str(target)})

    assert settings.database.sqlite_path() == target.resolve()


@pytest.mark.parametrize("variable", ["PORT", "DB_PORT"])
def test_invalid_port_is_rejected(variable: str) -> None:
    with pytest.raises(ValueError):
        load_settings(environ={variable: "not-a-port"})


def test_non_mapping_config_file_is_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "bad.yaml"
    config_path.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_settings(config_path, environ={})
