"""Application factory that wires the configured store into the API."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI

from .api import Store, create_app as create_api_app
from .config import DatabaseSettings, Settings, load_settings
from .database import Database
from .postgres import PostgresDatabase

logger = logging.getLogger("userhub.application")


def create_database(settings: DatabaseSettings) -> Store:
    """Return the store selected by ``settings`` without connecting to it."""

    if settings.backend == "postgres":
        logger.info(
            "Using PostgreSQL store at %s:%s/%s", settings.host, settings.port, settings.name
        )
        return PostgresDatabase(settings)

    path = settings.sqlite_path()
    logger.info("Using SQLite store at %s", path)
    return Database(path)


def create_application(settings: Optional[Settings] = None) -> FastAPI:
    """Create the API application from ``settings`` (loaded from the environment by default)."""

    if settings is None:
        settings = load_settings()

    database = create_database(settings.database)
    return create_api_app(
        database=database,
        initialize_database=True,
        cors_origins=settings.cors_origins,
    )


__all__ = ["create_application", "create_database"]
