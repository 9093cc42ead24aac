"""Core utilities for the userhub user directory."""

from __future__ import annotations

from typing import Any

from .database import Database, StoreError, resolve_database_path


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the API application built from settings."""

    from .application import create_application as _create_application

    return _create_application(*args, **kwargs)


def create_web_app(*args: Any, **kwargs: Any):
    """Factory function for the dashboard frontend."""

    from .web import create_app as _create_web_app

    return _create_web_app(*args, **kwargs)


__all__ = [
    "Database",
    "StoreError",
    "resolve_database_path",
    "create_app",
    "create_web_app",
]
