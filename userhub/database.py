"""SQLite-backed persistence for the user directory."""
from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from .models import User

logger = logging.getLogger("userhub.database")


class StoreError(RuntimeError):
    """Raised when the relational store fails to execute a statement."""


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the SQLite database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "userhub.sqlite3").resolve(strict=False)


def _parse_datetime(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class Database:
    """Simple wrapper around SQLite for the ``users`` table.

    Every public method opens its own connection and runs exactly one
    statement, so instances can be shared between worker threads.
    """

    def __init__(self, path: Path) -> None:
        _ensure_directory(path)
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def initialize(self) -> None:
        """Create the ``users`` table if it does not already exist."""

        try:
            with self._connect() as conn:
                conn.executescript(
                    """
                    CREATE TABLE IF NOT EXISTS users (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        name TEXT NOT NULL,
                        email TEXT NOT NULL,
                        created_at TEXT NOT NULL
                            DEFAULT (strftime('%Y-%m-%dT%H:%M:%f+00:00', 'now'))
                    );

                    CREATE INDEX IF NOT EXISTS idx_users_created_at ON users(created_at);
                    """
                )
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to initialise database at {self._path}: {exc}") from exc
        logger.info("SQLite schema ready at %s", self._path)

    def list_users(self) -> List[User]:
        """Return every user, newest first."""

        try:
            with self._connect() as conn:
                rows = conn.execute(
                    "SELECT id, name, email, created_at FROM users ORDER BY created_at DESC, id DESC"
                ).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to list users: {exc}") from exc
        return [self._row_to_user(row) for row in rows]

    def create_user(self, name: Optional[str], email: Optional[str]) -> User:
        """Insert a user and return the stored row.

        Values are written as given; the table's NOT NULL constraints are the
        only checks applied.
        """

        try:
            with self._connect() as conn:
                row = conn.execute(
                    "INSERT INTO users (name, email) VALUES (?, ?) "
                    "RETURNING id, name, email, created_at",
                    (name, email),
                ).fetchall()[0]
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to create user: {exc}") from exc
        return self._row_to_user(row)

    def delete_user(self, user_id: Union[int, str]) -> int:
        """Delete the user with ``user_id`` and return the number of rows removed."""

        try:
            with self._connect() as conn:
                cursor = conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to delete user {user_id!r}: {exc}") from exc
        return cursor.rowcount

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=int(row["id"]),
            name=str(row["name"]),
            email=str(row["email"]),
            created_at=_parse_datetime(str(row["created_at"])),
        )


__all__ = ["Database", "StoreError", "resolve_database_path"]
