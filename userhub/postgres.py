"""PostgreSQL-backed persistence using an asyncpg connection pool."""
from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Union

import asyncpg

from .config import DatabaseSettings
from .database import StoreError
from .models import User

logger = logging.getLogger("userhub.database")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id SERIAL PRIMARY KEY,
    name VARCHAR(255) NOT NULL,
    email VARCHAR(255) NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_users_created_at ON users(created_at);
"""

_STORE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


class PostgresDatabase:
    """Store for the ``users`` table backed by PostgreSQL.

    :meth:`initialize` must be awaited before use; it opens the pool and
    creates the schema. Each operation acquires a connection for a single
    statement.
    """

    def __init__(
        self,
        settings: DatabaseSettings,
        *,
        min_size: int = 2,
        max_size: int = 10,
    ) -> None:
        if not settings.host:
            raise ValueError("PostgreSQL settings require a database host")
        self._settings = settings
        self._min_size = min_size
        self._max_size = max_size
        self._pool: Optional[asyncpg.Pool] = None

    async def initialize(self) -> None:
        if self._pool is None:
            try:
                self._pool = await asyncpg.create_pool(
                    host=self._settings.host,
                    port=self._settings.port,
                    database=self._settings.name,
                    user=self._settings.user,
                    password=self._settings.password,
                    min_size=self._min_size,
                    max_size=self._max_size,
                )
            except _STORE_ERRORS as exc:
                raise StoreError(
                    f"Failed to connect to PostgreSQL at {self._settings.host}:{self._settings.port}: {exc}"
                ) from exc

        try:
            async with self._pool.acquire() as conn:
                await conn.execute(_SCHEMA)
        except _STORE_ERRORS as exc:
            await self.close()
            raise StoreError(f"Failed to create schema: {exc}") from exc
        logger.info(
            "PostgreSQL schema ready on %s:%s/%s",
            self._settings.host,
            self._settings.port,
            self._settings.name,
        )

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
        logger.info("Database connections closed")

    def _require_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise StoreError("Database pool has not been initialised")
        return self._pool

    async def list_users(self) -> List[User]:
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                rows = await conn.fetch(
                    "SELECT id, name, email, created_at FROM users ORDER BY created_at DESC, id DESC"
                )
        except _STORE_ERRORS as exc:
            raise StoreError(f"Failed to list users: {exc}") from exc
        return [_record_to_user(row) for row in rows]

    async def create_user(self, name: Optional[str], email: Optional[str]) -> User:
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                row = await conn.fetchrow(
                    "INSERT INTO users (name, email) VALUES ($1, $2) "
                    "RETURNING id, name, email, created_at",
                    name,
                    email,
                )
        except _STORE_ERRORS as exc:
            raise StoreError(f"Failed to create user: {exc}") from exc
        return _record_to_user(row)

    async def delete_user(self, user_id: Union[int, str]) -> int:
        pool = self._require_pool()
        # The identifier travels as text; PostgreSQL performs the integer cast.
        try:
            async with pool.acquire() as conn:
                status = await conn.execute(
                    "DELETE FROM users WHERE id = CAST($1::text AS INTEGER)",
                    str(user_id),
                )
        except _STORE_ERRORS as exc:
            raise StoreError(f"Failed to delete user {user_id!r}: {exc}") from exc
        return _affected_rows(status)


def _record_to_user(row: Mapping[str, Any]) -> User:
    return User(
        id=int(row["id"]),
        name=str(row["name"]),
        email=str(row["email"]),
        created_at=row["created_at"],
    )


def _affected_rows(status: str) -> int:
    # asyncpg returns the command tag, e.g. "DELETE 1".
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (AttributeError, ValueError):
        return 0


__all__ = ["PostgresDatabase"]
