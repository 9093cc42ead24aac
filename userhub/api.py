"""FastAPI application that exposes the user directory endpoints."""
from __future__ import annotations

import functools
import inspect
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Callable, List, Sequence, Tuple, Union

import anyio
from fastapi import Body, FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .database import Database
from .models import User
from .postgres import PostgresDatabase

logger = logging.getLogger("userhub.api")

Store = Union[Database, PostgresDatabase]

DATABASE_ERROR = {"error": "Database error"}


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    created_at: datetime


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime


def user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        created_at=user.created_at,
    )


async def run_store_call(method: Callable[..., Any], *args: Any) -> Any:
    """Invoke a store method, off the event loop when it is synchronous."""

    if inspect.iscoroutinefunction(method):
        return await method(*args)
    return await anyio.to_thread.run_sync(functools.partial(method, *args))


def _field_value(value: Any) -> Any:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return value


def create_user_fields(payload: Any) -> Tuple[Any, Any]:
    """Extract ``name`` and ``email`` from a create request body.

    The body is not validated. A missing body, a body that is not an object
    and absent fields all yield ``None``, which the store's NOT NULL
    constraints reject. Numbers and booleans are passed on as text; anything
    else reaches the store unchanged.
    """

    if not isinstance(payload, dict):
        return None, None
    return _field_value(payload.get("name")), _field_value(payload.get("email"))


def _database_error() -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=DATABASE_ERROR)


def create_app(
    *,
    database: Store,
    initialize_database: bool = False,
    cors_origins: Sequence[str] = ("*",),
) -> FastAPI:
    """Create the API application around ``database``.

    With ``initialize_database`` the schema is created on startup; the store
    is closed on shutdown when it holds a pool.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if initialize_database:
            await run_store_call(database.initialize)
        yield
        close = getattr(database, "close", None)
        if close is not None:
            await run_store_call(close)

    app = FastAPI(
        title="User Management API",
        description="CRUD API for the users table",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(cors_origins),
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )
    app.state.database = database

    @app.get("/api/health", response_model=HealthResponse)
    async def healthcheck() -> HealthResponse:
        return HealthResponse(status="healthy", timestamp=datetime.now(timezone.utc))

    @app.get("/api/users", response_model=List[UserResponse])
    async def list_users():
        try:
            users = await run_store_call(database.list_users)
        except Exception:
            logger.exception("Failed to list users")
            return _database_error()
        return [user_to_response(user) for user in users]

    @app.post("/api/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
    async def create_user(payload: Any = Body(None)):
        name, email = create_user_fields(payload)
        try:
            user = await run_store_call(database.create_user, name, email)
        except Exception:
            logger.exception("Failed to create user")
            return _database_error()
        logger.info("Created user %s", user.id)
        return user_to_response(user)

    @app.delete("/api/users/{user_id}", response_model=MessageResponse)
    async def delete_user(user_id: str):
        try:
            deleted = await run_store_call(database.delete_user, user_id)
        except Exception:
            logger.exception("Failed to delete user %s", user_id)
            return _database_error()
        logger.info("Delete of user %s removed %s row(s)", user_id, deleted)
        return MessageResponse(message="User deleted")

    return app


__all__ = ["UserResponse", "create_user_fields", "create_app", "run_store_call", "user_to_response"]
