"""Browser-facing frontend that renders the dashboard against the user API."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Form, Request
from fastapi.responses import HTMLResponse

from .client import UsersAPIClient
from .config import load_settings
from .dashboard import Dashboard

logger = logging.getLogger("userhub.web")


def create_app(
    *,
    api_base_url: Optional[str] = None,
    client: Optional[UsersAPIClient] = None,
) -> FastAPI:
    """Create the frontend application.

    Each request builds a fresh :class:`Dashboard` over the shared API client,
    so the rendered page always reflects the server's list.
    """

    if client is None:
        if api_base_url is None:
            api_base_url = load_settings().api_url
        client = UsersAPIClient(api_base_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await client.aclose()

    app = FastAPI(
        title="User Management System",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )
    app.state.client = client

    def _dashboard(request: Request) -> Dashboard:
        return Dashboard(request.app.state.client)

    @app.get("/", response_class=HTMLResponse)
    async def index(request: Request) -> HTMLResponse:
        dashboard = _dashboard(request)
        await dashboard.mount()
        return HTMLResponse(dashboard.render())

    @app.post("/users", response_class=HTMLResponse)
    async def add_user(
        request: Request,
        name: str = Form(""),
        email: str = Form(""),
    ) -> HTMLResponse:
        dashboard = _dashboard(request)
        dashboard.set_name(name)
        dashboard.set_email(email)
        if not await dashboard.submit():
            # Keep the submitted values on screen and still show the current list.
            await dashboard.refresh()
        return HTMLResponse(dashboard.render())

    @app.post("/users/{user_id}/delete", response_class=HTMLResponse)
    async def delete_user(request: Request, user_id: str) -> HTMLResponse:
        dashboard = _dashboard(request)
        await dashboard.delete(user_id)
        logger.info("Dashboard requested deletion of user %s", user_id)
        return HTMLResponse(dashboard.render())

    return app


__all__ = ["create_app"]
