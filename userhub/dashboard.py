"""State container and renderer for the user management dashboard.

The dashboard mirrors the API: it keeps the last fetched list of users, the
pending form input and a ``loading`` flag for in-flight creates. Every
mutation is followed by a fresh list from the server; nothing is updated
optimistically.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, List, Tuple, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .client import APIClientError, UsersAPIClient
from .models import User

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"

TITLE = "User Management System"

logger = logging.getLogger("userhub.dashboard")


@dataclass(frozen=True)
class DashboardState:
    users: Tuple[User, ...] = ()
    name: str = ""
    email: str = ""
    loading: bool = False


Listener = Callable[[DashboardState], None]


def _template_environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape(["html"]),
    )


_environment = _template_environment()


def render_dashboard(state: DashboardState) -> str:
    """Render ``state`` as the dashboard HTML page."""

    template = _environment.get_template("dashboard.html")
    return template.render(
        title=TITLE,
        users=state.users,
        user_count=len(state.users),
        name=state.name,
        email=state.email,
        loading=state.loading,
    )


class Dashboard:
    """Drive :class:`DashboardState` through mount, submit and delete transitions."""

    def __init__(self, client: UsersAPIClient, state: DashboardState | None = None) -> None:
        self._client = client
        self._state = state or DashboardState()
        self._listeners: List[Listener] = []

    @property
    def state(self) -> DashboardState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` after every state change; returns an unsubscribe callback."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def render(self) -> str:
        return render_dashboard(self._state)

    def _update(self, **changes: object) -> None:
        self._state = replace(self._state, **changes)
        for listener in list(self._listeners):
            listener(self._state)

    def set_name(self, value: str) -> None:
        self._update(name=value)

    def set_email(self, value: str) -> None:
        self._update(email=value)

    async def mount(self) -> None:
        await self.refresh()

    async def refresh(self) -> None:
        try:
            users = await self._client.list_users()
        except APIClientError as exc:
            logger.error("Error fetching users: %s", exc)
            return
        self._update(users=tuple(users))

    async def submit(self) -> bool:
        """Create a user from the pending input; return ``True`` on success."""

        self._update(loading=True)
        try:
            await self._client.create_user(self._state.name, self._state.email)
        except APIClientError as exc:
            logger.error("Error adding user: %s", exc)
            created = False
        else:
            created = True
            self._update(name="", email="")
            await self.refresh()
        finally:
            self._update(loading=False)
        return created

    async def delete(self, user_id: Union[int, str]) -> None:
        try:
            await self._client.delete_user(user_id)
        except APIClientError as exc:
            logger.error("Error deleting user: %s", exc)
        await self.refresh()


__all__ = ["Dashboard", "DashboardState", "render_dashboard"]
