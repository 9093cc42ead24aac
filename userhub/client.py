"""HTTP client for the user directory API."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

import httpx

from .models import User

logger = logging.getLogger("userhub.client")


class APIClientError(RuntimeError):
    """Raised when the API cannot be reached or answers with an error."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _normalize_base_url(base_url: str) -> str:
    cleaned = (base_url or "").strip()
    if not cleaned:
        raise ValueError("API base URL must not be empty")
    return cleaned.rstrip("/")


def _extract_error_message(payload: object, default: str) -> str:
    if isinstance(payload, dict):
        for key in ("error", "message", "detail"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    if isinstance(payload, str) and payload.strip():
        return payload.strip()
    return default


def _parse_user(payload: object) -> User:
    if not isinstance(payload, dict):
        raise APIClientError("API returned an unexpected user payload")
    try:
        created_at = payload["created_at"]
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
        if not isinstance(created_at, datetime):
            raise TypeError("created_at must be a timestamp")
        return User(
            id=int(payload["id"]),
            name=str(payload["name"]),
            email=str(payload["email"]),
            created_at=created_at,
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise APIClientError("API user payload was missing required fields") from exc


class UsersAPIClient:
    """Asynchronous client for the ``/api`` endpoints.

    ``transport`` is passed to :class:`httpx.AsyncClient`, which lets callers
    route requests to an in-process ASGI app or a mock.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = _normalize_base_url(base_url)
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def __aenter__(self) -> "UsersAPIClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.RequestError as exc:
            raise APIClientError(f"Failed to contact user API: {exc}") from exc

        logger.debug("%s %s -> %s", method, path, response.status_code)

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.status_code >= 400:
            default = f"User API request failed with status {response.status_code}"
            raise APIClientError(
                _extract_error_message(payload, default),
                status_code=response.status_code,
            )

        if payload is None:
            raise APIClientError("User API returned an invalid response")
        return payload

    async def health(self) -> Dict[str, Any]:
        payload = await self._request("GET", "/api/health")
        if not isinstance(payload, dict):
            raise APIClientError("User API returned an unexpected health payload")
        return payload

    async def list_users(self) -> List[User]:
        payload = await self._request("GET", "/api/users")
        if not isinstance(payload, list):
            raise APIClientError("User API returned an unexpected user list")
        return [_parse_user(item) for item in payload]

    async def create_user(self, name: str, email: str) -> User:
        payload = await self._request("POST", "/api/users", json={"name": name, "email": email})
        return _parse_user(payload)

    async def delete_user(self, user_id: Union[int, str]) -> str:
        payload = await self._request("DELETE", f"/api/users/{user_id}")
        message = payload.get("message") if isinstance(payload, dict) else None
        return message if isinstance(message, str) else "User deleted"


__all__ = ["APIClientError", "UsersAPIClient"]
