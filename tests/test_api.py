"""End-to-end tests for the user API."""

import logging
import sys
from datetime import datetime
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from userhub.api import create_app
from userhub.database import Database, StoreError


class FailingStore:
    """Store double whose every statement fails."""

    def __init__(self, exc: Exception) -> None:
        self.exc = exc
        self.calls = []

    def initialize(self) -> None:
        pass

    def list_users(self):
        self.calls.append(("list",))
        raise self.exc

    def create_user(self, name, email):
        self.calls.append(("create", name, email))
        raise self.exc

    def delete_user(self, user_id):
        self.calls.append(("delete", user_id))
        raise self.exc


class AsyncRecordingStore:
    """Coroutine-based store double that records what it is asked to do."""

    def __init__(self) -> None:
        self.deleted = []

    async def list_users(self):
        return []

    async def create_user(self, name, email):
        raise AssertionError("not used")

    async def delete_user(self, user_id):
        self.deleted.append(user_id)
        return 0


@pytest.fixture
def database(tmp_path):
    db = Database(tmp_path / "userhub.sqlite3")
    db.initialize()
    return db


@pytest.fixture
def client(database):
    app = create_app(database=database)
    with TestClient(app) as test_client:
        yield test_client


def test_health_reports_healthy(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "healthy"
    assert datetime.fromisoformat(payload["timestamp"].replace("Z", "+00:00"))


def test_list_users_empty(client):
    response = client.get("/api/users")

    assert response.status_code == 200
    assert response.json() == []


def test_create_user_then_list_returns_it_first(client):
    client.post("/api/users", json={"name": "Jane Smith", "email": "jane@example.com"})

    created = client.post("/api/users", json={"name": "John Doe", "email": "john@example.com"})

    assert created.status_code == 201, created.text
    user = created.json()
    assert user["name"] == "John Doe"
    assert user["email"] == "john@example.com"
    assert isinstance(user["id"], int)
    assert user["created_at"]

    listing = client.get("/api/users")
    assert listing.status_code == 200
    users = listing.json()
    assert len(users) == 2
    assert users[0] == user
    assert set(users[1]) == {"id", "name", "email", "created_at"}


def test_create_user_passes_values_through_without_validation(client):
    created = client.post("/api/users", json={"name": "", "email": "not-an-email"})

    assert created.status_code == 201, created.text
    assert created.json()["name"] == ""
    assert created.json()["email"] == "not-an-email"


def test_create_user_with_missing_field_is_a_database_error(client):
    response = client.post("/api/users", json={"name": "No Email"})

    assert response.status_code == 500
    assert response.json() == {"error": "Database error"}
    assert client.get("/api/users").json() == []


def test_create_user_without_body_is_a_database_error(client):
    response = client.post("/api/users")

    assert response.status_code == 500
    assert response.json() == {"error": "Database error"}
    assert client.get("/api/users").json() == []


def test_create_user_with_non_object_body_is_a_database_error(client):
    response = client.post("/api/users", json=["x"])

    assert response.status_code == 500
    assert response.json() == {"error": "Database error"}
    assert client.get("/api/users").json() == []


def test_create_user_stores_numeric_name_as_text(client):
    created = client.post("/api/users", json={"name": 123, "email": "a@b.c"})

    assert created.status_code == 201, created.text
    assert created.json()["name"] == "123"
    assert client.get("/api/users").json()[0]["name"] == "123"


def test_create_forwards_untyped_fields_to_store():
    store = FailingStore(StoreError("insert failed"))
    app = create_app(database=store)

    with TestClient(app) as client:
        client.post("/api/users", json={"name": 1.5, "email": True})
        client.post("/api/users", json={"name": ["x"], "email": None})
        client.post("/api/users", json="just a string")

    assert store.calls == [
        ("create", "1.5", "true"),
        ("create", ["x"], None),
        ("create", None, None),
    ]


def test_delete_existing_user(client):
    user = client.post("/api/users", json={"name": "Test User", "email": "test@example.com"}).json()

    response = client.delete(f"/api/users/{user['id']}")

    assert response.status_code == 200
    assert response.json() == {"message": "User deleted"}
    assert client.get("/api/users").json() == []


def test_delete_nonexistent_user_returns_same_shape(client):
    response = client.delete("/api/users/1")

    assert response.status_code == 200
    assert response.json() == {"message": "User deleted"}


def test_delete_non_numeric_identifier_is_forwarded():
    store = AsyncRecordingStore()
    app = create_app(database=store)

    with TestClient(app) as client:
        response = client.delete("/api/users/abc")

    assert response.status_code == 200
    assert store.deleted == ["abc"]


@pytest.mark.parametrize(
    "method, path, body",
    [
        ("GET", "/api/users", None),
        ("POST", "/api/users", {"name": "Test", "email": "test@example.com"}),
        ("DELETE", "/api/users/1", None),
    ],
)
@pytest.mark.parametrize(
    "exc",
    [StoreError("connection refused"), RuntimeError("boom"), ValueError("bad value")],
)
def test_store_failures_return_generic_error(method, path, body, exc, caplog):
    store = FailingStore(exc)
    app = create_app(database=store)

    caplog.set_level(logging.ERROR, logger="userhub.api")
    with TestClient(app) as client:
        response = client.request(method, path, json=body)

    assert response.status_code == 500
    assert response.json() == {"error": "Database error"}
    assert str(exc) not in response.text
    assert len(store.calls) == 1
    assert any(record.exc_info for record in caplog.records)


def test_create_forwards_request_fields_to_store():
    store = FailingStore(StoreError("insert failed"))
    app = create_app(database=store)

    with TestClient(app) as client:
        client.post("/api/users", json={"name": "Test User", "email": "test@example.com"})

    assert store.calls == [("create", "Test User", "test@example.com")]


def test_initialize_database_on_startup(tmp_path):
    database = Database(tmp_path / "fresh.sqlite3")
    app = create_app(database=database, initialize_database=True)

    with TestClient(app) as client:
        response = client.get("/api/users")

    assert response.status_code == 200
    assert response.json() == []


def test_cors_headers_for_browser_clients(client):
    response = client.get("/api/users", headers={"Origin": "http://localhost:3000"})

    assert response.headers["access-control-allow-origin"] == "*"
