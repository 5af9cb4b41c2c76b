import os

# Ensure we default to memory backend for tests to avoid filesystem dependencies
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from taskdesk.main import app  # noqa: E402
from taskdesk.repositories import InMemoryTaskRepository, get_task_repository  # noqa: E402
from taskdesk.users import InMemoryUserRepository, get_user_repository  # noqa: E402


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def signup(client: TestClient, name: str, email: str, password: str = "secret1") -> dict:
    res = client.post("/api/auth/signup", json={"name": name, "email": email, "password": password})
    assert res.status_code == 201, res.text
    return res.json()


@pytest.fixture()
def task_repo() -> InMemoryTaskRepository:
    return InMemoryTaskRepository()


@pytest.fixture()
def user_repo() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture()
def client(task_repo, user_repo):
    """TestClient wired to fresh in-memory stores for each test."""
    app.dependency_overrides[get_task_repository] = lambda: task_repo
    app.dependency_overrides[get_user_repository] = lambda: user_repo
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def register(client):
    """Sign up a user and return the signup response body."""

    def _register(name: str, email: str, password: str = "secret1") -> dict:
        return signup(client, name, email, password)

    return _register


@pytest.fixture()
def alice(client) -> dict:
    """Auth headers for a signed-up user."""
    return auth_headers(signup(client, "Alice", "alice@example.com")["token"])


@pytest.fixture()
def bob(client) -> dict:
    """Auth headers for a second, unrelated user."""
    return auth_headers(signup(client, "Bob", "bob@example.com")["token"])
