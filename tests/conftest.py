"""
Shared fixtures.

Every test gets a fresh app backed by an in-memory SQLite store.
"""

import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        secret_key="test-secret",
        database_url="sqlite://",
        log_level="WARNING",
        log_json=False,
    )


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as client:
        yield client


@pytest.fixture
def register(client):
    """Sign up and sign in a user, returning its auth headers."""

    def _register(email="alice@example.com", password="secret123", name="Alice"):
        response = client.post(
            "/user/signup", json={"email": email, "password": password, "name": name}
        )
        assert response.status_code == 201, response.text
        response = client.post(
            "/user/signin", json={"email": email, "password": password}
        )
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _register


@pytest.fixture
def auth_headers(register):
    return register()


@pytest.fixture
def other_headers(register):
    return register(email="bob@example.com", name="Bob")


def make_expense(**overrides):
    payload = {
        "title": "Groceries",
        "description": "Weekly shop",
        "amount": 42.5,
        "date": "2024-01-15T10:00:00",
        "type": "expense",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def add_expense(client):
    def _add(headers, **overrides):
        response = client.post("/expense/add", json=make_expense(**overrides), headers=headers)
        assert response.status_code == 201, response.text
        return response.json()["expense"]

    return _add
