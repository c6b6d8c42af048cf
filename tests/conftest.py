from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from config import Settings
from deps import get_clock
from main import create_app
from store import InMemoryStore

FROZEN_NOW = datetime(2024, 3, 15, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        jwt_secret="test-secret",
        bcrypt_rounds=4,
        store_backend="memory",
        log_json=False,
    )


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def app(settings, store):
    app = create_app(settings, store=store)
    app.dependency_overrides[get_clock] = lambda: FROZEN_NOW
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


def register_and_login(client, email="ana@example.com", password="s3cret-pass", name="Ana"):
    client.post("/register", json={"name": name, "email": email, "password": password})
    response = client.post("/login", json={"email": email, "password": password})
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def auth_headers(client):
    return register_and_login(client)
