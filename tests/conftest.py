"""
Shared fixtures: fresh stores for both backends and an app wired to one.
"""

import pytest
from fastapi.testclient import TestClient

from wasteapp.crud import SqlStore
from wasteapp.database import make_engine, init_db
from wasteapp.main import create_app
from wasteapp.services import Services
from wasteapp.store import MemoryStore


def _sql_store():
    engine = make_engine("sqlite://")
    init_db(engine)
    return SqlStore(engine)


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Run the test once against each backend."""
    if request.param == "memory":
        return MemoryStore()
    return _sql_store()


@pytest.fixture
def services(store):
    return Services(store)


@pytest.fixture
def users(store):
    """Canonical cast: one admin, two workers, two citizens."""
    return {
        "admin": store.create_user("admin", "admin"),
        "bob": store.create_user("bob", "worker"),
        "carol": store.create_user("carol", "worker"),
        "alice": store.create_user("alice", "public"),
        "dave": store.create_user("dave", "public"),
    }


@pytest.fixture
def app_store():
    return MemoryStore()


@pytest.fixture
def app(app_store):
    return create_app(store=app_store)


@pytest.fixture
def client_for(app):
    """Factory returning a TestClient with its own cookie jar, logged in as ``username``."""

    def _make(username=None):
        client = TestClient(app)
        if username is not None:
            response = client.post("/api/auth/login", json={"username": username})
            assert response.status_code == 200, response.text
        return client

    return _make
