"""
Shared test fixtures for the linkage test suite.
"""
import sys
import os
from contextlib import contextmanager

import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

# Run the API with auth disabled (middleware no-op when JWT_SECRET empty).
# Auth-specific tests patch their own secret into the modules that read it.
os.environ["LINKAGE_JWT_SECRET"] = ""
os.environ["DISABLE_AUTH"] = "true"

from starlette.testclient import TestClient
from api.main import app

from matching.access import Caller
from fakes import InMemorySource


@pytest.fixture(scope="session")
def client():
    """Create a test client with auth disabled (default)."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin():
    return Caller(username="ana", role="admin")


@pytest.fixture
def campaigner():
    return Caller(username="budi", role="campaigner")


@pytest.fixture
def viewer():
    return Caller(username="citra", role="viewer")


@pytest.fixture
def source():
    """Empty in-memory store with the campaign tables."""
    return InMemorySource()


@pytest.fixture
def api_source(monkeypatch):
    """In-memory store wired into the routers in place of the Postgres pool."""
    from api.routers import alumni as alumni_router
    from api.routers import members as members_router

    store = InMemorySource()

    @contextmanager
    def fake_db():
        yield object()

    for router in (alumni_router, members_router):
        monkeypatch.setattr(router, "get_db", fake_db)
        monkeypatch.setattr(router, "PostgresSource", lambda conn: store)
    return store
