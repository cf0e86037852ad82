"""
Integration test fixtures for GrindProof.

Provides fixtures specific to API testing:
- FastAPI test client wired to the per-test database
- The FakeCoach standing in for the LLM client
- Session headers for authenticated requests
- A stubbed outbound HTTP client for integration endpoints
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from grindproof.api.deps import get_coach, get_db, get_http
from grindproof.api.main import app
from grindproof.security import session


# ─────────────────────────────────────────────────────────────────────────────
# API Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def outbound():
    """Holder for the outbound HTTP client routes receive (None by default)."""
    return {"http": None}


@pytest.fixture
def api_app(conn, fake_coach, outbound):
    """The app with database, coach and HTTP dependencies overridden.

    The lifespan is not run, so no real Anthropic or HTTP client is built.
    """

    def _db():
        yield conn

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_coach] = lambda: fake_coach
    app.dependency_overrides[get_http] = lambda: outbound["http"]

    yield app

    app.dependency_overrides.clear()


@pytest.fixture
def test_client(api_app):
    return TestClient(api_app)


@pytest.fixture
def auth_headers(conn, user_id):
    created = session.create_session(conn, user_id)
    return {"Authorization": f"Bearer {created['token']}"}


@pytest.fixture
def other_auth_headers(conn, other_user_id):
    created = session.create_session(conn, other_user_id)
    return {"Authorization": f"Bearer {created['token']}"}


@pytest.fixture
def stub_http(outbound):
    """Route outbound calls made by the API through a MockTransport handler."""

    def _install(handler):
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        outbound["http"] = client
        return client

    return _install
