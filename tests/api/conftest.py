# tests/api/conftest.py
from datetime import timedelta

import httpx
import pytest
import pytest_asyncio

from app.rollcall.api.auth import create_access_token
from app.rollcall.api.dependencies import get_db_client, get_redis_client
from app.rollcall.main import app
from tests.fakes import InMemoryTokenStore

API_PREFIX = "/api/v1"


@pytest.fixture
def token_store() -> InMemoryTokenStore:
    return InMemoryTokenStore()

@pytest_asyncio.fixture
async def client(store, token_store):
    """
    httpx client talking to the app in-process. The lifespan handler does not
    run, so the store and the revocation list are swapped in through
    dependency overrides instead of pools.
    """
    app.dependency_overrides[get_db_client] = lambda: store
    app.dependency_overrides[get_redis_client] = lambda: token_store
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url=f"http://testserver{API_PREFIX}") as client:
        yield client
    app.dependency_overrides.clear()

@pytest.fixture
def auth_headers():
    """Builds a bearer header for a principal, as the identity provider would."""
    def _headers(principal, expires_in=timedelta(minutes=30), role=None):
        token = create_access_token(principal.id, role or principal.role, expires_in)
        return {"Authorization": f"Bearer {token}"}
    return _headers
