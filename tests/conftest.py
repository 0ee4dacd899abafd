"""Shared test fixtures."""

import pytest
from httpx import ASGITransport, AsyncClient

from src.main import app
from tests.fakes import FakeServices, FakeSession, InMemoryStore, build_services


@pytest.fixture
async def client() -> AsyncClient:
    """Async HTTP client for testing FastAPI endpoints."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def db(store: InMemoryStore) -> FakeSession:
    return FakeSession(store)


@pytest.fixture
def services(store: InMemoryStore) -> FakeServices:
    return build_services(store)
