"""Pytest configuration and fixtures."""
import os

os.environ.setdefault("MONGODB_URL", "mongodb://localhost:27017")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from mongomock_motor import AsyncMongoMockClient

from standup.database import database, ensure_indexes
from standup.main import app
from standup.utils.auth import create_access_token


@pytest_asyncio.fixture
async def db():
    """
    A fresh in-memory database with the service's indexes.

    mongomock-motor speaks the Motor API, so services run against it unchanged.
    """
    client = AsyncMongoMockClient()
    test_db = client["standup_test"]
    await ensure_indexes(test_db)
    yield test_db


@pytest_asyncio.fixture
async def app_client(db):
    """
    Create a test client bound to the in-memory database.

    The lifespan (which would connect to a real MongoDB) is not run by
    ASGITransport; the global database manager is pointed at the test
    database instead.
    """
    original_db = database.db
    database.db = db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

    database.db = original_db


def auth_headers(user_id: str = "user-1") -> dict:
    """Bearer headers for a token the identity provider would issue."""
    return {"Authorization": f"Bearer {create_access_token(user_id=user_id)}"}


@pytest.fixture
def headers():
    """Headers for the default test user."""
    return auth_headers("user-1")


@pytest.fixture
def headers_for():
    """Factory for headers of other users."""
    return auth_headers
