# link-shortener/tests/conftest.py
import os

# main.py reads settings at import time
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
import pytest_asyncio
from beanie import init_beanie
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from analytics import Location
from config import Settings, get_settings
from database import DOCUMENT_MODELS
from main import app, get_geolocator

TEST_MONGO_DB = "test_links_db"
TEST_BASE_URL = "http://sho.rt"


class FakeGeoLocator:
    """Stands in for GeoLocator; records lookups and can be told to fail."""

    def __init__(self, location=None, error=None):
        self.location = location or Location(city="Berlin", region="Berlin", country="Germany")
        self.error = error
        self.calls = []

    async def lookup(self, ip):
        self.calls.append(ip)
        if self.error is not None:
            raise self.error
        return self.location


@pytest.fixture
def test_settings():
    return Settings(
        JWT_SECRET="test-secret",
        BCRYPT_ROUNDS=4,
        BASE_URL=TEST_BASE_URL,
        MONGO_DB=TEST_MONGO_DB,
    )


@pytest.fixture
def geolocator():
    return FakeGeoLocator()


# Fresh in-memory database per test
@pytest_asyncio.fixture(scope="function")
async def mongo_test_db():
    client = AsyncMongoMockClient()
    db = client[TEST_MONGO_DB]
    await init_beanie(database=db, document_models=DOCUMENT_MODELS)
    yield db


@pytest_asyncio.fixture(scope="function")
async def client(test_settings, geolocator, mongo_test_db):
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_geolocator] = lambda: geolocator
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def register_user(client, email="alice@example.com", password="secret123", name="Alice"):
    response = await client.post(
        "/api/auth/register",
        json={"name": name, "email": email, "password": password},
    )
    assert response.status_code == 201, response.text
    return response.json()["token"]


async def auth_headers(client, email="alice@example.com"):
    token = await register_user(client, email=email)
    return {"Authorization": f"Bearer {token}"}
