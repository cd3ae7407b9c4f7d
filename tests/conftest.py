"""
Test configuration and fixtures.
"""
import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool
from surfspots.db import Base, enable_sqlite_foreign_keys, get_session
from surfspots.deps import get_geocoder, get_image_storage, get_marine_fetcher
from surfspots.main import app
from surfspots.storage import ImageStorage

# Use in-memory async SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

MARINE_PAYLOAD = {
    "latitude": 36.97,
    "longitude": -122.03,
    "hourly": {
        "time": ["2026-10-19T00:00", "2026-10-19T01:00"],
        "wave_height": [1.2, 1.4],
        "wave_direction": [270.0, 280.0],
        "wave_period": [12.0, 12.5],
        "sea_surface_temperature": [14.1, 14.0],
    },
    "daily": {
        "time": ["2026-10-19"],
        "wave_height_max": [1.8],
        "wind_wave_height_max": [0.6],
    },
}


class FakeFetcher:
    """Counting stand-in for ``fetch_marine``."""

    def __init__(self, payload=None):
        self.payload = MARINE_PAYLOAD if payload is None else payload
        self.error = None
        self.calls = []

    async def __call__(self, lat, lon):
        self.calls.append((lat, lon))
        if self.error is not None:
            raise self.error
        return self.payload


@pytest_asyncio.fixture(autouse=True)
async def sessionmaker():
    """
    Set up a fresh test database before each test.
    This runs automatically for every test function.
    """
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    enable_sqlite_foreign_keys(test_engine)

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    TestingSessionLocal = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_session():
        async with TestingSessionLocal() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    yield TestingSessionLocal

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await test_engine.dispose()
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def marine(sessionmaker):
    """Replace the upstream marine fetcher and start from an empty cache."""
    fake = FakeFetcher()
    app.dependency_overrides[get_marine_fetcher] = lambda: fake
    app.state.weather_cache.clear()
    yield fake
    app.state.weather_cache.clear()


@pytest.fixture
def storage(tmp_path, sessionmaker):
    store = ImageStorage(tmp_path, "post-images", "/uploads", max_bytes=1024)
    app.dependency_overrides[get_image_storage] = lambda: store
    return store


@pytest.fixture
def geocoder(sessionmaker):
    calls = []

    async def fake_search(query):
        calls.append(query)
        return [{
            "id": 5393052,
            "name": "Santa Cruz",
            "region": "California",
            "country": "United States",
            "latitude": 36.97412,
            "longitude": -122.0308,
            "timezone": "America/Los_Angeles",
        }]

    app.dependency_overrides[get_geocoder] = lambda: fake_search
    return calls


def make_client(**kwargs) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
        **kwargs,
    )


@pytest_asyncio.fixture
async def client():
    async with make_client() as c:
        yield c


@pytest_asyncio.fixture
async def login_as():
    """
    Factory: register a user and return a client logged in as them.
    """
    clients = []

    async def _login(username, password="secret1"):
        c = make_client()
        clients.append(c)
        r = await c.post("/create", json={
            "first_name": username.title(),
            "last_name": "Tester",
            "username": username,
            "email": f"{username}@example.com",
            "password": password,
        })
        assert r.status_code == 200, r.text
        r = await c.post("/login", json={"username": username, "password": password})
        assert r.status_code == 200, r.text
        return c

    yield _login

    for c in clients:
        await c.aclose()
