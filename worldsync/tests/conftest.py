"""Shared test fixtures for WorldSync tests."""

import os
from collections.abc import AsyncGenerator
from datetime import datetime

import pytest

# IMPORTANT: Set environment variables BEFORE any app imports
# This must happen before settings/config are loaded
os.environ["LOG_TO_FILE"] = "false"
os.environ["DEBUG"] = "false"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["WEATHER_API_KEY"] = ""

import httpx  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from worldsync.app.core.config import settings  # noqa: E402

settings.log_to_file = False

from worldsync.app.core.config_store import ConfigStore  # noqa: E402
from worldsync.app.core.database import Base  # noqa: E402
from worldsync.app.services.sync_scheduler import SyncContext, SyncScheduler  # noqa: E402
from worldsync.app.services.tick_scheduler import TickScheduler  # noqa: E402
from worldsync.app.services.weather_fetcher import WeatherFetcher  # noqa: E402
from worldsync.app.services.world_registry import InMemoryWorldRegistry  # noqa: E402

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Fixed "real" time used by the sync context in tests
FIXED_NOW = datetime(2024, 6, 1, 12, 0, 0)


@pytest.fixture
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    # Import all models to register them
    from worldsync.app.models import config_entry  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def config_store(session_factory) -> ConfigStore:
    return ConfigStore(session_factory=session_factory)


@pytest.fixture
def registry() -> InMemoryWorldRegistry:
    return InMemoryWorldRegistry(["world", "world_nether", "world_the_end"])


@pytest.fixture
def ticks() -> TickScheduler:
    """Tick scheduler with 1ms ticks so periodic tasks run quickly."""
    return TickScheduler(tick_seconds=0.001)


@pytest.fixture
def sync_context(config_store, registry, ticks) -> SyncContext:
    return SyncContext.create(registry, store=config_store, ticks=ticks, clock=lambda: FIXED_NOW)


# ============================================================================
# Mock weather provider
# ============================================================================


class FakeWeatherProvider:
    """httpx MockTransport handler serving canned weather per city."""

    def __init__(self):
        self.responses: dict = {}
        self.requests: list[httpx.Request] = []

    def weather(self, city: str, main: str):
        self.responses[city] = lambda: httpx.Response(200, json={"weather": [{"id": 500, "main": main}], "name": city})

    def respond(self, city: str, response: httpx.Response | Exception):
        """Serve a fixed response (or raise an exception) for the city."""
        self.responses[city] = response

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        city = request.url.params.get("q")
        response = self.responses.get(city)
        if response is None:
            return httpx.Response(404, json={"cod": "404", "message": "city not found"})
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response()
        return response


@pytest.fixture
def weather_provider() -> FakeWeatherProvider:
    return FakeWeatherProvider()


@pytest.fixture
async def weather_fetcher(sync_context, weather_provider) -> AsyncGenerator[WeatherFetcher, None]:
    fetcher = WeatherFetcher(
        sync_context.weather_cache,
        api_url="https://weather.test/data/2.5/weather",
        timeout=1.0,
        transport=httpx.MockTransport(weather_provider),
    )
    yield fetcher
    await fetcher.close()


@pytest.fixture
async def sync_scheduler(sync_context, weather_fetcher) -> AsyncGenerator[SyncScheduler, None]:
    scheduler = SyncScheduler(sync_context, fetcher=weather_fetcher)
    yield scheduler
    sync_context.ticks.cancel_all()


@pytest.fixture
async def async_client(sync_scheduler) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client bound to the test sync scheduler."""
    from worldsync.app.main import app

    app.state.sync_scheduler = sync_scheduler
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.state.sync_scheduler = None
