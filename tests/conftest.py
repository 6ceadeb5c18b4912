"""Shared pytest fixtures for coordinator and API tests.

Everything runs against the in-memory store and cache, so no Postgres or Redis
is needed. Driver-level adapters are tested separately with AsyncMock.
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from shortlink.config import Settings
from shortlink.dependencies import ServiceManager, get_service_manager
from shortlink.main import app
from shortlink.memory import InMemoryLinkCache, InMemoryShortLinkStore
from shortlink.resolver import ResolutionCoordinator
from shortlink.shortener import ShorteningCoordinator


class CountingStore(InMemoryShortLinkStore):
    """In-memory store that counts lookups and inserts."""

    def __init__(self, latency: float = 0.0) -> None:
        super().__init__(latency=latency)
        self.lookups = 0
        self.inserts = 0

    async def lookup(self, code: str) -> tuple[str | None, bool]:
        self.lookups += 1
        return await super().lookup(code)

    async def insert(self, code: str, long_url: str) -> None:
        self.inserts += 1
        await super().insert(code, long_url)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        BASE_URL="http://sho.rt",
        STORE_BACKEND="memory",
        CACHE_BACKEND="memory",
    )


@pytest.fixture
def store() -> CountingStore:
    return CountingStore()


@pytest.fixture
def slow_store() -> CountingStore:
    """Store whose calls take long enough for concurrent readers to pile up."""
    return CountingStore(latency=0.02)


@pytest.fixture
def cache() -> InMemoryLinkCache:
    return InMemoryLinkCache()


@pytest.fixture
def resolver(store: CountingStore, cache: InMemoryLinkCache, settings: Settings) -> ResolutionCoordinator:
    return ResolutionCoordinator(store, cache, settings=settings)


@pytest.fixture
def shortener(store: CountingStore, cache: InMemoryLinkCache, settings: Settings) -> ShorteningCoordinator:
    return ShorteningCoordinator(store, cache, settings=settings)


@pytest_asyncio.fixture(scope="function")
async def manager(settings: Settings, store: CountingStore, cache: InMemoryLinkCache) -> ServiceManager:
    service_manager = ServiceManager(settings=settings, store=store, cache=cache)
    await service_manager.initialize()
    return service_manager


@pytest_asyncio.fixture(scope="function")
async def client(manager: ServiceManager) -> AsyncGenerator[AsyncClient, None]:
    app.dependency_overrides[get_service_manager] = lambda: manager

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
