"""Hit counter and meta endpoint behavior tests."""

import pytest
from httpx import AsyncClient

from shortlink.exceptions import NotFoundError
from shortlink.memory import InMemoryLinkCache, InMemoryShortLinkStore
from shortlink.resolver import ResolutionCoordinator
from shortlink.stats import LinkStats


@pytest.mark.asyncio
async def test_meta_valid_code(client: AsyncClient) -> None:
    create_resp = await client.post("/shorten", json={"long_url": "https://www.google.com"})
    code = create_resp.json()["code"]

    response = await client.get(f"/meta/{code}")
    assert response.status_code == 200
    assert response.json() == {"code": code, "pv": 0, "last_access_at": None}


@pytest.mark.asyncio
async def test_meta_unknown_code(client: AsyncClient) -> None:
    response = await client.get("/meta/nonexist")
    assert response.status_code == 404
    assert response.json() == {"detail": "not found"}


@pytest.mark.asyncio
async def test_meta_after_redirects(client: AsyncClient) -> None:
    create_resp = await client.post("/shorten", json={"long_url": "https://www.example.com"})
    code = create_resp.json()["code"]

    # Generate page views
    for _ in range(5):
        await client.get(f"/r/{code}", follow_redirects=False)

    response = await client.get(f"/meta/{code}")
    assert response.status_code == 200
    data = response.json()
    assert data["pv"] == 5
    assert data["last_access_at"] is not None


@pytest.mark.asyncio
async def test_failed_redirect_is_not_counted(client: AsyncClient, cache: InMemoryLinkCache) -> None:
    await client.get("/r/nonexist", follow_redirects=False)
    assert await cache.get_hits("nonexist") == (0, None)


@pytest.mark.asyncio
async def test_counter_outage_reports_zero(
    resolver: ResolutionCoordinator,
    store: InMemoryShortLinkStore,
) -> None:
    await store.insert("AbC12xYz", "https://example.com/a")
    counter = InMemoryLinkCache()
    counter.available = False
    stats = LinkStats(resolver, counter)

    await stats.record_hit("AbC12xYz")
    meta = await stats.get_meta("AbC12xYz")

    assert (meta.code, meta.pv, meta.last_access_at) == ("AbC12xYz", 0, None)


@pytest.mark.asyncio
async def test_meta_without_counter(resolver: ResolutionCoordinator, store: InMemoryShortLinkStore) -> None:
    await store.insert("AbC12xYz", "https://example.com/a")
    stats = LinkStats(resolver, None)

    await stats.record_hit("AbC12xYz")
    assert (await stats.get_meta("AbC12xYz")).pv == 0


@pytest.mark.asyncio
async def test_meta_unknown_code_raises(resolver: ResolutionCoordinator, cache: InMemoryLinkCache) -> None:
    stats = LinkStats(resolver, cache)
    with pytest.raises(NotFoundError):
        await stats.get_meta("nonexist")
