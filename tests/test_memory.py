"""In-memory adapter tests: TTL expiry and lock ownership."""

import datetime

import pytest

from shortlink.exceptions import CacheError, DuplicateKeyError
from shortlink.memory import InMemoryLinkCache, InMemoryShortLinkStore
from shortlink.ports import CacheLookup


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_cache(clock: FakeClock) -> InMemoryLinkCache:
    return InMemoryLinkCache(clock=clock)


@pytest.mark.asyncio
async def test_store_rejects_duplicate_code() -> None:
    store = InMemoryShortLinkStore()
    await store.insert("AbC12xYz", "https://example.com/a")

    with pytest.raises(DuplicateKeyError):
        await store.insert("AbC12xYz", "https://example.com/b")
    assert await store.lookup("AbC12xYz") == ("https://example.com/a", True)
    assert await store.lookup("missing1") == (None, False)


@pytest.mark.asyncio
async def test_entries_expire(memory_cache: InMemoryLinkCache, clock: FakeClock) -> None:
    await memory_cache.set("AbC12xYz", "https://example.com/a", 10)
    assert await memory_cache.get("AbC12xYz") == CacheLookup.found("https://example.com/a")

    clock.now += 10
    assert await memory_cache.get("AbC12xYz") == CacheLookup.miss()


@pytest.mark.asyncio
async def test_tombstone_and_delete(memory_cache: InMemoryLinkCache) -> None:
    await memory_cache.set_tombstone("AbC12xYz", 30)
    assert await memory_cache.get("AbC12xYz") == CacheLookup.tombstone()

    await memory_cache.delete("AbC12xYz")
    assert await memory_cache.get("AbC12xYz") == CacheLookup.miss()


@pytest.mark.asyncio
async def test_lock_is_exclusive_until_expiry(memory_cache: InMemoryLinkCache, clock: FakeClock) -> None:
    assert await memory_cache.try_lock("AbC12xYz", "token-a", 3)
    assert not await memory_cache.try_lock("AbC12xYz", "token-b", 3)

    clock.now += 3
    assert await memory_cache.try_lock("AbC12xYz", "token-b", 3)


@pytest.mark.asyncio
async def test_unlock_with_stale_token_is_noop(memory_cache: InMemoryLinkCache, clock: FakeClock) -> None:
    await memory_cache.try_lock("AbC12xYz", "token-a", 3)
    clock.now += 5
    await memory_cache.try_lock("AbC12xYz", "token-b", 3)

    await memory_cache.unlock("AbC12xYz", "token-a")
    assert memory_cache.is_locked("AbC12xYz")

    await memory_cache.unlock("AbC12xYz", "token-b")
    assert not memory_cache.is_locked("AbC12xYz")


@pytest.mark.asyncio
async def test_expired_entries_are_purged_on_write(memory_cache: InMemoryLinkCache, clock: FakeClock) -> None:
    # Tombstones for codes that are never read again must not accumulate.
    for i in range(50):
        await memory_cache.set_tombstone(f"gone{i:04d}", 30)
    await memory_cache.set("AbC12xYz", "https://example.com/a", 30)
    assert len(memory_cache._entries) == 51

    clock.now += 30
    await memory_cache.set_tombstone("fresh001", 30)

    assert list(memory_cache._entries) == ["fresh001"]


@pytest.mark.asyncio
async def test_expired_locks_are_purged(memory_cache: InMemoryLinkCache, clock: FakeClock) -> None:
    for i in range(10):
        assert await memory_cache.try_lock(f"held{i:04d}", "token", 3)

    clock.now += 3
    assert await memory_cache.try_lock("AbC12xYz", "token", 3)

    assert list(memory_cache._locks) == ["AbC12xYz"]


@pytest.mark.asyncio
async def test_hit_counter(memory_cache: InMemoryLinkCache) -> None:
    assert await memory_cache.get_hits("AbC12xYz") == (0, None)

    first = datetime.datetime(2026, 1, 1, tzinfo=datetime.timezone.utc)
    second = first + datetime.timedelta(minutes=5)
    await memory_cache.record_hit("AbC12xYz", first)
    await memory_cache.record_hit("AbC12xYz", second)

    assert await memory_cache.get_hits("AbC12xYz") == (2, second)


@pytest.mark.asyncio
async def test_unavailable_cache_raises(memory_cache: InMemoryLinkCache) -> None:
    memory_cache.available = False

    with pytest.raises(CacheError):
        await memory_cache.get("AbC12xYz")
    with pytest.raises(CacheError):
        await memory_cache.try_lock("AbC12xYz", "token", 3)
