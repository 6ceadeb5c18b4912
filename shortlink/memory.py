"""In-memory implementations of the store and cache ports.

Suitable for:
  - Tests (deterministic clock, simulated latency, simulated cache outage)
  - Single-process local development (STORE_BACKEND=memory, CACHE_BACKEND=memory)

NOT suitable for:
  - Multi-process deployments (each process has its own memory)
  - Restarts (state is lost)

Both classes rely on asyncio's cooperative scheduling: every check-then-set
sequence runs without an ``await`` in the middle, which makes it atomic within
the event loop in the same way SET NX is atomic inside Redis.
"""

import asyncio
import datetime
import time
from collections.abc import Callable

from shortlink.exceptions import CacheError, DuplicateKeyError
from shortlink.ports import CacheLookup, CachePort, HitCounterPort, StorePort

__all__ = ["InMemoryShortLinkStore", "InMemoryLinkCache"]


class InMemoryShortLinkStore(StorePort):
    """Dictionary-backed store with optional per-call latency."""

    def __init__(self, latency: float = 0.0) -> None:
        self._rows: dict[str, str] = {}
        self._latency = latency

    async def _delay(self) -> None:
        if self._latency > 0:
            await asyncio.sleep(self._latency)

    async def insert(self, code: str, long_url: str) -> None:
        await self._delay()
        if code in self._rows:
            raise DuplicateKeyError(code)
        self._rows[code] = long_url

    async def lookup(self, code: str) -> tuple[str | None, bool]:
        await self._delay()
        long_url = self._rows.get(code)
        return long_url, long_url is not None

    async def ping(self) -> bool:
        return True

    def __len__(self) -> int:
        return len(self._rows)


class InMemoryLinkCache(CachePort, HitCounterPort):
    """Dictionary-backed cache with TTLs, token locks and a hit counter.

    Attributes:
        available (bool):
            Set to False to make every operation raise CacheError, which
            mimics a Redis outage.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[CacheLookup, float]] = {}
        self._locks: dict[str, tuple[str, float]] = {}
        self._hits: dict[str, tuple[int, datetime.datetime | None]] = {}
        self.available = True

    def _ensure_available(self) -> None:
        if not self.available:
            raise CacheError("In-memory cache is unavailable.")

    def _purge_expired(self) -> None:
        now = self._clock()
        for table in (self._entries, self._locks):
            expired = [key for key, (_, expires_at) in table.items() if expires_at <= now]
            for key in expired:
                del table[key]

    async def get(self, code: str) -> CacheLookup:
        self._ensure_available()
        entry = self._entries.get(code)
        if entry is None:
            return CacheLookup.miss()
        lookup, expires_at = entry
        if expires_at <= self._clock():
            del self._entries[code]
            return CacheLookup.miss()
        return lookup

    async def set(self, code: str, value: str, ttl: float) -> None:
        self._ensure_available()
        self._purge_expired()
        self._entries[code] = (CacheLookup.found(value), self._clock() + ttl)

    async def set_tombstone(self, code: str, ttl: float) -> None:
        self._ensure_available()
        self._purge_expired()
        self._entries[code] = (CacheLookup.tombstone(), self._clock() + ttl)

    async def delete(self, code: str) -> None:
        self._ensure_available()
        self._entries.pop(code, None)

    async def try_lock(self, code: str, token: str, ttl: float) -> bool:
        self._ensure_available()
        self._purge_expired()
        held = self._locks.get(code)
        if held is not None and held[1] > self._clock():
            return False
        self._locks[code] = (token, self._clock() + ttl)
        return True

    async def unlock(self, code: str, token: str) -> None:
        self._ensure_available()
        held = self._locks.get(code)
        if held is not None and held[0] == token:
            del self._locks[code]

    async def ping(self) -> bool:
        self._ensure_available()
        return True

    async def record_hit(self, code: str, at: datetime.datetime) -> None:
        self._ensure_available()
        pv, _ = self._hits.get(code, (0, None))
        self._hits[code] = (pv + 1, at)

    async def get_hits(self, code: str) -> tuple[int, datetime.datetime | None]:
        self._ensure_available()
        return self._hits.get(code, (0, None))

    def is_locked(self, code: str) -> bool:
        held = self._locks.get(code)
        return held is not None and held[1] > self._clock()
