"""Resolution coordinator: cache-aside reads with negative caching and single-flight.

Short Code Lookup Flow
----------------------
::
    ┌──────────────┐
    │ Check code   │── empty / > 16 chars ──▶ NotFoundError (no I/O)
    └──────┬───────┘
           ▼
    ┌──────────────┐  value     ┌─────────┐
    │ Read cache   │──────────▶ │ return  │
    └──────┬───────┘ tombstone ─▶ NotFoundError
      miss │
           ▼
    ┌──────────────┐ unavailable / disabled
    │ SET NX lock  │───────────────────────────────┐
    └──────┬───────┘                               │
    won?   │                                       │
    ┌──────┴──────────────┐                        │
    │ YES                 │ NO                     │
    ▼                     ▼                        │
┌──────────────┐   ┌──────────────────┐            │
│ Re-read      │   │ Poll cache 5x    │── hit ─▶ answer
│ cache, then  │   │ every 30ms       │            │
│ read store   │   └───────┬──────────┘            │
│ (unlock in   │   still miss                      │
│  finally)    │           ▼                       ▼
└──────────────┘   ┌──────────────────────────────────┐
                   │ Read store, cache value (24h) or │
                   │ tombstone (30s)                  │
                   └──────────────────────────────────┘

Within one lock epoch only the winner reads the store, except for waiters
whose polling budget ran out before the winner populated the cache.
"""

import asyncio
import logging
import time
from collections.abc import Callable

from shortlink.codegen import generate_short_code
from shortlink.config import Settings, get_settings
from shortlink.enums import CacheResult, LockOutcome, RequestStatus
from shortlink.exceptions import NotFoundError, RandomSourceError
from shortlink.metrics import (
    CACHE_LOOKUPS_TOTAL,
    LOCK_ATTEMPTS_TOTAL,
    RESOLVE_DURATION,
    RESOLVE_REQUESTS_TOTAL,
    STAMPEDE_FALLBACK_TOTAL,
    STORE_READS_TOTAL,
)
from shortlink.policy import best_effort
from shortlink.ports import CacheLookup, CachePort, StorePort

__all__ = ["ResolutionCoordinator"]


class ResolutionCoordinator:
    """Resolve short codes to long URLs.

    Args:
        store: Authoritative mapping store.
        cache: Optional cache; None sends every read to the store.
        settings: TTLs, lock and polling parameters.
        lock_enabled: Overrides ``settings.CACHE_LOCK_ENABLED``. Without the
            lock, reads degrade to plain cache-aside.
        token_generator: Produces lock tokens, ``generate_short_code`` by default.
        logger: Logger or request-scoped LoggerAdapter.

    Example:
        >>> resolver = ResolutionCoordinator(store, cache, settings=settings)
        >>> await resolver.resolve("AbC12xYz")
        'https://example.com/a'
    """

    def __init__(
        self,
        store: StorePort,
        cache: CachePort | None = None,
        *,
        settings: Settings | None = None,
        lock_enabled: bool | None = None,
        token_generator: Callable[[int], str] = generate_short_code,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        self._store = store
        self._cache = cache
        self._settings = settings or get_settings()
        self._lock_enabled = self._settings.CACHE_LOCK_ENABLED if lock_enabled is None else lock_enabled
        self._new_token = token_generator
        self._logger = logger or logging.getLogger("shortlink")

    async def resolve(self, code: str) -> str:
        """Return the long URL for ``code``.

        Raises:
            NotFoundError: If the code is malformed, tombstoned or absent from the store.
            StoreError: If the store fails; nothing is cached in that case.
        """
        start_time = time.perf_counter()
        code = code.strip() if isinstance(code, str) else ""
        if not code or len(code) > self._settings.SHORT_CODE_MAX_LENGTH:
            RESOLVE_REQUESTS_TOTAL.labels(status=RequestStatus.NOT_FOUND).inc()
            raise NotFoundError(code)

        try:
            long_url = await self._resolve(code)
        except NotFoundError:
            RESOLVE_REQUESTS_TOTAL.labels(status=RequestStatus.NOT_FOUND).inc()
            self._logger.debug(f"Short code not found: {code}")
            raise
        except Exception as exc:
            RESOLVE_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            self._logger.error(f"Resolve failed for {code}: {exc}")
            raise
        finally:
            RESOLVE_DURATION.observe(time.perf_counter() - start_time)

        RESOLVE_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        return long_url

    async def _resolve(self, code: str) -> str:
        if self._cache is None:
            return await self._read_store(code)

        lookup = await self._read_cache(code)
        if lookup.hit:
            return self._answer(code, lookup)

        if not self._lock_enabled:
            return await self._read_store(code)

        outcome, token = await self._acquire_lock(code)
        if outcome is LockOutcome.UNAVAILABLE:
            return await self._read_store(code)

        if outcome is LockOutcome.ACQUIRED:
            try:
                # Another request may have filled the cache while we were acquiring.
                lookup = await self._read_cache(code)
                if lookup.hit:
                    return self._answer(code, lookup)
                self._logger.info(f"Lock winner, reading store for code={code}")
                return await self._read_store(code)
            finally:
                await best_effort(self._cache.unlock(code, token), name="unlock", code=code, logger=self._logger)

        for _ in range(self._settings.CACHE_LOCK_RETRY_COUNT):
            await asyncio.sleep(self._settings.CACHE_LOCK_RETRY_DELAY_SECONDS)
            lookup = await self._read_cache(code)
            if lookup.hit:
                return self._answer(code, lookup)

        STAMPEDE_FALLBACK_TOTAL.inc()
        self._logger.warning(f"Lock holder did not populate cache in time, reading store for code={code}")
        return await self._read_store(code)

    async def _read_cache(self, code: str) -> CacheLookup:
        lookup = await best_effort(
            self._cache.get(code),
            name="get",
            code=code,
            logger=self._logger,
            default=CacheLookup.miss(),
        )
        if lookup.is_tombstone:
            CACHE_LOOKUPS_TOTAL.labels(result=CacheResult.TOMBSTONE).inc()
        elif lookup.hit:
            CACHE_LOOKUPS_TOTAL.labels(result=CacheResult.VALUE).inc()
        else:
            CACHE_LOOKUPS_TOTAL.labels(result=CacheResult.MISS).inc()
        return lookup

    @staticmethod
    def _answer(code: str, lookup: CacheLookup) -> str:
        if lookup.is_tombstone:
            raise NotFoundError(code)
        return lookup.value

    async def _acquire_lock(self, code: str) -> tuple[LockOutcome, str | None]:
        try:
            token = self._new_token(self._settings.LOCK_TOKEN_LENGTH)
        except RandomSourceError as exc:
            self._logger.warning(f"Cannot generate lock token for {code}, skipping lock: {exc}")
            LOCK_ATTEMPTS_TOTAL.labels(outcome=LockOutcome.UNAVAILABLE).inc()
            return LockOutcome.UNAVAILABLE, None

        acquired = await best_effort(
            self._cache.try_lock(code, token, self._settings.CACHE_LOCK_TTL_SECONDS),
            name="try_lock",
            code=code,
            logger=self._logger,
        )
        if acquired is None:
            outcome = LockOutcome.UNAVAILABLE
        elif acquired:
            outcome = LockOutcome.ACQUIRED
        else:
            outcome = LockOutcome.CONTENDED
        LOCK_ATTEMPTS_TOTAL.labels(outcome=outcome).inc()
        return outcome, token

    async def _read_store(self, code: str) -> str:
        STORE_READS_TOTAL.inc()
        # StoreError propagates here, before anything is cached.
        long_url, found = await self._store.lookup(code)

        if not found:
            if self._cache is not None:
                await best_effort(
                    self._cache.set_tombstone(code, self._settings.CACHE_TOMBSTONE_TTL_SECONDS),
                    name="set_tombstone",
                    code=code,
                    logger=self._logger,
                )
            raise NotFoundError(code)

        if self._cache is not None:
            await best_effort(
                self._cache.set(code, long_url, self._settings.CACHE_URL_TTL_SECONDS),
                name="set",
                code=code,
                logger=self._logger,
            )
        return long_url
