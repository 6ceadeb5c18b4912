"""Shortening coordinator: code generation, collision retry, cache invalidation.

URL Creation Flow
-----------------
::
    ┌──────────────┐
    │ Trim & check │── empty / > 4000 chars / NUL ──▶ InvalidInputError
    │ long URL     │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ Generate     │◀────────────────┐
    │ random code  │                 │ DuplicateKeyError
    └──────┬───────┘                 │ (up to 5 attempts)
           ▼                         │
    ┌──────────────┐                 │
    │ Store insert │─────────────────┘
    └──────┬───────┘── other StoreError ──▶ propagate
           ▼
    ┌──────────────┐
    │ Cache delete │  best effort, clears a stale tombstone
    └──────┬───────┘
           ▼
      (code, BASE_URL/r/code)

The mapping is always written durably before any cache state exists for the
code, and the cache is invalidated rather than populated afterwards.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from shortlink.codegen import generate_short_code
from shortlink.config import Settings, get_settings
from shortlink.enums import RequestStatus
from shortlink.exceptions import DuplicateKeyError, InvalidInputError, TooManyCollisionsError
from shortlink.metrics import (
    SHORTEN_COLLISIONS_TOTAL,
    SHORTEN_DURATION,
    SHORTEN_REQUESTS_TOTAL,
    STORE_WRITES_TOTAL,
)
from shortlink.policy import best_effort
from shortlink.ports import CachePort, StorePort

__all__ = ["ShortenResult", "ShorteningCoordinator"]


@dataclass(frozen=True)
class ShortenResult:
    code: str
    short_url: str


class ShorteningCoordinator:
    """Create short codes for long URLs.

    Example:
        >>> shortener = ShorteningCoordinator(store, cache, settings=settings)
        >>> result = await shortener.shorten("https://example.com/a")
        >>> result.short_url
        'http://localhost:8080/r/AbC12xYz'
    """

    def __init__(
        self,
        store: StorePort,
        cache: CachePort | None = None,
        *,
        settings: Settings | None = None,
        generator: Callable[[int], str] = generate_short_code,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        self._store = store
        self._cache = cache
        self._settings = settings or get_settings()
        self._generate = generator
        self._logger = logger or logging.getLogger("shortlink")

    async def shorten(self, long_url: str) -> ShortenResult:
        """Store a new mapping for ``long_url`` and return its short code.

        Raises:
            InvalidInputError: If the trimmed URL is empty or too long.
            TooManyCollisionsError: If every attempt hit an existing code.
            StoreError: If the store fails for any reason other than a duplicate.
            RandomSourceError: If no code can be generated.
        """
        start_time = time.perf_counter()
        try:
            result = await self._shorten(long_url)
        except InvalidInputError as exc:
            SHORTEN_REQUESTS_TOTAL.labels(status=RequestStatus.VALIDATION_ERROR).inc()
            self._logger.warning(f"Shorten rejected: {exc}")
            raise
        except Exception as exc:
            SHORTEN_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            self._logger.error(f"Shorten failed: {exc}")
            raise
        finally:
            SHORTEN_DURATION.observe(time.perf_counter() - start_time)

        SHORTEN_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        self._logger.info(f"Short code created: {result.code}")
        return result

    async def _shorten(self, long_url: str) -> ShortenResult:
        long_url = self._normalize(long_url)
        attempts = self._settings.SHORTEN_MAX_ATTEMPTS

        for attempt in range(1, attempts + 1):
            code = self._generate(self._settings.SHORT_CODE_LENGTH)
            try:
                await self._store.insert(code, long_url)
            except DuplicateKeyError:
                SHORTEN_COLLISIONS_TOTAL.inc()
                self._logger.warning(f"Short code collision on attempt {attempt}/{attempts}: {code}")
                continue

            STORE_WRITES_TOTAL.inc()
            if self._cache is not None:
                await best_effort(self._cache.delete(code), name="delete", code=code, logger=self._logger)
            return ShortenResult(code=code, short_url=self._short_url(code))

        raise TooManyCollisionsError(attempts)

    def _normalize(self, long_url: str) -> str:
        if not isinstance(long_url, str):
            raise InvalidInputError("long_url must be a string")

        long_url = long_url.strip()
        if not long_url:
            raise InvalidInputError("long_url must not be empty")
        if len(long_url) > self._settings.LONG_URL_MAX_LENGTH:
            raise InvalidInputError(f"long_url exceeds {self._settings.LONG_URL_MAX_LENGTH} characters")
        if "\x00" in long_url:
            raise InvalidInputError("long_url must not contain NUL characters")
        return long_url

    def _short_url(self, code: str) -> str:
        return f"{self._settings.BASE_URL.rstrip('/')}/r/{code}"
