"""Abstract contracts between the shortlink core and its backends.

The coordinators only ever talk to these interfaces, so any backend that
honours them (PostgreSQL, Redis, the in-memory adapters used in tests) can be
swapped in at construction time.

Classes:
    CacheLookup:     Tagged result of a cache read (value / tombstone / miss).
    StorePort:       Durable insert/lookup of code -> long URL mappings.
    CachePort:       Volatile code -> long URL entries, tombstones and a
                     token-based distributed lock.
    HitCounterPort:  Simple per-code page view counter.

Error contract:
    StorePort implementations raise DuplicateKeyError or StoreError.
    CachePort and HitCounterPort implementations raise CacheError for any
    backend failure; callers treat it as a miss and never surface it.
"""

import datetime
from abc import ABC, abstractmethod
from dataclasses import dataclass

__all__ = ["CacheLookup", "StorePort", "CachePort", "HitCounterPort"]


@dataclass(frozen=True)
class CacheLookup:
    """Result of a cache read.

    Attributes:
        value: The cached long URL, only set on a positive hit.
        hit: True when the cache knows the answer (value or tombstone).
        is_tombstone: True when the code is cached as confirmed absent.
    """

    value: str | None = None
    hit: bool = False
    is_tombstone: bool = False

    @classmethod
    def miss(cls) -> "CacheLookup":
        return cls()

    @classmethod
    def tombstone(cls) -> "CacheLookup":
        return cls(hit=True, is_tombstone=True)

    @classmethod
    def found(cls, value: str) -> "CacheLookup":
        return cls(value=value, hit=True)


class StorePort(ABC):
    """Authoritative, durable storage of short code mappings."""

    @abstractmethod
    async def insert(self, code: str, long_url: str) -> None:
        """Insert a new mapping.

        Raises:
            DuplicateKeyError: If the code already exists.
            StoreError: On any other store failure.
        """

    @abstractmethod
    async def lookup(self, code: str) -> tuple[str | None, bool]:
        """Return ``(long_url, True)`` for a known code, ``(None, False)`` otherwise.

        Raises:
            StoreError: If the store cannot answer.
        """

    @abstractmethod
    async def ping(self) -> bool:
        """Return True if the store is reachable.

        Raises:
            StoreError: If the store cannot be reached.
        """


class CachePort(ABC):
    """Expendable cache in front of the store.

    Every method raises CacheError when the backend is unavailable.
    TTL values are expressed in seconds.
    """

    @abstractmethod
    async def get(self, code: str) -> CacheLookup:
        """Read the cache entry for a code."""

    @abstractmethod
    async def set(self, code: str, value: str, ttl: float) -> None:
        """Cache a positive mapping."""

    @abstractmethod
    async def set_tombstone(self, code: str, ttl: float) -> None:
        """Cache a code as confirmed absent."""

    @abstractmethod
    async def delete(self, code: str) -> None:
        """Drop any entry (value or tombstone) for a code."""

    @abstractmethod
    async def try_lock(self, code: str, token: str, ttl: float) -> bool:
        """Acquire the per-code lock if nobody holds it.

        Returns:
            bool: True if this token now owns the lock.
        """

    @abstractmethod
    async def unlock(self, code: str, token: str) -> None:
        """Release the per-code lock if and only if ``token`` still owns it.

        Releasing a lock held by another token (e.g. after expiry) is a
        silent no-op, never an error.
        """

    @abstractmethod
    async def ping(self) -> bool:
        """Return True if the cache is reachable.

        Raises:
            CacheError: If the cache cannot be reached.
        """


class HitCounterPort(ABC):
    """Per-code access counter (page views and last access time)."""

    @abstractmethod
    async def record_hit(self, code: str, at: datetime.datetime) -> None:
        """Increment the page view counter and remember the access time."""

    @abstractmethod
    async def get_hits(self, code: str) -> tuple[int, datetime.datetime | None]:
        """Return ``(page_views, last_access_at)`` for a code."""
