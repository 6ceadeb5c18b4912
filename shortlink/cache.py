"""Redis implementation of the CachePort and HitCounterPort.

Key Layout
==========
::
    <prefix>:code:<code>   JSON CachedLinkPayload, PX = url/tombstone TTL
    <prefix>:lock:<code>   random lock token, SET NX PX = lock TTL
    <prefix>:meta:<code>   hash {pv, last_access_at}, no TTL

Key Behaviours
===============
- Every Redis failure (connection, timeout, protocol, non-UTF-8 value) is
  re-raised as CacheError; the coordinators downgrade it to a miss.
- Undecodable cache values are logged and reported as a miss.
- Unlock is an atomic compare-and-delete (Lua), so a holder whose lock
  expired can never release a lock that another request acquired since.

Classes:
    CacheKeySchema:  Namespaced Redis key names.
    RedisLinkCache:  CachePort + HitCounterPort backed by redis.asyncio.

Functions:
    create_redis_client():  Build a Redis client from settings.
"""

import datetime
import functools
import logging
from collections.abc import Callable
from typing import Any, TypeVar

import redis.asyncio as redis
from pydantic import ValidationError
from redis.exceptions import RedisError

from shortlink.config import Settings
from shortlink.exceptions import CacheError
from shortlink.ports import CacheLookup, CachePort, HitCounterPort
from shortlink.schemas import CachedLinkPayload

__all__ = ["CacheKeySchema", "RedisLinkCache", "create_redis_client"]

logger = logging.getLogger("shortlink.cache")

F = TypeVar("F", bound=Callable[..., Any])

# Delete the lock only if it still holds our token.
UNLOCK_SCRIPT = """
    if redis.call("GET", KEYS[1]) == ARGV[1] then
        return redis.call("DEL", KEYS[1])
    else
        return 0
    end
"""


def create_redis_client(settings: Settings) -> redis.Redis:
    return redis.from_url(
        settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        socket_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
        socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
    )


def handle_redis_error(method: F) -> F:
    """Wrap Redis-interacting cache methods so backend failures raise CacheError."""

    @functools.wraps(method)
    async def wrapper(self, *args, **kwargs):
        try:
            return await method(self, *args, **kwargs)
        except (RedisError, OSError, UnicodeDecodeError) as exc:
            raise CacheError(f"Redis {method.__name__} failed: {exc}") from exc

    return wrapper


def prefix_key(func: Callable[..., str]) -> Callable[..., str]:
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs) -> str:
        key = func(self, *args, **kwargs)
        return f"{self.prefix}:{key}" if self.prefix else key

    return wrapper


class CacheKeySchema:
    """Provide standardized Redis keys for short code entries.

    An optional prefix namespaces all generated keys, e.g. "sl" or
    "shortlink:staging".
    """

    def __init__(self, prefix: str | None = None):
        if prefix is not None and not isinstance(prefix, str):
            raise TypeError(f"Prefix must be of type string (given type: {type(prefix)}).")
        self.prefix = prefix

    @prefix_key
    def link_key(self, code: str) -> str:
        return f"code:{code}"

    @prefix_key
    def lock_key(self, code: str) -> str:
        return f"lock:{code}"

    @prefix_key
    def meta_key(self, code: str) -> str:
        return f"meta:{code}"


def _ttl_ms(ttl: float) -> int:
    return max(1, int(ttl * 1000))


class RedisLinkCache(CachePort, HitCounterPort):
    """Redis-backed cache for short code lookups.

    Attributes:
        redis (redis.Redis):
            Async Redis client, expected to decode responses to str.
        keys (CacheKeySchema):
            Key schema helper for namespaced key names.
    """

    def __init__(self, redis_client: redis.Redis, prefix: str | None = "sl"):
        self.redis = redis_client
        self.keys = CacheKeySchema(prefix=prefix)

    @handle_redis_error
    async def get(self, code: str) -> CacheLookup:
        raw = await self.redis.get(self.keys.link_key(code))
        if raw is None:
            return CacheLookup.miss()

        try:
            payload = CachedLinkPayload.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning(f"Discarding undecodable cache entry for {code}: {exc}")
            return CacheLookup.miss()

        if payload.tombstone:
            return CacheLookup.tombstone()
        return CacheLookup.found(payload.long_url)

    @handle_redis_error
    async def set(self, code: str, value: str, ttl: float) -> None:
        payload = CachedLinkPayload(long_url=value)
        await self.redis.set(self.keys.link_key(code), payload.model_dump_json(), px=_ttl_ms(ttl))

    @handle_redis_error
    async def set_tombstone(self, code: str, ttl: float) -> None:
        payload = CachedLinkPayload(tombstone=True)
        await self.redis.set(self.keys.link_key(code), payload.model_dump_json(), px=_ttl_ms(ttl))

    @handle_redis_error
    async def delete(self, code: str) -> None:
        await self.redis.delete(self.keys.link_key(code))

    @handle_redis_error
    async def try_lock(self, code: str, token: str, ttl: float) -> bool:
        acquired = await self.redis.set(self.keys.lock_key(code), token, nx=True, px=_ttl_ms(ttl))
        return bool(acquired)

    @handle_redis_error
    async def unlock(self, code: str, token: str) -> None:
        released = await self.redis.eval(UNLOCK_SCRIPT, 1, self.keys.lock_key(code), token)
        if not released:
            logger.debug(f"Lock for {code} no longer owned by this request, nothing to release")

    @handle_redis_error
    async def ping(self) -> bool:
        return bool(await self.redis.ping())

    @handle_redis_error
    async def record_hit(self, code: str, at: datetime.datetime) -> None:
        meta_key = self.keys.meta_key(code)
        # NOTE: counter and timestamp are written in one MULTI so a reader never
        #       sees a page view without its access time.
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.hincrby(meta_key, "pv", 1)
            pipe.hset(meta_key, "last_access_at", at.isoformat())
            await pipe.execute()

    @handle_redis_error
    async def get_hits(self, code: str) -> tuple[int, datetime.datetime | None]:
        data = await self.redis.hgetall(self.keys.meta_key(code))
        try:
            pv = int(data.get("pv", 0))
            last = data.get("last_access_at")
            last_access_at = datetime.datetime.fromisoformat(last) if last else None
        except ValueError as exc:
            raise CacheError(f"Malformed hit counter for {code}") from exc
        return pv, last_access_at
