"""Dependency injection with an explicitly constructed service manager.

The service manager owns the process-wide resources (settings, logger, SQL
engine, Redis client) and the ports built from them. Routes never touch those
resources directly: they receive coordinators built per request from the
manager's ports and a request-scoped logger.

Dependency Graph
================
::
    get_service_manager()
          │
          ▼
    get_request_context(request, manager)
          │
          ├──▶ get_shortener()   ─▶ ShorteningCoordinator(store, cache)
          ├──▶ get_resolver()    ─▶ ResolutionCoordinator(store, cache)
          └──▶ get_link_stats()  ─▶ LinkStats(resolver, hit_counter)

How to Use
===========
**Production**: ``main.py`` initializes the module-level manager in the app
lifespan; every request shares it.

**Tests**: build a manager from in-memory ports and override the dependency::

    manager = ServiceManager(settings=settings, store=store, cache=cache)
    await manager.initialize()
    app.dependency_overrides[get_service_manager] = lambda: manager
"""

import logging
import time
import uuid
from dataclasses import dataclass, field

import redis.asyncio as redis
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncEngine

from shortlink.cache import RedisLinkCache, create_redis_client
from shortlink.config import Settings, get_settings
from shortlink.database import build_engine, build_session_factory, close_db
from shortlink.memory import InMemoryLinkCache, InMemoryShortLinkStore
from shortlink.ports import CachePort, HitCounterPort, StorePort
from shortlink.resolver import ResolutionCoordinator
from shortlink.shortener import ShorteningCoordinator
from shortlink.stats import LinkStats
from shortlink.store import SQLShortLinkStore

__all__ = [
    "ServiceManager",
    "RequestIdFilter",
    "RequestLoggerAdapter",
    "RequestContext",
    "get_service_manager",
    "get_request_context",
    "get_shortener",
    "get_resolver",
    "get_link_stats",
]


# ============================================================================
# LOGGING
# ============================================================================


class RequestIdFilter(logging.Filter):
    """Give records logged outside a request a placeholder request_id."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = "-"
        return True


class RequestLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that merges call-site ``extra`` with the request context."""

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


# ============================================================================
# SERVICE MANAGER
# ============================================================================


class ServiceManager:
    """Holder of shared resources and ports.

    Components passed to the constructor are used as-is; anything left as
    None is built from settings by ``initialize()``.

    Attributes:
        settings: Application settings.
        store: Durable StorePort.
        cache: CachePort, or None when ``CACHE_BACKEND=none``.
        hit_counter: HitCounterPort, defaults to the cache when it is one.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        store: StorePort | None = None,
        cache: CachePort | None = None,
        hit_counter: HitCounterPort | None = None,
    ):
        self.settings = settings or get_settings()
        self.store = store
        self.cache = cache
        self.hit_counter = hit_counter
        self.logger = self._setup_logger()
        self.engine: AsyncEngine | None = None
        self.redis_client: redis.Redis | None = None
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Build whatever was not injected. Safe to call more than once."""
        if self._initialized:
            return

        if self.store is None:
            self.store = self._setup_store()
        if self.cache is None and self.settings.cache_enabled:
            self.cache = self._setup_cache()
        if self.hit_counter is None and isinstance(self.cache, HitCounterPort):
            self.hit_counter = self.cache

        self.logger.info(
            f"Service manager ready: store={type(self.store).__name__}, "
            f"cache={type(self.cache).__name__ if self.cache else 'disabled'}"
        )
        self._initialized = True

    def _setup_logger(self) -> logging.Logger:
        logger = logging.getLogger("shortlink")
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s"
            )
            handler.setFormatter(formatter)
            handler.addFilter(RequestIdFilter())
            logger.addHandler(handler)
        logger.setLevel(self.settings.LOG_LEVEL.upper())
        return logger

    def _setup_store(self) -> StorePort:
        if self.settings.STORE_BACKEND == "memory":
            return InMemoryShortLinkStore()
        self.engine = build_engine(self.settings)
        return SQLShortLinkStore(build_session_factory(self.engine))

    def _setup_cache(self) -> CachePort:
        if self.settings.CACHE_BACKEND == "memory":
            return InMemoryLinkCache()
        self.redis_client = create_redis_client(self.settings)
        return RedisLinkCache(self.redis_client, prefix=self.settings.CACHE_KEY_PREFIX)

    async def cleanup(self) -> None:
        """Release the engine and Redis client built by ``initialize()``."""
        if self.redis_client is not None:
            await self.redis_client.aclose()
            self.redis_client = None
        if self.engine is not None:
            await close_db(self.engine)
            self.engine = None
        self._initialized = False


# Process-wide instance, initialized by the app lifespan.
_service_manager = ServiceManager()


# ============================================================================
# REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Per-request tracking data and access to the shared ports.

    Attributes:
        service_manager: Shared service manager
        request_id: Unique identifier for this request
        user_agent: Client user agent string
        client_ip: Client IP address
        start_time: Request start timestamp
        tags: Request tags for categorization
    """

    service_manager: ServiceManager
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    user_agent: str | None = None
    client_ip: str | None = None
    start_time: float = field(default_factory=time.time)
    tags: list[str] = field(default_factory=list)

    @property
    def settings(self) -> Settings:
        return self.service_manager.settings

    @property
    def logger(self) -> RequestLoggerAdapter:
        """Shared logger carrying this request's context."""
        return RequestLoggerAdapter(
            self.service_manager.logger,
            {
                "request_id": self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
                "tags": ",".join(self.tags),
            },
        )

    def add_tag(self, tag: str) -> None:
        if tag not in self.tags:
            self.tags.append(tag)

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


async def get_service_manager() -> ServiceManager:
    if not _service_manager.initialized:
        await _service_manager.initialize()
    return _service_manager


async def get_request_context(
    request: Request,
    manager: ServiceManager = Depends(get_service_manager),
) -> RequestContext:
    return RequestContext(
        service_manager=manager,
        request_id=request.headers.get("x-request-id") or str(uuid.uuid4()),
        user_agent=request.headers.get("user-agent"),
        client_ip=request.client.host if request.client else None,
    )


def get_resolver(ctx: RequestContext = Depends(get_request_context)) -> ResolutionCoordinator:
    manager = ctx.service_manager
    return ResolutionCoordinator(manager.store, manager.cache, settings=manager.settings, logger=ctx.logger)


def get_shortener(ctx: RequestContext = Depends(get_request_context)) -> ShorteningCoordinator:
    manager = ctx.service_manager
    return ShorteningCoordinator(manager.store, manager.cache, settings=manager.settings, logger=ctx.logger)


def get_link_stats(
    ctx: RequestContext = Depends(get_request_context),
    resolver: ResolutionCoordinator = Depends(get_resolver),
) -> LinkStats:
    return LinkStats(resolver, ctx.service_manager.hit_counter, logger=ctx.logger)
