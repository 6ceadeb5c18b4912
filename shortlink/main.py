"""FastAPI application entry point for the shortlink service.

Application Lifecycle Diagram
=============================
::
    ┌──────────────────┐
    │ uvicorn startup  │
    └────────┬─────────┘
             ▼
    ┌──────────────────┐
    │ lifespan():      │
    │ manager.init()   │
    │ init_db() (sql)  │
    └────────┬─────────┘
             ▼
    ┌──────────────────┐
    │ Serve HTTP       │
    │ requests         │
    └────────┬─────────┘
             ▼
    ┌──────────────────┐
    │ lifespan():      │
    │ manager.cleanup()│
    │ (engine, redis)  │
    └──────────────────┘

How to Use
===========
**Run with uvicorn**::
    uvicorn shortlink.main:app --host 0.0.0.0 --port 8080

**Make API calls**::
    curl -X POST http://localhost:8080/shorten \
         -H "Content-Type: application/json" \
         -d '{"long_url": "https://example.com"}'
    curl -i http://localhost:8080/r/AbC12xYz

**Run without Postgres or Redis**::
    STORE_BACKEND=memory CACHE_BACKEND=memory uvicorn shortlink.main:app

Key Behaviours
===============
- The short_links table is created on startup when the SQL store is used.
- Prometheus metrics are exposed at /metrics.
- OpenAPI documentation is available at /docs.
"""

__all__ = ["app"]

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from shortlink.config import get_settings
from shortlink.database import init_db
from shortlink.dependencies import _service_manager
from shortlink.routes import router

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    await _service_manager.initialize()
    if _service_manager.engine is not None:
        await init_db(_service_manager.engine)
    yield
    # Shutdown
    await _service_manager.cleanup()


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="URL shortener with cache-aside resolution and stampede protection",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=False,
    should_respect_env_var=False,
).instrument(app).expose(app)

app.include_router(router)
