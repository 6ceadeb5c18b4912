"""Configuration management for the shortlink service.

This module provides centralized configuration management using Pydantic BaseSettings
with environment variable support and caching for performance.

How to Use
===========
**Step 1 — Import**::
    from shortlink.config import get_settings

**Step 2 — Get settings**::
    settings = get_settings()
    db_url = settings.DATABASE_URL

**Step 3 — Build one explicitly (tests)**::
    settings = Settings(BASE_URL="http://sho.rt", CACHE_LOCK_ENABLED=False)

Key Behaviours
===============
- Settings are cached after first access for performance.
- Environment variables override defaults automatically.
- ``CACHE_BACKEND=none`` runs without a cache (every read goes to the store).
- ``CACHE_LOCK_ENABLED=false`` disables stampede protection; reads degrade to
  plain cache-aside.

Classes:
    Settings:  Pydantic model for all configuration values.
"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "shortlink"
    APP_ENV: str = "development"
    BASE_URL: str = "http://localhost:8080"
    LOG_LEVEL: str = "INFO"

    # Durable store
    STORE_BACKEND: Literal["sql", "memory"] = "sql"
    DATABASE_URL: str = "postgresql+asyncpg://shortlink:shortlink@db:5432/shortlink"
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 10

    # Cache
    CACHE_BACKEND: Literal["redis", "memory", "none"] = "redis"
    REDIS_URL: str = "redis://redis:6379/0"
    REDIS_SOCKET_TIMEOUT_SECONDS: float = 0.5
    CACHE_KEY_PREFIX: str = "sl"
    CACHE_URL_TTL_SECONDS: float = 86400
    CACHE_TOMBSTONE_TTL_SECONDS: float = 30

    # Cache stampede protection
    CACHE_LOCK_ENABLED: bool = True
    CACHE_LOCK_TTL_SECONDS: float = 3
    CACHE_LOCK_RETRY_COUNT: int = 5
    CACHE_LOCK_RETRY_DELAY_SECONDS: float = 0.03
    LOCK_TOKEN_LENGTH: int = 12

    # Short URL config
    SHORT_CODE_LENGTH: int = 8
    SHORT_CODE_MAX_LENGTH: int = 16
    SHORTEN_MAX_ATTEMPTS: int = 5
    LONG_URL_MAX_LENGTH: int = 4000

    HEALTH_CHECK_TIMEOUT_SECONDS: float = 2.0

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    @property
    def cache_enabled(self) -> bool:
        return self.CACHE_BACKEND != "none"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
