"""Cache failure policy.

The store is authoritative and the cache is an optimization, so the two kinds
of backend failure are treated asymmetrically:

- StoreError propagates to the caller untouched.
- CacheError is never surfaced: it is counted, logged at WARNING and replaced
  by a caller-supplied default (a miss for reads, nothing for writes).

Every cache call made by the coordinators goes through ``best_effort``.
"""

import logging
from collections.abc import Awaitable
from typing import TypeVar

from shortlink.exceptions import CacheError
from shortlink.metrics import CACHE_ERRORS_TOTAL

__all__ = ["best_effort"]

T = TypeVar("T")


async def best_effort(
    operation: Awaitable[T],
    *,
    name: str,
    code: str,
    logger: logging.Logger | logging.LoggerAdapter,
    default: T | None = None,
) -> T | None:
    """Await a cache operation, downgrading CacheError to ``default``.

    Args:
        operation: The pending cache call.
        name: Operation name used for metrics and logs (e.g. "get").
        code: Short code the call is about.
        logger: Logger receiving the warning.
        default: Value returned when the cache fails.

    Returns:
        The operation's result, or ``default`` if the cache failed.
    """
    try:
        return await operation
    except CacheError as exc:
        CACHE_ERRORS_TOTAL.labels(operation=name).inc()
        logger.warning(f"Cache {name} failed for {code}, continuing without cache: {exc}")
        return default
