"""Per-code hit counter on top of the cache.

Page views are recorded after a successful redirect and read back by
``GET /meta/{code}``. The counter lives in the cache, so it is lossy: a cache
outage drops hits and reports ``pv=0``, but never fails a request.
"""

import datetime
import logging
from dataclasses import dataclass

from shortlink.policy import best_effort
from shortlink.ports import HitCounterPort
from shortlink.resolver import ResolutionCoordinator

__all__ = ["LinkMeta", "LinkStats"]


@dataclass(frozen=True)
class LinkMeta:
    code: str
    pv: int
    last_access_at: datetime.datetime | None = None


class LinkStats:
    def __init__(
        self,
        resolver: ResolutionCoordinator,
        counter: HitCounterPort | None = None,
        *,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        self._resolver = resolver
        self._counter = counter
        self._logger = logger or logging.getLogger("shortlink")

    async def record_hit(self, code: str) -> None:
        if self._counter is None:
            return
        now = datetime.datetime.now(datetime.timezone.utc)
        await best_effort(self._counter.record_hit(code, now), name="record_hit", code=code, logger=self._logger)

    async def get_meta(self, code: str) -> LinkMeta:
        """Return the hit counter for an existing code.

        Raises:
            NotFoundError: If the code does not resolve.
            StoreError: If the store fails while resolving.
        """
        code = code.strip()
        await self._resolver.resolve(code)

        if self._counter is None:
            return LinkMeta(code=code, pv=0)
        pv, last_access_at = await best_effort(
            self._counter.get_hits(code),
            name="get_hits",
            code=code,
            logger=self._logger,
            default=(0, None),
        )
        return LinkMeta(code=code, pv=pv, last_access_at=last_access_at)
