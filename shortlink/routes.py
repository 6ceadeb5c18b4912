"""FastAPI route definitions for the shortlink REST API.

API Endpoint Overview
=====================
::
    GET  /health
        └─ HealthResponse (200)

    POST /shorten
        ├─ ShortenRequest (request body)
        └─ ShortenResponse (200) or 400/422/500

    GET  /r/:code
        └─ 302 Redirect or 404/500

    GET  /meta/:code
        └─ LinkMetaResponse (200) or 404/500

Error Mapping
=============
::
    InvalidInputError        ─▶ 400 {"detail": <validation message>}
    NotFoundError            ─▶ 404 {"detail": "not found"}
    any other ShortLinkError ─▶ 500 {"detail": "internal"}

Internal error text (store or cache failures) is logged, never returned.

Key Behaviours
===============
- Redirects use 302 so browsers do not cache them and every hit is counted.
- Hit recording happens after the lookup and never fails the redirect.
- Health checks are bounded by HEALTH_CHECK_TIMEOUT_SECONDS per backend.
"""

import asyncio

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse

from shortlink.dependencies import (
    RequestContext,
    get_link_stats,
    get_request_context,
    get_resolver,
    get_shortener,
)
from shortlink.enums import HealthStatus
from shortlink.exceptions import InvalidInputError, NotFoundError, ShortLinkError
from shortlink.resolver import ResolutionCoordinator
from shortlink.schemas import HealthResponse, LinkMetaResponse, ShortenRequest, ShortenResponse
from shortlink.shortener import ShorteningCoordinator
from shortlink.stats import LinkStats

__all__ = ["router"]

router = APIRouter()


def _not_found() -> HTTPException:
    return HTTPException(status_code=404, detail="not found")


def _internal() -> HTTPException:
    return HTTPException(status_code=500, detail="internal")


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(ctx: RequestContext = Depends(get_request_context)) -> HealthResponse:
    manager = ctx.service_manager
    timeout = ctx.settings.HEALTH_CHECK_TIMEOUT_SECONDS
    db_status = HealthStatus.HEALTHY
    cache_status = HealthStatus.HEALTHY

    try:
        await asyncio.wait_for(manager.store.ping(), timeout=timeout)
    except (ShortLinkError, TimeoutError) as e:
        ctx.logger.error(f"Database health check failed: {e!r}")
        db_status = HealthStatus.UNHEALTHY

    if manager.cache is None:
        cache_status = HealthStatus.DISABLED
    else:
        try:
            await asyncio.wait_for(manager.cache.ping(), timeout=timeout)
        except (ShortLinkError, TimeoutError) as e:
            ctx.logger.error(f"Cache health check failed: {e!r}")
            cache_status = HealthStatus.UNHEALTHY

    status = (
        HealthStatus.HEALTHY
        if db_status is HealthStatus.HEALTHY and cache_status is not HealthStatus.UNHEALTHY
        else HealthStatus.UNHEALTHY
    )
    ctx.logger.debug(f"Health check completed: {status.value}")
    return HealthResponse(status=status, database=db_status, cache=cache_status)


@router.post("/shorten", response_model=ShortenResponse, tags=["links"])
async def shorten(
    payload: ShortenRequest,
    ctx: RequestContext = Depends(get_request_context),
    shortener: ShorteningCoordinator = Depends(get_shortener),
) -> ShortenResponse:
    ctx.add_tag("shorten")
    try:
        result = await shortener.shorten(payload.long_url)
    except InvalidInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ShortLinkError as exc:
        ctx.logger.error(
            f"Shorten request failed: {exc}",
            extra={"operation": "shorten", "duration_ms": ctx.get_duration()},
        )
        raise _internal() from exc

    ctx.logger.info(
        f"Short link created: {result.code}",
        extra={"operation": "shorten", "code": result.code, "duration_ms": ctx.get_duration()},
    )
    return ShortenResponse(code=result.code, short_url=result.short_url)


@router.get("/r/{code}", tags=["redirect"])
async def redirect(
    code: str,
    ctx: RequestContext = Depends(get_request_context),
    resolver: ResolutionCoordinator = Depends(get_resolver),
    stats: LinkStats = Depends(get_link_stats),
) -> RedirectResponse:
    ctx.add_tag("redirect")
    try:
        long_url = await resolver.resolve(code)
    except NotFoundError as exc:
        raise _not_found() from exc
    except ShortLinkError as exc:
        ctx.logger.error(
            f"Redirect failed for {code}: {exc}",
            extra={"operation": "redirect", "code": code, "duration_ms": ctx.get_duration()},
        )
        raise _internal() from exc

    await stats.record_hit(code.strip())
    return RedirectResponse(url=long_url, status_code=302)


@router.get("/meta/{code}", response_model=LinkMetaResponse, tags=["links"])
async def link_meta(
    code: str,
    ctx: RequestContext = Depends(get_request_context),
    stats: LinkStats = Depends(get_link_stats),
) -> LinkMetaResponse:
    ctx.add_tag("meta")
    try:
        meta = await stats.get_meta(code)
    except NotFoundError as exc:
        raise _not_found() from exc
    except ShortLinkError as exc:
        ctx.logger.error(
            f"Meta lookup failed for {code}: {exc}",
            extra={"operation": "meta", "code": code, "duration_ms": ctx.get_duration()},
        )
        raise _internal() from exc

    return LinkMetaResponse(code=meta.code, pv=meta.pv, last_access_at=meta.last_access_at)
