"""Pydantic schemas for request/response validation and cache payloads.

Schema Hierarchy
=================
::
    ShortenRequest (Input)
    └─ long_url: str (opaque, length checked by the core)

    ShortenResponse (Output)
    ├─ code: str
    └─ short_url: str

    LinkMetaResponse (Output)
    ├─ code: str
    ├─ pv: int
    └─ last_access_at: datetime | None

    HealthResponse (Output)
    ├─ status: HealthStatus
    ├─ database: HealthStatus
    └─ cache: HealthStatus

    CachedLinkPayload (Redis value)
    ├─ long_url: str | None
    └─ tombstone: bool

Key Behaviours
===============
- ShortenRequest performs no URL validation; trimming and the 1-4000
  character bound are enforced by the shortening coordinator so that the
  core reports InvalidInputError (400) rather than a schema error (422).
- CachedLinkPayload tags tombstones explicitly, so a long URL can never be
  mistaken for the "confirmed absent" marker.

Classes:
    ShortenRequest:  Input schema for shortening requests.
    ShortenResponse:  Output schema for created short links.
    LinkMetaResponse:  Output schema for the hit counter.
    HealthResponse:  Output schema for health checks.
    CachedLinkPayload:  Redis cache payload for a short code.
"""

import datetime

from pydantic import BaseModel, Field, model_validator

from shortlink.enums import HealthStatus

__all__ = [
    "ShortenRequest",
    "ShortenResponse",
    "LinkMetaResponse",
    "HealthResponse",
    "CachedLinkPayload",
]


class ShortenRequest(BaseModel):
    long_url: str


class ShortenResponse(BaseModel):
    code: str
    short_url: str


class LinkMetaResponse(BaseModel):
    code: str
    pv: int
    last_access_at: datetime.datetime | None = None


class HealthResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus
    cache: HealthStatus


class CachedLinkPayload(BaseModel):
    """Redis cache payload for a short code: either a long URL or a tombstone."""

    long_url: str | None = Field(None, description="Target URL, unset for tombstones")
    tombstone: bool = Field(False, description="True when the code is confirmed absent")

    @model_validator(mode="after")
    def check_shape(self) -> "CachedLinkPayload":
        if self.tombstone == (self.long_url is not None):
            raise ValueError("Exactly one of long_url or tombstone must be set")
        return self
