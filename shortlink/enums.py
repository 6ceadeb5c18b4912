"""Shared enums for the shortlink service.

This module defines all status and state enums used across the codebase.
Using enums instead of string literals provides type safety and prevents typos.
"""

from enum import StrEnum

__all__ = ["HealthStatus", "RequestStatus", "CacheResult", "LockOutcome", "StoreErrorKind"]


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DISABLED = "disabled"


class RequestStatus(StrEnum):
    """Request status values for metrics and logging."""

    SUCCESS = "success"
    VALIDATION_ERROR = "validation_error"
    ERROR = "error"
    NOT_FOUND = "not_found"


class CacheResult(StrEnum):
    """Outcome of a cache lookup, for metrics."""

    VALUE = "value"
    TOMBSTONE = "tombstone"
    MISS = "miss"


class LockOutcome(StrEnum):
    """Result of a single-flight lock attempt during resolution."""

    ACQUIRED = "acquired"
    CONTENDED = "contended"
    UNAVAILABLE = "unavailable"


class StoreErrorKind(StrEnum):
    """Structured classification of durable store failures."""

    UNAVAILABLE = "unavailable"
    MALFORMED = "malformed"
