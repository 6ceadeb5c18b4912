"""Prometheus metrics shared by the shortlink coordinators."""

from prometheus_client import Counter, Histogram

__all__ = [
    "SHORTEN_REQUESTS_TOTAL",
    "SHORTEN_COLLISIONS_TOTAL",
    "SHORTEN_DURATION",
    "RESOLVE_REQUESTS_TOTAL",
    "RESOLVE_DURATION",
    "STORE_READS_TOTAL",
    "STORE_WRITES_TOTAL",
    "CACHE_LOOKUPS_TOTAL",
    "CACHE_ERRORS_TOTAL",
    "LOCK_ATTEMPTS_TOTAL",
    "STAMPEDE_FALLBACK_TOTAL",
]

# Request metrics
SHORTEN_REQUESTS_TOTAL = Counter(
    "shortlink_shorten_requests_total",
    "Total shorten requests",
    ["status"],
)
SHORTEN_COLLISIONS_TOTAL = Counter(
    "shortlink_shorten_collisions_total",
    "Generated short codes that already existed in the store",
)
RESOLVE_REQUESTS_TOTAL = Counter(
    "shortlink_resolve_requests_total",
    "Total resolve requests",
    ["status"],
)

# Performance metrics
SHORTEN_DURATION = Histogram(
    "shortlink_shorten_duration_seconds",
    "Time taken to create short codes",
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)
RESOLVE_DURATION = Histogram(
    "shortlink_resolve_duration_seconds",
    "Time taken to resolve short codes",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5],
)

# Backend metrics
STORE_READS_TOTAL = Counter(
    "shortlink_store_reads_total",
    "Total store lookups",
)
STORE_WRITES_TOTAL = Counter(
    "shortlink_store_writes_total",
    "Total store inserts",
)
CACHE_LOOKUPS_TOTAL = Counter(
    "shortlink_cache_lookups_total",
    "Cache lookups by result",
    ["result"],
)
CACHE_ERRORS_TOTAL = Counter(
    "shortlink_cache_errors_total",
    "Cache operations that failed and were downgraded",
    ["operation"],
)

# Stampede protection metrics
LOCK_ATTEMPTS_TOTAL = Counter(
    "shortlink_lock_attempts_total",
    "Single-flight lock attempts by outcome",
    ["outcome"],
)
STAMPEDE_FALLBACK_TOTAL = Counter(
    "shortlink_stampede_fallback_total",
    "Lock waiters that gave up polling and read the store directly",
)
