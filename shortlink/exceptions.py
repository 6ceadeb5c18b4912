"""Error taxonomy for the shortlink core.

Classes:
    ShortLinkError:
        Base class for every error raised by the core and its adapters.

    InvalidInputError:
        The request is malformed (empty or oversized long URL). Never retried.

    NotFoundError:
        The short code does not exist. Terminal, cacheable as a tombstone.

    DuplicateKeyError:
        The store already holds the short code. Retried internally by the
        shortening coordinator, never surfaced to clients.

    TooManyCollisionsError:
        Every shortening attempt collided. Signals store trouble.

    StoreError:
        The durable store is unavailable or answered with garbage.

    CacheError:
        The cache is unavailable. Callers downgrade it to a miss.

    RandomSourceError:
        The operating system entropy source is unavailable.

Example:
    >>> from shortlink.exceptions import NotFoundError
    >>> raise NotFoundError("AbC12xYz")
    Traceback (most recent call last):
        ...
    shortlink.exceptions.NotFoundError: Short code 'AbC12xYz' not found.
"""

from shortlink.enums import StoreErrorKind

__all__ = [
    "ShortLinkError",
    "InvalidInputError",
    "NotFoundError",
    "DuplicateKeyError",
    "TooManyCollisionsError",
    "StoreError",
    "CacheError",
    "RandomSourceError",
]


class ShortLinkError(Exception):
    """Generic base class for shortlink exceptions."""

    pass


class InvalidInputError(ShortLinkError):
    """Exception raised when a long URL is empty or too long."""

    pass


class NotFoundError(ShortLinkError):
    """Exception raised when a short code has no mapping."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Short code '{code}' not found.")


class DuplicateKeyError(ShortLinkError):
    """Exception raised when inserting a short code that already exists in the store."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Short code '{code}' already exists.")


class TooManyCollisionsError(ShortLinkError):
    """Exception raised when every generated short code collided."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Short code generation collided {attempts} times in a row.")


class StoreError(ShortLinkError):
    """Exception raised when the durable store fails.

    e.g. connection issues, timeouts, malformed rows, etc.
    """

    def __init__(self, message: str, kind: StoreErrorKind = StoreErrorKind.UNAVAILABLE):
        self.kind = kind
        super().__init__(message)


class CacheError(ShortLinkError):
    """Exception raised when the cache cannot serve a request."""

    pass


class RandomSourceError(ShortLinkError):
    """Exception raised when no cryptographically strong randomness is available."""

    pass
