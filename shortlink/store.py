"""PostgreSQL implementation of the StorePort.

Each operation opens its own short-lived session from the injected session
factory, so a single store instance is safe to share across concurrent
requests.

Error mapping:
    unique violation (SQLSTATE 23505) -> DuplicateKeyError
    other IntegrityError              -> StoreError(MALFORMED)
    any other SQLAlchemyError/OSError -> StoreError(UNAVAILABLE)
    a non-string long_url column      -> StoreError(MALFORMED)

Example:
    >>> store = SQLShortLinkStore(build_session_factory(engine))
    >>> await store.insert("AbC12xYz", "https://example.com/a")
    >>> await store.lookup("AbC12xYz")
    ('https://example.com/a', True)
"""

from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shortlink.enums import StoreErrorKind
from shortlink.exceptions import DuplicateKeyError, StoreError
from shortlink.models import ShortLink
from shortlink.ports import StorePort

__all__ = ["SQLShortLinkStore"]

UNIQUE_VIOLATION = "23505"


def _is_unique_violation(exc: IntegrityError) -> bool:
    return getattr(exc.orig, "sqlstate", None) == UNIQUE_VIOLATION


class SQLShortLinkStore(StorePort):
    """Store short code mappings in the ``short_links`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._sessions = session_factory

    async def insert(self, code: str, long_url: str) -> None:
        async with self._sessions() as session:
            session.add(ShortLink(code=code, long_url=long_url))
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                if _is_unique_violation(exc):
                    raise DuplicateKeyError(code) from exc
                raise StoreError(
                    f"Constraint violation inserting short code '{code}'.",
                    kind=StoreErrorKind.MALFORMED,
                ) from exc
            except (SQLAlchemyError, OSError) as exc:
                await session.rollback()
                raise StoreError(f"Failed to insert short code '{code}'.") from exc

    async def lookup(self, code: str) -> tuple[str | None, bool]:
        async with self._sessions() as session:
            try:
                result = await session.execute(select(ShortLink.long_url).where(ShortLink.code == code))
                long_url = result.scalar_one_or_none()
            except (SQLAlchemyError, OSError) as exc:
                raise StoreError(f"Failed to look up short code '{code}'.") from exc

        if long_url is None:
            return None, False
        if not isinstance(long_url, str):
            raise StoreError(
                f"Store returned a non-string URL for short code '{code}'.",
                kind=StoreErrorKind.MALFORMED,
            )
        return long_url, True

    async def ping(self) -> bool:
        async with self._sessions() as session:
            try:
                await session.execute(text("SELECT 1"))
            except (SQLAlchemyError, OSError) as exc:
                raise StoreError("Store health check failed.") from exc
        return True
