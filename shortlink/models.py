"""SQLAlchemy ORM models for the shortlink store.

Data Model Layout
=================
::
    short_links table
    ├─ code (VARCHAR(16) PRIMARY KEY)
    ├─ long_url (TEXT NOT NULL)
    └─ created_at (TIMESTAMPTZ, DEFAULT NOW())

Key Behaviours
===============
- code is the primary key; a duplicate insert raises IntegrityError, which
  the store adapter maps to DuplicateKeyError.
- Rows are written once and never updated or deleted.
- code comparison is case-sensitive (PostgreSQL default collation).

Classes:
    ShortLink:  A code -> long URL mapping.
"""

import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from shortlink.database import Base

__all__ = ["ShortLink"]


class ShortLink(Base):
    __tablename__ = "short_links"

    code: Mapped[str] = mapped_column(String(16), primary_key=True)
    long_url: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<ShortLink(code='{self.code}')>"
