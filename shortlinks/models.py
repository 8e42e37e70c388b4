"""SQLAlchemy ORM models for the link store.

This module defines the database schema for the canonical
identifier <-> URL mapping.

Data Model Layout
=================
::
    short_links table
    ├─ id (BIGINT PRIMARY KEY, auto-assigned)
    ├─ url (TEXT NOT NULL, UNIQUE uq_short_links_url)
    └─ created_at (TIMESTAMPTZ, DEFAULT NOW())

How to Use
===========
**Step 1 — Import**::
    from shortlinks.models import ShortLink

**Step 2 — Query with a pooled connection**::
    result = await conn.execute(select(ShortLink.id, ShortLink.url).where(ShortLink.id == 7))
    row = result.one_or_none()

Key Behaviours
===============
- The unique constraint on url is what lets concurrent get-or-create calls
  agree on one identifier; the store relies on the backend rejecting the
  losing insert.
- Identifiers come from the backend's sequence and are never reused.
- Rows are never updated or deleted by the service.

Classes:
    ShortLink:  A persisted (id, url) pair.
"""

import datetime

from sqlalchemy import BigInteger, DateTime, Integer, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from shortlinks.database import Base

__all__ = ["MAX_LINK_ID", "ShortLink"]

# SQLite only auto-assigns keys for columns declared exactly INTEGER PRIMARY KEY.
LinkId = BigInteger().with_variant(Integer(), "sqlite")

# Largest id a signed 64-bit key column can hold.
MAX_LINK_ID = 2**63 - 1


class ShortLink(Base):
    __tablename__ = "short_links"
    __table_args__ = (UniqueConstraint("url", name="uq_short_links_url"),)

    id: Mapped[int] = mapped_column(LinkId, primary_key=True, autoincrement=True)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<ShortLink(id={self.id}, url='{self.url}')>"
