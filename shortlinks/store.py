"""Dedup store owning the canonical identifier <-> URL mapping.

The store is stateless: every operation runs on a pooled connection handed in
by the caller (the messaging gateway), so the pool stays the single shared
resource and each operation holds at most one connection.

Get-or-create Flow
==================
::
    ┌──────────────┐
    │ find_by_url  │── hit ──────────────────────────► (link, created=False)
    └──────┬───────┘
        miss
           ▼
    ┌──────────────┐
    │ INSERT url   │── ok ──► COMMIT ────────────────► (link, created=True)
    └──────┬───────┘
    IntegrityError (another caller inserted the same url first)
           ▼
    ┌──────────────┐
    │ ROLLBACK +   │── hit ──────────────────────────► (winner, created=False)
    │ find_by_url  │
    └──────┬───────┘
        miss
           ▼
      StoreError

Key Behaviours
===============
- Losing an insert race is recovered locally and never reported as an error.
- Relies on the uq_short_links_url constraint; without it two racing inserts
  could both succeed.
- Backend errors are translated at this boundary: connection-level problems
  become StoreUnavailableError, everything else StoreError.

Classes:
    ShortLinkStore:  Point lookups and exactly-once creation of links.
"""

import functools
import logging
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

from sqlalchemy import insert, select
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncConnection

from shortlinks.exceptions import StoreError, StoreUnavailableError
from shortlinks.models import MAX_LINK_ID, ShortLink
from shortlinks.schemas import ShortLinkPayload

__all__ = ["ShortLinkStore", "handle_store_errors", "is_connection_error"]

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


def is_connection_error(exc: BaseException) -> bool:
    """Tell whether ``exc`` means the backend or the pool cannot serve requests."""
    if isinstance(exc, (PoolTimeoutError, InterfaceError, OSError)):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


def handle_store_errors(method: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
    """Wrap store methods so callers only ever see store exceptions.

    Example:
        >>> @handle_store_errors
        ... async def count(self, conn):
        ...     return (await conn.execute(text("SELECT count(*) FROM short_links"))).scalar_one()
    """

    @functools.wraps(method)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return await method(*args, **kwargs)
        except StoreError:
            raise
        except (SQLAlchemyError, OSError) as exc:
            if is_connection_error(exc):
                raise StoreUnavailableError("storage backend unavailable") from exc
            raise StoreError(f"storage backend error: {exc.__class__.__name__}") from exc

    return wrapper


class ShortLinkStore:
    """Lookups and get-or-create over the short_links table."""

    @handle_store_errors
    async def find_by_id(self, conn: AsyncConnection, link_id: int) -> ShortLinkPayload | None:
        if link_id > MAX_LINK_ID:
            logger.debug(f"find_by_id({link_id}) -> None (beyond key range)")
            return None
        result = await conn.execute(select(ShortLink.id, ShortLink.url).where(ShortLink.id == link_id))
        row = result.one_or_none()
        logger.debug(f"find_by_id({link_id}) -> {row}")
        return ShortLinkPayload(id=row.id, url=row.url) if row is not None else None

    @handle_store_errors
    async def find_by_url(self, conn: AsyncConnection, url: str) -> ShortLinkPayload | None:
        result = await conn.execute(select(ShortLink.id, ShortLink.url).where(ShortLink.url == url))
        row = result.one_or_none()
        return ShortLinkPayload(id=row.id, url=row.url) if row is not None else None

    @handle_store_errors
    async def find_or_create(self, conn: AsyncConnection, url: str) -> tuple[ShortLinkPayload, bool]:
        """Return the link for ``url``, creating it if no caller has yet.

        Returns:
            tuple: The canonical link and whether this call created it.

        Raises:
            StoreUnavailableError: If the backend connection is lost.
            StoreError: On any other backend fault.
        """
        existing = await self.find_by_url(conn, url)
        if existing is not None:
            return existing, False

        try:
            result = await conn.execute(insert(ShortLink).values(url=url))
            link_id = result.inserted_primary_key[0]
            await conn.commit()
        except IntegrityError:
            await conn.rollback()
            logger.debug(f"Insert race lost for {url}, reading the winner's row")
        else:
            logger.info(f"Created short link {link_id} for {url}")
            return ShortLinkPayload(id=link_id, url=url), True

        winner = await self.find_by_url(conn, url)
        if winner is None:
            raise StoreError(f"uniqueness conflict on {url!r} but no row found")
        return winner, False
