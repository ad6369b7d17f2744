from __future__ import annotations

import logging
from typing import Any, Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from botlist.models.listing import Listing
from botlist.services.errors import DuplicateKey


log = logging.getLogger(__name__)

ORDERABLE_FIELDS = {
    "added_at": Listing.added_at,
    "username": Listing.username,
    "id": Listing.id,
}


class ListingStore(Protocol):
    async def get(self, listing_id: str) -> Listing | None: ...

    async def filter(
        self,
        *,
        approved: bool | None = None,
        owner_id: str | None = None,
        order_by: str | None = None,
    ) -> list[Listing]: ...

    async def insert(self, listing: Listing) -> Listing: ...

    async def update(self, listing_id: str, values: dict[str, Any]) -> Listing | None: ...

    async def delete(self, listing_id: str) -> bool: ...


class SqlListingStore:
    """
    Listing store backed by the `listings` table.
    Every mutating call commits on its own; insert relies on the primary key
    to reject a second listing for the same id.
    """

    def __init__(self, db: AsyncSession):
        self._db = db

    async def get(self, listing_id: str) -> Listing | None:
        stmt = select(Listing).where(Listing.id == listing_id)
        return (await self._db.execute(stmt)).scalar_one_or_none()

    async def filter(
        self,
        *,
        approved: bool | None = None,
        owner_id: str | None = None,
        order_by: str | None = None,
    ) -> list[Listing]:
        stmt = select(Listing)
        if approved is not None:
            stmt = stmt.where(Listing.approved.is_(approved))
        if owner_id is not None:
            stmt = stmt.where(Listing.owner_id == owner_id)
        if order_by is not None:
            column = ORDERABLE_FIELDS.get(order_by)
            if column is None:
                raise ValueError(f"cannot order listings by {order_by!r}")
            stmt = stmt.order_by(column.asc())
        return list((await self._db.execute(stmt)).scalars().all())

    async def insert(self, listing: Listing) -> Listing:
        listing_id = listing.id
        self._db.add(listing)
        try:
            await self._db.flush()
            await self._db.commit()
        except IntegrityError:
            await self._db.rollback()
            log.info("insert rejected: listing %s already exists", listing_id)
            raise DuplicateKey(listing_id)
        return listing

    async def update(self, listing_id: str, values: dict[str, Any]) -> Listing | None:
        listing = await self.get(listing_id)
        if listing is None:
            return None
        for key, value in values.items():
            setattr(listing, key, value)
        await self._db.commit()
        return listing

    async def delete(self, listing_id: str) -> bool:
        result = await self._db.execute(delete(Listing).where(Listing.id == listing_id))
        await self._db.commit()
        return bool(result.rowcount)
