from __future__ import annotations

from datetime import datetime

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from nido.models.listing import Listing, ListingState


async def transition_listing(
    db: AsyncSession,
    *,
    listing_id: str,
    expected_state: str,
    new_state: str,
    now: datetime,
) -> bool:
    """
    Compare-and-transition: moves the listing only if it is still in
    `expected_state`. Returns False when another writer got there first.
    """
    values: dict = {"state": new_state, "updated_at": now}
    if new_state == ListingState.PUBLISHED:
        values["published_at"] = now

    result = await db.execute(
        update(Listing)
        .where(Listing.id == listing_id, Listing.state == expected_state)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return (result.rowcount or 0) == 1


async def cascade_owner_listings(
    db: AsyncSession,
    *,
    owner_id: str,
    from_state: str,
    to_state: str,
    now: datetime,
) -> int:
    values: dict = {"state": to_state, "updated_at": now}
    if to_state == ListingState.PUBLISHED:
        values["published_at"] = now

    result = await db.execute(
        update(Listing)
        .where(Listing.owner_id == owner_id, Listing.state == from_state)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return int(result.rowcount or 0)
