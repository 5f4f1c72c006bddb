from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nido.models.listing import Listing, ListingState
from nido.services.errors import DraftNotFoundError
from nido.services.references import extract_id_prefix


log = logging.getLogger(__name__)


async def resolve_draft(db: AsyncSession, reference: str) -> Listing:
    """
    Find the single draft listing a payment reference points to.

    Listings that went through checkout carry the full reference and are matched
    exactly. Older references only embed a truncated listing id, so we fall back
    to a prefix match over drafts, oldest first.
    """
    exact = (await db.execute(
        select(Listing)
        .where(Listing.payment_reference == reference, Listing.state == ListingState.DRAFT)
        .order_by(Listing.created_at.asc())
        .limit(1)
    )).scalar_one_or_none()
    if exact:
        return exact

    prefix = extract_id_prefix(reference)
    candidates = (await db.execute(
        select(Listing)
        .where(Listing.state == ListingState.DRAFT, Listing.id.startswith(prefix, autoescape=True))
        .order_by(Listing.created_at.asc(), Listing.id.asc())
        .limit(2)
    )).scalars().all()

    if not candidates:
        log.warning("draft resolver: no draft matches prefix %s (reference %s)", prefix, reference)
        raise DraftNotFoundError(
            "Listing not found",
            detail={"reference": reference, "searched_prefix": prefix},
        )

    if len(candidates) > 1:
        log.warning(
            "draft resolver: prefix %s is ambiguous (%s, %s...); using the oldest draft",
            prefix, candidates[0].id, candidates[1].id,
        )
    return candidates[0]
