from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from nido.core.clock import utcnow
from nido.models.listing import Listing, ListingState
from nido.models.owner import Owner
from nido.models.verification import Verification, VerificationStatus
from nido.schemas.verification import DocumentsSubmitted, ReviewResult, VerificationOut
from nido.services.audit import audit
from nido.services.listings import cascade_owner_listings
from nido.services.notifications import CANCELLED_REVIEWED, cancel_owner_notifications
from nido.services.verifications import mark_documents_submitted, review_verification


log = logging.getLogger(__name__)


async def list_verifications(db: AsyncSession, *, status: str, limit: int = 100) -> list[VerificationOut]:
    held = (
        select(Listing.owner_id, func.count(Listing.id).label("held"))
        .where(Listing.state == ListingState.IN_REVIEW)
        .group_by(Listing.owner_id)
        .subquery()
    )
    stmt = (
        select(Verification, Owner.email, Owner.display_name, held.c.held)
        .join(Owner, Owner.id == Verification.owner_id, isouter=True)
        .join(held, held.c.owner_id == Verification.owner_id, isouter=True)
        .where(Verification.status == status)
        .order_by(Verification.created_at.asc())
        .limit(limit)
    )
    rows = (await db.execute(stmt)).all()
    return [
        VerificationOut(
            id=v.id,
            owner_id=v.owner_id,
            owner_email=email,
            owner_name=name,
            status=v.status,
            deadline_at=v.deadline_at,
            held_listings=int(count or 0),
            created_at=v.created_at,
        )
        for v, email, name, count in rows
    ]


async def _close_review(
    db: AsyncSession,
    *,
    owner_id: str,
    approve: bool,
    reviewer_id: str,
    reason: str | None,
    now: datetime,
) -> ReviewResult:
    verification = await review_verification(
        db, owner_id, approve=approve, reviewer_id=reviewer_id, reason=reason, now=now,
    )
    status = VerificationStatus.VERIFIED if approve else VerificationStatus.REJECTED
    audit(
        db,
        actor=reviewer_id,
        action=f"verification.{'approved' if approve else 'rejected'}",
        target_type="verification",
        target_id=verification.id,
        detail={"owner_id": owner_id, "reason": reason},
    )
    # the verdict is the primary write; everything after it is best effort
    await db.commit()

    affected = 0
    to_state = ListingState.PUBLISHED if approve else ListingState.REJECTED
    try:
        affected = await cascade_owner_listings(
            db, owner_id=owner_id, from_state=ListingState.IN_REVIEW, to_state=to_state, now=now,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        log.exception("admin review: could not move listings of owner %s to %s", owner_id, to_state)

    try:
        await cancel_owner_notifications(db, owner_id, reason=CANCELLED_REVIEWED, now=now)
        await db.commit()
    except Exception:
        await db.rollback()
        log.exception("admin review: could not cancel reminders of owner %s", owner_id)

    log.info("admin review: owner %s %s by %s, %d listings -> %s", owner_id, status, reviewer_id, affected, to_state)
    return ReviewResult(success=True, owner_id=owner_id, status=status, affected_listings=affected)


async def approve_owner(db: AsyncSession, owner_id: str, *, reviewer_id: str, now: datetime | None = None) -> ReviewResult:
    return await _close_review(
        db, owner_id=owner_id, approve=True, reviewer_id=reviewer_id, reason=None, now=now or utcnow(),
    )


async def reject_owner(
    db: AsyncSession,
    owner_id: str,
    *,
    reviewer_id: str,
    reason: str,
    now: datetime | None = None,
) -> ReviewResult:
    return await _close_review(
        db, owner_id=owner_id, approve=False, reviewer_id=reviewer_id, reason=reason.strip(), now=now or utcnow(),
    )


async def submit_documents(db: AsyncSession, owner_id: str, *, now: datetime | None = None) -> DocumentsSubmitted:
    now = now or utcnow()
    verification = await mark_documents_submitted(db, owner_id, now=now)
    audit(
        db,
        actor=owner_id,
        action="verification.documents_submitted",
        target_type="verification",
        target_id=verification.id,
    )
    await db.commit()
    return DocumentsSubmitted(owner_id=owner_id, verification_id=verification.id, status=verification.status)
