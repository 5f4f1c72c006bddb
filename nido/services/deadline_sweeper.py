from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nido.core.clock import utcnow
from nido.models.listing import ListingState
from nido.models.verification import Verification, VerificationStatus
from nido.schemas.jobs import SweepResult
from nido.services.audit import audit
from nido.services.listings import cascade_owner_listings
from nido.services.notifications import CANCELLED_EXPIRED, cancel_owner_notifications
from nido.services.verifications import expire_verification


log = logging.getLogger(__name__)


async def find_expired_verifications(db: AsyncSession, *, now: datetime) -> list[tuple[str, str, datetime]]:
    stmt = (
        select(Verification.id, Verification.owner_id, Verification.deadline_at)
        .where(
            Verification.status == VerificationStatus.PENDING_DOCUMENTS,
            Verification.deadline_at.is_not(None),
            Verification.deadline_at < now,
        )
        .order_by(Verification.deadline_at.asc())
    )
    return [tuple(row) for row in (await db.execute(stmt)).all()]


async def expire_overdue_verifications(db: AsyncSession, *, now: datetime | None = None) -> SweepResult:
    """
    Hourly sweep: reject verifications whose deadline passed without documents,
    reject the owner's listings still in review and cancel pending reminders.

    Each verification is handled on its own; one failing record never aborts the
    batch. Only the initial query is allowed to fail the whole run.
    """
    now = now or utcnow()
    log.info("sweeper: start at %s", now.isoformat())

    expired = await find_expired_verifications(db, now=now)
    if not expired:
        log.info("sweeper: no expired verifications")
        return SweepResult(message="No expired verifications", timestamp=now)

    log.info("sweeper: found %d expired verifications", len(expired))

    processed = 0
    errors = 0
    rejected_listings = 0
    affected_owners: set[str] = set()

    for verification_id, owner_id, deadline_at in expired:
        try:
            changed = await expire_verification(db, verification_id, now=now)
            if changed:
                audit(
                    db,
                    actor="sweeper",
                    action="verification.expired",
                    target_type="verification",
                    target_id=verification_id,
                    detail={"owner_id": owner_id, "deadline_at": deadline_at.isoformat() if deadline_at else None},
                )
            await db.commit()
        except Exception:
            await db.rollback()
            log.exception("sweeper: error rejecting verification %s", verification_id)
            errors += 1
            continue

        if not changed:
            # picked up by a concurrent run or moved to review meanwhile
            log.info("sweeper: verification %s no longer pending, skipped", verification_id)
            continue

        try:
            count = await cascade_owner_listings(
                db,
                owner_id=owner_id,
                from_state=ListingState.IN_REVIEW,
                to_state=ListingState.REJECTED,
                now=now,
            )
            await db.commit()
            rejected_listings += count
            log.info("sweeper: rejected %d listings for owner %s", count, owner_id)
        except Exception:
            await db.rollback()
            log.exception("sweeper: error rejecting listings for owner %s", owner_id)

        try:
            cancelled = await cancel_owner_notifications(db, owner_id, reason=CANCELLED_EXPIRED, now=now)
            await db.commit()
            log.info("sweeper: cancelled %d reminders for owner %s", cancelled, owner_id)
        except Exception:
            await db.rollback()
            log.exception("sweeper: error cancelling reminders for owner %s", owner_id)

        affected_owners.add(owner_id)
        processed += 1

    log.info("sweeper: done processed=%d errors=%d", processed, errors)
    return SweepResult(
        message=f"Processed {processed} expired verifications",
        processed=processed,
        errors=errors,
        affected_owners=len(affected_owners),
        rejected_listings=rejected_listings,
        timestamp=now,
    )
