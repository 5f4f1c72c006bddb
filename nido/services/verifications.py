from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from nido.core.config import settings
from nido.models.verification import Verification, VerificationStatus
from nido.services.errors import VerificationNotFoundError


log = logging.getLogger(__name__)

EXPIRED_REASON = "Deadline de 72 horas vencido sin subir documentos"


async def latest_verification(db: AsyncSession, owner_id: str) -> Verification | None:
    # newest row wins even if duplicates slipped in before the unique constraint
    stmt = (
        select(Verification)
        .where(Verification.owner_id == owner_id)
        .order_by(Verification.created_at.desc(), Verification.id.desc())
        .limit(1)
        .execution_options(populate_existing=True)
    )
    return (await db.execute(stmt)).scalars().first()


def deadline_from(now: datetime) -> datetime:
    return now + timedelta(hours=settings.verification_deadline_hours)


async def _apply_timer(db: AsyncSession, owner_id: str, deadline_at: datetime, now: datetime) -> str:
    current = await latest_verification(db, owner_id)

    if current is None:
        row = Verification(
            owner_id=owner_id,
            status=VerificationStatus.PENDING_DOCUMENTS,
            deadline_at=deadline_at,
            created_at=now,
            updated_at=now,
        )
        db.add(row)
        await db.flush()
        return row.id

    # documents already uploaded: keep the record in the review queue
    status = current.status
    if status != VerificationStatus.PENDING_REVIEW:
        status = VerificationStatus.PENDING_DOCUMENTS

    await db.execute(
        update(Verification)
        .where(Verification.id == current.id)
        .values(
            status=status,
            deadline_at=deadline_at,
            rejected_at=None,
            rejected_reason=None,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    return current.id


async def start_verification_timer(db: AsyncSession, owner_id: str, *, now: datetime) -> tuple[str, datetime]:
    """
    Open (or re-open) the owner's KYC hold: status and deadline are written in
    one transaction and committed before returning.

    Returns (verification_id, deadline_at).
    """
    deadline_at = deadline_from(now)
    try:
        verification_id = await _apply_timer(db, owner_id, deadline_at, now)
        await db.commit()
    except IntegrityError:
        # concurrent first insert for the same owner; the row exists now
        await db.rollback()
        verification_id = await _apply_timer(db, owner_id, deadline_at, now)
        await db.commit()
    return verification_id, deadline_at


async def expire_verification(db: AsyncSession, verification_id: str, *, now: datetime) -> bool:
    result = await db.execute(
        update(Verification)
        .where(
            Verification.id == verification_id,
            Verification.status == VerificationStatus.PENDING_DOCUMENTS,
        )
        .values(
            status=VerificationStatus.REJECTED,
            rejected_at=now,
            rejected_reason=EXPIRED_REASON,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    return (result.rowcount or 0) == 1


async def review_verification(
    db: AsyncSession,
    owner_id: str,
    *,
    approve: bool,
    reviewer_id: str,
    now: datetime,
    reason: str | None = None,
) -> Verification:
    current = await latest_verification(db, owner_id)
    if current is None:
        raise VerificationNotFoundError("Verification not found", detail={"owner_id": owner_id})

    if approve:
        values = dict(
            status=VerificationStatus.VERIFIED,
            verified_at=now,
            deadline_at=None,
            rejected_at=None,
            rejected_reason=None,
        )
    else:
        values = dict(
            status=VerificationStatus.REJECTED,
            rejected_at=now,
            rejected_reason=reason,
        )

    await db.execute(
        update(Verification)
        .where(Verification.id == current.id)
        .values(reviewed_by=reviewer_id, updated_at=now, **values)
        .execution_options(synchronize_session=False)
    )
    return current


async def mark_documents_submitted(db: AsyncSession, owner_id: str, *, now: datetime) -> Verification:
    """Owner uploaded identity documents: move the record into the admin review queue."""
    current = await latest_verification(db, owner_id)

    if current is None:
        current = Verification(
            owner_id=owner_id,
            status=VerificationStatus.PENDING_REVIEW,
            created_at=now,
            updated_at=now,
        )
        db.add(current)
        await db.flush()
        return current

    if current.status in (VerificationStatus.PENDING_DOCUMENTS, VerificationStatus.REJECTED):
        await db.execute(
            update(Verification)
            .where(Verification.id == current.id)
            .values(status=VerificationStatus.PENDING_REVIEW, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        current.status = VerificationStatus.PENDING_REVIEW
    else:
        log.info("verification %s already %s; documents noted", current.id, current.status)
    return current
