from __future__ import annotations

import json
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from nido.core.clock import utcnow
from nido.models.audit_log import AuditLog
from nido.models.listing import Listing, ListingState
from nido.models.notification import ScheduledNotification
from nido.models.verification import Verification, VerificationStatus
from nido.services import deadline_sweeper
from nido.services.deadline_sweeper import expire_overdue_verifications
from nido.services.notifications import CANCELLED_EXPIRED
from nido.services.payment_events import handle_wompi_event
from nido.services.verifications import EXPIRED_REASON
from tests.fixtures_seed import LISTING_ID, REFERENCE, add_listing, add_owner, add_verification, reload, wompi_event


def _body(reference: str = REFERENCE, **kw) -> bytes:
    return json.dumps(wompi_event(reference, **kw)).encode("utf-8")


async def _hold(db, reference: str = REFERENCE, *, now, transaction_id: str = "tx-hold"):
    result = await handle_wompi_event(db, _body(reference, transaction_id=transaction_id), now=now)
    assert result.state == ListingState.IN_REVIEW
    return result


@pytest.mark.asyncio
async def test_expired_hold_rejects_verification_listing_and_reminders(db_session, seed_owner):
    t0 = utcnow()
    held = await _hold(db_session, now=t0)

    result = await expire_overdue_verifications(db_session, now=t0 + timedelta(hours=73))
    assert result.success is True
    assert result.processed == 1
    assert result.errors == 0
    assert result.affected_owners == 1
    assert result.rejected_listings == 1
    assert result.message == "Processed 1 expired verifications"

    v = await reload(db_session, Verification, held.verification_id)
    assert v.status == VerificationStatus.REJECTED
    assert v.rejected_reason == EXPIRED_REASON
    assert v.rejected_at is not None

    listing = await reload(db_session, Listing, LISTING_ID)
    assert listing.state == ListingState.REJECTED

    reminders = (await db_session.execute(
        select(ScheduledNotification).execution_options(populate_existing=True)
    )).scalars().all()
    assert len(reminders) == 2
    assert all(n.sent is True for n in reminders)
    assert all(n.error_message == CANCELLED_EXPIRED for n in reminders)

    expired_audits = (await db_session.execute(
        select(AuditLog).where(AuditLog.action == "verification.expired")
    )).scalars().all()
    assert [a.target_id for a in expired_audits] == [held.verification_id]


@pytest.mark.asyncio
async def test_deadline_not_reached_is_left_alone(db_session, seed_owner):
    t0 = utcnow()
    held = await _hold(db_session, now=t0)

    result = await expire_overdue_verifications(db_session, now=t0 + timedelta(hours=71))
    assert result.processed == 0
    assert result.message == "No expired verifications"

    v = await reload(db_session, Verification, held.verification_id)
    assert v.status == VerificationStatus.PENDING_DOCUMENTS
    assert (await reload(db_session, Listing, LISTING_ID)).state == ListingState.IN_REVIEW


@pytest.mark.asyncio
async def test_cascade_only_touches_in_review_listings_of_that_owner(db_session, seed_owner):
    owner_id = seed_owner["owner_id"]
    t0 = utcnow()

    await add_listing(db_session, owner_id=owner_id, listing_id="11111111-0000-4000-8000-000000000001", state=ListingState.IN_REVIEW)
    await add_listing(db_session, owner_id=owner_id, listing_id="22222222-0000-4000-8000-000000000002", state=ListingState.PUBLISHED)
    await add_listing(db_session, owner_id=owner_id, listing_id="33333333-0000-4000-8000-000000000003", state=ListingState.SOLD)

    other = await add_owner(db_session, owner_id="usr_other", email="otro@example.com")
    await add_listing(db_session, owner_id=other.id, listing_id="44444444-0000-4000-8000-000000000004", state=ListingState.IN_REVIEW)
    await add_verification(db_session, owner_id=other.id, status=VerificationStatus.PENDING_DOCUMENTS,
                           deadline_at=t0 + timedelta(hours=200))

    await _hold(db_session, now=t0)

    result = await expire_overdue_verifications(db_session, now=t0 + timedelta(hours=73))
    assert result.processed == 1
    assert result.rejected_listings == 2

    states = dict((await db_session.execute(
        select(Listing.id, Listing.state).execution_options(populate_existing=True)
    )).all())
    assert states[LISTING_ID] == ListingState.REJECTED
    assert states["11111111-0000-4000-8000-000000000001"] == ListingState.REJECTED
    assert states["22222222-0000-4000-8000-000000000002"] == ListingState.PUBLISHED
    assert states["33333333-0000-4000-8000-000000000003"] == ListingState.SOLD
    assert states["44444444-0000-4000-8000-000000000004"] == ListingState.IN_REVIEW


@pytest.mark.asyncio
async def test_second_sweep_is_a_no_op(db_session, seed_owner):
    t0 = utcnow()
    await _hold(db_session, now=t0)
    sweep_at = t0 + timedelta(hours=73)

    first = await expire_overdue_verifications(db_session, now=sweep_at)
    assert first.processed == 1

    snapshot = sorted((await db_session.execute(
        select(Verification.id, Verification.updated_at).execution_options(populate_existing=True)
    )).all())
    audits = await db_session.scalar(select(func.count()).select_from(AuditLog))

    second = await expire_overdue_verifications(db_session, now=sweep_at + timedelta(seconds=5))
    assert second.processed == 0
    assert second.rejected_listings == 0
    assert second.message == "No expired verifications"

    assert sorted((await db_session.execute(
        select(Verification.id, Verification.updated_at).execution_options(populate_existing=True)
    )).all()) == snapshot
    assert await db_session.scalar(select(func.count()).select_from(AuditLog)) == audits


@pytest.mark.asyncio
async def test_documents_under_review_are_not_expired(db_session, seed_owner):
    t0 = utcnow()
    v = await add_verification(
        db_session,
        owner_id=seed_owner["owner_id"],
        status=VerificationStatus.PENDING_REVIEW,
        deadline_at=t0 - timedelta(hours=1),
    )
    await add_listing(db_session, owner_id=seed_owner["owner_id"], listing_id="55555555-0000-4000-8000-000000000005",
                      state=ListingState.IN_REVIEW)

    result = await expire_overdue_verifications(db_session, now=t0)
    assert result.processed == 0
    assert (await reload(db_session, Verification, v.id)).status == VerificationStatus.PENDING_REVIEW


@pytest.mark.asyncio
async def test_several_owners_expire_in_one_run(db_session):
    t0 = utcnow()
    for i in range(3):
        owner = await add_owner(db_session, owner_id=f"usr_{i}", email=f"o{i}@example.com")
        await add_listing(db_session, owner_id=owner.id, listing_id=f"{i}{i}{i}{i}aaaa-0000-4000-8000-00000000000{i}",
                          state=ListingState.IN_REVIEW)
        await add_verification(db_session, owner_id=owner.id, status=VerificationStatus.PENDING_DOCUMENTS,
                               deadline_at=t0 - timedelta(hours=i + 1))

    result = await expire_overdue_verifications(db_session, now=t0)
    assert result.processed == 3
    assert result.affected_owners == 3
    assert result.rejected_listings == 3


@pytest.mark.asyncio
async def test_one_failing_record_does_not_abort_the_batch(db_session, monkeypatch):
    t0 = utcnow()
    verification_ids = []
    for i in range(3):
        owner = await add_owner(db_session, owner_id=f"usr_batch_{i}", email=f"b{i}@example.com")
        v = await add_verification(db_session, owner_id=owner.id, status=VerificationStatus.PENDING_DOCUMENTS,
                                   deadline_at=t0 - timedelta(hours=3 - i))
        verification_ids.append(v.id)

    real_expire = deadline_sweeper.expire_verification
    poisoned = verification_ids[0]

    async def flaky_expire(db, verification_id, *, now):
        if verification_id == poisoned:
            raise RuntimeError("row locked")
        return await real_expire(db, verification_id, now=now)

    monkeypatch.setattr(deadline_sweeper, "expire_verification", flaky_expire)

    result = await expire_overdue_verifications(db_session, now=t0)
    assert result.errors == 1
    assert result.processed == 2
    assert result.affected_owners == 2

    statuses = [(await reload(db_session, Verification, vid)).status for vid in verification_ids]
    assert statuses == [
        VerificationStatus.PENDING_DOCUMENTS,
        VerificationStatus.REJECTED,
        VerificationStatus.REJECTED,
    ]


@pytest.mark.asyncio
async def test_failed_cascade_keeps_the_rejection(db_session, seed_owner, monkeypatch):
    t0 = utcnow()
    held = await _hold(db_session, now=t0)

    async def broken_cascade(db, **kwargs):
        raise RuntimeError("listings table locked")

    monkeypatch.setattr(deadline_sweeper, "cascade_owner_listings", broken_cascade)

    result = await expire_overdue_verifications(db_session, now=t0 + timedelta(hours=73))
    assert result.processed == 1
    assert result.errors == 0
    assert result.rejected_listings == 0

    v = await reload(db_session, Verification, held.verification_id)
    assert v.status == VerificationStatus.REJECTED
    assert v.rejected_reason == EXPIRED_REASON
    assert (await reload(db_session, Listing, LISTING_ID)).state == ListingState.IN_REVIEW

    # reminders are still cancelled after the cascade failure
    reminders = (await db_session.execute(
        select(ScheduledNotification).execution_options(populate_existing=True)
    )).scalars().all()
    assert all(n.sent and n.error_message == CANCELLED_EXPIRED for n in reminders)
