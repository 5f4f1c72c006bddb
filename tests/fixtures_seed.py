from __future__ import annotations

from datetime import datetime

import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nido.core.clock import utcnow
from nido.models.listing import Listing, ListingState
from nido.models.owner import Owner
from nido.models.verification import Verification, VerificationStatus
from nido.services.email_sender import EmailResult


class RecordingEmailSender:
    def __init__(self, *, fail_with: str | None = None):
        self.fail_with = fail_with
        self.outbox: list[dict] = []

    async def send(self, to: str, subject: str, body: str) -> EmailResult:
        if self.fail_with:
            return EmailResult(ok=False, error=self.fail_with)
        self.outbox.append({"to": to, "subject": subject, "body": body})
        return EmailResult(ok=True, provider_id=f"msg-{len(self.outbox)}")

    async def aclose(self) -> None:
        return None


async def add_owner(db: AsyncSession, *, owner_id: str, email: str = "dueno@example.com", name: str | None = "Ana") -> Owner:
    owner = Owner(id=owner_id, email=email, display_name=name)
    db.add(owner)
    await db.commit()
    return owner


async def add_listing(
    db: AsyncSession,
    *,
    owner_id: str,
    listing_id: str,
    state: str = ListingState.DRAFT,
    created_at: datetime | None = None,
    payment_reference: str | None = None,
) -> Listing:
    listing = Listing(
        id=listing_id,
        owner_id=owner_id,
        state=state,
        title="Casa en el centro",
        payment_reference=payment_reference,
    )
    if created_at is not None:
        listing.created_at = created_at
    db.add(listing)
    await db.commit()
    return listing


async def add_verification(
    db: AsyncSession,
    *,
    owner_id: str,
    status: str,
    deadline_at: datetime | None = None,
) -> Verification:
    now = utcnow()
    v = Verification(owner_id=owner_id, status=status, deadline_at=deadline_at, created_at=now, updated_at=now)
    db.add(v)
    await db.commit()
    return v


async def reload(db: AsyncSession, model, pk: str):
    stmt = select(model).where(model.id == pk).execution_options(populate_existing=True)
    return (await db.execute(stmt)).scalar_one_or_none()


def wompi_event(
    reference: str,
    *,
    status: str = "APPROVED",
    transaction_id: str = "12345-1700000000-00001",
    event: str = "transaction.updated",
    customer_email: str | None = "pagador@example.com",
) -> dict:
    return {
        "event": event,
        "data": {
            "transaction": {
                "id": transaction_id,
                "status": status,
                "reference": reference,
                "amount_in_cents": 1000000,
                "currency": "COP",
                "customer_email": customer_email,
                "payment_method_type": "CARD",
            }
        },
        "sent_at": "2026-10-18T10:00:00.000Z",
        "timestamp": 1760781600,
    }


LISTING_ID = "a1b2c3d4-5e6f-4a0b-9c1d-2e3f4a5b6c7d"
REFERENCE = "NIDO-a1b2c3d4-1700000000000"


@pytest_asyncio.fixture
async def seed_owner(db_session):
    owner = await add_owner(db_session, owner_id="usr_ana")
    listing = await add_listing(db_session, owner_id=owner.id, listing_id=LISTING_ID)
    return {"owner_id": owner.id, "listing_id": listing.id, "reference": REFERENCE}


@pytest_asyncio.fixture
async def seed_verified_owner(db_session, seed_owner):
    await add_verification(db_session, owner_id=seed_owner["owner_id"], status=VerificationStatus.VERIFIED)
    return seed_owner
