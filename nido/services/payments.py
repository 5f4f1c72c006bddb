from __future__ import annotations

import logging
from datetime import datetime
from urllib.parse import urlencode

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from nido.core.clock import utcnow
from nido.core.config import settings
from nido.core.security import integrity_signature
from nido.models.listing import Listing, ListingState
from nido.models.payment import Payment, PaymentState
from nido.schemas.payment import CheckoutSession
from nido.schemas.wompi import WompiTransaction
from nido.services.errors import ListingNotFoundError, ListingStateError
from nido.services.references import generate_reference


log = logging.getLogger(__name__)


def build_checkout_url(*, reference: str, amount_in_cents: int, currency: str, signature: str, redirect_url: str | None = None) -> str:
    params = {
        "public-key": settings.wompi_public_key,
        "currency": currency,
        "amount-in-cents": str(amount_in_cents),
        "reference": reference,
        "signature:integrity": signature,
    }
    if redirect_url:
        params["redirect-url"] = redirect_url
    return f"{settings.wompi_checkout_url}?{urlencode(params)}"


async def create_checkout_session(
    db: AsyncSession,
    *,
    listing_id: str,
    owner_id: str,
    redirect_url: str | None = None,
    now: datetime | None = None,
) -> CheckoutSession:
    """
    Start a Wompi checkout for a draft listing: pending payment record plus the
    full reference stored on the listing, so the webhook can match it exactly.
    """
    now = now or utcnow()
    listing = (await db.execute(select(Listing).where(Listing.id == listing_id))).scalar_one_or_none()
    if not listing or listing.owner_id != owner_id:
        raise ListingNotFoundError("Listing not found", detail={"listing_id": listing_id})
    if listing.state != ListingState.DRAFT:
        raise ListingStateError(
            f"Listing is {listing.state}, only drafts can be paid",
            detail={"listing_id": listing_id, "state": listing.state},
        )

    amount = settings.listing_price_in_cents
    currency = settings.listing_currency
    reference = generate_reference(listing.id, now)
    signature = integrity_signature(reference, amount, currency)

    db.add(Payment(
        listing_id=listing.id,
        owner_id=owner_id,
        reference=reference,
        amount_in_cents=amount,
        currency=currency,
        integrity_signature=signature,
        state=PaymentState.PENDING,
        created_at=now,
        updated_at=now,
    ))
    await db.execute(
        update(Listing)
        .where(Listing.id == listing.id)
        .values(payment_reference=reference, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    await db.commit()

    log.info("checkout: listing %s reference %s", listing.id, reference)
    return CheckoutSession(
        checkout_url=build_checkout_url(
            reference=reference,
            amount_in_cents=amount,
            currency=currency,
            signature=signature,
            redirect_url=redirect_url,
        ),
        reference=reference,
        amount_in_cents=amount,
        currency=currency,
    )


async def record_approved_payment(
    db: AsyncSession,
    *,
    listing: Listing,
    transaction: WompiTransaction,
    raw_event: dict,
    now: datetime,
) -> None:
    """Stamp (or backfill) the payment record. Runs inside the caller's transaction."""
    result = await db.execute(
        update(Payment)
        .where(Payment.reference == transaction.reference)
        .values(
            state=PaymentState.APPROVED,
            gateway_transaction_id=transaction.id,
            gateway_payload=raw_event,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if (result.rowcount or 0) > 0:
        return

    # checkout record missing (legacy reference); keep an audit trail of the money
    db.add(Payment(
        listing_id=listing.id,
        owner_id=listing.owner_id,
        reference=transaction.reference,
        amount_in_cents=transaction.amount_in_cents,
        currency=transaction.currency,
        integrity_signature="",
        state=PaymentState.APPROVED,
        gateway_transaction_id=transaction.id,
        gateway_payload=raw_event,
        created_at=now,
        updated_at=now,
    ))

