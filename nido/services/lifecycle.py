from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from nido.models.listing import ListingState
from nido.models.payment import PaymentEvent
from nido.schemas.webhook import WebhookResponse
from nido.schemas.wompi import WompiTransaction
from nido.services.audit import audit
from nido.services.draft_resolver import resolve_draft
from nido.services.errors import DraftNotFoundError
from nido.services.listings import transition_listing
from nido.services.notifications import schedule_verification_notifications
from nido.services.payments import record_approved_payment
from nido.services.verification_gate import OwnerContext, load_owner_context
from nido.services.verifications import start_verification_timer


log = logging.getLogger(__name__)

PUBLISHED_MESSAGE = "Inmueble publicado exitosamente"
IN_REVIEW_MESSAGE = "Pago recibido. Inmueble en revisión pendiente de verificación KYC."


async def _start_hold(db: AsyncSession, owner: OwnerContext, *, listing_id: str, now: datetime) -> str | None:
    """
    KYC escalation for an unverified owner. Best effort: the listing is already
    durably in review, so failures here are logged and never reach the gateway.
    """
    try:
        verification_id, deadline_at = await start_verification_timer(db, owner.owner_id, now=now)
    except Exception:
        await db.rollback()
        log.exception(
            "lifecycle: could not start verification timer for owner %s (listing %s stays in review without deadline)",
            owner.owner_id, listing_id,
        )
        return None

    log.info("lifecycle: verification timer %s started, deadline %s", verification_id, deadline_at.isoformat())

    if not owner.email:
        log.warning("lifecycle: owner %s has no email; reminders not scheduled", owner.owner_id)
        return verification_id

    try:
        ids = await schedule_verification_notifications(
            db,
            owner_id=owner.owner_id,
            verification_id=verification_id,
            email=owner.email,
            deadline_at=deadline_at,
            now=now,
        )
        log.info("lifecycle: scheduled reminders %s", ", ".join(ids))
    except Exception:
        await db.rollback()
        log.exception("lifecycle: could not schedule reminders for verification %s", verification_id)

    return verification_id


async def process_approved_transaction(
    db: AsyncSession,
    transaction: WompiTransaction,
    *,
    raw_event: dict,
    now: datetime,
) -> WebhookResponse:
    listing = await resolve_draft(db, transaction.reference)
    listing_id = listing.id

    owner = await load_owner_context(db, listing.owner_id, fallback_email=transaction.customer_email)
    new_state = ListingState.PUBLISHED if owner.is_verified else ListingState.IN_REVIEW
    log.info(
        "lifecycle: listing %s owner %s verification=%s -> %s",
        listing_id, owner.owner_id, owner.verification_status or "none", new_state,
    )

    try:
        moved = await transition_listing(
            db,
            listing_id=listing_id,
            expected_state=ListingState.DRAFT,
            new_state=new_state,
            now=now,
        )
        if not moved:
            await db.rollback()
            log.info("lifecycle: listing %s left draft concurrently; nothing to do", listing_id)
            raise DraftNotFoundError(
                "Listing not found",
                detail={"reference": transaction.reference, "listing_id": listing_id},
            )

        db.add(PaymentEvent(
            transaction_id=transaction.id,
            reference=transaction.reference,
            listing_id=listing_id,
            resulting_state=new_state,
            created_at=now,
        ))
        await record_approved_payment(db, listing=listing, transaction=transaction, raw_event=raw_event, now=now)
        audit(
            db,
            actor="webhook",
            action=f"listing.{new_state}",
            target_type="listing",
            target_id=listing_id,
            detail={"transaction_id": transaction.id, "reference": transaction.reference},
        )
        await db.commit()
    except IntegrityError:
        # transaction id already consumed: a retried delivery that raced the first
        await db.rollback()
        log.info("lifecycle: transaction %s already processed", transaction.id)
        return WebhookResponse(
            success=True,
            message="Transaction already processed",
            transaction_id=transaction.id,
            reference=transaction.reference,
            duplicate=True,
        )

    verification_id = None
    if new_state == ListingState.IN_REVIEW:
        verification_id = await _start_hold(db, owner, listing_id=listing_id, now=now)

    return WebhookResponse(
        success=True,
        message=PUBLISHED_MESSAGE if new_state == ListingState.PUBLISHED else IN_REVIEW_MESSAGE,
        listing_id=listing_id,
        transaction_id=transaction.id,
        reference=transaction.reference,
        state=new_state,
        requires_verification=new_state == ListingState.IN_REVIEW,
        verification_id=verification_id,
    )
