from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nido.core.clock import utcnow
from nido.core.config import settings
from nido.models.owner import Owner
from nido.schemas.jobs import DispatchResult
from nido.services.email_sender import EmailSender
from nido.services.email_templates import format_deadline, get_template
from nido.services.notifications import (
    SKIPPED_NO_EMAIL,
    SKIPPED_UNKNOWN_TYPE,
    close_skipped_notification,
    fetch_due_notifications,
    mark_notification_sent,
    record_notification_failure,
)
from nido.services.verifications import latest_verification


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class DueNotification:
    # plain snapshot: a rollback expires ORM rows mid-batch
    id: str
    owner_id: str
    notification_type: str
    payload: dict[str, Any]


async def _render_context(db: AsyncSession, owner_id: str) -> tuple[str, str]:
    # personalization is optional: fall back instead of failing the send
    name = ""
    deadline = format_deadline(None)
    try:
        owner_name = (await db.execute(select(Owner.display_name).where(Owner.id == owner_id))).scalar_one_or_none()
        name = owner_name or ""
        verification = await latest_verification(db, owner_id)
        if verification and verification.deadline_at:
            deadline = format_deadline(verification.deadline_at)
    except Exception:
        log.exception("dispatcher: could not load context for owner %s", owner_id)
    return name, deadline


async def _deliver(db: AsyncSession, sender: EmailSender, n: DueNotification, *, now: datetime) -> bool | None:
    """True = sent, False = failed (retry later), None = skipped and closed."""
    template = get_template(n.notification_type)
    if template is None:
        log.warning("dispatcher: unknown notification type %s (%s)", n.notification_type, n.id)
        await close_skipped_notification(db, n.id, reason=SKIPPED_UNKNOWN_TYPE, now=now)
        await db.commit()
        return None

    email = n.payload.get("email")
    if not email:
        log.warning("dispatcher: notification %s has no email, skipping", n.id)
        await close_skipped_notification(db, n.id, reason=SKIPPED_NO_EMAIL, now=now)
        await db.commit()
        return None

    name, deadline = await _render_context(db, n.owner_id)
    subject = n.payload.get("subject") or template.subject
    body = template.render(name=name, deadline=deadline)

    try:
        result = await sender.send(email, subject, body)
        error = None if result.ok else (result.error or "unknown email error")
    except Exception as e:
        log.exception("dispatcher: sender crashed for notification %s", n.id)
        error = f"{type(e).__name__}: {e}"

    if error is None:
        await mark_notification_sent(db, n.id, now=now)
        await db.commit()
        log.info("dispatcher: sent %s to %s", n.notification_type, email)
        return True

    await record_notification_failure(db, n.id, error=error, now=now)
    await db.commit()
    log.warning("dispatcher: notification %s failed (%s)", n.id, error)
    return False


async def dispatch_due_notifications(
    db: AsyncSession,
    sender: EmailSender,
    *,
    now: datetime | None = None,
    batch_size: int | None = None,
) -> DispatchResult:
    now = now or utcnow()
    limit = batch_size or settings.notification_batch_size

    due = [
        DueNotification(id=row.id, owner_id=row.owner_id, notification_type=row.notification_type, payload=dict(row.payload or {}))
        for row in await fetch_due_notifications(db, now=now, limit=limit)
    ]
    if not due:
        log.info("dispatcher: no pending notifications")
        return DispatchResult(timestamp=now)

    log.info("dispatcher: found %d pending notifications", len(due))

    sent = errors = skipped = 0
    for n in due:
        try:
            outcome = await _deliver(db, sender, n, now=now)
        except Exception:
            await db.rollback()
            log.exception("dispatcher: error processing notification %s", n.id)
            errors += 1
            continue

        if outcome is True:
            sent += 1
        elif outcome is False:
            errors += 1
        else:
            skipped += 1

    log.info("dispatcher: done sent=%d errors=%d skipped=%d", sent, errors, skipped)
    return DispatchResult(sent=sent, errors=errors, skipped=skipped, timestamp=now)
