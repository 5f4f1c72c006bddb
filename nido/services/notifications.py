from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from nido.core.config import settings
from nido.models.notification import NotificationType, ScheduledNotification
from nido.services.email_templates import TEMPLATES


CANCELLED_EXPIRED = "Cancelled - verification expired"
CANCELLED_REVIEWED = "Cancelled - verification reviewed"
CANCELLED_RESCHEDULED = "Cancelled - superseded by a new verification timer"
SKIPPED_UNKNOWN_TYPE = "Skipped - unknown type"
SKIPPED_NO_EMAIL = "Skipped - no email"


async def cancel_owner_notifications(db: AsyncSession, owner_id: str, *, reason: str, now: datetime) -> int:
    # "sent" doubles as "closed": cancelled rows never come back in the due batch
    result = await db.execute(
        update(ScheduledNotification)
        .where(ScheduledNotification.owner_id == owner_id, ScheduledNotification.sent.is_(False))
        .values(sent=True, sent_at=now, error_message=reason, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    return int(result.rowcount or 0)


async def schedule_verification_notifications(
    db: AsyncSession,
    *,
    owner_id: str,
    verification_id: str,
    email: str,
    deadline_at: datetime,
    now: datetime,
) -> list[str]:
    """
    Replace the owner's pending reminders with a fresh pair: a short-delay nudge
    and an urgent reminder ahead of the deadline. Committed before returning.
    """
    await cancel_owner_notifications(db, owner_id, reason=CANCELLED_RESCHEDULED, now=now)

    first_at = now + timedelta(minutes=settings.first_reminder_delay_minutes)
    urgent_at = deadline_at - timedelta(hours=settings.urgent_reminder_hours_before_deadline)
    if urgent_at < first_at:
        urgent_at = first_at

    rows = [
        ScheduledNotification(
            owner_id=owner_id,
            verification_id=verification_id,
            notification_type=NotificationType.REMINDER_20MIN,
            scheduled_for=first_at,
            payload={
                "email": email,
                "subject": TEMPLATES[NotificationType.REMINDER_20MIN].subject,
                "urgent": False,
            },
            created_at=now,
            updated_at=now,
        ),
        ScheduledNotification(
            owner_id=owner_id,
            verification_id=verification_id,
            notification_type=NotificationType.REMINDER_24HRS,
            scheduled_for=urgent_at,
            payload={
                "email": email,
                "subject": TEMPLATES[NotificationType.REMINDER_24HRS].subject,
                "urgent": True,
            },
            created_at=now,
            updated_at=now,
        ),
    ]
    db.add_all(rows)
    await db.commit()
    return [r.id for r in rows]


async def fetch_due_notifications(db: AsyncSession, *, now: datetime, limit: int) -> list[ScheduledNotification]:
    stmt = (
        select(ScheduledNotification)
        .where(
            ScheduledNotification.sent.is_(False),
            ScheduledNotification.scheduled_for <= now,
            ScheduledNotification.retry_count < settings.notification_max_retries,
        )
        .order_by(ScheduledNotification.scheduled_for.asc(), ScheduledNotification.id.asc())
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    return list((await db.execute(stmt)).scalars().all())


async def mark_notification_sent(db: AsyncSession, notification_id: str, *, now: datetime) -> bool:
    result = await db.execute(
        update(ScheduledNotification)
        .where(ScheduledNotification.id == notification_id, ScheduledNotification.sent.is_(False))
        .values(sent=True, sent_at=now, error_message=None, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    return (result.rowcount or 0) == 1


async def record_notification_failure(db: AsyncSession, notification_id: str, *, error: str, now: datetime) -> None:
    await db.execute(
        update(ScheduledNotification)
        .where(ScheduledNotification.id == notification_id, ScheduledNotification.sent.is_(False))
        .values(
            retry_count=ScheduledNotification.retry_count + 1,
            error_message=error[:2000],
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )


async def close_skipped_notification(db: AsyncSession, notification_id: str, *, reason: str, now: datetime) -> bool:
    # undeliverable rows must leave the due batch or they starve the rest
    result = await db.execute(
        update(ScheduledNotification)
        .where(ScheduledNotification.id == notification_id, ScheduledNotification.sent.is_(False))
        .values(sent=True, sent_at=now, error_message=reason, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    return (result.rowcount or 0) == 1
