import asyncio
import logging

from worker.celery_app import celery
from nido.core.db import session_scope
import nido.models  # noqa: F401  # ensures Models are registered
from nido.services.deadline_sweeper import expire_overdue_verifications
from nido.services.email_sender import build_email_sender
from nido.services.notification_dispatcher import dispatch_due_notifications


log = logging.getLogger(__name__)


async def _expire_verifications() -> dict:
    async with session_scope() as db:
        result = await expire_overdue_verifications(db)
    return result.model_dump(mode="json")


async def _send_notifications() -> dict:
    sender = build_email_sender()
    try:
        async with session_scope() as db:
            result = await dispatch_due_notifications(db, sender)
    finally:
        await sender.aclose()
    return result.model_dump(mode="json")


@celery.task(name="worker.tasks.expire_verifications")
def expire_verifications() -> dict:
    summary = asyncio.run(_expire_verifications())
    log.info("expire_verifications: %s", summary)
    return summary


@celery.task(name="worker.tasks.send_notifications")
def send_notifications() -> dict:
    summary = asyncio.run(_send_notifications())
    log.info("send_notifications: %s", summary)
    return summary
