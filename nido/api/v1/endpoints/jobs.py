import logging
from typing import AsyncIterator

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from nido.core.db import get_db
from nido.schemas.jobs import DispatchResult, SweepResult
from nido.services.auth import require_cron_secret
from nido.services.deadline_sweeper import expire_overdue_verifications
from nido.services.email_sender import EmailSender, build_email_sender
from nido.services.notification_dispatcher import dispatch_due_notifications

router = APIRouter(dependencies=[Depends(require_cron_secret)])

log = logging.getLogger(__name__)


async def get_email_sender() -> AsyncIterator[EmailSender]:
    sender = build_email_sender()
    try:
        yield sender
    finally:
        await sender.aclose()


def _job_failed(name: str, e: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": f"{name} failed", "message": f"{type(e).__name__}: {e}"},
    )


@router.api_route("/jobs/expire-verifications", methods=["GET", "POST"], response_model=SweepResult)
async def expire_verifications_job(db: AsyncSession = Depends(get_db)):
    try:
        return await expire_overdue_verifications(db)
    except SQLAlchemyError as e:
        await db.rollback()
        log.exception("jobs: verification sweep failed")
        return _job_failed("Verification sweep", e)


@router.api_route("/jobs/send-notifications", methods=["GET", "POST"], response_model=DispatchResult)
async def send_notifications_job(
    db: AsyncSession = Depends(get_db),
    sender: EmailSender = Depends(get_email_sender),
):
    try:
        return await dispatch_due_notifications(db, sender)
    except SQLAlchemyError as e:
        await db.rollback()
        log.exception("jobs: notification dispatch failed")
        return _job_failed("Notification dispatch", e)
