import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from nido.core.db import get_db
from nido.schemas.webhook import WebhookResponse
from nido.services.errors import LifecycleError
from nido.services.payment_events import handle_wompi_event

router = APIRouter()

log = logging.getLogger(__name__)


@router.post("/webhooks/wompi", response_model=WebhookResponse)
async def wompi_webhook(request: Request, db: AsyncSession = Depends(get_db)):
    body = await request.body()
    try:
        return await handle_wompi_event(db, body)
    except LifecycleError as e:
        if e.status_code >= 500:
            log.error("wompi webhook: %s", e.message)
        return JSONResponse(
            status_code=e.status_code,
            content={"success": False, "message": e.message, **e.detail},
        )
    except SQLAlchemyError:
        # gateway retries on 5xx
        await db.rollback()
        log.exception("wompi webhook: store failure")
        return JSONResponse(status_code=500, content={"success": False, "message": "Internal server error"})


@router.get("/webhooks/wompi")
async def wompi_webhook_status() -> dict:
    return {"status": "active"}
