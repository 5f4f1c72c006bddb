from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from nido.core.db import get_db
from nido.schemas.payment import CheckoutRequest, CheckoutSession
from nido.services.auth import require_internal_service
from nido.services.errors import LifecycleError
from nido.services.payments import create_checkout_session

router = APIRouter(dependencies=[Depends(require_internal_service)])


@router.post("/listings/{listing_id}/checkout", response_model=CheckoutSession)
async def start_checkout(
    listing_id: str,
    body: CheckoutRequest,
    db: AsyncSession = Depends(get_db),
) -> CheckoutSession:
    try:
        return await create_checkout_session(
            db,
            listing_id=listing_id,
            owner_id=body.owner_id,
            redirect_url=body.redirect_url,
        )
    except LifecycleError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
