from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from nido.core.db import get_db
from nido.models.verification import VerificationStatus
from nido.schemas.verification import RejectReviewRequest, ReviewRequest, ReviewResult, VerificationOut
from nido.services.admin_review import approve_owner, list_verifications, reject_owner
from nido.services.auth import require_internal_admin
from nido.services.errors import LifecycleError

router = APIRouter(prefix="/admin", dependencies=[Depends(require_internal_admin)])


@router.get("/verifications", response_model=list[VerificationOut])
async def pending_verifications(
    status: str = Query(default=VerificationStatus.PENDING_REVIEW),
    limit: int = Query(default=100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
) -> list[VerificationOut]:
    if status not in VerificationStatus.ALL:
        raise HTTPException(status_code=422, detail=f"Unknown status: {status}")
    return await list_verifications(db, status=status, limit=limit)


@router.post("/verifications/{owner_id}/approve", response_model=ReviewResult)
async def approve_verification(owner_id: str, body: ReviewRequest, db: AsyncSession = Depends(get_db)) -> ReviewResult:
    try:
        return await approve_owner(db, owner_id, reviewer_id=body.reviewer_id)
    except LifecycleError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/verifications/{owner_id}/reject", response_model=ReviewResult)
async def reject_verification(
    owner_id: str,
    body: RejectReviewRequest,
    db: AsyncSession = Depends(get_db),
) -> ReviewResult:
    if not body.reason.strip():
        raise HTTPException(status_code=422, detail="Rejection reason is required")
    try:
        return await reject_owner(db, owner_id, reviewer_id=body.reviewer_id, reason=body.reason)
    except LifecycleError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
