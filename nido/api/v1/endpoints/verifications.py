from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from nido.core.db import get_db
from nido.schemas.verification import DocumentsSubmitted
from nido.services.admin_review import submit_documents
from nido.services.auth import require_internal_service

router = APIRouter(dependencies=[Depends(require_internal_service)])


@router.post("/verifications/{owner_id}/documents", response_model=DocumentsSubmitted)
async def documents_submitted(owner_id: str, db: AsyncSession = Depends(get_db)) -> DocumentsSubmitted:
    return await submit_documents(db, owner_id)
