from datetime import datetime

from pydantic import BaseModel, Field


class VerificationOut(BaseModel):
    id: str
    owner_id: str
    owner_email: str | None
    owner_name: str | None
    status: str
    deadline_at: datetime | None
    held_listings: int
    created_at: datetime


class ReviewRequest(BaseModel):
    reviewer_id: str = Field(min_length=1)


class RejectReviewRequest(ReviewRequest):
    reason: str = Field(min_length=1)


class ReviewResult(BaseModel):
    success: bool
    owner_id: str
    status: str
    affected_listings: int


class DocumentsSubmitted(BaseModel):
    owner_id: str
    verification_id: str
    status: str
