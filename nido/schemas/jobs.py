from datetime import datetime

from pydantic import BaseModel


class SweepResult(BaseModel):
    success: bool = True
    message: str
    processed: int = 0
    errors: int = 0
    affected_owners: int = 0
    rejected_listings: int = 0
    timestamp: datetime


class DispatchResult(BaseModel):
    success: bool = True
    sent: int = 0
    errors: int = 0
    skipped: int = 0
    timestamp: datetime
