from pydantic import BaseModel

class WebhookResponse(BaseModel):
    success: bool
    message: str
    listing_id: str | None = None
    transaction_id: str | None = None
    reference: str | None = None
    state: str | None = None
    requires_verification: bool | None = None
    verification_id: str | None = None
    duplicate: bool = False
