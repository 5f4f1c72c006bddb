from pydantic import BaseModel, Field


class CheckoutRequest(BaseModel):
    owner_id: str = Field(min_length=1)
    redirect_url: str | None = None


class CheckoutSession(BaseModel):
    checkout_url: str
    reference: str
    amount_in_cents: int
    currency: str
