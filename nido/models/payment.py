from datetime import datetime

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func
from sqlalchemy.types import DateTime

from nido.core.ids import gen_id

from nido.models.base import Base, JSONType, TimestampMixin


class PaymentState:
    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"
    VOIDED = "voided"
    ERROR = "error"


class Payment(TimestampMixin, Base):
    __tablename__ = "payments"
    __table_args__ = (
        UniqueConstraint("reference", name="uq_payment_reference"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("pay"))
    listing_id: Mapped[str] = mapped_column(String(36), ForeignKey("listings.id"), nullable=False)
    owner_id: Mapped[str] = mapped_column(String, ForeignKey("owners.id"), nullable=False)

    # NIDO-<listing id prefix>-<epoch millis>
    reference: Mapped[str] = mapped_column(String(120), nullable=False)
    amount_in_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="COP")
    integrity_signature: Mapped[str] = mapped_column(String(64), nullable=False)

    # pending/approved/declined/voided/error
    state: Mapped[str] = mapped_column(String(30), nullable=False, default=PaymentState.PENDING)

    gateway_transaction_id: Mapped[str | None] = mapped_column(String(120), nullable=True)
    gateway_payload: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)


class PaymentEvent(Base):
    """One row per gateway transaction that moved a listing out of draft."""

    __tablename__ = "payment_events"
    __table_args__ = (
        UniqueConstraint("transaction_id", name="uq_payment_event_transaction"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("pev"))
    transaction_id: Mapped[str] = mapped_column(String(120), nullable=False)
    reference: Mapped[str] = mapped_column(String(120), nullable=False)
    listing_id: Mapped[str] = mapped_column(String(36), ForeignKey("listings.id"), nullable=False)

    # listing state written by this event
    resulting_state: Mapped[str] = mapped_column(String(30), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
