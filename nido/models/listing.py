from datetime import datetime

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import DateTime

from nido.core.ids import gen_listing_id

from nido.models.base import Base, TimestampMixin


class ListingState:
    DRAFT = "draft"
    PENDING_PAYMENT = "pending_payment"
    IN_REVIEW = "in_review"
    PUBLISHED = "published"
    REJECTED = "rejected"
    SOLD = "sold"
    RENTED = "rented"
    PAUSED = "paused"
    EXPIRED = "expired"

    ALL = (DRAFT, PENDING_PAYMENT, IN_REVIEW, PUBLISHED, REJECTED, SOLD, RENTED, PAUSED, EXPIRED)


class Listing(TimestampMixin, Base):
    __tablename__ = "listings"
    __table_args__ = (
        Index("ix_listings_owner_state", "owner_id", "state"),
        Index("ix_listings_payment_reference", "payment_reference"),
    )

    # UUID string; payment references carry its first 8 chars
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=gen_listing_id)
    owner_id: Mapped[str] = mapped_column(String, ForeignKey("owners.id"), nullable=False)

    state: Mapped[str] = mapped_column(String(30), nullable=False, default=ListingState.DRAFT)
    title: Mapped[str | None] = mapped_column(String(300), nullable=True)

    # full order reference, stored when checkout starts
    payment_reference: Mapped[str | None] = mapped_column(String(120), nullable=True)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
