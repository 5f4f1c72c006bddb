from datetime import datetime

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import DateTime

from nido.core.ids import gen_id

from nido.models.base import Base, TimestampMixin


class VerificationStatus:
    PENDING_DOCUMENTS = "pending_documents"
    PENDING_REVIEW = "pending_review"
    VERIFIED = "verified"
    REJECTED = "rejected"

    ALL = (PENDING_DOCUMENTS, PENDING_REVIEW, VERIFIED, REJECTED)


class Verification(TimestampMixin, Base):
    __tablename__ = "verifications"
    __table_args__ = (
        # one current KYC record per owner
        UniqueConstraint("owner_id", name="uq_verification_owner"),
        Index("ix_verifications_status_deadline", "status", "deadline_at"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("kyc"))
    owner_id: Mapped[str] = mapped_column(String, ForeignKey("owners.id"), nullable=False)

    status: Mapped[str] = mapped_column(String(30), nullable=False, default=VerificationStatus.PENDING_DOCUMENTS)

    # set only when a hold-for-review starts
    deadline_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_by: Mapped[str | None] = mapped_column(String, nullable=True)
