from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nido.models.owner import Owner
from nido.models.verification import VerificationStatus
from nido.services.verifications import latest_verification


@dataclass(frozen=True)
class OwnerContext:
    owner_id: str
    email: str | None
    display_name: str | None
    verification_id: str | None
    verification_status: str | None
    deadline_at: datetime | None

    @property
    def is_verified(self) -> bool:
        # fail closed: no record or any other status holds the listing
        return self.verification_status == VerificationStatus.VERIFIED


async def load_owner_context(db: AsyncSession, owner_id: str, *, fallback_email: str | None = None) -> OwnerContext:
    owner = (await db.execute(select(Owner).where(Owner.id == owner_id))).scalar_one_or_none()
    verification = await latest_verification(db, owner_id)

    email = owner.email if owner and owner.email else fallback_email
    return OwnerContext(
        owner_id=owner_id,
        email=email,
        display_name=owner.display_name if owner else None,
        verification_id=verification.id if verification else None,
        verification_status=verification.status if verification else None,
        deadline_at=verification.deadline_at if verification else None,
    )
