from __future__ import annotations
from sqlalchemy.ext.asyncio import AsyncSession
from nido.models.audit_log import AuditLog

def audit(
    db: AsyncSession,
    *,
    actor: str | None,
    action: str,
    target_type: str | None = None,
    target_id: str | None = None,
    detail: dict | None = None,
) -> None:
    # Added to the caller's transaction; committed (or rolled back) with it
    db.add(AuditLog(
        actor=actor,
        action=action,
        target_type=target_type,
        target_id=target_id,
        detail=detail or {},
    ))
