import hmac

from fastapi import Header, HTTPException

from nido.core.config import settings


def _matches(given: str | None, expected: str) -> bool:
    # bytes: compare_digest rejects non-ASCII str
    if not given or not expected:
        return False
    return hmac.compare_digest(given.encode("utf-8"), expected.encode("utf-8"))


async def require_internal_admin(x_internal_admin_key: str | None = Header(default=None)) -> None:
    if not _matches(x_internal_admin_key, settings.internal_admin_key):
        raise HTTPException(status_code=403, detail="Internal admin key required")


async def require_internal_service(x_service_key: str | None = Header(default=None)) -> None:
    # web frontend -> API calls (checkout, document upload callbacks)
    if not _matches(x_service_key, settings.internal_service_key):
        raise HTTPException(status_code=403, detail="Service key required")


async def require_cron_secret(authorization: str | None = Header(default=None)) -> None:
    secret = settings.cron_secret.get_secret_value()
    if not secret:
        return
    if not _matches(authorization, f"Bearer {secret}"):
        raise HTTPException(status_code=401, detail="Invalid cron secret")
