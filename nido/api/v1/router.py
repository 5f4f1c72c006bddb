from fastapi import APIRouter

from nido.api.v1.endpoints.health import router as health_router
from nido.api.v1.endpoints.webhooks import router as webhooks_router
from nido.api.v1.endpoints.jobs import router as jobs_router
from nido.api.v1.endpoints.payments import router as payments_router
from nido.api.v1.endpoints.verifications import router as verifications_router
from nido.api.v1.endpoints.admin_verifications import router as admin_verifications_router


router = APIRouter(prefix="/v1")
router.include_router(health_router, tags=["health"])
router.include_router(webhooks_router, tags=["webhooks"])
router.include_router(jobs_router, tags=["jobs"])
router.include_router(payments_router, tags=["payments"])
router.include_router(verifications_router, tags=["verifications"])
router.include_router(admin_verifications_router, tags=["admin"])
