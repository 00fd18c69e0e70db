"""
Webhook endpoints - INTERNAL / PAYMENT PROVIDER ONLY
"""

from fastapi import APIRouter
from shopvest.infrastructure.settings import get_settings
from shopvest.api.webhooks.settlement import router as settlement_router

settings = get_settings()
router = APIRouter(prefix=settings.WEBHOOKS_V1_PREFIX, tags=["webhooks-v1"])

router.include_router(settlement_router)
