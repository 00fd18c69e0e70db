"""
API v1 routes - User-facing API
"""

from fastapi import APIRouter
from shopvest.infrastructure.settings import get_settings
from shopvest.api.v1.wallet import router as wallet_router
from shopvest.api.v1.shops import router as shops_router
from shopvest.api.v1.investments import router as investments_router
from shopvest.api.v1.withdrawals import router as withdrawals_router
from shopvest.api.v1.transfers import router as transfers_router
from shopvest.api.v1.deposits import router as deposits_router
from shopvest.api.v1.analytics import router as analytics_router

settings = get_settings()
router = APIRouter(prefix=settings.API_V1_PREFIX, tags=["api-v1"])

router.include_router(wallet_router)
router.include_router(shops_router)
router.include_router(investments_router)
router.include_router(withdrawals_router)
router.include_router(transfers_router)
router.include_router(deposits_router)
router.include_router(analytics_router)
