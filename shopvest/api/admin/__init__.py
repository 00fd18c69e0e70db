"""
Admin API routes - INTERNAL ONLY
"""

from fastapi import APIRouter
from shopvest.infrastructure.settings import get_settings
from shopvest.api.admin.shops import router as shops_router
from shopvest.api.admin.system import router as system_router
from shopvest.api.admin.users import router as users_router
from shopvest.api.admin.payments import router as payments_router
from shopvest.api.admin.wallets import router as wallets_router
from shopvest.api.admin.dashboard import router as dashboard_router
from shopvest.api.admin.jobs import router as jobs_router

settings = get_settings()
router = APIRouter(prefix=settings.ADMIN_V1_PREFIX, tags=["admin-v1"])

router.include_router(shops_router, tags=["admin-shops"])
router.include_router(system_router, tags=["admin-system"])
router.include_router(users_router, tags=["admin-users"])
router.include_router(payments_router, tags=["admin-payments"])
router.include_router(wallets_router, tags=["admin-wallets"])
router.include_router(dashboard_router, tags=["admin-dashboard"])
router.include_router(jobs_router, tags=["admin-jobs"])
