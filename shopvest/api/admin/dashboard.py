"""
Admin API - Dashboard
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shopvest.auth.dependencies import get_admin_id
from shopvest.infrastructure.database import get_db
from shopvest.schemas.analytics import PlatformSummaryResponse
from shopvest.services.analytics import platform_summary

router = APIRouter()


@router.get(
    "/dashboard/summary",
    response_model=PlatformSummaryResponse,
    summary="Platform summary",
    description="Users, shops, active capital, pending requests and retained fees. Requires ADMIN role.",
)
def dashboard_summary(
    db: Session = Depends(get_db),
    admin_id: UUID = Depends(get_admin_id),
) -> PlatformSummaryResponse:
    return PlatformSummaryResponse(**platform_summary(db))
