"""
Analytics endpoints - READ-ONLY
"""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from shopvest.auth.dependencies import get_current_user_id
from shopvest.infrastructure.database import get_db
from shopvest.schemas.analytics import AnalyticsSummaryResponse
from shopvest.services.analytics import get_analytics_summary

router = APIRouter(tags=["analytics"])


@router.get(
    "/analytics/summary",
    response_model=AnalyticsSummaryResponse,
    summary="Income and spending summary",
    description="Totals per category, net flow and daily series of completed ledger entries.",
)
def analytics_summary(
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> AnalyticsSummaryResponse:
    return AnalyticsSummaryResponse(**get_analytics_summary(db, user_id, date_from, date_to))
