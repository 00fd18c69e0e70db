"""
Investment endpoints
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from shopvest.auth.dependencies import get_current_user_id
from shopvest.core.investments.models import InvestmentStatus
from shopvest.infrastructure.database import get_db
from shopvest.schemas.investments import InvestmentResponse, OpenInvestmentRequest
from shopvest.services import investments as investment_service

router = APIRouter(tags=["investments"])


@router.get("/investments", response_model=List[InvestmentResponse], summary="List my investments")
def list_investments(
    status: Optional[InvestmentStatus] = Query(default=None),
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> List[InvestmentResponse]:
    investments = investment_service.list_investments(db, user_id, status=status)
    return [InvestmentResponse.model_validate(investment) for investment in investments]


@router.post(
    "/investments",
    response_model=InvestmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Invest in a shop",
    description="Reserves a slot and debits the capital from the MAIN wallet. Requires USER role.",
)
def open_investment(
    payload: OpenInvestmentRequest,
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> InvestmentResponse:
    investment = investment_service.open_investment(
        db, owner_id=user_id, shop_id=payload.shop_id, capital=payload.amount,
    )
    return InvestmentResponse.model_validate(investment)
