"""
Deposit endpoints
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from shopvest.auth.dependencies import get_current_user_id
from shopvest.infrastructure.database import get_db
from shopvest.schemas.payments import DepositRequest, DepositResponse
from shopvest.services import deposits as deposit_service

router = APIRouter(tags=["deposits"])


@router.post(
    "/deposits",
    response_model=DepositResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start a deposit",
    description=(
        "Creates a PENDING payment intent. The MAIN wallet is credited when the "
        "payment provider confirms it through the settlement webhook."
    ),
)
def create_deposit(
    payload: DepositRequest,
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> DepositResponse:
    intent = deposit_service.initiate_deposit(db, owner_id=user_id, amount=payload.amount)
    return DepositResponse.model_validate(intent)


@router.get("/deposits", response_model=List[DepositResponse], summary="List my deposits")
def list_deposits(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> List[DepositResponse]:
    items = deposit_service.list_deposits(db, owner_id=user_id, limit=limit, offset=offset)
    return [DepositResponse.model_validate(item) for item in items]
