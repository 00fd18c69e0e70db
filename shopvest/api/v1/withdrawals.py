"""
Withdrawal endpoints - profit and capital payouts
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from shopvest.auth.dependencies import get_current_user_id
from shopvest.core.payments.models import WithdrawalKind, WithdrawalStatus
from shopvest.infrastructure.database import get_db
from shopvest.schemas.payments import DecisionRequest, WithdrawalCreateRequest, WithdrawalResponse
from shopvest.services import withdrawals as withdrawal_service

router = APIRouter(tags=["withdrawals"])


@router.post(
    "/withdrawals",
    response_model=WithdrawalResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request a withdrawal",
    description=(
        "PROFIT withdrawals are paid from the PROFIT wallet; CAPITAL withdrawals "
        "release the capital of a matured investment. The gross amount is debited "
        "now and the request waits for admin approval. Requires USER role and approved KYC."
    ),
)
def create_withdrawal(
    payload: WithdrawalCreateRequest,
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> WithdrawalResponse:
    withdrawal = withdrawal_service.request_withdrawal(db, owner_id=user_id, request=payload.to_variant())
    return WithdrawalResponse.model_validate(withdrawal)


@router.get("/withdrawals", response_model=List[WithdrawalResponse], summary="List my withdrawals")
def list_withdrawals(
    status: Optional[WithdrawalStatus] = Query(default=None),
    kind: Optional[WithdrawalKind] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> List[WithdrawalResponse]:
    items = withdrawal_service.list_withdrawals(db, owner_id=user_id, status=status, kind=kind, limit=limit, offset=offset)
    return [WithdrawalResponse.model_validate(item) for item in items]


@router.post(
    "/withdrawals/{request_id}/cancel",
    response_model=WithdrawalResponse,
    summary="Cancel a pending withdrawal",
)
def cancel_withdrawal(
    request_id: UUID,
    payload: Optional[DecisionRequest] = None,
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> WithdrawalResponse:
    withdrawal = withdrawal_service.cancel_withdrawal(
        db, request_id=request_id, owner_id=user_id, reason=(payload.reason if payload else None) or "Cancelled by user",
    )
    return WithdrawalResponse.model_validate(withdrawal)
