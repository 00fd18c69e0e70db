"""
Admin API - Withdrawal and transfer review
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from shopvest.auth.dependencies import get_admin_id
from shopvest.core.payments.models import TransferKind, TransferStatus, WithdrawalKind, WithdrawalStatus
from shopvest.infrastructure.database import get_db
from shopvest.schemas.payments import DecisionRequest, TransferResponse, WithdrawalResponse
from shopvest.services import transfers as transfer_service
from shopvest.services import withdrawals as withdrawal_service
from shopvest.services.payouts import PayoutGateway, get_payout_gateway

router = APIRouter()


def _reason(payload: Optional[DecisionRequest]) -> Optional[str]:
    return payload.reason if payload else None


@router.get("/withdrawals", response_model=List[WithdrawalResponse], summary="List withdrawal requests")
def list_withdrawals(
    status: Optional[WithdrawalStatus] = Query(default=None),
    kind: Optional[WithdrawalKind] = Query(default=None),
    user_id: Optional[UUID] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    admin_id: UUID = Depends(get_admin_id),
) -> List[WithdrawalResponse]:
    items = withdrawal_service.list_withdrawals(
        db, owner_id=user_id, status=status, kind=kind, limit=limit, offset=offset,
    )
    return [WithdrawalResponse.model_validate(item) for item in items]


@router.post(
    "/withdrawals/{request_id}/approve",
    response_model=WithdrawalResponse,
    summary="Approve a withdrawal and submit the payout",
    description=(
        "PENDING -> APPROVED, then the payout is submitted. A refused payout settles "
        "the request FAILED and returns the funds (502 EXTERNAL_SETTLEMENT_ERROR)."
    ),
)
def approve_withdrawal(
    request_id: UUID,
    db: Session = Depends(get_db),
    admin_id: UUID = Depends(get_admin_id),
    gateway: PayoutGateway = Depends(get_payout_gateway),
) -> WithdrawalResponse:
    withdrawal = withdrawal_service.approve_withdrawal(db, request_id=request_id, admin_id=admin_id, gateway=gateway)
    return WithdrawalResponse.model_validate(withdrawal)


@router.post("/withdrawals/{request_id}/reject", response_model=WithdrawalResponse, summary="Reject a withdrawal")
def reject_withdrawal(
    request_id: UUID,
    payload: Optional[DecisionRequest] = None,
    db: Session = Depends(get_db),
    admin_id: UUID = Depends(get_admin_id),
) -> WithdrawalResponse:
    withdrawal = withdrawal_service.reject_withdrawal(
        db, request_id=request_id, reason=_reason(payload), admin_id=admin_id,
    )
    return WithdrawalResponse.model_validate(withdrawal)


@router.post("/withdrawals/{request_id}/cancel", response_model=WithdrawalResponse, summary="Cancel a withdrawal")
def cancel_withdrawal(
    request_id: UUID,
    payload: Optional[DecisionRequest] = None,
    db: Session = Depends(get_db),
    admin_id: UUID = Depends(get_admin_id),
) -> WithdrawalResponse:
    withdrawal = withdrawal_service.cancel_withdrawal(
        db, request_id=request_id, actor_id=admin_id, reason=_reason(payload),
    )
    return WithdrawalResponse.model_validate(withdrawal)


@router.get("/transfers", response_model=List[TransferResponse], summary="List transfer requests")
def list_transfers(
    status: Optional[TransferStatus] = Query(default=None),
    kind: Optional[TransferKind] = Query(default=None),
    user_id: Optional[UUID] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    admin_id: UUID = Depends(get_admin_id),
) -> List[TransferResponse]:
    items = transfer_service.list_transfers(
        db, owner_id=user_id, status=status, kind=kind, limit=limit, offset=offset,
    )
    return [TransferResponse.model_validate(item) for item in items]


@router.post("/transfers/{request_id}/approve", response_model=TransferResponse, summary="Approve a transfer")
def approve_transfer(
    request_id: UUID,
    db: Session = Depends(get_db),
    admin_id: UUID = Depends(get_admin_id),
) -> TransferResponse:
    transfer = transfer_service.approve_transfer(db, request_id=request_id, admin_id=admin_id)
    return TransferResponse.model_validate(transfer)


@router.post("/transfers/{request_id}/reject", response_model=TransferResponse, summary="Reject a transfer")
def reject_transfer(
    request_id: UUID,
    payload: Optional[DecisionRequest] = None,
    db: Session = Depends(get_db),
    admin_id: UUID = Depends(get_admin_id),
) -> TransferResponse:
    transfer = transfer_service.reject_transfer(db, request_id=request_id, reason=_reason(payload), admin_id=admin_id)
    return TransferResponse.model_validate(transfer)


@router.post("/transfers/{request_id}/cancel", response_model=TransferResponse, summary="Cancel a transfer")
def cancel_transfer(
    request_id: UUID,
    payload: Optional[DecisionRequest] = None,
    db: Session = Depends(get_db),
    admin_id: UUID = Depends(get_admin_id),
) -> TransferResponse:
    transfer = transfer_service.cancel_transfer(db, request_id=request_id, actor_id=admin_id, reason=_reason(payload))
    return TransferResponse.model_validate(transfer)
