"""
Transfer endpoints - wallet-to-wallet and user-to-user
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from shopvest.auth.dependencies import get_current_user_id
from shopvest.core.payments.models import TransferKind, TransferStatus
from shopvest.infrastructure.database import get_db
from shopvest.schemas.payments import DecisionRequest, TransferCreateRequest, TransferResponse
from shopvest.services import transfers as transfer_service

router = APIRouter(tags=["transfers"])


@router.post(
    "/transfers",
    response_model=TransferResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request a transfer",
    description="The gross amount leaves the source wallet now; the net amount arrives on admin approval.",
)
def create_transfer(
    payload: TransferCreateRequest,
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> TransferResponse:
    transfer = transfer_service.request_transfer(db, owner_id=user_id, request=payload.to_variant())
    return TransferResponse.model_validate(transfer)


@router.get("/transfers", response_model=List[TransferResponse], summary="List transfers sent or received")
def list_transfers(
    status: Optional[TransferStatus] = Query(default=None),
    kind: Optional[TransferKind] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> List[TransferResponse]:
    items = transfer_service.list_transfers(db, owner_id=user_id, status=status, kind=kind, limit=limit, offset=offset)
    return [TransferResponse.model_validate(item) for item in items]


@router.post("/transfers/{request_id}/cancel", response_model=TransferResponse, summary="Cancel a pending transfer")
def cancel_transfer(
    request_id: UUID,
    payload: Optional[DecisionRequest] = None,
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> TransferResponse:
    transfer = transfer_service.cancel_transfer(
        db, request_id=request_id, owner_id=user_id, reason=(payload.reason if payload else None) or "Cancelled by user",
    )
    return TransferResponse.model_validate(transfer)
