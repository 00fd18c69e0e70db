"""
Admin API - Balance adjustments and reconciliation
"""

from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from shopvest.auth.dependencies import get_admin_id
from shopvest.infrastructure.database import get_db
from shopvest.schemas.admin import WalletAdjustmentRequest
from shopvest.schemas.wallet import TransactionItem
from shopvest.services import wallets
from shopvest.services.users import get_user

router = APIRouter()


@router.post(
    "/wallets/adjust",
    response_model=TransactionItem,
    status_code=status.HTTP_201_CREATED,
    summary="Credit or debit a user wallet",
    description="Recorded as an 'adjustment' ledger entry with the given reason. Debits cannot overdraw.",
)
def adjust_wallet(
    payload: WalletAdjustmentRequest,
    db: Session = Depends(get_db),
    admin_id: UUID = Depends(get_admin_id),
) -> TransactionItem:
    get_user(db, payload.user_id)
    db.commit()
    entry = wallets.adjust_balance(
        db,
        owner_id=payload.user_id,
        kind=payload.wallet_kind,
        amount=payload.amount,
        reason=payload.reason,
        admin_id=admin_id,
    )
    return TransactionItem.model_validate(entry)


@router.get("/wallets/reconcile", summary="Compare cached balances with the ledger")
def reconcile(
    user_id: Optional[UUID] = Query(default=None),
    db: Session = Depends(get_db),
    admin_id: UUID = Depends(get_admin_id),
) -> Dict[str, Any]:
    return wallets.reconcile_wallets(db, owner_id=user_id)
