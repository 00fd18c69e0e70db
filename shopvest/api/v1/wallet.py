"""
Wallet API endpoints - READ-ONLY
"""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from shopvest.auth.dependencies import get_current_user_id
from shopvest.core.ledger.models import LedgerCategory, LedgerEntryStatus, WalletKind
from shopvest.infrastructure.database import get_db
from shopvest.schemas.wallet import TransactionItem, TransactionListResponse, WalletBalanceResponse
from shopvest.services import analytics
from shopvest.services.wallets import get_wallet_balances

router = APIRouter(tags=["wallet"])


@router.get(
    "/wallet",
    response_model=WalletBalanceResponse,
    summary="Get wallet balances",
    description="MAIN, INVESTMENT and PROFIT balances of the authenticated user. Requires USER role.",
)
def get_wallet(
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> WalletBalanceResponse:
    balances = get_wallet_balances(db, user_id)
    return WalletBalanceResponse(
        main_balance=balances[WalletKind.MAIN.value],
        investment_balance=balances[WalletKind.INVESTMENT.value],
        profit_balance=balances[WalletKind.PROFIT.value],
        total_balance=balances["total"],
    )


@router.get(
    "/wallet/transactions",
    response_model=TransactionListResponse,
    summary="Get transaction history",
    description="Ledger entries of the authenticated user, newest first. Requires USER role.",
)
def get_transactions(
    category: Optional[LedgerCategory] = Query(default=None, description="deposit, withdrawal, investment, income, transfer, adjustment"),
    status: Optional[LedgerEntryStatus] = Query(default=None, description="pending, completed, failed"),
    wallet: Optional[WalletKind] = Query(default=None, description="MAIN, INVESTMENT or PROFIT"),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> TransactionListResponse:
    items, total = analytics.list_transactions(
        db,
        user_id,
        category=category,
        status=status,
        wallet_kind=wallet,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset,
    )
    return TransactionListResponse(
        items=[TransactionItem.model_validate(entry) for entry in items],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/wallet/transactions/export",
    summary="Export transaction history as CSV",
    response_class=Response,
)
def export_transactions(
    category: Optional[LedgerCategory] = Query(default=None),
    status: Optional[LedgerEntryStatus] = Query(default=None),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> Response:
    content = analytics.export_transactions_csv(
        db, user_id, category=category, status=status, date_from=date_from, date_to=date_to,
    )
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=transactions.csv"},
    )
