"""
Analytics aggregator - READ-ONLY views over the ledger

Totals only count COMPLETED entries and keep their sign, so a compensating
entry cancels the entry it reverses. Outflow categories (withdrawal,
investment) are reported as money leaving the wallets: a capital release
booked under investment lowers the investment total, and the total may go
negative in a window that holds the release but not the purchase. net_flow
is then the signed movement of those four categories in the window.
"""

import csv
import io
from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from shopvest.core.investments.models import Investment, InvestmentStatus
from shopvest.core.ledger.models import LedgerCategory, LedgerEntry, LedgerEntryStatus, WalletKind
from shopvest.core.payments.models import (
    OPEN_WITHDRAWAL_STATUSES, TransferRequest, TransferStatus, WithdrawalRequest, WithdrawalStatus,
)
from shopvest.core.shops.models import Shop, ShopStatus
from shopvest.core.users.models import User
from shopvest.services import wallets
from shopvest.services.exceptions import ValidationError
from shopvest.services.ledger import entries_for

EXPORT_HEADER = ["Type", "Amount", "Status", "Date"]
OUTFLOW_CATEGORIES = frozenset({LedgerCategory.WITHDRAWAL.value, LedgerCategory.INVESTMENT.value})


def _window(date_from: Optional[date], date_to: Optional[date]) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Inclusive calendar dates -> half-open [since, until) UTC datetimes"""
    if date_from and date_to and date_from > date_to:
        raise ValidationError("date_from must not be after date_to")
    since = datetime.combine(date_from, time.min, tzinfo=timezone.utc) if date_from else None
    until = datetime.combine(date_to + timedelta(days=1), time.min, tzinfo=timezone.utc) if date_to else None
    return since, until


def _completed(db: Session, owner_id: UUID, date_from: Optional[date], date_to: Optional[date]) -> Iterable[LedgerEntry]:
    since, until = _window(date_from, date_to)
    return entries_for(db, owner_id, since=since, until=until, statuses=[LedgerEntryStatus.COMPLETED])


def totals_by_category(
    db: Session,
    owner_id: UUID,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> Dict[str, int]:
    signed: Dict[str, int] = {c.value: 0 for c in LedgerCategory}
    for entry in _completed(db, owner_id, date_from, date_to):
        signed[entry.category] += entry.amount
    return {
        category: -total if category in OUTFLOW_CATEGORIES else total
        for category, total in signed.items()
    }


def net_flow(totals: Dict[str, int]) -> int:
    """deposit + income - withdrawal - investment"""
    return (
        totals.get(LedgerCategory.DEPOSIT.value, 0)
        + totals.get(LedgerCategory.INCOME.value, 0)
        - totals.get(LedgerCategory.WITHDRAWAL.value, 0)
        - totals.get(LedgerCategory.INVESTMENT.value, 0)
    )


def daily_series(
    db: Session,
    owner_id: UUID,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """Signed net movement per calendar day (UTC), oldest first"""
    per_day: Dict[date, int] = defaultdict(int)
    for entry in _completed(db, owner_id, date_from, date_to):
        per_day[entry.created_at.date()] += entry.amount
    return [{"date": day, "net": per_day[day]} for day in sorted(per_day)]


def get_analytics_summary(
    db: Session,
    owner_id: UUID,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> Dict[str, Any]:
    totals = totals_by_category(db, owner_id, date_from, date_to)
    return {
        "date_from": date_from,
        "date_to": date_to,
        "totals": totals,
        "net_flow": net_flow(totals),
        "series": daily_series(db, owner_id, date_from, date_to),
    }


def _transactions_query(
    owner_id: UUID,
    *,
    category: Optional[LedgerCategory] = None,
    status: Optional[LedgerEntryStatus] = None,
    wallet_kind: Optional[WalletKind] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
):
    since, until = _window(date_from, date_to)
    stmt = select(LedgerEntry).where(LedgerEntry.owner_id == owner_id)
    if category is not None:
        stmt = stmt.where(LedgerEntry.category == LedgerCategory(category).value)
    if status is not None:
        stmt = stmt.where(LedgerEntry.status == LedgerEntryStatus(status).value)
    if wallet_kind is not None:
        stmt = stmt.where(LedgerEntry.wallet_kind == WalletKind(wallet_kind).value)
    if since is not None:
        stmt = stmt.where(LedgerEntry.created_at >= since)
    if until is not None:
        stmt = stmt.where(LedgerEntry.created_at < until)
    return stmt


def list_transactions(
    db: Session,
    owner_id: UUID,
    *,
    category: Optional[LedgerCategory] = None,
    status: Optional[LedgerEntryStatus] = None,
    wallet_kind: Optional[WalletKind] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    limit: int = 50,
    offset: int = 0,
) -> Tuple[List[LedgerEntry], int]:
    """Newest first. Returns (page, total matching)."""
    stmt = _transactions_query(
        owner_id, category=category, status=status, wallet_kind=wallet_kind, date_from=date_from, date_to=date_to,
    )
    total = db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
    page = db.execute(
        stmt.order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc()).limit(limit).offset(offset)
    ).scalars()
    return list(page), int(total)


def export_transactions_csv(
    db: Session,
    owner_id: UUID,
    *,
    category: Optional[LedgerCategory] = None,
    status: Optional[LedgerEntryStatus] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> str:
    stmt = _transactions_query(owner_id, category=category, status=status, date_from=date_from, date_to=date_to)
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(EXPORT_HEADER)
    for entry in db.execute(stmt.order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())).scalars():
        writer.writerow([entry.category, entry.amount, entry.status, entry.created_at.isoformat()])
    return buffer.getvalue()


def platform_summary(db: Session) -> Dict[str, Any]:
    """Admin dashboard figures"""
    users = db.execute(select(func.count(User.id))).scalar_one()
    shops_by_status = {s.value: 0 for s in ShopStatus}
    for status, count in db.execute(select(Shop.status, func.count(Shop.id)).group_by(Shop.status)):
        shops_by_status[status] = count

    active_capital = db.execute(
        select(func.coalesce(func.sum(Investment.capital), 0)).where(
            Investment.status.in_([InvestmentStatus.ACTIVE.value, InvestmentStatus.MATURED.value])
        )
    ).scalar_one()
    active_investments = db.execute(
        select(func.count(Investment.id)).where(Investment.status == InvestmentStatus.ACTIVE.value)
    ).scalar_one()
    profit_paid = db.execute(
        select(func.coalesce(func.sum(LedgerEntry.amount), 0)).where(
            LedgerEntry.category == LedgerCategory.INCOME.value,
            LedgerEntry.status == LedgerEntryStatus.COMPLETED.value,
        )
    ).scalar_one()

    pending_withdrawals = db.execute(
        select(func.count(WithdrawalRequest.id), func.coalesce(func.sum(WithdrawalRequest.amount), 0)).where(
            WithdrawalRequest.status.in_(OPEN_WITHDRAWAL_STATUSES)
        )
    ).one()
    pending_transfers = db.execute(
        select(func.count(TransferRequest.id)).where(TransferRequest.status == TransferStatus.PENDING.value)
    ).scalar_one()

    withdrawal_fees = db.execute(
        select(func.coalesce(func.sum(WithdrawalRequest.fee), 0)).where(
            WithdrawalRequest.status == WithdrawalStatus.COMPLETED.value
        )
    ).scalar_one()
    transfer_fees = db.execute(
        select(func.coalesce(func.sum(TransferRequest.fee), 0)).where(
            TransferRequest.status == TransferStatus.COMPLETED.value
        )
    ).scalar_one()

    return {
        "users": int(users),
        "shops": shops_by_status,
        "active_investments": int(active_investments),
        "active_capital": int(active_capital),
        "profit_paid": int(profit_paid),
        "pending_withdrawals": int(pending_withdrawals[0]),
        "pending_withdrawal_amount": int(pending_withdrawals[1]),
        "pending_transfers": int(pending_transfers),
        "retained_fees": int(withdrawal_fees) + int(transfer_fees),
        "wallet_totals": wallets.platform_totals(db),
    }
