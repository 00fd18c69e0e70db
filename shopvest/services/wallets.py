"""
Wallet manager - per-user MAIN / INVESTMENT / PROFIT balances

Rules:
- credit() and debit() lock the wallet (resource key + SELECT ... FOR UPDATE),
  check the balance, append the ledger entry and update the cached balance
  in one transaction. Nothing is visible to other sessions before commit.
- debit() raises InsufficientFunds when amount > current balance; the cached
  balance therefore never goes negative (also a CHECK constraint).
- Building blocks do not commit: caller MUST commit (or run them inside
  unit_of_work, which does).
"""

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from shopvest.core.ledger.models import (
    LedgerEntry, LedgerCategory, LedgerEntryStatus, WalletBalance, WalletKind,
)
from shopvest.services import ledger
from shopvest.services.exceptions import InsufficientFunds, ValidationError
from shopvest.utils.metrics import record_reconciliation_drift
from shopvest.utils.resource_locks import hold_locks, unit_of_work, wallet_key

logger = logging.getLogger(__name__)


def _kind(kind) -> WalletKind:
    try:
        return WalletKind(kind)
    except ValueError as exc:
        raise ValidationError(f"Invalid wallet kind: {kind}") from exc


def _require_positive(amount: int) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        raise ValidationError("Amount must be a positive integer (minor units)")


def _locked_wallet(db: Session, owner_id: UUID, kind: WalletKind) -> WalletBalance:
    """Wallet row under FOR UPDATE, created with a zero balance on first use"""
    hold_locks(db, wallet_key(owner_id, kind))
    wallet = db.execute(
        select(WalletBalance)
        .where(WalletBalance.owner_id == owner_id, WalletBalance.kind == kind.value)
        .with_for_update()
    ).scalar_one_or_none()
    if wallet is None:
        wallet = WalletBalance(owner_id=owner_id, kind=kind.value, balance=0)
        db.add(wallet)
        db.flush()
    return wallet


def current_balance(db: Session, owner_id: UUID, kind: WalletKind) -> int:
    """Cached balance of one wallet (0 if it was never used)"""
    kind = _kind(kind)
    balance = db.execute(
        select(WalletBalance.balance).where(
            WalletBalance.owner_id == owner_id, WalletBalance.kind == kind.value
        )
    ).scalar_one_or_none()
    return int(balance or 0)


def get_wallet_balances(db: Session, owner_id: UUID) -> Dict[str, int]:
    """
    Balances of all wallet compartments.

    Returns:
        {"MAIN": int, "INVESTMENT": int, "PROFIT": int, "total": int}
    """
    rows = db.execute(
        select(WalletBalance.kind, WalletBalance.balance).where(WalletBalance.owner_id == owner_id)
    ).all()
    balances = {kind.value: 0 for kind in WalletKind}
    for kind, balance in rows:
        balances[kind] = int(balance)
    balances["total"] = sum(balances[kind.value] for kind in WalletKind)
    return balances


def credit(
    db: Session,
    owner_id: UUID,
    kind: WalletKind,
    amount: int,
    category: LedgerCategory,
    *,
    correlation_id: Optional[UUID] = None,
    description: Optional[str] = None,
    reverses_entry_id: Optional[UUID] = None,
) -> LedgerEntry:
    """Add ``amount`` to a wallet. Caller MUST commit."""
    kind = _kind(kind)
    _require_positive(amount)
    wallet = _locked_wallet(db, owner_id, kind)

    entry = LedgerEntry(
        owner_id=owner_id,
        wallet_kind=kind.value,
        amount=amount,
        category=getattr(category, "value", category),
        status=LedgerEntryStatus.COMPLETED.value,
        correlation_id=correlation_id,
        description=description,
        reverses_entry_id=reverses_entry_id,
    )
    ledger.append(db, entry)
    wallet.balance = wallet.balance + amount
    db.flush()
    return entry


def debit(
    db: Session,
    owner_id: UUID,
    kind: WalletKind,
    amount: int,
    category: LedgerCategory,
    *,
    correlation_id: Optional[UUID] = None,
    description: Optional[str] = None,
    reverses_entry_id: Optional[UUID] = None,
) -> LedgerEntry:
    """
    Remove ``amount`` from a wallet. Caller MUST commit.

    Raises:
        InsufficientFunds: amount > current balance
    """
    kind = _kind(kind)
    _require_positive(amount)
    wallet = _locked_wallet(db, owner_id, kind)

    if amount > wallet.balance:
        raise InsufficientFunds(
            f"Insufficient {kind.value} balance: {wallet.balance} available, {amount} required",
            details={"wallet": kind.value, "available": int(wallet.balance), "required": amount},
        )

    entry = LedgerEntry(
        owner_id=owner_id,
        wallet_kind=kind.value,
        amount=-amount,
        category=getattr(category, "value", category),
        status=LedgerEntryStatus.COMPLETED.value,
        correlation_id=correlation_id,
        description=description,
        reverses_entry_id=reverses_entry_id,
    )
    ledger.append(db, entry)
    wallet.balance = wallet.balance - amount
    db.flush()
    return entry


def adjust_balance(
    db: Session,
    *,
    owner_id: UUID,
    kind: WalletKind,
    amount: int,
    reason: str,
    admin_id: Optional[UUID] = None,
) -> LedgerEntry:
    """
    Admin correction: positive amount credits, negative amount debits.

    Recorded with category ``adjustment`` and the mandatory reason.
    """
    if not reason or not reason.strip():
        raise ValidationError("An adjustment requires a reason")
    if not isinstance(amount, int) or isinstance(amount, bool) or amount == 0:
        raise ValidationError("Adjustment amount must be a non-zero integer")
    kind = _kind(kind)

    description = f"Admin adjustment: {reason.strip()}"
    with unit_of_work(db, wallet_key(owner_id, kind)):
        if amount > 0:
            entry = credit(db, owner_id, kind, amount, LedgerCategory.ADJUSTMENT, description=description)
        else:
            entry = debit(db, owner_id, kind, -amount, LedgerCategory.ADJUSTMENT, description=description)
        entry_id = entry.id

    logger.info(
        "Wallet balance adjusted",
        extra={"owner_id": str(owner_id), "wallet_kind": kind.value, "amount": amount, "admin_id": admin_id, "entry_id": str(entry_id)},
    )
    return entry


def list_wallets(db: Session, owner_id: UUID) -> List[WalletBalance]:
    return list(
        db.execute(select(WalletBalance).where(WalletBalance.owner_id == owner_id).order_by(WalletBalance.kind)).scalars()
    )


def platform_totals(db: Session) -> Dict[str, int]:
    """Sum of cached balances per wallet kind across all users"""
    totals = {kind.value: 0 for kind in WalletKind}
    rows = db.execute(
        select(WalletBalance.kind, func.coalesce(func.sum(WalletBalance.balance), 0)).group_by(WalletBalance.kind)
    ).all()
    for kind, total in rows:
        totals[kind] = int(total)
    return totals


def reconcile_wallets(db: Session, *, owner_id: Optional[UUID] = None) -> Dict[str, Any]:
    """
    Compare every cached balance with the sum of its completed ledger entries.

    Read-only: drift is reported and logged, never corrected here. Wallets
    with ledger entries but no cached row count as drift too.

    Returns:
        {"checked": int, "drifted": int, "drift": [{owner_id, wallet_kind, cached, ledger}]}
    """
    sums_stmt = (
        select(LedgerEntry.owner_id, LedgerEntry.wallet_kind, func.sum(LedgerEntry.amount))
        .where(LedgerEntry.status == LedgerEntryStatus.COMPLETED.value)
        .group_by(LedgerEntry.owner_id, LedgerEntry.wallet_kind)
    )
    cached_stmt = select(WalletBalance.owner_id, WalletBalance.kind, WalletBalance.balance)
    if owner_id is not None:
        sums_stmt = sums_stmt.where(LedgerEntry.owner_id == owner_id)
        cached_stmt = cached_stmt.where(WalletBalance.owner_id == owner_id)

    ledger_sums = {(owner, kind): int(total) for owner, kind, total in db.execute(sums_stmt)}
    cached = {(owner, kind): int(balance) for owner, kind, balance in db.execute(cached_stmt)}

    drift = []
    for key in sorted(set(ledger_sums) | set(cached), key=lambda k: (str(k[0]), k[1])):
        expected = ledger_sums.get(key, 0)
        actual = cached.get(key, 0)
        if expected != actual:
            drift.append({"owner_id": key[0], "wallet_kind": key[1], "cached": actual, "ledger": expected})

    stats = {"checked": len(set(ledger_sums) | set(cached)), "drifted": len(drift), "drift": drift}
    if drift:
        record_reconciliation_drift(len(drift))
        logger.error("Wallet reconciliation found drift", extra={"checked": stats["checked"], "drifted": len(drift)})
    else:
        logger.info("Wallet reconciliation clean", extra={"checked": stats["checked"]})
    return stats
