"""
Ledger store - append-only record of balance-affecting events

Rules:
- append() is the only write path; entries are never updated or deleted
- amount is signed and never zero; category and status must be known values
- entries_for() returns a lazy cursor: rows are fetched page by page in
  (created_at, id) order, and iterating the cursor again restarts the scan
"""

import logging
from datetime import datetime
from typing import Iterable, Iterator, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from shopvest.core.ledger.models import LedgerEntry, LedgerCategory, LedgerEntryStatus, WalletKind
from shopvest.services.exceptions import ValidationError
from shopvest.utils.metrics import record_ledger_entry

logger = logging.getLogger(__name__)

_CATEGORIES = {c.value for c in LedgerCategory}
_STATUSES = {s.value for s in LedgerEntryStatus}
_KINDS = {k.value for k in WalletKind}


def _values(items: Optional[Iterable]) -> Optional[List[str]]:
    if items is None:
        return None
    return [getattr(item, "value", item) for item in items]


def validate_entry(entry: LedgerEntry) -> None:
    if not isinstance(entry.amount, int) or isinstance(entry.amount, bool):
        raise ValidationError("Ledger amount must be an integer number of minor units")
    if entry.amount == 0:
        raise ValidationError("Ledger amount must not be zero")
    if entry.category not in _CATEGORIES:
        raise ValidationError(f"Invalid ledger category: {entry.category}")
    if entry.status not in _STATUSES:
        raise ValidationError(f"Invalid ledger status: {entry.status}")
    if entry.wallet_kind not in _KINDS:
        raise ValidationError(f"Invalid wallet kind: {entry.wallet_kind}")
    if entry.owner_id is None:
        raise ValidationError("Ledger entry requires an owner")


def append(db: Session, entry: LedgerEntry) -> UUID:
    """
    Append one entry and return its id.

    This does NOT touch the cached wallet balance; balance-moving entries go
    through wallets.credit()/wallets.debit(). Caller MUST commit.
    """
    entry.category = getattr(entry.category, "value", entry.category)
    entry.wallet_kind = getattr(entry.wallet_kind, "value", entry.wallet_kind)
    if entry.status is None:
        entry.status = LedgerEntryStatus.COMPLETED.value
    entry.status = getattr(entry.status, "value", entry.status)
    validate_entry(entry)

    db.add(entry)
    db.flush()
    record_ledger_entry(entry.category, entry.status)
    logger.debug(
        "Ledger entry appended",
        extra={
            "entry_id": str(entry.id),
            "owner_id": str(entry.owner_id),
            "wallet_kind": entry.wallet_kind,
            "amount": entry.amount,
            "category": entry.category,
            "status": entry.status,
        },
    )
    return entry.id


class LedgerCursor:
    """Restartable, time-ordered scan over one owner's ledger"""

    def __init__(
        self,
        db: Session,
        owner_id: UUID,
        *,
        wallet_kind: Optional[WalletKind] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        statuses: Optional[Sequence[LedgerEntryStatus]] = None,
        categories: Optional[Sequence[LedgerCategory]] = None,
        page_size: int = 500,
    ):
        if page_size <= 0:
            raise ValidationError("page_size must be positive")
        self.db = db
        self.owner_id = owner_id
        self.wallet_kind = getattr(wallet_kind, "value", wallet_kind)
        self.since = since
        self.until = until
        self.statuses = _values(statuses)
        self.categories = _values(categories)
        self.page_size = page_size

    def _statement(self):
        stmt = select(LedgerEntry).where(LedgerEntry.owner_id == self.owner_id)
        if self.wallet_kind is not None:
            stmt = stmt.where(LedgerEntry.wallet_kind == self.wallet_kind)
        if self.since is not None:
            stmt = stmt.where(LedgerEntry.created_at >= self.since)
        if self.until is not None:
            stmt = stmt.where(LedgerEntry.created_at < self.until)
        if self.statuses is not None:
            stmt = stmt.where(LedgerEntry.status.in_(self.statuses))
        if self.categories is not None:
            stmt = stmt.where(LedgerEntry.category.in_(self.categories))
        return stmt

    def pages(self) -> Iterator[List[LedgerEntry]]:
        last_created_at = None
        last_id = None
        while True:
            stmt = self._statement()
            if last_created_at is not None:
                stmt = stmt.where(
                    or_(
                        LedgerEntry.created_at > last_created_at,
                        and_(LedgerEntry.created_at == last_created_at, LedgerEntry.id > last_id),
                    )
                )
            stmt = stmt.order_by(LedgerEntry.created_at.asc(), LedgerEntry.id.asc()).limit(self.page_size)
            page = list(self.db.execute(stmt).scalars())
            if not page:
                return
            yield page
            if len(page) < self.page_size:
                return
            last_created_at = page[-1].created_at
            last_id = page[-1].id

    def __iter__(self) -> Iterator[LedgerEntry]:
        for page in self.pages():
            yield from page


def entries_for(
    db: Session,
    owner_id: UUID,
    wallet_kind: Optional[WalletKind] = None,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
    *,
    statuses: Optional[Sequence[LedgerEntryStatus]] = None,
    categories: Optional[Sequence[LedgerCategory]] = None,
    page_size: int = 500,
) -> LedgerCursor:
    return LedgerCursor(
        db,
        owner_id,
        wallet_kind=wallet_kind,
        since=since,
        until=until,
        statuses=statuses,
        categories=categories,
        page_size=page_size,
    )


def ledger_balance(db: Session, owner_id: UUID, kind: WalletKind) -> int:
    """Full replay: SUM of completed entries. Reconciliation and tests only."""
    total = db.execute(
        select(func.coalesce(func.sum(LedgerEntry.amount), 0)).where(
            LedgerEntry.owner_id == owner_id,
            LedgerEntry.wallet_kind == getattr(kind, "value", kind),
            LedgerEntry.status == LedgerEntryStatus.COMPLETED.value,
        )
    ).scalar_one()
    return int(total)
