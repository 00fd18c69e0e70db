"""
Ledger models - LedgerEntry (IMMUTABLE) and WalletBalance (materialized view)
"""

import enum

from sqlalchemy import (
    Column, String, BigInteger, Text, Uuid, ForeignKey, CheckConstraint, UniqueConstraint, Index, event,
)
from sqlalchemy.orm import relationship

from shopvest.core.common.base_model import BaseModel


class WalletKind(str, enum.Enum):
    """Wallet compartments every user owns"""
    MAIN = "MAIN"  # Deposits land here; investments are paid from here
    INVESTMENT = "INVESTMENT"  # Matured capital on its way out
    PROFIT = "PROFIT"  # Daily profit accruals


class LedgerCategory(str, enum.Enum):
    """Business category of a ledger entry (drives analytics)"""
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    INVESTMENT = "investment"
    INCOME = "income"
    TRANSFER = "transfer"
    ADJUSTMENT = "adjustment"  # Admin balance corrections


class LedgerEntryStatus(str, enum.Enum):
    """Ledger entry status - only COMPLETED entries move balances"""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class LedgerImmutableError(RuntimeError):
    """Raised when code tries to update or delete a ledger entry"""


class LedgerEntry(BaseModel):
    """
    LedgerEntry model - IMMUTABLE (WRITE-ONCE)

    Each balance-affecting event creates one signed ledger line on one wallet
    (owner_id + wallet_kind). Credits are positive, debits negative.

    IMMUTABILITY RULES:
    - NEVER UPDATE a LedgerEntry (enforced by a before_update mapper event)
    - NEVER DELETE a LedgerEntry (enforced by a before_delete mapper event)
    - Failed or reversed operations append a compensating entry that points
      at the original through reverses_entry_id

    The balance of a wallet = SUM(amount) WHERE status = 'completed'.
    PENDING and FAILED entries are informational (deposit intents).
    """

    __tablename__ = "ledger_entries"

    owner_id = Column(Uuid, ForeignKey("users.id", name="fk_ledger_entries_owner_id"), nullable=False, index=True)
    wallet_kind = Column(String(20), nullable=False, index=True)
    amount = Column(BigInteger, nullable=False)  # Signed, minor currency units
    category = Column(String(20), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=LedgerEntryStatus.COMPLETED.value, index=True)

    # Withdrawal / Transfer / Investment / Reservation / DepositIntent that produced the entry
    correlation_id = Column(Uuid, nullable=True, index=True)
    reverses_entry_id = Column(Uuid, ForeignKey("ledger_entries.id", name="fk_ledger_entries_reverses"), nullable=True)
    description = Column(Text, nullable=True)

    # Entries are write-once
    updated_at = None

    owner = relationship("User", foreign_keys=[owner_id], lazy="select")

    __table_args__ = (
        CheckConstraint('amount <> 0', name='check_ledger_entries_amount_non_zero'),
        Index('ix_ledger_entries_owner_created', 'owner_id', 'created_at', 'id'),
        Index('ix_ledger_entries_wallet', 'owner_id', 'wallet_kind', 'status'),
    )


@event.listens_for(LedgerEntry, "before_update")
def _refuse_ledger_update(mapper, connection, target):
    raise LedgerImmutableError(f"Ledger entry {target.id} is immutable and cannot be updated")


@event.listens_for(LedgerEntry, "before_delete")
def _refuse_ledger_delete(mapper, connection, target):
    raise LedgerImmutableError(f"Ledger entry {target.id} is immutable and cannot be deleted")


class WalletBalance(BaseModel):
    """
    WalletBalance model - cached balance of one wallet

    Materialized view over the ledger: every credit/debit updates the row in
    the same transaction that appends the ledger entry, so the cache always
    equals SUM(completed entries). The reconciliation job verifies this.
    """

    __tablename__ = "wallet_balances"

    owner_id = Column(Uuid, ForeignKey("users.id", name="fk_wallet_balances_owner_id"), nullable=False, index=True)
    kind = Column(String(20), nullable=False)
    balance = Column(BigInteger, nullable=False, default=0)

    owner = relationship("User", foreign_keys=[owner_id], lazy="select")

    __table_args__ = (
        UniqueConstraint('owner_id', 'kind', name='uq_wallet_balances_owner_kind'),
        CheckConstraint('balance >= 0', name='check_wallet_balances_non_negative'),
    )
