"""
Payment request models - WithdrawalRequest, TransferRequest, DepositIntent

Each request records the gross amount, the fee rate and fee applied, and the
system settings version that was in force when it was accepted.
"""

import enum

from sqlalchemy import (
    Column, String, Text, Integer, BigInteger, Numeric, Uuid, DateTime, ForeignKey, CheckConstraint, Index,
)
from sqlalchemy.orm import relationship

from shopvest.core.common.base_model import BaseModel


class WithdrawalKind(str, enum.Enum):
    PROFIT = "PROFIT"
    CAPITAL = "CAPITAL"


class PayoutMethod(str, enum.Enum):
    VELVPAY = "VELVPAY"
    BANK = "BANK"


class WithdrawalStatus(str, enum.Enum):
    """
    PENDING -> APPROVED -> COMPLETED | FAILED
    PENDING -> REJECTED | CANCELLED
    """
    PENDING = "PENDING"
    APPROVED = "APPROVED"  # Handed to the payout gateway
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class TransferKind(str, enum.Enum):
    WALLET = "WALLET"  # Between two wallets of the same user
    USER = "USER"  # MAIN wallet to another user's MAIN wallet


class TransferStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class DepositStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


TERMINAL_WITHDRAWAL_STATUSES = frozenset({
    WithdrawalStatus.COMPLETED.value,
    WithdrawalStatus.REJECTED.value,
    WithdrawalStatus.FAILED.value,
    WithdrawalStatus.CANCELLED.value,
})

OPEN_WITHDRAWAL_STATUSES = frozenset({
    WithdrawalStatus.PENDING.value,
    WithdrawalStatus.APPROVED.value,
})


class WithdrawalRequest(BaseModel):
    """WithdrawalRequest model - profit or capital payout"""

    __tablename__ = "withdrawal_requests"

    owner_id = Column(Uuid, ForeignKey("users.id", name="fk_withdrawal_requests_owner_id"), nullable=False, index=True)
    kind = Column(String(20), nullable=False, index=True)
    investment_id = Column(Uuid, ForeignKey("investments.id", name="fk_withdrawal_requests_investment_id"), nullable=True, index=True)

    amount = Column(BigInteger, nullable=False)  # Gross, debited at request time
    fee_rate = Column(Numeric(6, 4), nullable=False)
    fee = Column(BigInteger, nullable=False)
    net_amount = Column(BigInteger, nullable=False)

    method = Column(String(20), nullable=False, default=PayoutMethod.BANK.value)
    destination = Column(String(255), nullable=True)  # Bank account label for BANK payouts

    status = Column(String(20), nullable=False, default=WithdrawalStatus.PENDING.value, index=True)
    settings_version = Column(Integer, nullable=False)
    payout_reference = Column(String(255), nullable=True)
    reason = Column(Text, nullable=True)
    processed_by = Column(Uuid, nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)

    investment = relationship("Investment", foreign_keys=[investment_id], lazy="select")

    __table_args__ = (
        CheckConstraint('amount > 0', name='check_withdrawal_requests_amount_positive'),
        CheckConstraint('fee >= 0 AND net_amount = amount - fee', name='check_withdrawal_requests_fee'),
        CheckConstraint(
            "(kind = 'CAPITAL' AND investment_id IS NOT NULL) OR (kind = 'PROFIT' AND investment_id IS NULL)",
            name='check_withdrawal_requests_investment_kind',
        ),
        Index('ix_withdrawal_requests_owner_status', 'owner_id', 'status'),
    )


class TransferRequest(BaseModel):
    """TransferRequest model - wallet-to-wallet or user-to-user movement"""

    __tablename__ = "transfer_requests"

    owner_id = Column(Uuid, ForeignKey("users.id", name="fk_transfer_requests_owner_id"), nullable=False, index=True)
    kind = Column(String(20), nullable=False)
    from_wallet = Column(String(20), nullable=False)
    to_wallet = Column(String(20), nullable=False)
    recipient_id = Column(Uuid, ForeignKey("users.id", name="fk_transfer_requests_recipient_id"), nullable=True, index=True)

    amount = Column(BigInteger, nullable=False)
    fee_rate = Column(Numeric(6, 4), nullable=False)
    fee = Column(BigInteger, nullable=False)
    net_amount = Column(BigInteger, nullable=False)

    status = Column(String(20), nullable=False, default=TransferStatus.PENDING.value, index=True)
    settings_version = Column(Integer, nullable=False)
    reason = Column(Text, nullable=True)
    processed_by = Column(Uuid, nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint('amount > 0', name='check_transfer_requests_amount_positive'),
        CheckConstraint('fee >= 0 AND net_amount = amount - fee', name='check_transfer_requests_fee'),
        Index('ix_transfer_requests_owner_status', 'owner_id', 'status'),
    )

    @property
    def beneficiary_id(self):
        """User whose wallet receives the net amount"""
        return self.recipient_id if self.kind == TransferKind.USER.value else self.owner_id


class DepositIntent(BaseModel):
    """DepositIntent model - money expected from the payment gateway"""

    __tablename__ = "deposit_intents"

    owner_id = Column(Uuid, ForeignKey("users.id", name="fk_deposit_intents_owner_id"), nullable=False, index=True)
    amount = Column(BigInteger, nullable=False)
    status = Column(String(20), nullable=False, default=DepositStatus.PENDING.value, index=True)
    provider_reference = Column(String(255), nullable=True)
    settings_version = Column(Integer, nullable=False)
    processed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint('amount > 0', name='check_deposit_intents_amount_positive'),
    )
