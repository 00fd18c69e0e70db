"""
Withdrawal, transfer and deposit API schemas

Requests are tagged by ``kind`` and converted into the service-level request
variants at the boundary.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field

from shopvest.core.ledger.models import WalletKind
from shopvest.core.payments.models import PayoutMethod
from shopvest.services.transfers import UserTransfer, WalletTransfer
from shopvest.services.withdrawals import CapitalWithdrawal, ProfitWithdrawal


class ProfitWithdrawalRequest(BaseModel):
    kind: Literal["PROFIT"]
    amount: int = Field(..., gt=0, description="Gross amount in minor units, fee included")
    method: PayoutMethod = PayoutMethod.BANK
    destination: Optional[str] = Field(default=None, max_length=255, description="Bank account for BANK payouts")

    def to_variant(self) -> ProfitWithdrawal:
        return ProfitWithdrawal(amount=self.amount, method=self.method, destination=self.destination)


class CapitalWithdrawalRequest(BaseModel):
    kind: Literal["CAPITAL"]
    investment_id: UUID
    amount: int = Field(..., gt=0, description="Gross amount in minor units, at most the investment capital")
    method: PayoutMethod = PayoutMethod.BANK
    destination: Optional[str] = Field(default=None, max_length=255)

    def to_variant(self) -> CapitalWithdrawal:
        return CapitalWithdrawal(
            investment_id=self.investment_id,
            amount=self.amount,
            method=self.method,
            destination=self.destination,
        )


WithdrawalCreateRequest = Annotated[
    Union[ProfitWithdrawalRequest, CapitalWithdrawalRequest],
    Field(discriminator="kind"),
]


class WithdrawalResponse(BaseModel):
    id: UUID
    owner_id: UUID
    kind: str
    investment_id: Optional[UUID] = None
    amount: int
    fee_rate: Decimal
    fee: int
    net_amount: int
    method: str
    destination: Optional[str] = None
    status: str
    settings_version: int
    payout_reference: Optional[str] = None
    reason: Optional[str] = None
    processed_by: Optional[UUID] = None
    processed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class WalletTransferRequest(BaseModel):
    kind: Literal["WALLET"]
    from_wallet: WalletKind
    to_wallet: WalletKind
    amount: int = Field(..., gt=0)

    def to_variant(self) -> WalletTransfer:
        return WalletTransfer(from_wallet=self.from_wallet, to_wallet=self.to_wallet, amount=self.amount)


class UserTransferRequest(BaseModel):
    kind: Literal["USER"]
    recipient_id: UUID
    amount: int = Field(..., gt=0)

    def to_variant(self) -> UserTransfer:
        return UserTransfer(recipient_id=self.recipient_id, amount=self.amount)


TransferCreateRequest = Annotated[
    Union[WalletTransferRequest, UserTransferRequest],
    Field(discriminator="kind"),
]


class TransferResponse(BaseModel):
    id: UUID
    owner_id: UUID
    kind: str
    from_wallet: str
    to_wallet: str
    recipient_id: Optional[UUID] = None
    amount: int
    fee_rate: Decimal
    fee: int
    net_amount: int
    status: str
    settings_version: int
    reason: Optional[str] = None
    processed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DepositRequest(BaseModel):
    amount: int = Field(..., gt=0, description="Amount in minor units")


class DepositResponse(BaseModel):
    id: UUID = Field(..., description="Payment intent id to hand to the payment provider")
    amount: int
    status: str
    settings_version: int
    provider_reference: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DecisionRequest(BaseModel):
    """Reason attached to an admin reject/cancel or an owner cancel"""
    reason: Optional[str] = Field(default=None, max_length=1000)


class SettlementCallbackRequest(BaseModel):
    """Final outcome reported by the payment collaborator"""
    request_id: UUID
    outcome: Literal["completed", "failed"]
    reference: Optional[str] = Field(default=None, max_length=255)
    reason: Optional[str] = Field(default=None, max_length=1000)


class SettlementCallbackResponse(BaseModel):
    request_type: str
    request_id: UUID
    status: str
    duplicate: bool
