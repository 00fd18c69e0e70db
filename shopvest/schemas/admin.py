"""
Admin API schemas - settings, KYC and balance adjustments
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from shopvest.core.ledger.models import WalletKind
from shopvest.core.users.models import KYCStatus


class SystemSettingsResponse(BaseModel):
    version: int = Field(..., description="0 until an admin writes the first version")
    maintenance_mode: bool
    maintenance_message: Optional[str] = None
    min_withdrawal: int
    max_withdrawal: int
    withdrawal_fee_rate: Decimal
    transfer_fee_rate: Decimal
    default_profit_percentage: Decimal
    min_deposit: int
    updated_by: Optional[UUID] = None
    change_note: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SystemSettingsUpdateRequest(BaseModel):
    """Only provided fields change; the result is stored as a new version"""
    maintenance_mode: Optional[bool] = None
    maintenance_message: Optional[str] = None
    min_withdrawal: Optional[int] = Field(default=None, ge=0)
    max_withdrawal: Optional[int] = Field(default=None, ge=0)
    withdrawal_fee_rate: Optional[Decimal] = Field(default=None, ge=0, lt=1)
    transfer_fee_rate: Optional[Decimal] = Field(default=None, ge=0, lt=1)
    default_profit_percentage: Optional[Decimal] = Field(default=None, ge=0, le=100)
    min_deposit: Optional[int] = Field(default=None, ge=0)
    change_note: Optional[str] = Field(default=None, max_length=255)


class KYCUpdateRequest(BaseModel):
    status: KYCStatus


class UserResponse(BaseModel):
    id: UUID
    email: str
    full_name: Optional[str] = None
    status: str
    kyc_status: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class WalletAdjustmentRequest(BaseModel):
    """Positive amount credits the wallet, negative amount debits it"""
    user_id: UUID
    wallet_kind: WalletKind
    amount: int = Field(..., description="Non-zero signed amount in minor units")
    reason: str = Field(..., min_length=1, max_length=500)


class JobRunRequest(BaseModel):
    as_of_date: Optional[date] = Field(default=None, description="Defaults to today (UTC)")
