"""
Wallet API response schemas

All amounts are integers in minor currency units.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class WalletBalanceResponse(BaseModel):
    """Wallet balance response schema"""
    main_balance: int = Field(..., description="MAIN wallet: deposits land here, investments are paid from here")
    investment_balance: int = Field(..., description="INVESTMENT wallet: released capital")
    profit_balance: int = Field(..., description="PROFIT wallet: accrued daily profit")
    total_balance: int = Field(..., description="Sum of all wallets")

    class Config:
        json_schema_extra = {
            "example": {
                "main_balance": 700000,
                "investment_balance": 0,
                "profit_balance": 12500,
                "total_balance": 712500,
            }
        }


class TransactionItem(BaseModel):
    """One ledger entry as seen by its owner"""
    id: UUID
    wallet_kind: str
    category: str
    status: str
    amount: int = Field(..., description="Signed amount: credits positive, debits negative")
    correlation_id: Optional[UUID] = None
    reverses_entry_id: Optional[UUID] = None
    description: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TransactionListResponse(BaseModel):
    items: List[TransactionItem]
    total: int
    limit: int
    offset: int
