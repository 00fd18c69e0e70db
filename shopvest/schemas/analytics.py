"""
Analytics response schemas
"""

from datetime import date
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class DailyPoint(BaseModel):
    date: date
    net: int


class AnalyticsSummaryResponse(BaseModel):
    """Categorized totals of completed ledger entries for one user"""
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    totals: Dict[str, int] = Field(..., description="Per category; withdrawal and investment count money leaving the wallets and may be negative in a window holding a capital release")
    net_flow: int = Field(..., description="deposit + income - withdrawal - investment")
    series: List[DailyPoint]


class PlatformSummaryResponse(BaseModel):
    """Admin dashboard figures"""
    users: int
    shops: Dict[str, int]
    active_investments: int
    active_capital: int
    profit_paid: int
    pending_withdrawals: int
    pending_withdrawal_amount: int
    pending_transfers: int
    retained_fees: int
    wallet_totals: Dict[str, int]
