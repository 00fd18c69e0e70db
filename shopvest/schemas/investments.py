"""
Investment API request/response schemas
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class OpenInvestmentRequest(BaseModel):
    """Request schema for buying into a shop"""
    shop_id: UUID = Field(..., description="Shop UUID")
    amount: int = Field(..., gt=0, description="Capital in minor units, debited from the MAIN wallet")

    class Config:
        json_schema_extra = {
            "example": {
                "shop_id": "123e4567-e89b-12d3-a456-426614174000",
                "amount": 50000,
            }
        }


class InvestmentResponse(BaseModel):
    """Investment with the shop terms it was bought with"""
    id: UUID
    shop_id: UUID
    shop_name: str
    daily_percent: Decimal
    duration_days: int
    capital: int
    daily_profit: int
    accrued_profit: int
    days_accrued: int
    start_date: date
    end_date: date
    status: str
    matured_at: Optional[datetime] = None
    capital_withdrawn_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
