"""
Shop API request/response schemas
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from shopvest.core.shops.models import ShopStatus


class ShopResponse(BaseModel):
    """Shop listing as shown to investors and admins"""
    id: UUID
    name: str
    description: Optional[str] = None
    daily_percent: Decimal = Field(..., description="Percent of capital paid as profit per day")
    duration_days: int
    min_amount: int
    max_amount: int
    total_slots: int
    filled_slots: int
    available_slots: int
    status: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CreateShopRequest(BaseModel):
    """Admin request to create a shop"""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    daily_percent: Optional[Decimal] = Field(
        default=None, ge=0, le=100,
        description="Defaults to the default profit percentage of the current system settings",
    )
    duration_days: int = Field(..., gt=0)
    min_amount: int = Field(..., gt=0)
    max_amount: int = Field(..., gt=0)
    total_slots: int = Field(..., gt=0)
    status: ShopStatus = ShopStatus.ACTIVE

    @field_validator('max_amount')
    @classmethod
    def validate_max_amount(cls, v: int, info) -> int:
        """Ensure max_amount >= min_amount"""
        min_amount = info.data.get('min_amount')
        if min_amount is not None and v < min_amount:
            raise ValueError("max_amount must be greater than or equal to min_amount")
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Corner Bakery",
                "description": "Neighbourhood bakery expansion",
                "daily_percent": "1.50",
                "duration_days": 30,
                "min_amount": 10000,
                "max_amount": 500000,
                "total_slots": 20,
            }
        }


class UpdateShopRequest(BaseModel):
    """Admin request to edit shop terms (only provided fields change)"""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    daily_percent: Optional[Decimal] = Field(default=None, ge=0, le=100)
    duration_days: Optional[int] = Field(default=None, gt=0)
    min_amount: Optional[int] = Field(default=None, gt=0)
    max_amount: Optional[int] = Field(default=None, gt=0)
    total_slots: Optional[int] = Field(default=None, gt=0)


class ShopStatusRequest(BaseModel):
    status: ShopStatus
