"""
User model
"""

import enum

from sqlalchemy import Column, String

from shopvest.core.common.base_model import BaseModel


class UserStatus(str, enum.Enum):
    """User status enum"""
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"


class KYCStatus(str, enum.Enum):
    """
    Verification status reported by the external KYC collaborator.

    Only APPROVED users may withdraw or transfer funds.
    """
    NOT_SUBMITTED = "NOT_SUBMITTED"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class User(BaseModel):
    """User model"""

    __tablename__ = "users"

    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default=UserStatus.ACTIVE.value)
    kyc_status = Column(String(20), nullable=False, default=KYCStatus.NOT_SUBMITTED.value, index=True)
