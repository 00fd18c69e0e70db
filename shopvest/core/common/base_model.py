"""
Base model with common fields
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Uuid
from sqlalchemy.sql import func

from shopvest.infrastructure.database import Base


def utcnow() -> datetime:
    """Timezone-aware current UTC time (microsecond precision)"""
    return datetime.now(timezone.utc)


class BaseModel(Base):
    """
    Base model with common fields

    All models inherit from this base class and get:
    - id: UUID primary key
    - created_at: Timezone-aware timestamp, set client-side so that rows
      written in the same second keep a stable order
    - updated_at: Timezone-aware timestamp (nullable)

    Note: LedgerEntry overrides updated_at to be None (rows are never updated).
    """
    __abstract__ = True

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow, nullable=True)
