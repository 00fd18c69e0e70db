"""
Shop models - Shop (virtual shop offer) and SlotReservation
"""

import enum

from sqlalchemy import (
    Column, String, Text, Integer, BigInteger, Numeric, Uuid, DateTime, ForeignKey, CheckConstraint, Index,
)
from sqlalchemy.orm import relationship

from shopvest.core.common.base_model import BaseModel


class ShopStatus(str, enum.Enum):
    """Shop status enum"""
    ACTIVE = "ACTIVE"  # Open for investment
    INACTIVE = "INACTIVE"  # Temporarily hidden by an admin
    CLOSED = "CLOSED"  # Permanently closed
    FULLY_FUNDED = "FULLY_FUNDED"  # Engine-managed: filled_slots == total_slots


class ReservationStatus(str, enum.Enum):
    """Slot reservation status enum"""
    HELD = "HELD"  # Slot taken, investment not yet created
    CONFIRMED = "CONFIRMED"  # Investment created
    RELEASED = "RELEASED"  # Compensated, slot returned to the shop


class Shop(BaseModel):
    """
    Shop model - platform-owned investment product with fixed capacity

    Invariants (enforced by CHECK constraints and the capacity manager):
    - 0 <= filled_slots <= total_slots
    - min_amount <= max_amount
    - status becomes FULLY_FUNDED in the same transaction that fills the last slot
    """

    __tablename__ = "shops"

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    daily_percent = Column(Numeric(5, 2), nullable=False)  # Percent of capital paid per day
    duration_days = Column(Integer, nullable=False)
    min_amount = Column(BigInteger, nullable=False)
    max_amount = Column(BigInteger, nullable=False)
    total_slots = Column(Integer, nullable=False)
    filled_slots = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default=ShopStatus.ACTIVE.value, index=True)

    reservations = relationship("SlotReservation", back_populates="shop", lazy="select")

    __table_args__ = (
        CheckConstraint('daily_percent >= 0 AND daily_percent <= 100', name='check_shops_daily_percent'),
        CheckConstraint('duration_days > 0', name='check_shops_duration_positive'),
        CheckConstraint('min_amount > 0', name='check_shops_min_amount_positive'),
        CheckConstraint('min_amount <= max_amount', name='check_shops_amount_bounds'),
        CheckConstraint('total_slots > 0', name='check_shops_total_slots_positive'),
        CheckConstraint('filled_slots >= 0 AND filled_slots <= total_slots', name='check_shops_filled_slots'),
    )

    @property
    def available_slots(self) -> int:
        return self.total_slots - self.filled_slots


class SlotReservation(BaseModel):
    """
    SlotReservation model - one held slot on a shop

    Created by reserve() together with the filled_slots increment; confirmed
    in the same transaction that creates the investment, or released.
    """

    __tablename__ = "slot_reservations"

    shop_id = Column(Uuid, ForeignKey("shops.id", name="fk_slot_reservations_shop_id"), nullable=False, index=True)
    owner_id = Column(Uuid, ForeignKey("users.id", name="fk_slot_reservations_owner_id"), nullable=False, index=True)
    slots = Column(Integer, nullable=False, default=1)
    status = Column(String(20), nullable=False, default=ReservationStatus.HELD.value, index=True)
    investment_id = Column(Uuid, nullable=True, unique=True)
    released_at = Column(DateTime(timezone=True), nullable=True)

    shop = relationship("Shop", back_populates="reservations")

    __table_args__ = (
        CheckConstraint('slots > 0', name='check_slot_reservations_slots_positive'),
        Index('ix_slot_reservations_shop_status', 'shop_id', 'status'),
    )
