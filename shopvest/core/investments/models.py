"""
Investment models - Investment and ProfitAccrual
"""

import enum

from sqlalchemy import (
    Column, String, Integer, BigInteger, Numeric, Date, DateTime, Uuid, ForeignKey, CheckConstraint,
    UniqueConstraint, Index,
)
from sqlalchemy.orm import relationship

from shopvest.core.common.base_model import BaseModel


class InvestmentStatus(str, enum.Enum):
    """Investment lifecycle: ACTIVE -> MATURED -> CAPITAL_WITHDRAWN (terminal)"""
    ACTIVE = "ACTIVE"
    MATURED = "MATURED"
    CAPITAL_WITHDRAWN = "CAPITAL_WITHDRAWN"


class Investment(BaseModel):
    """
    Investment model - a user's capital placed in a shop

    The shop terms (name, daily_percent, duration_days) are copied at purchase
    time; later edits of the shop never change an open investment.

    accrued_profit after day N = floor(capital * daily_percent / 100) * N,
    with N capped at duration_days.
    """

    __tablename__ = "investments"

    owner_id = Column(Uuid, ForeignKey("users.id", name="fk_investments_owner_id"), nullable=False, index=True)
    shop_id = Column(Uuid, ForeignKey("shops.id", name="fk_investments_shop_id"), nullable=False, index=True)
    reservation_id = Column(Uuid, ForeignKey("slot_reservations.id", name="fk_investments_reservation_id"), nullable=True, unique=True)

    # Snapshot of shop terms
    shop_name = Column(String(255), nullable=False)
    daily_percent = Column(Numeric(5, 2), nullable=False)
    duration_days = Column(Integer, nullable=False)

    capital = Column(BigInteger, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False, index=True)

    accrued_profit = Column(BigInteger, nullable=False, default=0)
    days_accrued = Column(Integer, nullable=False, default=0)

    status = Column(String(20), nullable=False, default=InvestmentStatus.ACTIVE.value, index=True)
    matured_at = Column(DateTime(timezone=True), nullable=True)
    capital_withdrawn_at = Column(DateTime(timezone=True), nullable=True)

    shop = relationship("Shop", foreign_keys=[shop_id], lazy="select")
    accruals = relationship("ProfitAccrual", back_populates="investment", lazy="select", order_by="ProfitAccrual.accrual_date")

    __table_args__ = (
        CheckConstraint('capital > 0', name='check_investments_capital_positive'),
        CheckConstraint('accrued_profit >= 0', name='check_investments_accrued_profit'),
        CheckConstraint('days_accrued >= 0 AND days_accrued <= duration_days', name='check_investments_days_accrued'),
        CheckConstraint('end_date >= start_date', name='check_investments_dates'),
        Index('ix_investments_owner_status', 'owner_id', 'status'),
    )

    @property
    def daily_profit(self) -> int:
        """Profit credited per elapsed day, floored to minor units"""
        basis_points = int((self.daily_percent * 100).to_integral_value())
        return (self.capital * basis_points) // 10000


class ProfitAccrual(BaseModel):
    """
    ProfitAccrual model - idempotence record of one accrual run

    UNIQUE(investment_id, accrual_date): a retried run for the same day finds
    the row and does nothing.
    """

    __tablename__ = "profit_accruals"

    investment_id = Column(Uuid, ForeignKey("investments.id", name="fk_profit_accruals_investment_id"), nullable=False, index=True)
    accrual_date = Column(Date, nullable=False)
    day_number = Column(Integer, nullable=False)
    amount = Column(BigInteger, nullable=False)
    ledger_entry_id = Column(Uuid, ForeignKey("ledger_entries.id", name="fk_profit_accruals_ledger_entry_id"), nullable=True)

    investment = relationship("Investment", back_populates="accruals")

    __table_args__ = (
        UniqueConstraint('investment_id', 'accrual_date', name='uq_profit_accruals_investment_date'),
        CheckConstraint('amount > 0', name='check_profit_accruals_amount_positive'),
    )
