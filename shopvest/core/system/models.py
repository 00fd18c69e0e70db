"""
SystemSettings model - versioned runtime configuration

Every admin change inserts a new row with the next version number; rows are
never updated. Gated operations read the latest version when they start and
store that version on the request they create, so a request can always be
replayed against the exact limits and fee rates that applied to it.
"""

from sqlalchemy import (
    Column, Integer, BigInteger, Boolean, String, Text, Numeric, Uuid, CheckConstraint, UniqueConstraint,
)

from shopvest.core.common.base_model import BaseModel


class SystemSettings(BaseModel):
    """One immutable version of the platform settings"""

    __tablename__ = "system_settings"

    version = Column(Integer, nullable=False, index=True)

    maintenance_mode = Column(Boolean, nullable=False, default=False)
    maintenance_message = Column(Text, nullable=True)

    min_withdrawal = Column(BigInteger, nullable=False)
    max_withdrawal = Column(BigInteger, nullable=False)
    withdrawal_fee_rate = Column(Numeric(6, 4), nullable=False)
    transfer_fee_rate = Column(Numeric(6, 4), nullable=False)
    default_profit_percentage = Column(Numeric(5, 2), nullable=False)
    min_deposit = Column(BigInteger, nullable=False)

    updated_by = Column(Uuid, nullable=True)
    change_note = Column(String(255), nullable=True)

    __table_args__ = (
        UniqueConstraint('version', name='uq_system_settings_version'),
        CheckConstraint('min_withdrawal >= 0', name='check_system_settings_min_withdrawal'),
        CheckConstraint('max_withdrawal >= min_withdrawal', name='check_system_settings_withdrawal_bounds'),
        CheckConstraint('withdrawal_fee_rate >= 0 AND withdrawal_fee_rate < 1', name='check_system_settings_withdrawal_fee_rate'),
        CheckConstraint('transfer_fee_rate >= 0 AND transfer_fee_rate < 1', name='check_system_settings_transfer_fee_rate'),
        CheckConstraint('default_profit_percentage >= 0 AND default_profit_percentage <= 100', name='check_system_settings_profit_percentage'),
        CheckConstraint('min_deposit >= 0', name='check_system_settings_min_deposit'),
    )
