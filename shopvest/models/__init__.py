"""
Models registry for Alembic - Import all models here to ensure Base.metadata is complete

Import order follows foreign key dependencies:
1. Base and users
2. Ledger and settings (depend on users)
3. Shops, investments, payment requests
"""

from shopvest.infrastructure.database import Base

from shopvest.core.users.models import User, UserStatus, KYCStatus
from shopvest.core.system.models import SystemSettings
from shopvest.core.ledger.models import (
    LedgerEntry, LedgerCategory, LedgerEntryStatus, WalletBalance, WalletKind,
)
from shopvest.core.shops.models import Shop, ShopStatus, SlotReservation, ReservationStatus
from shopvest.core.investments.models import Investment, InvestmentStatus, ProfitAccrual
from shopvest.core.payments.models import (
    WithdrawalRequest, WithdrawalKind, WithdrawalStatus, PayoutMethod,
    TransferRequest, TransferKind, TransferStatus,
    DepositIntent, DepositStatus,
)

__all__ = [
    "Base",
    "User", "UserStatus", "KYCStatus",
    "SystemSettings",
    "LedgerEntry", "LedgerCategory", "LedgerEntryStatus", "WalletBalance", "WalletKind",
    "Shop", "ShopStatus", "SlotReservation", "ReservationStatus",
    "Investment", "InvestmentStatus", "ProfitAccrual",
    "WithdrawalRequest", "WithdrawalKind", "WithdrawalStatus", "PayoutMethod",
    "TransferRequest", "TransferKind", "TransferStatus",
    "DepositIntent", "DepositStatus",
]
