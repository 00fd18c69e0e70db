"""
Shared validation pipeline for withdrawals and transfers

Evaluated in this fixed order, first failure wins:
1. maintenance gate  -> SystemUnavailable
2. KYC gate          -> KYCRequired (status must be APPROVED)
3. amount bounds     -> BelowMinimum / AboveMaximum (min/max withdrawal)
4. kind-specific checks (in the calling service)
5. fee computation   -> fee = floor(amount * rate), net = amount - fee
"""

import logging
from decimal import Decimal
from typing import Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from shopvest.core.system.models import SystemSettings
from shopvest.core.users.models import KYCStatus
from shopvest.services.exceptions import AboveMaximum, BelowMinimum, KYCRequired, SystemUnavailable
from shopvest.services.users import get_kyc_status
from shopvest.utils.metrics import record_gate_rejection
from shopvest.utils.money import compute_fee

logger = logging.getLogger(__name__)


def _reject(error):
    record_gate_rejection(error.code)
    return error


def check_available(settings: SystemSettings) -> None:
    if settings.maintenance_mode:
        message = settings.maintenance_message or "The platform is under maintenance, please try again later"
        raise _reject(SystemUnavailable(message, details={"settings_version": settings.version}))


def check_kyc(db: Session, owner_id: UUID) -> None:
    status = get_kyc_status(db, owner_id)
    if status != KYCStatus.APPROVED:
        raise _reject(KYCRequired(
            "Identity verification must be approved before moving funds",
            details={"kyc_status": status.value},
        ))


def check_amount_bounds(amount: int, settings: SystemSettings) -> None:
    if amount < settings.min_withdrawal:
        raise _reject(BelowMinimum(
            f"Minimum amount is {settings.min_withdrawal}",
            details={"min_withdrawal": settings.min_withdrawal},
        ))
    if amount > settings.max_withdrawal:
        raise _reject(AboveMaximum(
            f"Maximum amount is {settings.max_withdrawal}",
            details={"max_withdrawal": settings.max_withdrawal},
        ))


def run_common_gates(db: Session, *, owner_id: UUID, amount: int, settings: SystemSettings) -> None:
    """Steps 1-3 of the pipeline"""
    check_available(settings)
    check_kyc(db, owner_id)
    check_amount_bounds(amount, settings)


def fee_for(amount: int, rate: Decimal) -> Tuple[int, int]:
    """Step 5: (fee, net)"""
    return compute_fee(amount, rate)
