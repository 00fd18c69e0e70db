"""
System settings service - versioned runtime configuration

Rules:
- get_current_settings() is called at the start of every gated operation;
  there is no process-wide cache, so an admin change applies to the very
  next request.
- update_system_settings() never modifies a row: it inserts version N+1
  with the previous values plus the requested changes.
- Before any version exists, the defaults from process settings apply and
  are reported as version 0.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shopvest.core.system.models import SystemSettings
from shopvest.infrastructure.settings import get_settings
from shopvest.services.exceptions import ValidationError, ConcurrencyConflict
from shopvest.utils.money import to_decimal
from shopvest.utils.resource_locks import unit_of_work, settings_key

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "maintenance_mode",
    "maintenance_message",
    "min_withdrawal",
    "max_withdrawal",
    "withdrawal_fee_rate",
    "transfer_fee_rate",
    "default_profit_percentage",
    "min_deposit",
)


def default_settings() -> SystemSettings:
    """Transient version 0 built from process configuration (never persisted)"""
    settings = get_settings()
    return SystemSettings(
        version=0,
        maintenance_mode=False,
        maintenance_message=None,
        min_withdrawal=settings.DEFAULT_MIN_WITHDRAWAL,
        max_withdrawal=settings.DEFAULT_MAX_WITHDRAWAL,
        withdrawal_fee_rate=to_decimal(settings.DEFAULT_WITHDRAWAL_FEE_RATE),
        transfer_fee_rate=to_decimal(settings.DEFAULT_TRANSFER_FEE_RATE),
        default_profit_percentage=to_decimal(settings.DEFAULT_PROFIT_PERCENTAGE),
        min_deposit=settings.DEFAULT_MIN_DEPOSIT,
    )


def get_current_settings(db: Session) -> SystemSettings:
    """Latest settings version (or the transient defaults)"""
    latest = db.execute(
        select(SystemSettings).order_by(SystemSettings.version.desc()).limit(1)
    ).scalar_one_or_none()
    return latest if latest is not None else default_settings()


def list_settings_history(db: Session, limit: int = 50) -> List[SystemSettings]:
    return list(
        db.execute(
            select(SystemSettings).order_by(SystemSettings.version.desc()).limit(limit)
        ).scalars()
    )


def _validate(values: Dict[str, Any]) -> None:
    if values["min_withdrawal"] < 0:
        raise ValidationError("min_withdrawal must be >= 0")
    if values["max_withdrawal"] < values["min_withdrawal"]:
        raise ValidationError("max_withdrawal must be >= min_withdrawal")
    for field in ("withdrawal_fee_rate", "transfer_fee_rate"):
        if not (Decimal("0") <= values[field] < Decimal("1")):
            raise ValidationError(f"{field} must be in [0, 1)")
    if not (Decimal("0") <= values["default_profit_percentage"] <= Decimal("100")):
        raise ValidationError("default_profit_percentage must be between 0 and 100")
    if values["min_deposit"] < 0:
        raise ValidationError("min_deposit must be >= 0")


def update_system_settings(
    db: Session,
    *,
    changes: Dict[str, Any],
    updated_by: Optional[UUID] = None,
    change_note: Optional[str] = None,
) -> SystemSettings:
    """
    Write the next settings version.

    Args:
        changes: Subset of EDITABLE_FIELDS; omitted fields keep their value

    Raises:
        ValidationError: unknown field or inconsistent values
    """
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown settings fields: {', '.join(sorted(unknown))}")

    with unit_of_work(db, settings_key()):
        current = get_current_settings(db)
        values = {field: getattr(current, field) for field in EDITABLE_FIELDS}
        for field, value in changes.items():
            if field in ("withdrawal_fee_rate", "transfer_fee_rate", "default_profit_percentage"):
                value = to_decimal(value)
            values[field] = value
        _validate(values)

        new_version = SystemSettings(
            version=current.version + 1,
            updated_by=updated_by,
            change_note=change_note,
            **values,
        )
        db.add(new_version)
        try:
            db.flush()
        except IntegrityError as exc:
            raise ConcurrencyConflict("System settings were changed concurrently, retry") from exc

        version_number = new_version.version

    logger.info(
        "System settings updated",
        extra={"version": version_number, "fields": sorted(changes), "updated_by": updated_by},
    )
    return new_version
