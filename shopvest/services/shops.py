"""
Shop capacity manager and shop administration

Rules:
- reserve() checks status and capacity and increments filled_slots in the
  same transaction, under the shop key and a FOR UPDATE row lock; two
  concurrent reservations that together exceed capacity cannot both succeed
- filling the last slot flips the shop to FULLY_FUNDED in that same step
- release() is the compensating action for a HELD reservation; releasing an
  already RELEASED reservation is a no-op
- FULLY_FUNDED is engine-managed; admins set ACTIVE / INACTIVE / CLOSED
- a shop created without daily_percent uses the settings' default profit
  percentage; afterwards the shop's own rate is authoritative
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from shopvest.core.common.base_model import utcnow
from shopvest.core.shops.models import Shop, ShopStatus, SlotReservation, ReservationStatus
from shopvest.services.exceptions import CapacityExceeded, NotFound, ShopNotActive, ValidationError
from shopvest.services.system_settings import get_current_settings
from shopvest.utils.metrics import record_capacity_rejection
from shopvest.utils.money import to_decimal
from shopvest.utils.resource_locks import hold_locks, shop_key, unit_of_work

logger = logging.getLogger(__name__)

ADMIN_STATUSES = (ShopStatus.ACTIVE, ShopStatus.INACTIVE, ShopStatus.CLOSED)
EDITABLE_FIELDS = ("name", "description", "daily_percent", "duration_days", "min_amount", "max_amount", "total_slots")


def get_shop(db: Session, shop_id: UUID) -> Shop:
    shop = db.get(Shop, shop_id)
    if shop is None:
        raise NotFound(f"Shop {shop_id} not found")
    return shop


def _locked_shop(db: Session, shop_id: UUID) -> Shop:
    hold_locks(db, shop_key(shop_id))
    shop = db.execute(select(Shop).where(Shop.id == shop_id).with_for_update()).scalar_one_or_none()
    if shop is None:
        raise NotFound(f"Shop {shop_id} not found")
    return shop


def list_shops(
    db: Session,
    *,
    status: Optional[ShopStatus] = None,
    search: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
) -> List[Shop]:
    stmt = select(Shop).order_by(Shop.created_at.desc())
    if status is not None:
        stmt = stmt.where(Shop.status == ShopStatus(status).value)
    if search:
        pattern = f"%{search.lower()}%"
        stmt = stmt.where(or_(func.lower(Shop.name).like(pattern), func.lower(Shop.description).like(pattern)))
    return list(db.execute(stmt.limit(limit).offset(offset)).scalars())


def _validate_terms(values: Dict[str, Any]) -> None:
    if not values.get("name") or not str(values["name"]).strip():
        raise ValidationError("Shop name is required")
    if not (Decimal("0") <= values["daily_percent"] <= Decimal("100")):
        raise ValidationError("daily_percent must be between 0 and 100")
    if values["duration_days"] <= 0:
        raise ValidationError("duration_days must be positive")
    if values["min_amount"] <= 0:
        raise ValidationError("min_amount must be positive")
    if values["min_amount"] > values["max_amount"]:
        raise ValidationError("min_amount must not exceed max_amount")
    if values["total_slots"] <= 0:
        raise ValidationError("total_slots must be positive")


def create_shop(
    db: Session,
    *,
    name: str,
    duration_days: int,
    min_amount: int,
    max_amount: int,
    total_slots: int,
    daily_percent: Optional[Decimal] = None,
    description: Optional[str] = None,
    status: ShopStatus = ShopStatus.ACTIVE,
) -> Shop:
    """Create a shop. daily_percent falls back to the default profit percentage."""
    status = ShopStatus(status)
    if status not in ADMIN_STATUSES:
        raise ValidationError(f"Shop cannot be created with status {status.value}")

    if daily_percent is None:
        daily_percent = get_current_settings(db).default_profit_percentage

    values = {
        "name": name,
        "description": description,
        "daily_percent": to_decimal(daily_percent),
        "duration_days": duration_days,
        "min_amount": min_amount,
        "max_amount": max_amount,
        "total_slots": total_slots,
    }
    _validate_terms(values)

    shop = Shop(filled_slots=0, status=status.value, **values)
    db.add(shop)
    db.commit()
    logger.info("Shop created", extra={"shop_id": str(shop.id), "shop_name": name, "total_slots": total_slots})
    return shop


def update_shop(db: Session, *, shop_id: UUID, changes: Dict[str, Any]) -> Shop:
    """
    Edit shop terms. Open investments keep the terms they were bought with.

    total_slots may not drop below filled_slots.
    """
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown shop fields: {', '.join(sorted(unknown))}")

    with unit_of_work(db, shop_key(shop_id)):
        shop = _locked_shop(db, shop_id)
        values = {field: getattr(shop, field) for field in EDITABLE_FIELDS}
        values.update(changes)
        values["daily_percent"] = to_decimal(values["daily_percent"])
        _validate_terms(values)
        if values["total_slots"] < shop.filled_slots:
            raise ValidationError("total_slots cannot be lower than filled_slots")

        for field, value in values.items():
            setattr(shop, field, value)
        _sync_funding_status(shop)
        db.flush()

    logger.info("Shop updated", extra={"shop_id": str(shop_id), "fields": sorted(changes)})
    return shop


def set_shop_status(db: Session, *, shop_id: UUID, status: ShopStatus) -> Shop:
    """Admin status toggle (ACTIVE / INACTIVE / CLOSED)"""
    status = ShopStatus(status)
    if status not in ADMIN_STATUSES:
        raise ValidationError("FULLY_FUNDED is set by the engine, not by admins")

    with unit_of_work(db, shop_key(shop_id)):
        shop = _locked_shop(db, shop_id)
        previous = shop.status
        shop.status = status.value
        _sync_funding_status(shop)
        new_status = shop.status

    logger.info("Shop status changed", extra={"shop_id": str(shop_id), "from": previous, "to": new_status})
    return shop


def _sync_funding_status(shop: Shop) -> None:
    if shop.status == ShopStatus.ACTIVE.value and shop.filled_slots >= shop.total_slots:
        shop.status = ShopStatus.FULLY_FUNDED.value
    elif shop.status == ShopStatus.FULLY_FUNDED.value and shop.filled_slots < shop.total_slots:
        shop.status = ShopStatus.ACTIVE.value


def reserve(db: Session, shop_id: UUID, owner_id: UUID, slots: int = 1) -> UUID:
    """
    Take ``slots`` on a shop and return the reservation id. Caller MUST commit.

    Raises:
        ShopNotActive: status is INACTIVE or CLOSED
        CapacityExceeded: shop is FULLY_FUNDED or filled + slots > total
    """
    if slots <= 0:
        raise ValidationError("slots must be positive")

    shop = _locked_shop(db, shop_id)

    if shop.status == ShopStatus.FULLY_FUNDED.value:
        record_capacity_rejection()
        raise CapacityExceeded(f"Shop {shop.name} is fully funded", details={"shop_id": str(shop_id)})
    if shop.status != ShopStatus.ACTIVE.value:
        raise ShopNotActive(f"Shop {shop.name} is not accepting investments", details={"status": shop.status})
    if shop.filled_slots + slots > shop.total_slots:
        record_capacity_rejection()
        raise CapacityExceeded(
            f"Shop {shop.name} has {shop.available_slots} slot(s) left, {slots} requested",
            details={"shop_id": str(shop_id), "available_slots": shop.available_slots},
        )

    shop.filled_slots = shop.filled_slots + slots
    _sync_funding_status(shop)

    reservation = SlotReservation(
        shop_id=shop.id,
        owner_id=owner_id,
        slots=slots,
        status=ReservationStatus.HELD.value,
    )
    db.add(reservation)
    db.flush()

    logger.info(
        "Slot reserved",
        extra={
            "shop_id": str(shop_id),
            "reservation_id": str(reservation.id),
            "filled_slots": shop.filled_slots,
            "total_slots": shop.total_slots,
            "shop_status": shop.status,
        },
    )
    return reservation.id


def confirm(db: Session, reservation_id: UUID, investment_id: UUID) -> SlotReservation:
    """Attach the created investment to its reservation. Caller MUST commit."""
    reservation = db.get(SlotReservation, reservation_id)
    if reservation is None:
        raise NotFound(f"Reservation {reservation_id} not found")
    if reservation.status != ReservationStatus.HELD.value:
        raise ValidationError(f"Reservation {reservation_id} is {reservation.status}, expected HELD")
    reservation.status = ReservationStatus.CONFIRMED.value
    reservation.investment_id = investment_id
    db.flush()
    return reservation


def release(db: Session, reservation_id: UUID) -> SlotReservation:
    """
    Give a HELD reservation's slots back to the shop. Caller MUST commit.

    Idempotent: a RELEASED reservation is returned unchanged.
    """
    reservation = db.get(SlotReservation, reservation_id)
    if reservation is None:
        raise NotFound(f"Reservation {reservation_id} not found")

    shop = _locked_shop(db, reservation.shop_id)
    db.refresh(reservation)

    if reservation.status == ReservationStatus.RELEASED.value:
        return reservation
    if reservation.status != ReservationStatus.HELD.value:
        raise ValidationError(f"Reservation {reservation_id} is {reservation.status} and cannot be released")

    shop.filled_slots = shop.filled_slots - reservation.slots
    _sync_funding_status(shop)
    reservation.status = ReservationStatus.RELEASED.value
    reservation.released_at = utcnow()
    db.flush()

    logger.warning(
        "Slot reservation released",
        extra={"shop_id": str(shop.id), "reservation_id": str(reservation_id), "filled_slots": shop.filled_slots},
    )
    return reservation
