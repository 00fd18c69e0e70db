"""
Shop capacity manager tests
"""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from shopvest.core.shops.models import ReservationStatus, Shop, ShopStatus, SlotReservation
from shopvest.services import shops
from shopvest.services.exceptions import CapacityExceeded, ShopNotActive, ValidationError
from shopvest.services.system_settings import update_system_settings
from shopvest.utils.resource_locks import shop_key, unit_of_work


def _reserve(db, shop_id, owner_id):
    with unit_of_work(db, shop_key(shop_id)):
        return shops.reserve(db, shop_id, owner_id)


def test_create_shop_uses_default_profit_percentage(db_session):
    update_system_settings(db_session, changes={"default_profit_percentage": "2.25"})
    shop = shops.create_shop(
        db_session, name="Flower Stall", duration_days=10, min_amount=100, max_amount=1000, total_slots=3,
    )
    assert shop.daily_percent == Decimal("2.25")
    assert shop.status == ShopStatus.ACTIVE.value
    assert shop.available_slots == 3


def test_explicit_daily_percent_is_kept(db_session, make_shop):
    shop = shops.get_shop(db_session, make_shop(daily_percent=Decimal("0.75")))
    assert shop.daily_percent == Decimal("0.75")


@pytest.mark.parametrize("overrides", [
    {"min_amount": 5000, "max_amount": 1000},
    {"total_slots": 0},
    {"duration_days": 0},
    {"daily_percent": Decimal("101")},
    {"name": " "},
])
def test_create_shop_validates_terms(db_session, overrides):
    values = dict(name="Kiosk", daily_percent=Decimal("1"), duration_days=10, min_amount=100, max_amount=1000, total_slots=2)
    values.update(overrides)
    with pytest.raises(ValidationError):
        shops.create_shop(db_session, **values)


def test_create_shop_cannot_start_fully_funded(db_session):
    with pytest.raises(ValidationError):
        shops.create_shop(
            db_session, name="Kiosk", duration_days=10, min_amount=100, max_amount=1000, total_slots=2,
            status=ShopStatus.FULLY_FUNDED,
        )


def test_reserving_last_slot_marks_shop_fully_funded(db_session, make_user, make_shop):
    shop_id = make_shop(total_slots=2)
    first, second, third = make_user(), make_user(), make_user()
    _reserve(db_session, shop_id, first)
    assert shops.get_shop(db_session, shop_id).status == ShopStatus.ACTIVE.value

    _reserve(db_session, shop_id, second)
    shop = shops.get_shop(db_session, shop_id)
    assert shop.filled_slots == 2
    assert shop.status == ShopStatus.FULLY_FUNDED.value

    with pytest.raises(CapacityExceeded):
        _reserve(db_session, shop_id, third)
    assert shops.get_shop(db_session, shop_id).filled_slots == 2


def test_reserve_on_inactive_shop(db_session, make_user, make_shop):
    shop_id = make_shop()
    shops.set_shop_status(db_session, shop_id=shop_id, status=ShopStatus.INACTIVE)
    with pytest.raises(ShopNotActive):
        _reserve(db_session, shop_id, make_user())


def test_release_returns_slot_and_is_idempotent(db_session, make_user, make_shop):
    shop_id = make_shop(total_slots=1)
    reservation_id = _reserve(db_session, shop_id, make_user())
    assert shops.get_shop(db_session, shop_id).status == ShopStatus.FULLY_FUNDED.value

    with unit_of_work(db_session, shop_key(shop_id)):
        shops.release(db_session, reservation_id)
    with unit_of_work(db_session, shop_key(shop_id)):
        shops.release(db_session, reservation_id)

    shop = shops.get_shop(db_session, shop_id)
    assert shop.filled_slots == 0
    assert shop.status == ShopStatus.ACTIVE.value
    assert db_session.get(SlotReservation, reservation_id).status == ReservationStatus.RELEASED.value


def test_update_shop_cannot_drop_below_filled_slots(db_session, make_user, make_shop):
    shop_id = make_shop(total_slots=3)
    _reserve(db_session, shop_id, make_user())
    _reserve(db_session, shop_id, make_user())

    with pytest.raises(ValidationError):
        shops.update_shop(db_session, shop_id=shop_id, changes={"total_slots": 1})

    shop = shops.update_shop(db_session, shop_id=shop_id, changes={"total_slots": 2, "name": "Renamed"})
    assert shop.name == "Renamed"
    assert shop.status == ShopStatus.FULLY_FUNDED.value


def test_admin_cannot_set_fully_funded(db_session, make_shop):
    with pytest.raises(ValidationError):
        shops.set_shop_status(db_session, shop_id=make_shop(), status=ShopStatus.FULLY_FUNDED)


def test_list_shops_filters_status_and_search(db_session, make_shop):
    make_shop(name="Corner Bakery")
    closed_id = make_shop(name="Night Market Stall")
    shops.set_shop_status(db_session, shop_id=closed_id, status=ShopStatus.CLOSED)

    active = shops.list_shops(db_session, status=ShopStatus.ACTIVE)
    assert [s.name for s in active] == ["Corner Bakery"]
    assert [s.name for s in shops.list_shops(db_session, search="market")] == ["Night Market Stall"]


def _reserve_in_own_session(session_factory, shop_id, owner_id) -> str:
    db = session_factory()
    try:
        _reserve(db, shop_id, owner_id)
        return "reserved"
    except CapacityExceeded:
        return "full"
    finally:
        db.close()


def test_concurrent_reservations_never_exceed_capacity(db_session, session_factory, make_user, make_shop):
    """
    Scenario:
    - Shop with 3 slots
    - 10 users reserve concurrently
    - Expected: exactly 3 reservations, filled_slots == total_slots
    """
    shop_id = make_shop(total_slots=3)
    users = [make_user() for _ in range(10)]
    db_session.commit()

    with ThreadPoolExecutor(max_workers=10) as pool:
        results = list(pool.map(lambda user_id: _reserve_in_own_session(session_factory, shop_id, user_id), users))

    assert results.count("reserved") == 3
    assert results.count("full") == 7
    shop = db_session.get(Shop, shop_id)
    assert shop.filled_slots == 3
    assert shop.status == ShopStatus.FULLY_FUNDED.value
