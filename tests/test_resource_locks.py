"""
Resource lock registry tests - ordering, reentrancy, timeout, release
"""

import threading
from uuid import uuid4

import pytest
from sqlalchemy import text

from shopvest.core.ledger.models import WalletKind
from shopvest.services.exceptions import ConcurrencyConflict
from shopvest.utils.resource_locks import (
    ResourceLockRegistry,
    hold_locks,
    investment_key,
    registry,
    request_key,
    settings_key,
    shop_key,
    unit_of_work,
    wallet_key,
)


def test_keys_sort_in_global_order():
    owner = uuid4()
    keys = [settings_key(), request_key(uuid4()), investment_key(uuid4()), shop_key(uuid4()), wallet_key(owner, WalletKind.MAIN)]
    assert [k.resource for k in sorted(keys)] == ["wallet", "shop", "investment", "request", "settings"]


def test_wallet_key_accepts_enum_or_string():
    owner = uuid4()
    assert wallet_key(owner, WalletKind.PROFIT) == wallet_key(owner, "PROFIT")


def test_acquire_is_reentrant_and_deduplicated():
    locks = ResourceLockRegistry()
    owner = object()
    key = shop_key(uuid4())

    assert locks.acquire(owner, [key, key], timeout=0.05) == [key]
    assert locks.acquire(owner, [key], timeout=0.05) == []
    assert locks.held_by(owner) == [key]

    locks.release_all(owner)
    assert locks.held_by(owner) == []


def test_timeout_raises_retryable_conflict():
    locks = ResourceLockRegistry()
    first, second = object(), object()
    wallet = wallet_key(uuid4(), WalletKind.MAIN)
    shop = shop_key(uuid4())
    locks.acquire(first, [shop], timeout=0.05)

    with pytest.raises(ConcurrencyConflict) as exc_info:
        locks.acquire(second, [wallet, shop], timeout=0.05)
    assert exc_info.value.retryable is True
    assert exc_info.value.details == {"resource": "shop"}
    # Partial acquisitions are given back
    assert locks.held_by(second) == []


def test_waiter_proceeds_after_release():
    locks = ResourceLockRegistry()
    first, second = object(), object()
    key = request_key(uuid4())
    locks.acquire(first, [key], timeout=0.05)
    acquired = []

    waiter = threading.Thread(target=lambda: acquired.append(locks.acquire(second, [key], timeout=5)))
    waiter.start()
    locks.release_all(first)
    waiter.join(timeout=5)

    assert acquired == [[key]]
    assert locks.held_by(second) == [key]


def test_keys_released_when_transaction_ends(db_session):
    key = investment_key(uuid4())
    db_session.execute(text("SELECT 1"))
    hold_locks(db_session, key)
    assert registry.held_by(db_session) == [key]

    db_session.commit()
    assert registry.held_by(db_session) == []


def test_unit_of_work_releases_on_error(db_session):
    key = request_key(uuid4())
    with pytest.raises(RuntimeError):
        with unit_of_work(db_session, key):
            assert registry.held_by(db_session) == [key]
            raise RuntimeError("boom")
    assert registry.held_by(db_session) == []
