"""
Wallet manager tests - balances, overdraft protection, adjustments, reconciliation
"""

from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import func, select, update

from shopvest.core.ledger.models import LedgerCategory, LedgerEntry, WalletBalance, WalletKind
from shopvest.services import ledger, wallets
from shopvest.services.exceptions import InsufficientFunds, ValidationError
from shopvest.utils.resource_locks import unit_of_work, wallet_key


def test_new_user_has_zero_balances(db_session, make_user):
    user_id = make_user()
    assert wallets.get_wallet_balances(db_session, user_id) == {"MAIN": 0, "INVESTMENT": 0, "PROFIT": 0, "total": 0}


def test_credit_and_debit_update_balance_and_ledger(db_session, make_user):
    user_id = make_user()
    with unit_of_work(db_session, wallet_key(user_id, WalletKind.MAIN)):
        wallets.credit(db_session, user_id, WalletKind.MAIN, 10000, LedgerCategory.DEPOSIT)
        wallets.debit(db_session, user_id, WalletKind.MAIN, 2500, LedgerCategory.INVESTMENT)

    assert wallets.current_balance(db_session, user_id, WalletKind.MAIN) == 7500
    assert ledger.ledger_balance(db_session, user_id, WalletKind.MAIN) == 7500
    amounts = [e.amount for e in ledger.entries_for(db_session, user_id)]
    assert sorted(amounts) == [-2500, 10000]


def test_debit_more_than_balance_raises_and_changes_nothing(db_session, make_user):
    user_id = make_user(main=1000)

    with pytest.raises(InsufficientFunds) as exc_info:
        with unit_of_work(db_session, wallet_key(user_id, WalletKind.MAIN)):
            wallets.debit(db_session, user_id, WalletKind.MAIN, 1001, LedgerCategory.WITHDRAWAL)

    assert exc_info.value.details == {"wallet": "MAIN", "available": 1000, "required": 1001}
    assert wallets.current_balance(db_session, user_id, WalletKind.MAIN) == 1000
    entries = db_session.execute(select(func.count(LedgerEntry.id)).where(LedgerEntry.owner_id == user_id)).scalar_one()
    assert entries == 1


def test_debit_exact_balance_reaches_zero(db_session, make_user):
    user_id = make_user(profit=700)
    with unit_of_work(db_session, wallet_key(user_id, WalletKind.PROFIT)):
        wallets.debit(db_session, user_id, WalletKind.PROFIT, 700, LedgerCategory.WITHDRAWAL)
    assert wallets.current_balance(db_session, user_id, WalletKind.PROFIT) == 0


@pytest.mark.parametrize("amount", [0, -5, 10.0])
def test_credit_rejects_non_positive_or_fractional_amounts(db_session, make_user, amount):
    user_id = make_user()
    with pytest.raises(ValidationError):
        wallets.credit(db_session, user_id, WalletKind.MAIN, amount, LedgerCategory.DEPOSIT)


def test_invalid_wallet_kind(db_session, make_user):
    with pytest.raises(ValidationError):
        wallets.current_balance(db_session, make_user(), "SAVINGS")


def test_adjust_balance_records_adjustment(db_session, make_user):
    user_id = make_user(main=500)

    wallets.adjust_balance(db_session, owner_id=user_id, kind=WalletKind.MAIN, amount=300, reason="Goodwill credit")
    entry = wallets.adjust_balance(db_session, owner_id=user_id, kind=WalletKind.MAIN, amount=-200, reason="Correction")

    assert entry.amount == -200
    assert entry.category == LedgerCategory.ADJUSTMENT.value
    assert "Correction" in entry.description
    assert wallets.current_balance(db_session, user_id, WalletKind.MAIN) == 600


def test_adjust_balance_requires_reason_and_cannot_overdraw(db_session, make_user):
    user_id = make_user(main=100)
    with pytest.raises(ValidationError):
        wallets.adjust_balance(db_session, owner_id=user_id, kind=WalletKind.MAIN, amount=50, reason="  ")
    with pytest.raises(InsufficientFunds):
        wallets.adjust_balance(db_session, owner_id=user_id, kind=WalletKind.MAIN, amount=-101, reason="Too much")
    assert wallets.current_balance(db_session, user_id, WalletKind.MAIN) == 100


def test_reconcile_clean_then_reports_drift(db_session, make_user):
    user_id = make_user(main=1000, profit=50)
    other_id = make_user(main=10)

    stats = wallets.reconcile_wallets(db_session)
    assert stats["checked"] == 3
    assert stats["drifted"] == 0

    db_session.execute(
        update(WalletBalance)
        .where(WalletBalance.owner_id == user_id, WalletBalance.kind == WalletKind.MAIN.value)
        .values(balance=999)
    )
    db_session.commit()

    stats = wallets.reconcile_wallets(db_session)
    assert stats["drifted"] == 1
    assert stats["drift"] == [{"owner_id": user_id, "wallet_kind": "MAIN", "cached": 999, "ledger": 1000}]

    assert wallets.reconcile_wallets(db_session, owner_id=other_id)["drifted"] == 0


def test_platform_totals(db_session, make_user):
    make_user(main=1000, profit=50)
    make_user(main=10)
    assert wallets.platform_totals(db_session) == {"MAIN": 1010, "INVESTMENT": 0, "PROFIT": 50}


def _debit_in_own_session(session_factory, owner_id, amount) -> bool:
    db = session_factory()
    try:
        with unit_of_work(db, wallet_key(owner_id, WalletKind.MAIN)):
            wallets.debit(db, owner_id, WalletKind.MAIN, amount, LedgerCategory.WITHDRAWAL)
        return True
    except InsufficientFunds:
        return False
    finally:
        db.close()


def test_concurrent_debits_never_overdraw(db_session, session_factory, make_user):
    """
    Scenario:
    - MAIN balance 1000
    - 8 concurrent debits of 300
    - Expected: exactly 3 succeed, final balance 100, cache equals ledger
    """
    user_id = make_user(main=1000)
    db_session.commit()

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: _debit_in_own_session(session_factory, user_id, 300), range(8)))

    assert results.count(True) == 3
    assert wallets.current_balance(db_session, user_id, WalletKind.MAIN) == 100
    assert ledger.ledger_balance(db_session, user_id, WalletKind.MAIN) == 100
