"""
Analytics aggregator tests - category totals, net flow, history and export
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import update

from shopvest.core.ledger.models import LedgerCategory, LedgerEntry, LedgerEntryStatus, WalletKind
from shopvest.services import analytics, deposits, investments, withdrawals
from shopvest.services.exceptions import ValidationError
from shopvest.services.settlement import on_settlement_callback
from shopvest.services.withdrawals import CapitalWithdrawal, ProfitWithdrawal


@pytest.fixture
def activity(db_session, make_user, make_shop):
    """
    deposit 50000 (fixture) + 20000 (callback), invest 30000,
    withdraw 5000 of the 8000 profit, one pending deposit of 7000
    """
    owner_id = make_user(main=50000, profit=8000)
    shop_id = make_shop()

    intent = deposits.initiate_deposit(db_session, owner_id=owner_id, amount=20000)
    on_settlement_callback(db_session, intent.id, "completed")
    deposits.initiate_deposit(db_session, owner_id=owner_id, amount=7000)

    investments.open_investment(db_session, owner_id=owner_id, shop_id=shop_id, capital=30000)
    withdrawals.request_withdrawal(
        db_session, owner_id=owner_id, request=ProfitWithdrawal(amount=5000, method="VELVPAY"),
    )
    return owner_id


def _today():
    return datetime.now(timezone.utc).date()


def test_totals_count_completed_entries_only(db_session, activity):
    totals = analytics.totals_by_category(db_session, activity)
    assert totals == {
        "deposit": 70000,
        "withdrawal": 5000,
        "investment": 30000,
        "income": 8000,
        "transfer": 0,
        "adjustment": 0,
    }
    # 70000 + 8000 - 5000 - 30000
    assert analytics.net_flow(totals) == 43000


def test_summary_window(db_session, activity):
    today = _today()
    summary = analytics.get_analytics_summary(db_session, activity, today, today)
    assert summary["net_flow"] == 43000
    assert summary["series"] == [{"date": today, "net": 43000}]

    future = analytics.get_analytics_summary(db_session, activity, today + timedelta(days=1), today + timedelta(days=2))
    assert future["net_flow"] == 0
    assert future["series"] == []


def test_reversed_entries_cancel_out(db_session, activity):
    withdrawal = withdrawals.list_withdrawals(db_session, owner_id=activity)[0]
    withdrawals.reject_withdrawal(db_session, request_id=withdrawal.id)
    assert analytics.totals_by_category(db_session, activity)["withdrawal"] == 0


def test_inverted_window_is_rejected(db_session, make_user):
    with pytest.raises(ValidationError):
        analytics.get_analytics_summary(db_session, make_user(), date(2026, 2, 1), date(2026, 1, 1))


def test_list_transactions_filters_and_total(db_session, activity):
    items, total = analytics.list_transactions(db_session, activity, limit=3)
    assert total == 7
    assert len(items) == 3
    assert items[0].created_at >= items[-1].created_at

    pending, pending_total = analytics.list_transactions(db_session, activity, status=LedgerEntryStatus.PENDING)
    assert pending_total == 2
    assert {e.amount for e in pending} == {20000, 7000}

    profit, _ = analytics.list_transactions(db_session, activity, wallet_kind=WalletKind.PROFIT)
    assert sorted(e.amount for e in profit) == [-5000, 8000]

    deposits_only, deposit_total = analytics.list_transactions(db_session, activity, category=LedgerCategory.DEPOSIT)
    assert deposit_total == 4


def test_export_csv(db_session, activity):
    content = analytics.export_transactions_csv(db_session, activity, category=LedgerCategory.INVESTMENT)
    lines = content.strip().splitlines()
    assert lines[0] == "Type,Amount,Status,Date"
    assert len(lines) == 2
    assert lines[1].startswith("investment,-30000,completed,")


def test_platform_summary(db_session, activity, make_user):
    make_user()
    summary = analytics.platform_summary(db_session)

    assert summary["users"] == 2
    assert summary["shops"]["ACTIVE"] == 1
    assert summary["active_investments"] == 1
    assert summary["active_capital"] == 30000
    assert summary["profit_paid"] == 8000
    assert summary["pending_withdrawals"] == 1
    assert summary["pending_withdrawal_amount"] == 5000
    assert summary["retained_fees"] == 0
    assert summary["wallet_totals"] == {"MAIN": 40000, "INVESTMENT": 0, "PROFIT": 3000}


@pytest.fixture
def capital_release(db_session, make_user, make_shop):
    """
    20000 invested on 2026-01-01 (entries dated then), then 10000 of the
    capital withdrawn today at maturity (final accrual 9000 credited today)
    """
    owner_id = make_user(main=50000)
    investment = investments.open_investment(
        db_session, owner_id=owner_id, shop_id=make_shop(), capital=20000, today=date(2026, 1, 1),
    )
    end_date = investment.end_date
    db_session.execute(
        update(LedgerEntry.__table__).values(created_at=datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc))
    )
    db_session.commit()

    withdrawals.request_withdrawal(
        db_session,
        owner_id=owner_id,
        request=CapitalWithdrawal(investment_id=investment.id, amount=10000, method="VELVPAY"),
        today=end_date,
    )
    return owner_id


def test_capital_release_counts_once_in_window(db_session, capital_release):
    today = _today()
    totals = analytics.totals_by_category(db_session, capital_release, today, today)

    assert totals["withdrawal"] == 10000
    assert totals["investment"] == -10000
    assert totals["income"] == 9000
    assert totals["deposit"] == 0

    movement = sum(
        entry.amount
        for entry in analytics.list_transactions(db_session, capital_release, date_from=today, date_to=today)[0]
        if entry.status == LedgerEntryStatus.COMPLETED.value
    )
    assert analytics.net_flow(totals) == movement == 9000


def test_capital_release_over_full_history(db_session, capital_release):
    totals = analytics.totals_by_category(db_session, capital_release)

    assert totals["deposit"] == 50000
    assert totals["investment"] == 10000
    assert totals["withdrawal"] == 10000
    # 30000 MAIN + 9000 PROFIT, capital in flight excluded
    assert analytics.net_flow(totals) == 39000
