"""
Daily job tests - RQ job functions and the cron runner script
"""

import importlib.util
import json
import re
from datetime import date
from pathlib import Path

import pytest

from shopvest.services import investments
from shopvest.workers.jobs import (
    generate_trace_id,
    parse_as_of_date,
    run_daily_accrual,
    run_maturity_check,
    run_wallet_reconciliation,
)

START = date(2026, 1, 1)


def _load_runner():
    path = Path(__file__).resolve().parent.parent / "scripts" / "run_daily_jobs.py"
    spec = importlib.util.spec_from_file_location("run_daily_jobs", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def open_investment(session_factory, make_user, make_shop):
    """10000 at 1.50% for 30 days, started on START"""
    db = session_factory()
    try:
        return investments.open_investment(
            db, owner_id=make_user(main=10000), shop_id=make_shop(), capital=10000, today=START,
        ).id
    finally:
        db.close()


def test_parse_as_of_date():
    assert parse_as_of_date("2026-10-18") == date(2026, 10, 18)
    assert parse_as_of_date(date(2026, 1, 2)) == date(2026, 1, 2)
    assert isinstance(parse_as_of_date(None), date)
    with pytest.raises(ValueError, match="Expected YYYY-MM-DD"):
        parse_as_of_date("18/10/2026")


def test_trace_id_format():
    assert re.match(r"^job-accrual-20261018-[0-9a-f]{8}$", generate_trace_id("accrual", date(2026, 10, 18)))


def test_accrual_job(session_factory, open_investment):
    stats = run_daily_accrual("2026-01-04", session_factory=session_factory)
    assert stats["investments_found"] == 1
    assert stats["accrued_count"] == 1
    assert stats["accrued_amount"] == 450
    assert stats["trace_id"].startswith("job-accrual-20260104-")

    again = run_daily_accrual("2026-01-04", session_factory=session_factory)
    assert again["accrued_amount"] == 0
    assert again["skipped_count"] == 1


def test_maturity_job(session_factory, open_investment):
    assert run_maturity_check("2026-01-30", session_factory=session_factory)["matured_count"] == 0
    stats = run_maturity_check("2026-01-31", session_factory=session_factory)
    assert stats["due_found"] == 1
    assert stats["matured_count"] == 1


def test_reconciliation_job(session_factory, open_investment):
    stats = run_wallet_reconciliation(session_factory=session_factory)
    assert stats["drifted"] == 0
    assert stats["trace_id"].startswith("job-reconcile-")


def test_runner_script(session_factory, open_investment, capsys):
    runner = _load_runner()
    assert runner.main(["--as-of", "2026-01-05"], session_factory=session_factory) == 0

    output = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert output["as_of"] == "2026-01-05"
    assert output["exit_code"] == 0
    assert list(output["summary"]) == ["maturity", "accrual", "reconcile"]
    assert output["summary"]["accrual"]["accrued_amount"] == 600


def test_runner_script_single_job(session_factory, open_investment, capsys):
    runner = _load_runner()
    assert runner.main(["--as-of", "2026-01-02", "--job", "accrual"], session_factory=session_factory) == 0
    output = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert list(output["summary"]) == ["accrual"]


def test_runner_script_invalid_date(capsys):
    runner = _load_runner()
    assert runner.main(["--as-of", "not-a-date"]) == 1
    error = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert error["exit_code"] == 1
