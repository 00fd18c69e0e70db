#!/usr/bin/env python3
"""
Daily jobs runner: maturity check, profit accrual, wallet reconciliation

Designed for cron (daily at 00:05 UTC); can be run manually to replay a
past date. Prints one JSON line per run; exit code 1 if any job reported
errors or drift.

Usage:
    # All jobs for today (UTC)
    python scripts/run_daily_jobs.py

    # Replay a specific date
    python scripts/run_daily_jobs.py --as-of 2026-10-18

    # A single job
    python scripts/run_daily_jobs.py --job accrual
"""

import argparse
import json
import sys
from typing import List, Optional

from shopvest.infrastructure.logging_config import setup_logging
from shopvest.infrastructure.settings import get_settings
from shopvest.workers.jobs import (
    parse_as_of_date,
    run_daily_accrual,
    run_maturity_check,
    run_wallet_reconciliation,
)

# Maturity first so the final accrual of a maturing investment happens there
JOBS = {
    "maturity": run_maturity_check,
    "accrual": run_daily_accrual,
    "reconcile": run_wallet_reconciliation,
}


def _failed(name: str, summary: dict) -> bool:
    if name == "reconcile":
        return summary.get("drifted", 0) > 0
    return summary.get("errors_count", 0) > 0


def main(argv: Optional[List[str]] = None, session_factory=None) -> int:
    parser = argparse.ArgumentParser(
        description="Run the daily engine jobs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--as-of", type=str, default=None, help="YYYY-MM-DD, default: today UTC")
    parser.add_argument("--job", choices=sorted(JOBS) + ["all"], default="all", help="Job to run (default: all)")
    args = parser.parse_args(argv)

    try:
        as_of_date = parse_as_of_date(args.as_of)
    except ValueError as e:
        print(json.dumps({"job": args.job, "error": str(e), "exit_code": 1}), file=sys.stderr)
        return 1

    names = list(JOBS) if args.job == "all" else [args.job]
    output = {"job": args.job, "as_of": as_of_date.isoformat(), "summary": {}}
    exit_code = 0
    for name in names:
        try:
            summary = JOBS[name](as_of_date, session_factory=session_factory)
        except Exception as e:
            output.update({"error": f"Unexpected error in {name}: {type(e).__name__}: {e}", "exit_code": 1})
            print(json.dumps(output, default=str), file=sys.stderr)
            return 1
        output["summary"][name] = summary
        if _failed(name, summary):
            exit_code = 1

    output["exit_code"] = exit_code
    print(json.dumps(output, default=str))
    return exit_code


if __name__ == "__main__":
    setup_logging(get_settings().LOG_LEVEL)
    sys.exit(main())
