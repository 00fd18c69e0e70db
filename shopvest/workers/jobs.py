"""
RQ Jobs - daily background work

Each job opens its own session, tags its log lines with a job trace id and
returns the run statistics (stored by RQ as the job result).
"""

import logging
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Optional, Union
from uuid import uuid4

from sqlalchemy.orm import Session

from shopvest.infrastructure.database import SessionLocal
from shopvest.infrastructure.logging_config import trace_id_context
from shopvest.infrastructure.redis_client import get_queue
from shopvest.services.investments import accrue_daily, maturity_check
from shopvest.services.wallets import reconcile_wallets

logger = logging.getLogger(__name__)

DateLike = Union[date, str, None]


def generate_trace_id(job: str, as_of_date: date) -> str:
    """job-<name>-YYYYMMDD-<shortuuid>"""
    return f"job-{job}-{as_of_date.strftime('%Y%m%d')}-{str(uuid4())[:8]}"


def parse_as_of_date(value: DateLike) -> date:
    """YYYY-MM-DD string, date, or None for today (UTC)"""
    if value is None:
        return datetime.now(timezone.utc).date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValueError(f"Invalid date format: {value}. Expected YYYY-MM-DD")


def _run(job: str, as_of: DateLike, body: Callable[[Session, date, str], Dict[str, Any]], session_factory=None) -> Dict[str, Any]:
    as_of_date = parse_as_of_date(as_of)
    trace_id = generate_trace_id(job, as_of_date)
    token = trace_id_context.set(trace_id)
    db = (session_factory or SessionLocal)()
    try:
        logger.info("Job started", extra={"job": job, "as_of_date": as_of_date})
        return body(db, as_of_date, trace_id)
    finally:
        db.close()
        trace_id_context.reset(token)


def run_daily_accrual(as_of: DateLike = None, session_factory=None) -> Dict[str, Any]:
    return _run(
        "accrual",
        as_of,
        lambda db, as_of_date, trace_id: accrue_daily(db, as_of_date=as_of_date, trace_id=trace_id),
        session_factory,
    )


def run_maturity_check(as_of: DateLike = None, session_factory=None) -> Dict[str, Any]:
    return _run(
        "maturity",
        as_of,
        lambda db, as_of_date, trace_id: maturity_check(db, as_of_date=as_of_date, trace_id=trace_id),
        session_factory,
    )


def run_wallet_reconciliation(as_of: DateLike = None, session_factory=None) -> Dict[str, Any]:
    def body(db: Session, as_of_date: date, trace_id: str) -> Dict[str, Any]:
        stats = reconcile_wallets(db)
        stats["trace_id"] = trace_id
        stats["drift"] = [
            {**item, "owner_id": str(item["owner_id"])} for item in stats["drift"]
        ]
        return stats

    return _run("reconcile", as_of, body, session_factory)


def enqueue_daily_jobs(as_of: Optional[str] = None) -> Dict[str, str]:
    """Queue maturity, accrual and reconciliation for the RQ worker"""
    queue = get_queue()
    jobs = {
        "maturity": queue.enqueue(run_maturity_check, as_of),
        "accrual": queue.enqueue(run_daily_accrual, as_of),
        "reconcile": queue.enqueue(run_wallet_reconciliation, as_of),
    }
    job_ids = {name: job.id for name, job in jobs.items()}
    logger.info("Daily jobs enqueued", extra={"job_ids": job_ids, "as_of_date": as_of})
    return job_ids
