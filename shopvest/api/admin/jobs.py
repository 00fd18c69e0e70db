"""
Admin API - Manual job triggers

The daily jobs normally run from the RQ worker or scripts/run_daily_jobs.py;
these endpoints run them synchronously for operators.
"""

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from shopvest.auth.dependencies import get_admin_id
from shopvest.infrastructure.database import get_db
from shopvest.schemas.admin import JobRunRequest
from shopvest.services.investments import accrue_daily, maturity_check
from shopvest.utils.trace_id import get_trace_id

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/jobs/accrue", summary="Run the daily profit accrual now")
def run_accrual(
    request: Request,
    payload: Optional[JobRunRequest] = None,
    db: Session = Depends(get_db),
    admin_id: UUID = Depends(get_admin_id),
) -> Dict[str, Any]:
    as_of_date = payload.as_of_date if payload else None
    logger.info("Manual accrual triggered", extra={"admin_id": str(admin_id), "as_of_date": as_of_date})
    return accrue_daily(db, as_of_date=as_of_date, trace_id=get_trace_id(request))


@router.post("/jobs/maturity", summary="Run the maturity check now")
def run_maturity(
    request: Request,
    payload: Optional[JobRunRequest] = None,
    db: Session = Depends(get_db),
    admin_id: UUID = Depends(get_admin_id),
) -> Dict[str, Any]:
    as_of_date = payload.as_of_date if payload else None
    logger.info("Manual maturity check triggered", extra={"admin_id": str(admin_id), "as_of_date": as_of_date})
    return maturity_check(db, as_of_date=as_of_date, trace_id=get_trace_id(request))
