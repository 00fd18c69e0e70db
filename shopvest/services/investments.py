"""
Investment lifecycle manager

State machine: ACTIVE -> MATURED -> CAPITAL_WITHDRAWN (terminal)

open_investment() is one unit of work under the wallet(owner, MAIN) + shop
keys: validate amount and status, reserve a slot, debit MAIN (category
``investment``), create the Investment with a snapshot of the shop terms and
confirm the reservation. Any failure rolls all of it back, so a held slot or
a debit is never visible without its investment.

accrue_daily() and maturity_check() are job entry points: they return a
stats dict, process investments one by one in their own transaction, and
keep going when a single investment fails (the error is logged and
reported in the stats).
"""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shopvest.core.common.base_model import utcnow
from shopvest.core.investments.models import Investment, InvestmentStatus, ProfitAccrual
from shopvest.core.ledger.models import LedgerCategory, WalletKind
from shopvest.core.shops.models import Shop
from shopvest.services import shops, wallets
from shopvest.services.exceptions import EngineError, NotFound, OutOfRange, ValidationError
from shopvest.utils.metrics import record_investment_action, record_profit_accrual
from shopvest.utils.resource_locks import (
    hold_locks, investment_key, shop_key, unit_of_work, wallet_key,
)

logger = logging.getLogger(__name__)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def get_investment(db: Session, investment_id: UUID, owner_id: Optional[UUID] = None) -> Investment:
    investment = db.get(Investment, investment_id)
    if investment is None or (owner_id is not None and investment.owner_id != owner_id):
        raise NotFound(f"Investment {investment_id} not found")
    return investment


def list_investments(
    db: Session,
    owner_id: UUID,
    *,
    status: Optional[InvestmentStatus] = None,
) -> List[Investment]:
    stmt = select(Investment).where(Investment.owner_id == owner_id).order_by(Investment.created_at.desc())
    if status is not None:
        stmt = stmt.where(Investment.status == InvestmentStatus(status).value)
    return list(db.execute(stmt).scalars())


def is_capital_eligible(investment: Investment, today: date) -> bool:
    """True iff the term has ended and the investment is MATURED"""
    return today >= investment.end_date and investment.status == InvestmentStatus.MATURED.value


def open_investment(
    db: Session,
    *,
    owner_id: UUID,
    shop_id: UUID,
    capital: int,
    today: Optional[date] = None,
) -> Investment:
    """
    Buy into a shop.

    Raises:
        OutOfRange: capital outside [min_amount, max_amount]
        ShopNotActive: shop INACTIVE or CLOSED
        CapacityExceeded: no slot left
        InsufficientFunds: MAIN balance < capital
    """
    if not isinstance(capital, int) or isinstance(capital, bool) or capital <= 0:
        raise ValidationError("Capital must be a positive integer (minor units)")
    today = today or utc_today()

    with unit_of_work(db, wallet_key(owner_id, WalletKind.MAIN), shop_key(shop_id)):
        shop = db.execute(select(Shop).where(Shop.id == shop_id).with_for_update()).scalar_one_or_none()
        if shop is None:
            raise NotFound(f"Shop {shop_id} not found")
        if capital < shop.min_amount or capital > shop.max_amount:
            raise OutOfRange(
                f"Amount must be between {shop.min_amount} and {shop.max_amount}",
                details={"min_amount": shop.min_amount, "max_amount": shop.max_amount},
            )
        reservation_id = shops.reserve(db, shop.id, owner_id)
        wallets.debit(
            db,
            owner_id,
            WalletKind.MAIN,
            capital,
            LedgerCategory.INVESTMENT,
            correlation_id=reservation_id,
            description=f"Investment in {shop.name}",
        )
        investment = Investment(
            id=uuid4(),
            owner_id=owner_id,
            shop_id=shop.id,
            reservation_id=reservation_id,
            shop_name=shop.name,
            daily_percent=shop.daily_percent,
            duration_days=shop.duration_days,
            capital=capital,
            start_date=today,
            end_date=today + timedelta(days=shop.duration_days),
            accrued_profit=0,
            days_accrued=0,
            status=InvestmentStatus.ACTIVE.value,
        )
        db.add(investment)
        db.flush()
        shops.confirm(db, reservation_id, investment.id)
        investment_id = investment.id

    record_investment_action("opened")
    logger.info(
        "Investment opened",
        extra={"investment_id": str(investment_id), "owner_id": str(owner_id), "shop_id": str(shop_id), "capital": capital},
    )
    return investment


def _accrue_locked(db: Session, investment: Investment, as_of_date: date) -> Tuple[str, int]:
    """
    Bring accrued_profit up to date for one locked investment.

    Returns (outcome, amount) where outcome is "accrued", "already_accrued"
    or "nothing_due". Caller holds the wallet + investment keys.
    """
    already = db.execute(
        select(ProfitAccrual.id).where(
            ProfitAccrual.investment_id == investment.id,
            ProfitAccrual.accrual_date == as_of_date,
        )
    ).scalar_one_or_none()
    if already is not None:
        return "already_accrued", 0

    elapsed = (as_of_date - investment.start_date).days
    days = min(max(elapsed, 0), investment.duration_days)
    target = investment.daily_profit * days
    delta = target - investment.accrued_profit
    if delta <= 0:
        return "nothing_due", 0

    entry = wallets.credit(
        db,
        investment.owner_id,
        WalletKind.PROFIT,
        delta,
        LedgerCategory.INCOME,
        correlation_id=investment.id,
        description=f"Daily profit from {investment.shop_name} (day {days}/{investment.duration_days})",
    )
    db.add(ProfitAccrual(
        investment_id=investment.id,
        accrual_date=as_of_date,
        day_number=days,
        amount=delta,
        ledger_entry_id=entry.id,
    ))
    investment.accrued_profit = target
    investment.days_accrued = days
    db.flush()
    record_profit_accrual()
    return "accrued", delta


def _mature_locked(db: Session, investment: Investment, as_of_date: date) -> bool:
    """ACTIVE -> MATURED once the end date is reached (final accrual first)"""
    if investment.status != InvestmentStatus.ACTIVE.value or as_of_date < investment.end_date:
        return False
    _accrue_locked(db, investment, as_of_date)
    investment.status = InvestmentStatus.MATURED.value
    investment.matured_at = utcnow()
    db.flush()
    record_investment_action("matured")
    logger.info(
        "Investment matured",
        extra={"investment_id": str(investment.id), "owner_id": str(investment.owner_id), "accrued_profit": investment.accrued_profit},
    )
    return True


def _locked_investment(db: Session, investment_id: UUID) -> Investment:
    hold_locks(db, investment_key(investment_id))
    investment = db.execute(
        select(Investment).where(Investment.id == investment_id).with_for_update()
    ).scalar_one_or_none()
    if investment is None:
        raise NotFound(f"Investment {investment_id} not found")
    return investment


def mature_if_due(db: Session, investment_id: UUID, as_of_date: date) -> bool:
    """Inline maturity for callers that already hold wallet(owner, PROFIT) ordering"""
    return _mature_locked(db, _locked_investment(db, investment_id), as_of_date)


def accrue_investment(db: Session, *, investment_id: UUID, as_of_date: Optional[date] = None) -> int:
    """Accrue one investment up to ``as_of_date``; returns the amount credited"""
    as_of_date = as_of_date or utc_today()
    owner_id = _owner_of(db, investment_id)
    with unit_of_work(db, wallet_key(owner_id, WalletKind.PROFIT), investment_key(investment_id)):
        investment = _locked_investment(db, investment_id)
        if investment.status != InvestmentStatus.ACTIVE.value:
            return 0
        _, amount = _accrue_locked(db, investment, as_of_date)
    return amount


def _owner_of(db: Session, investment_id: UUID) -> UUID:
    owner_id = db.execute(select(Investment.owner_id).where(Investment.id == investment_id)).scalar_one_or_none()
    # No transaction may stay open while waiting for resource keys
    db.commit()
    if owner_id is None:
        raise NotFound(f"Investment {investment_id} not found")
    return owner_id


def _active_candidates(db: Session, *, due_by: Optional[date] = None, limit: int) -> List[Tuple[UUID, UUID]]:
    stmt = select(Investment.id, Investment.owner_id).where(Investment.status == InvestmentStatus.ACTIVE.value)
    if due_by is not None:
        stmt = stmt.where(Investment.end_date <= due_by)
    stmt = stmt.order_by(Investment.start_date.asc(), Investment.id.asc()).limit(limit)
    rows = [(row.id, row.owner_id) for row in db.execute(stmt)]
    db.commit()
    return rows


def accrue_daily(
    db: Session,
    *,
    as_of_date: Optional[date] = None,
    trace_id: Optional[str] = None,
    max_investments: int = 10000,
) -> Dict[str, Any]:
    """
    Credit daily profit for every ACTIVE investment up to ``as_of_date``.

    Idempotent per (investment, as_of_date): a repeated run for the same day
    appends nothing. Missed days are caught up in one entry.

    Returns:
        Dict with summary statistics:
        - investments_found, accrued_count, accrued_amount, skipped_count,
          errors_count, errors, trace_id, as_of_date
    """
    as_of_date = as_of_date or utc_today()
    trace_id = trace_id or str(uuid4())
    stats: Dict[str, Any] = {
        'investments_found': 0,
        'accrued_count': 0,
        'accrued_amount': 0,
        'skipped_count': 0,
        'errors_count': 0,
        'errors': [],
        'trace_id': trace_id,
        'as_of_date': as_of_date.isoformat(),
    }

    candidates = _active_candidates(db, limit=max_investments)
    stats['investments_found'] = len(candidates)

    for investment_id, owner_id in candidates:
        try:
            with unit_of_work(db, wallet_key(owner_id, WalletKind.PROFIT), investment_key(investment_id)):
                investment = _locked_investment(db, investment_id)
                if investment.status != InvestmentStatus.ACTIVE.value:
                    outcome, amount = "not_active", 0
                else:
                    outcome, amount = _accrue_locked(db, investment, as_of_date)
        except (EngineError, SQLAlchemyError) as exc:
            stats['errors_count'] += 1
            stats['errors'].append(f"Investment {investment_id}: {exc}")
            logger.exception("Profit accrual failed", extra={"investment_id": str(investment_id), "job_trace_id": trace_id})
            continue

        if outcome == "accrued":
            stats['accrued_count'] += 1
            stats['accrued_amount'] += amount
        else:
            stats['skipped_count'] += 1

    logger.info("Daily accrual finished", extra={k: v for k, v in stats.items() if k != 'errors'})
    return stats


def maturity_check(
    db: Session,
    *,
    as_of_date: Optional[date] = None,
    trace_id: Optional[str] = None,
    max_investments: int = 10000,
) -> Dict[str, Any]:
    """
    Flip ACTIVE investments whose end date has been reached to MATURED.

    Capital stays in the investment until an explicit capital withdrawal.
    Idempotent: MATURED investments are not selected again.
    """
    as_of_date = as_of_date or utc_today()
    trace_id = trace_id or str(uuid4())
    stats: Dict[str, Any] = {
        'due_found': 0,
        'matured_count': 0,
        'skipped_count': 0,
        'errors_count': 0,
        'errors': [],
        'trace_id': trace_id,
        'as_of_date': as_of_date.isoformat(),
    }

    candidates = _active_candidates(db, due_by=as_of_date, limit=max_investments)
    stats['due_found'] = len(candidates)

    for investment_id, owner_id in candidates:
        try:
            with unit_of_work(db, wallet_key(owner_id, WalletKind.PROFIT), investment_key(investment_id)):
                matured = _mature_locked(db, _locked_investment(db, investment_id), as_of_date)
        except (EngineError, SQLAlchemyError) as exc:
            stats['errors_count'] += 1
            stats['errors'].append(f"Investment {investment_id}: {exc}")
            logger.exception("Maturity check failed", extra={"investment_id": str(investment_id), "job_trace_id": trace_id})
            continue

        if matured:
            stats['matured_count'] += 1
        else:
            stats['skipped_count'] += 1

    logger.info("Maturity check finished", extra={k: v for k, v in stats.items() if k != 'errors'})
    return stats
