"""
Withdrawal processor - profit and capital payouts

Request time (one transaction):
- shared gates (maintenance, KYC, amount bounds), then kind-specific checks
- fee = floor(amount * withdrawal_fee_rate) from the settings version in force
- PROFIT: debit the PROFIT wallet for the gross amount
- CAPITAL: release the gross amount of capital into the INVESTMENT wallet and
  debit it in the same transaction; the investment itself stays MATURED
- the request is stored PENDING with the settings version used

Follow-up transitions:
- approve: PENDING -> APPROVED, then the payout gateway is called with no
  lock held; a gateway failure settles the request FAILED
- settlement: PENDING/APPROVED -> COMPLETED | FAILED, idempotent per request
- reject and cancel (PENDING only): compensating credit of the
  full gross amount, fee included; an APPROVED request ends only through
  settlement
- CAPITAL requests mark the investment CAPITAL_WITHDRAWN only on COMPLETED;
  any capital not withdrawn is credited to the INVESTMENT wallet then
"""

import enum
import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Tuple, Union
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from shopvest.core.common.base_model import utcnow
from shopvest.core.investments.models import Investment, InvestmentStatus
from shopvest.core.ledger.models import LedgerCategory, LedgerEntry, WalletKind
from shopvest.core.payments.models import (
    OPEN_WITHDRAWAL_STATUSES, TERMINAL_WITHDRAWAL_STATUSES,
    PayoutMethod, WithdrawalKind, WithdrawalRequest, WithdrawalStatus,
)
from shopvest.services import gates, investments, wallets
from shopvest.services.exceptions import (
    AboveMaximum, ExternalSettlementError, InsufficientFunds, NotEligible, NotFound, ValidationError,
)
from shopvest.services.payouts import PayoutGateway, PayoutInstruction, get_payout_gateway
from shopvest.services.system_settings import get_current_settings
from shopvest.utils.metrics import record_withdrawal
from shopvest.utils.resource_locks import investment_key, request_key, unit_of_work, wallet_key

logger = logging.getLogger(__name__)


class SettlementOutcome(str, enum.Enum):
    COMPLETED = "completed"
    FAILED = "failed"


def _method(value) -> PayoutMethod:
    try:
        return PayoutMethod(value)
    except ValueError as exc:
        raise ValidationError(f"Invalid payout method: {value}") from exc


def _validate_common(amount, method: PayoutMethod, destination: Optional[str]) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        raise ValidationError("Amount must be a positive integer (minor units)")
    if method == PayoutMethod.BANK and not (destination and destination.strip()):
        raise ValidationError("A bank account is required for bank payouts")


@dataclass(frozen=True)
class ProfitWithdrawal:
    amount: int
    method: PayoutMethod = PayoutMethod.BANK
    destination: Optional[str] = None

    kind = WithdrawalKind.PROFIT

    def __post_init__(self):
        object.__setattr__(self, "method", _method(self.method))
        _validate_common(self.amount, self.method, self.destination)


@dataclass(frozen=True)
class CapitalWithdrawal:
    investment_id: UUID
    amount: int
    method: PayoutMethod = PayoutMethod.BANK
    destination: Optional[str] = None

    kind = WithdrawalKind.CAPITAL

    def __post_init__(self):
        if self.investment_id is None:
            raise ValidationError("Capital withdrawals require an investment")
        object.__setattr__(self, "method", _method(self.method))
        _validate_common(self.amount, self.method, self.destination)


WithdrawalVariant = Union[ProfitWithdrawal, CapitalWithdrawal]


def _request_keys(owner_id: UUID, request: WithdrawalVariant) -> list:
    if isinstance(request, ProfitWithdrawal):
        return [wallet_key(owner_id, WalletKind.PROFIT)]
    if isinstance(request, CapitalWithdrawal):
        # PROFIT is included for the final accrual of an investment maturing inline
        return [
            wallet_key(owner_id, WalletKind.PROFIT),
            wallet_key(owner_id, WalletKind.INVESTMENT),
            investment_key(request.investment_id),
        ]
    raise ValidationError(f"Unsupported withdrawal request: {type(request).__name__}")


def _check_profit(db: Session, owner_id: UUID, request: ProfitWithdrawal) -> None:
    balance = wallets.current_balance(db, owner_id, WalletKind.PROFIT)
    if request.amount > balance:
        raise InsufficientFunds(
            f"Insufficient profit balance: {balance} available, {request.amount} requested",
            details={"wallet": WalletKind.PROFIT.value, "available": balance, "required": request.amount},
        )


def _check_capital(db: Session, owner_id: UUID, request: CapitalWithdrawal, today: date) -> Investment:
    investment = db.execute(
        select(Investment).where(Investment.id == request.investment_id).with_for_update()
    ).scalar_one_or_none()
    if investment is None or investment.owner_id != owner_id:
        raise NotFound(f"Investment {request.investment_id} not found")

    investments.mature_if_due(db, investment.id, today)

    if investment.status == InvestmentStatus.CAPITAL_WITHDRAWN.value:
        raise NotEligible("Capital has already been withdrawn for this investment")
    if not investments.is_capital_eligible(investment, today):
        raise NotEligible(
            f"Capital is locked until {investment.end_date.isoformat()}",
            details={"end_date": investment.end_date.isoformat()},
        )

    open_request = db.execute(
        select(WithdrawalRequest.id).where(
            WithdrawalRequest.investment_id == investment.id,
            WithdrawalRequest.kind == WithdrawalKind.CAPITAL.value,
            WithdrawalRequest.status.in_(OPEN_WITHDRAWAL_STATUSES),
        )
    ).first()
    if open_request is not None:
        raise NotEligible("A capital withdrawal for this investment is already in progress")

    if request.amount > investment.capital:
        raise AboveMaximum(
            f"Amount exceeds the investment capital of {investment.capital}",
            details={"capital": investment.capital},
        )
    return investment


def request_withdrawal(
    db: Session,
    *,
    owner_id: UUID,
    request: WithdrawalVariant,
    today: Optional[date] = None,
) -> WithdrawalRequest:
    """
    Validate and record a withdrawal; the gross amount leaves the wallet now.

    Raises (in pipeline order):
        SystemUnavailable, KYCRequired, BelowMinimum, AboveMaximum,
        InsufficientFunds (profit), NotFound / NotEligible / AboveMaximum (capital)
    """
    keys = _request_keys(owner_id, request)
    today = today or investments.utc_today()

    with unit_of_work(db, *keys):
        settings = get_current_settings(db)
        gates.run_common_gates(db, owner_id=owner_id, amount=request.amount, settings=settings)

        investment = None
        if isinstance(request, ProfitWithdrawal):
            _check_profit(db, owner_id, request)
        else:
            investment = _check_capital(db, owner_id, request, today)

        fee, net = gates.fee_for(request.amount, settings.withdrawal_fee_rate)

        withdrawal = WithdrawalRequest(
            id=uuid4(),
            owner_id=owner_id,
            kind=request.kind.value,
            investment_id=investment.id if investment is not None else None,
            amount=request.amount,
            fee_rate=settings.withdrawal_fee_rate,
            fee=fee,
            net_amount=net,
            method=request.method.value,
            destination=request.destination,
            status=WithdrawalStatus.PENDING.value,
            settings_version=settings.version,
        )
        db.add(withdrawal)
        db.flush()

        if investment is None:
            wallets.debit(
                db, owner_id, WalletKind.PROFIT, request.amount, LedgerCategory.WITHDRAWAL,
                correlation_id=withdrawal.id,
                description="Profit withdrawal",
            )
        else:
            wallets.credit(
                db, owner_id, WalletKind.INVESTMENT, request.amount, LedgerCategory.INVESTMENT,
                correlation_id=withdrawal.id,
                description=f"Capital released from {investment.shop_name}",
            )
            wallets.debit(
                db, owner_id, WalletKind.INVESTMENT, request.amount, LedgerCategory.WITHDRAWAL,
                correlation_id=withdrawal.id,
                description=f"Capital withdrawal from {investment.shop_name}",
            )

        withdrawal_id = withdrawal.id
        log_extra = {
            "withdrawal_id": str(withdrawal_id),
            "owner_id": str(owner_id),
            "kind": request.kind.value,
            "amount": request.amount,
            "fee": fee,
            "settings_version": settings.version,
        }

    record_withdrawal(request.kind.value, "requested")
    logger.info("Withdrawal requested", extra=log_extra)
    return withdrawal


def get_withdrawal(db: Session, request_id: UUID, owner_id: Optional[UUID] = None) -> WithdrawalRequest:
    withdrawal = db.get(WithdrawalRequest, request_id)
    if withdrawal is None or (owner_id is not None and withdrawal.owner_id != owner_id):
        raise NotFound(f"Withdrawal {request_id} not found")
    return withdrawal


def list_withdrawals(
    db: Session,
    *,
    owner_id: Optional[UUID] = None,
    status: Optional[WithdrawalStatus] = None,
    kind: Optional[WithdrawalKind] = None,
    limit: int = 100,
    offset: int = 0,
) -> List[WithdrawalRequest]:
    stmt = select(WithdrawalRequest).order_by(WithdrawalRequest.created_at.desc())
    if owner_id is not None:
        stmt = stmt.where(WithdrawalRequest.owner_id == owner_id)
    if status is not None:
        stmt = stmt.where(WithdrawalRequest.status == WithdrawalStatus(status).value)
    if kind is not None:
        stmt = stmt.where(WithdrawalRequest.kind == WithdrawalKind(kind).value)
    return list(db.execute(stmt.limit(limit).offset(offset)).scalars())


def _peek(db: Session, request_id: UUID) -> Tuple[UUID, str, Optional[UUID]]:
    row = db.execute(
        select(WithdrawalRequest.owner_id, WithdrawalRequest.kind, WithdrawalRequest.investment_id)
        .where(WithdrawalRequest.id == request_id)
    ).one_or_none()
    # No transaction may stay open while waiting for resource keys
    db.commit()
    if row is None:
        raise NotFound(f"Withdrawal {request_id} not found")
    return row.owner_id, row.kind, row.investment_id


def _transition_keys(request_id: UUID, owner_id: UUID, kind: str, investment_id: Optional[UUID]) -> list:
    if kind == WithdrawalKind.PROFIT.value:
        return [wallet_key(owner_id, WalletKind.PROFIT), request_key(request_id)]
    return [
        wallet_key(owner_id, WalletKind.INVESTMENT),
        investment_key(investment_id),
        request_key(request_id),
    ]


def _locked_withdrawal(db: Session, request_id: UUID) -> WithdrawalRequest:
    withdrawal = db.execute(
        select(WithdrawalRequest).where(WithdrawalRequest.id == request_id).with_for_update()
    ).scalar_one_or_none()
    if withdrawal is None:
        raise NotFound(f"Withdrawal {request_id} not found")
    return withdrawal


def _original_entry_id(db: Session, withdrawal: WithdrawalRequest, *, category: LedgerCategory, negative: bool) -> Optional[UUID]:
    amount_filter = LedgerEntry.amount < 0 if negative else LedgerEntry.amount > 0
    return db.execute(
        select(LedgerEntry.id)
        .where(
            LedgerEntry.correlation_id == withdrawal.id,
            LedgerEntry.category == category.value,
            LedgerEntry.reverses_entry_id.is_(None),
            amount_filter,
        )
        .order_by(LedgerEntry.created_at.asc())
        .limit(1)
    ).scalar_one_or_none()


def _reverse(db: Session, withdrawal: WithdrawalRequest, note: str) -> None:
    """Compensating entries for the gross amount debited at request time"""
    if withdrawal.kind == WithdrawalKind.PROFIT.value:
        wallets.credit(
            db, withdrawal.owner_id, WalletKind.PROFIT, withdrawal.amount, LedgerCategory.WITHDRAWAL,
            correlation_id=withdrawal.id,
            reverses_entry_id=_original_entry_id(db, withdrawal, category=LedgerCategory.WITHDRAWAL, negative=True),
            description=f"Reversal: profit withdrawal {note}",
        )
        return

    wallets.credit(
        db, withdrawal.owner_id, WalletKind.INVESTMENT, withdrawal.amount, LedgerCategory.WITHDRAWAL,
        correlation_id=withdrawal.id,
        reverses_entry_id=_original_entry_id(db, withdrawal, category=LedgerCategory.WITHDRAWAL, negative=True),
        description=f"Reversal: capital withdrawal {note}",
    )
    wallets.debit(
        db, withdrawal.owner_id, WalletKind.INVESTMENT, withdrawal.amount, LedgerCategory.INVESTMENT,
        correlation_id=withdrawal.id,
        reverses_entry_id=_original_entry_id(db, withdrawal, category=LedgerCategory.INVESTMENT, negative=False),
        description="Reversal: capital returned to the investment",
    )


def _complete_capital(db: Session, withdrawal: WithdrawalRequest) -> None:
    investment = db.execute(
        select(Investment).where(Investment.id == withdrawal.investment_id).with_for_update()
    ).scalar_one()
    investment.status = InvestmentStatus.CAPITAL_WITHDRAWN.value
    investment.capital_withdrawn_at = utcnow()
    remainder = investment.capital - withdrawal.amount
    if remainder > 0:
        wallets.credit(
            db, withdrawal.owner_id, WalletKind.INVESTMENT, remainder, LedgerCategory.INVESTMENT,
            correlation_id=withdrawal.id,
            description=f"Remaining capital from {investment.shop_name}",
        )


def _close_with_reversal(
    db: Session,
    *,
    request_id: UUID,
    target: WithdrawalStatus,
    allowed_from: Tuple[WithdrawalStatus, ...],
    reason: Optional[str],
    actor_id: Optional[UUID],
    owner_id: Optional[UUID] = None,
) -> WithdrawalRequest:
    peek_owner, kind, investment_id = _peek(db, request_id)
    if owner_id is not None and owner_id != peek_owner:
        raise NotFound(f"Withdrawal {request_id} not found")

    with unit_of_work(db, *_transition_keys(request_id, peek_owner, kind, investment_id)):
        withdrawal = _locked_withdrawal(db, request_id)
        if withdrawal.status not in {s.value for s in allowed_from}:
            raise ValidationError(
                f"Withdrawal is {withdrawal.status} and cannot be {target.value.lower()}",
                details={"status": withdrawal.status},
            )
        _reverse(db, withdrawal, target.value.lower())
        withdrawal.status = target.value
        withdrawal.reason = reason
        withdrawal.processed_by = actor_id
        withdrawal.processed_at = utcnow()
        log_extra = {"withdrawal_id": str(request_id), "owner_id": str(peek_owner), "kind": kind, "amount": withdrawal.amount, "reason": reason}

    record_withdrawal(kind, target.value.lower())
    logger.info(f"Withdrawal {target.value.lower()}", extra=log_extra)
    return withdrawal


def reject_withdrawal(db: Session, *, request_id: UUID, reason: Optional[str] = None, admin_id: Optional[UUID] = None) -> WithdrawalRequest:
    return _close_with_reversal(
        db,
        request_id=request_id,
        target=WithdrawalStatus.REJECTED,
        allowed_from=(WithdrawalStatus.PENDING,),
        reason=reason,
        actor_id=admin_id,
    )


def cancel_withdrawal(
    db: Session,
    *,
    request_id: UUID,
    owner_id: Optional[UUID] = None,
    actor_id: Optional[UUID] = None,
    reason: Optional[str] = None,
) -> WithdrawalRequest:
    """Cancel a PENDING withdrawal (by its owner or an admin)"""
    return _close_with_reversal(
        db,
        request_id=request_id,
        target=WithdrawalStatus.CANCELLED,
        allowed_from=(WithdrawalStatus.PENDING,),
        reason=reason,
        actor_id=actor_id or owner_id,
        owner_id=owner_id,
    )


def settle_withdrawal(
    db: Session,
    *,
    request_id: UUID,
    outcome: SettlementOutcome,
    reference: Optional[str] = None,
    reason: Optional[str] = None,
) -> Tuple[WithdrawalRequest, bool]:
    """
    Apply the payout outcome. Returns (withdrawal, duplicate).

    Idempotent per request id: once the request is terminal, further
    callbacks return the stored state and change nothing.
    """
    outcome = SettlementOutcome(outcome)
    owner_id, kind, investment_id = _peek(db, request_id)

    with unit_of_work(db, *_transition_keys(request_id, owner_id, kind, investment_id)):
        withdrawal = _locked_withdrawal(db, request_id)
        if withdrawal.status in TERMINAL_WITHDRAWAL_STATUSES:
            stored_status = withdrawal.status
            duplicate = True
        else:
            duplicate = False
            if outcome == SettlementOutcome.COMPLETED:
                if kind == WithdrawalKind.CAPITAL.value:
                    _complete_capital(db, withdrawal)
                withdrawal.status = WithdrawalStatus.COMPLETED.value
            else:
                _reverse(db, withdrawal, "failed")
                withdrawal.status = WithdrawalStatus.FAILED.value
                withdrawal.reason = reason
            if reference:
                withdrawal.payout_reference = reference
            withdrawal.processed_at = utcnow()
            stored_status = withdrawal.status

    if duplicate:
        logger.info(
            "Duplicate settlement callback ignored",
            extra={"withdrawal_id": str(request_id), "status": stored_status, "outcome": outcome.value},
        )
    else:
        record_withdrawal(kind, stored_status.lower())
        log = logger.info if outcome == SettlementOutcome.COMPLETED else logger.warning
        log("Withdrawal settled", extra={"withdrawal_id": str(request_id), "status": stored_status, "reason": reason})
    return withdrawal, duplicate


def approve_withdrawal(
    db: Session,
    *,
    request_id: UUID,
    admin_id: Optional[UUID] = None,
    gateway: Optional[PayoutGateway] = None,
) -> WithdrawalRequest:
    """
    PENDING -> APPROVED, then submit the payout outside any lock.

    Raises:
        ExternalSettlementError: the gateway refused; the request is FAILED
            and the gross amount has been returned to the wallet
    """
    with unit_of_work(db, request_key(request_id)):
        withdrawal = _locked_withdrawal(db, request_id)
        if withdrawal.status != WithdrawalStatus.PENDING.value:
            raise ValidationError(
                f"Withdrawal is {withdrawal.status} and cannot be approved",
                details={"status": withdrawal.status},
            )
        withdrawal.status = WithdrawalStatus.APPROVED.value
        withdrawal.processed_by = admin_id
        instruction = PayoutInstruction(
            request_id=withdrawal.id,
            owner_id=withdrawal.owner_id,
            amount=withdrawal.net_amount,
            method=withdrawal.method,
            destination=withdrawal.destination,
        )
        kind = withdrawal.kind

    record_withdrawal(kind, "approved")
    logger.info("Withdrawal approved", extra={"withdrawal_id": str(request_id), "admin_id": admin_id})

    gateway = gateway or get_payout_gateway()
    try:
        reference = gateway.send_payout(instruction)
    except ExternalSettlementError as exc:
        logger.error("Payout gateway refused withdrawal", extra={"withdrawal_id": str(request_id), "error": exc.message})
        settle_withdrawal(db, request_id=request_id, outcome=SettlementOutcome.FAILED, reason=exc.message)
        raise
    except Exception as exc:
        logger.exception("Payout gateway error", extra={"withdrawal_id": str(request_id)})
        settle_withdrawal(db, request_id=request_id, outcome=SettlementOutcome.FAILED, reason=str(exc))
        raise ExternalSettlementError(f"Payout gateway error: {exc}") from exc

    with unit_of_work(db, request_key(request_id)):
        withdrawal = _locked_withdrawal(db, request_id)
        if withdrawal.payout_reference is None:
            withdrawal.payout_reference = reference
    return withdrawal
