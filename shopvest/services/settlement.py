"""
Settlement callback - single entry point for payment and payout outcomes

The payment collaborator reports the outcome of a withdrawal payout or a
deposit by request id. Callbacks are retried and duplicated upstream, so the
handler is idempotent per request id.
"""

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from shopvest.core.payments.models import DepositIntent, WithdrawalRequest
from shopvest.services import deposits, withdrawals
from shopvest.services.exceptions import NotFound, ValidationError
from shopvest.services.withdrawals import SettlementOutcome

logger = logging.getLogger(__name__)


def on_settlement_callback(
    db: Session,
    request_id: UUID,
    outcome: SettlementOutcome,
    *,
    reference: Optional[str] = None,
    reason: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Transition a withdrawal or deposit to its final state.

    Returns:
        {"request_type", "request_id", "status", "duplicate"}
    """
    try:
        outcome = SettlementOutcome(outcome)
    except ValueError as exc:
        raise ValidationError(f"Invalid settlement outcome: {outcome}") from exc

    if db.get(WithdrawalRequest, request_id) is not None:
        withdrawal, duplicate = withdrawals.settle_withdrawal(
            db, request_id=request_id, outcome=outcome, reference=reference, reason=reason,
        )
        return {
            "request_type": "withdrawal",
            "request_id": request_id,
            "status": withdrawal.status,
            "duplicate": duplicate,
        }

    if db.get(DepositIntent, request_id) is not None:
        intent, duplicate = deposits.settle_deposit(
            db, intent_id=request_id, completed=outcome == SettlementOutcome.COMPLETED, reference=reference,
        )
        return {
            "request_type": "deposit",
            "request_id": request_id,
            "status": intent.status,
            "duplicate": duplicate,
        }

    logger.warning("Settlement callback for unknown request", extra={"request_id": str(request_id)})
    raise NotFound(f"No withdrawal or deposit with id {request_id}")
