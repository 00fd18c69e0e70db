"""
Deposit intents - money announced by the payment gateway

initiate_deposit() records the intent and a PENDING ledger entry (no balance
change). The settlement callback completes it (COMPLETED deposit credit on
MAIN) or fails it (FAILED ledger entry), once per intent.
"""

import logging
from typing import List, Optional, Tuple
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from shopvest.core.common.base_model import utcnow
from shopvest.core.ledger.models import LedgerCategory, LedgerEntry, LedgerEntryStatus, WalletKind
from shopvest.core.payments.models import DepositIntent, DepositStatus
from shopvest.services import gates, ledger, wallets
from shopvest.services.exceptions import BelowMinimum, NotFound, ValidationError
from shopvest.services.system_settings import get_current_settings
from shopvest.utils.resource_locks import request_key, unit_of_work, wallet_key

logger = logging.getLogger(__name__)


def initiate_deposit(db: Session, *, owner_id: UUID, amount: int) -> DepositIntent:
    """
    Create a PENDING deposit intent; its id is the payment intent id handed
    to the payment collaborator.

    Raises:
        SystemUnavailable: maintenance mode
        BelowMinimum: amount < min_deposit
    """
    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        raise ValidationError("Amount must be a positive integer (minor units)")

    intent_id = uuid4()
    with unit_of_work(db, request_key(intent_id)):
        settings = get_current_settings(db)
        gates.check_available(settings)
        if amount < settings.min_deposit:
            raise BelowMinimum(
                f"Minimum deposit is {settings.min_deposit}",
                details={"min_deposit": settings.min_deposit},
            )

        intent = DepositIntent(
            id=intent_id,
            owner_id=owner_id,
            amount=amount,
            status=DepositStatus.PENDING.value,
            settings_version=settings.version,
        )
        db.add(intent)
        db.flush()
        ledger.append(db, LedgerEntry(
            owner_id=owner_id,
            wallet_kind=WalletKind.MAIN.value,
            amount=amount,
            category=LedgerCategory.DEPOSIT.value,
            status=LedgerEntryStatus.PENDING.value,
            correlation_id=intent_id,
            description="Deposit pending confirmation",
        ))

    logger.info("Deposit initiated", extra={"deposit_id": str(intent_id), "owner_id": str(owner_id), "amount": amount})
    return intent


def get_deposit(db: Session, intent_id: UUID, owner_id: Optional[UUID] = None) -> DepositIntent:
    intent = db.get(DepositIntent, intent_id)
    if intent is None or (owner_id is not None and intent.owner_id != owner_id):
        raise NotFound(f"Deposit {intent_id} not found")
    return intent


def list_deposits(db: Session, *, owner_id: Optional[UUID] = None, limit: int = 100, offset: int = 0) -> List[DepositIntent]:
    stmt = select(DepositIntent).order_by(DepositIntent.created_at.desc())
    if owner_id is not None:
        stmt = stmt.where(DepositIntent.owner_id == owner_id)
    return list(db.execute(stmt.limit(limit).offset(offset)).scalars())


def settle_deposit(
    db: Session,
    *,
    intent_id: UUID,
    completed: bool,
    reference: Optional[str] = None,
) -> Tuple[DepositIntent, bool]:
    """Apply the payment outcome. Returns (intent, duplicate)."""
    owner_id = db.execute(select(DepositIntent.owner_id).where(DepositIntent.id == intent_id)).scalar_one_or_none()
    # No transaction may stay open while waiting for resource keys
    db.commit()
    if owner_id is None:
        raise NotFound(f"Deposit {intent_id} not found")

    with unit_of_work(db, wallet_key(owner_id, WalletKind.MAIN), request_key(intent_id)):
        intent = db.execute(
            select(DepositIntent).where(DepositIntent.id == intent_id).with_for_update()
        ).scalar_one()
        duplicate = intent.status != DepositStatus.PENDING.value
        if not duplicate:
            if completed:
                wallets.credit(
                    db, owner_id, WalletKind.MAIN, intent.amount, LedgerCategory.DEPOSIT,
                    correlation_id=intent.id,
                    description="Deposit",
                )
                intent.status = DepositStatus.COMPLETED.value
            else:
                ledger.append(db, LedgerEntry(
                    owner_id=owner_id,
                    wallet_kind=WalletKind.MAIN.value,
                    amount=intent.amount,
                    category=LedgerCategory.DEPOSIT.value,
                    status=LedgerEntryStatus.FAILED.value,
                    correlation_id=intent.id,
                    description="Deposit failed",
                ))
                intent.status = DepositStatus.FAILED.value
            if reference:
                intent.provider_reference = reference
            intent.processed_at = utcnow()
        status = intent.status

    if duplicate:
        logger.info("Duplicate deposit callback ignored", extra={"deposit_id": str(intent_id), "status": status})
    else:
        logger.info("Deposit settled", extra={"deposit_id": str(intent_id), "status": status})
    return intent, duplicate
