"""
Transfer processor - wallet-to-wallet and user-to-user movements

Rules:
- WALLET transfers move funds between two different wallets of one user
- USER transfers move funds from the sender's MAIN wallet to the
  recipient's MAIN wallet; the recipient must exist and differ from the sender
- the shared gates apply (maintenance, KYC, amount bounds); the fee uses the
  transfer fee rate of the settings version in force
- the source is debited for the gross amount at request time and the request
  stays PENDING until an admin approves it, which credits the net amount
- reject and cancel return the full gross amount to the source
"""

import logging
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Union
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from shopvest.core.common.base_model import utcnow
from shopvest.core.ledger.models import LedgerCategory, LedgerEntry, WalletKind
from shopvest.core.payments.models import TransferKind, TransferRequest, TransferStatus
from shopvest.core.users.models import User
from shopvest.services import gates, wallets
from shopvest.services.exceptions import InsufficientFunds, NotFound, ValidationError
from shopvest.services.system_settings import get_current_settings
from shopvest.utils.metrics import record_transfer
from shopvest.utils.resource_locks import request_key, unit_of_work, wallet_key

logger = logging.getLogger(__name__)


def _wallet(value) -> WalletKind:
    try:
        return WalletKind(value)
    except ValueError as exc:
        raise ValidationError(f"Invalid wallet kind: {value}") from exc


def _validate_amount(amount) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        raise ValidationError("Amount must be a positive integer (minor units)")


@dataclass(frozen=True)
class WalletTransfer:
    from_wallet: WalletKind
    to_wallet: WalletKind
    amount: int

    kind = TransferKind.WALLET

    def __post_init__(self):
        object.__setattr__(self, "from_wallet", _wallet(self.from_wallet))
        object.__setattr__(self, "to_wallet", _wallet(self.to_wallet))
        _validate_amount(self.amount)


@dataclass(frozen=True)
class UserTransfer:
    recipient_id: UUID
    amount: int

    kind = TransferKind.USER
    from_wallet = WalletKind.MAIN
    to_wallet = WalletKind.MAIN

    def __post_init__(self):
        if self.recipient_id is None:
            raise ValidationError("A recipient is required")
        _validate_amount(self.amount)


TransferVariant = Union[WalletTransfer, UserTransfer]


def _check_kind_specific(db: Session, owner_id: UUID, request: TransferVariant) -> None:
    if isinstance(request, WalletTransfer):
        if request.from_wallet == request.to_wallet:
            raise ValidationError("Source and destination wallets must differ")
    else:
        if request.recipient_id == owner_id:
            raise ValidationError("You cannot transfer funds to yourself")
        if db.get(User, request.recipient_id) is None:
            raise ValidationError("Recipient not found", details={"recipient_id": str(request.recipient_id)})

    balance = wallets.current_balance(db, owner_id, request.from_wallet)
    if request.amount > balance:
        raise InsufficientFunds(
            f"Insufficient {request.from_wallet.value} balance: {balance} available, {request.amount} requested",
            details={"wallet": request.from_wallet.value, "available": balance, "required": request.amount},
        )


def request_transfer(db: Session, *, owner_id: UUID, request: TransferVariant) -> TransferRequest:
    """
    Validate and record a transfer; the gross amount leaves the source now.

    Raises (in pipeline order):
        SystemUnavailable, KYCRequired, BelowMinimum, AboveMaximum,
        ValidationError (same wallet / bad recipient), InsufficientFunds
    """
    if not isinstance(request, (WalletTransfer, UserTransfer)):
        raise ValidationError(f"Unsupported transfer request: {type(request).__name__}")

    with unit_of_work(db, wallet_key(owner_id, request.from_wallet)):
        settings = get_current_settings(db)
        gates.run_common_gates(db, owner_id=owner_id, amount=request.amount, settings=settings)
        _check_kind_specific(db, owner_id, request)

        fee, net = gates.fee_for(request.amount, settings.transfer_fee_rate)
        transfer = TransferRequest(
            id=uuid4(),
            owner_id=owner_id,
            kind=request.kind.value,
            from_wallet=request.from_wallet.value,
            to_wallet=request.to_wallet.value,
            recipient_id=request.recipient_id if isinstance(request, UserTransfer) else None,
            amount=request.amount,
            fee_rate=settings.transfer_fee_rate,
            fee=fee,
            net_amount=net,
            status=TransferStatus.PENDING.value,
            settings_version=settings.version,
        )
        db.add(transfer)
        db.flush()

        if isinstance(request, UserTransfer):
            description = "Transfer to another user"
        else:
            description = f"Transfer from {request.from_wallet.value} to {request.to_wallet.value} wallet"
        wallets.debit(
            db, owner_id, request.from_wallet, request.amount, LedgerCategory.TRANSFER,
            correlation_id=transfer.id,
            description=description,
        )
        log_extra = {
            "transfer_id": str(transfer.id),
            "owner_id": str(owner_id),
            "kind": request.kind.value,
            "amount": request.amount,
            "fee": fee,
            "settings_version": settings.version,
        }

    record_transfer(request.kind.value, "requested")
    logger.info("Transfer requested", extra=log_extra)
    return transfer


def get_transfer(db: Session, request_id: UUID, owner_id: Optional[UUID] = None) -> TransferRequest:
    transfer = db.get(TransferRequest, request_id)
    if transfer is None or (owner_id is not None and owner_id not in (transfer.owner_id, transfer.recipient_id)):
        raise NotFound(f"Transfer {request_id} not found")
    return transfer


def list_transfers(
    db: Session,
    *,
    owner_id: Optional[UUID] = None,
    status: Optional[TransferStatus] = None,
    kind: Optional[TransferKind] = None,
    limit: int = 100,
    offset: int = 0,
) -> List[TransferRequest]:
    """Transfers sent or received by ``owner_id`` (all transfers if None)"""
    stmt = select(TransferRequest).order_by(TransferRequest.created_at.desc())
    if owner_id is not None:
        stmt = stmt.where((TransferRequest.owner_id == owner_id) | (TransferRequest.recipient_id == owner_id))
    if status is not None:
        stmt = stmt.where(TransferRequest.status == TransferStatus(status).value)
    if kind is not None:
        stmt = stmt.where(TransferRequest.kind == TransferKind(kind).value)
    return list(db.execute(stmt.limit(limit).offset(offset)).scalars())


class _TransferRef(NamedTuple):
    owner_id: UUID
    beneficiary_id: UUID
    kind: str
    from_wallet: str
    to_wallet: str


def _peek(db: Session, request_id: UUID) -> _TransferRef:
    transfer = db.get(TransferRequest, request_id)
    if transfer is None:
        db.commit()
        raise NotFound(f"Transfer {request_id} not found")
    snapshot = _TransferRef(
        owner_id=transfer.owner_id,
        beneficiary_id=transfer.beneficiary_id,
        kind=transfer.kind,
        from_wallet=transfer.from_wallet,
        to_wallet=transfer.to_wallet,
    )
    # No transaction may stay open while waiting for resource keys
    db.commit()
    return snapshot


def _locked_transfer(db: Session, request_id: UUID) -> TransferRequest:
    transfer = db.execute(
        select(TransferRequest).where(TransferRequest.id == request_id).with_for_update()
    ).scalar_one_or_none()
    if transfer is None:
        raise NotFound(f"Transfer {request_id} not found")
    return transfer


def _require_pending(transfer: TransferRequest, action: str) -> None:
    if transfer.status != TransferStatus.PENDING.value:
        raise ValidationError(
            f"Transfer is {transfer.status} and cannot be {action}",
            details={"status": transfer.status},
        )


def approve_transfer(db: Session, *, request_id: UUID, admin_id: Optional[UUID] = None) -> TransferRequest:
    """PENDING -> COMPLETED: credit the destination wallet with the net amount"""
    snapshot = _peek(db, request_id)

    with unit_of_work(
        db,
        wallet_key(snapshot.owner_id, snapshot.from_wallet),
        wallet_key(snapshot.beneficiary_id, snapshot.to_wallet),
        request_key(request_id),
    ):
        transfer = _locked_transfer(db, request_id)
        _require_pending(transfer, "approved")
        if transfer.net_amount > 0:
            wallets.credit(
                db, transfer.beneficiary_id, WalletKind(transfer.to_wallet), transfer.net_amount, LedgerCategory.TRANSFER,
                correlation_id=transfer.id,
                description=(
                    "Transfer received" if transfer.kind == TransferKind.USER.value
                    else f"Transfer from {transfer.from_wallet} wallet"
                ),
            )
        transfer.status = TransferStatus.COMPLETED.value
        transfer.processed_by = admin_id
        transfer.processed_at = utcnow()
        log_extra = {"transfer_id": str(request_id), "net_amount": transfer.net_amount, "admin_id": admin_id}

    record_transfer(snapshot.kind, "completed")
    logger.info("Transfer completed", extra=log_extra)
    return transfer


def _close_with_reversal(
    db: Session,
    *,
    request_id: UUID,
    target: TransferStatus,
    reason: Optional[str],
    actor_id: Optional[UUID],
    owner_id: Optional[UUID] = None,
) -> TransferRequest:
    snapshot = _peek(db, request_id)
    if owner_id is not None and owner_id != snapshot.owner_id:
        raise NotFound(f"Transfer {request_id} not found")

    with unit_of_work(db, wallet_key(snapshot.owner_id, snapshot.from_wallet), request_key(request_id)):
        transfer = _locked_transfer(db, request_id)
        _require_pending(transfer, target.value.lower())
        original_id = db.execute(
            select(LedgerEntry.id).where(
                LedgerEntry.correlation_id == transfer.id,
                LedgerEntry.owner_id == transfer.owner_id,
                LedgerEntry.amount < 0,
            ).limit(1)
        ).scalar_one_or_none()
        wallets.credit(
            db, transfer.owner_id, WalletKind(transfer.from_wallet), transfer.amount, LedgerCategory.TRANSFER,
            correlation_id=transfer.id,
            reverses_entry_id=original_id,
            description=f"Reversal: transfer {target.value.lower()}",
        )
        transfer.status = target.value
        transfer.reason = reason
        transfer.processed_by = actor_id
        transfer.processed_at = utcnow()
        log_extra = {"transfer_id": str(request_id), "amount": transfer.amount, "reason": reason}

    record_transfer(snapshot.kind, target.value.lower())
    logger.info(f"Transfer {target.value.lower()}", extra=log_extra)
    return transfer


def reject_transfer(db: Session, *, request_id: UUID, reason: Optional[str] = None, admin_id: Optional[UUID] = None) -> TransferRequest:
    return _close_with_reversal(db, request_id=request_id, target=TransferStatus.REJECTED, reason=reason, actor_id=admin_id)


def cancel_transfer(
    db: Session,
    *,
    request_id: UUID,
    owner_id: Optional[UUID] = None,
    actor_id: Optional[UUID] = None,
    reason: Optional[str] = None,
) -> TransferRequest:
    return _close_with_reversal(
        db,
        request_id=request_id,
        target=TransferStatus.CANCELLED,
        reason=reason,
        actor_id=actor_id or owner_id,
        owner_id=owner_id,
    )
