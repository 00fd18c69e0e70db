"""
Transfer processor tests - wallet-to-wallet and user-to-user
"""

from uuid import uuid4

import pytest

from shopvest.core.ledger.models import WalletKind
from shopvest.core.payments.models import TransferKind, TransferStatus
from shopvest.core.users.models import KYCStatus
from shopvest.services import transfers, wallets
from shopvest.services.exceptions import (
    BelowMinimum, InsufficientFunds, KYCRequired, NotFound, SystemUnavailable, ValidationError,
)
from shopvest.services.system_settings import update_system_settings
from shopvest.services.transfers import UserTransfer, WalletTransfer


def _request(db, owner_id, request):
    return transfers.request_transfer(db, owner_id=owner_id, request=request)


def test_wallet_transfer_fee_and_approval(db_session, funded_user):
    transfer = _request(db_session, funded_user, WalletTransfer(WalletKind.PROFIT, WalletKind.MAIN, 10000))

    assert transfer.kind == TransferKind.WALLET.value
    assert transfer.status == TransferStatus.PENDING.value
    assert transfer.fee == 50
    assert transfer.net_amount == 9950
    assert wallets.current_balance(db_session, funded_user, WalletKind.PROFIT) == 10000
    assert wallets.current_balance(db_session, funded_user, WalletKind.MAIN) == 50000

    approved = transfers.approve_transfer(db_session, request_id=transfer.id)
    assert approved.status == TransferStatus.COMPLETED.value
    assert wallets.current_balance(db_session, funded_user, WalletKind.MAIN) == 59950


def test_user_transfer_credits_recipient_on_approval(db_session, funded_user, make_user):
    recipient = make_user(kyc_status=KYCStatus.NOT_SUBMITTED)
    transfer = _request(db_session, funded_user, UserTransfer(recipient_id=recipient, amount=10000))

    assert transfer.from_wallet == WalletKind.MAIN.value
    assert transfer.to_wallet == WalletKind.MAIN.value
    assert wallets.current_balance(db_session, funded_user, WalletKind.MAIN) == 40000
    assert wallets.current_balance(db_session, recipient, WalletKind.MAIN) == 0

    transfers.approve_transfer(db_session, request_id=transfer.id)
    assert wallets.current_balance(db_session, recipient, WalletKind.MAIN) == 9950

    assert [t.id for t in transfers.list_transfers(db_session, owner_id=recipient)] == [transfer.id]
    assert transfers.get_transfer(db_session, transfer.id, owner_id=recipient).id == transfer.id


def test_same_wallet_is_rejected(db_session, funded_user):
    with pytest.raises(ValidationError):
        _request(db_session, funded_user, WalletTransfer(WalletKind.MAIN, WalletKind.MAIN, 5000))


def test_transfer_to_self_or_unknown_user(db_session, funded_user):
    with pytest.raises(ValidationError):
        _request(db_session, funded_user, UserTransfer(recipient_id=funded_user, amount=5000))
    with pytest.raises(ValidationError):
        _request(db_session, funded_user, UserTransfer(recipient_id=uuid4(), amount=5000))
    assert transfers.list_transfers(db_session, owner_id=funded_user) == []


def test_invalid_wallet_kind():
    with pytest.raises(ValidationError):
        WalletTransfer("SAVINGS", WalletKind.MAIN, 5000)


def test_transfer_gates(db_session, make_user, funded_user):
    unverified = make_user(kyc_status=KYCStatus.PENDING, main=50000)
    with pytest.raises(KYCRequired):
        _request(db_session, unverified, WalletTransfer(WalletKind.MAIN, WalletKind.PROFIT, 5000))

    with pytest.raises(BelowMinimum):
        _request(db_session, funded_user, WalletTransfer(WalletKind.MAIN, WalletKind.PROFIT, 999))

    with pytest.raises(InsufficientFunds):
        _request(db_session, funded_user, WalletTransfer(WalletKind.MAIN, WalletKind.PROFIT, 60000))

    update_system_settings(db_session, changes={"maintenance_mode": True})
    with pytest.raises(SystemUnavailable):
        _request(db_session, funded_user, WalletTransfer(WalletKind.MAIN, WalletKind.PROFIT, 5000))


def test_transfer_uses_current_fee_rate(db_session, funded_user):
    update_system_settings(db_session, changes={"transfer_fee_rate": "0.02"})
    transfer = _request(db_session, funded_user, WalletTransfer(WalletKind.MAIN, WalletKind.PROFIT, 10000))
    assert transfer.fee == 200
    assert transfer.settings_version == 1


def test_reject_returns_gross_amount(db_session, funded_user):
    transfer = _request(db_session, funded_user, WalletTransfer(WalletKind.MAIN, WalletKind.INVESTMENT, 10000))
    rejected = transfers.reject_transfer(db_session, request_id=transfer.id, reason="Not allowed")

    assert rejected.status == TransferStatus.REJECTED.value
    assert wallets.current_balance(db_session, funded_user, WalletKind.MAIN) == 50000
    assert wallets.current_balance(db_session, funded_user, WalletKind.INVESTMENT) == 0

    with pytest.raises(ValidationError):
        transfers.approve_transfer(db_session, request_id=transfer.id)


def test_only_owner_can_cancel(db_session, funded_user, make_user):
    stranger = make_user()
    transfer = _request(db_session, funded_user, WalletTransfer(WalletKind.PROFIT, WalletKind.MAIN, 5000))

    with pytest.raises(NotFound):
        transfers.cancel_transfer(db_session, request_id=transfer.id, owner_id=stranger)

    cancelled = transfers.cancel_transfer(db_session, request_id=transfer.id, owner_id=funded_user)
    assert cancelled.status == TransferStatus.CANCELLED.value
    assert wallets.current_balance(db_session, funded_user, WalletKind.PROFIT) == 20000


def test_approve_unknown_transfer(db_session):
    with pytest.raises(NotFound):
        transfers.approve_transfer(db_session, request_id=uuid4())
