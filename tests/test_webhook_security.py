"""
Webhook security tests - HMAC signature, timestamp skew, settlement endpoint
"""

import json
import time
from uuid import uuid4

import pytest

from shopvest.infrastructure.settings import get_settings
from shopvest.services import deposits
from shopvest.utils.webhook_security import (
    compute_signature,
    verify_hmac_signature,
    verify_timestamp,
    verify_webhook_security,
)

SECRET = "whsec-test-secret"


def test_valid_signature():
    body = b'{"request_id": "abc"}'
    assert verify_hmac_signature(body, compute_signature(body, SECRET), SECRET) == (True, None, None)


def test_signature_is_case_insensitive():
    body = b"payload"
    assert verify_hmac_signature(body, compute_signature(body, SECRET).upper(), SECRET)[0] is True


def test_tampered_body_fails():
    signature = compute_signature(b'{"amount": 100}', SECRET)
    valid, code, details = verify_hmac_signature(b'{"amount": 999}', signature, SECRET)
    assert valid is False
    assert code == "WEBHOOK_INVALID_SIGNATURE"
    assert details == {"body_length_bytes": 15}


def test_missing_signature():
    valid, code, _ = verify_hmac_signature(b"payload", None, SECRET)
    assert valid is False
    assert code == "WEBHOOK_MISSING_HEADER"


def test_timestamp_checks():
    now = int(time.time())
    assert verify_timestamp(None, 300)[0] is True
    assert verify_timestamp(str(now - 10), 300)[0] is True
    assert verify_timestamp(str(now - 1000), 300)[1] == "WEBHOOK_TIMESTAMP_SKEW"
    assert verify_timestamp("yesterday", 300)[1] == "WEBHOOK_INVALID_TIMESTAMP"


def test_no_secret_outside_production(monkeypatch):
    monkeypatch.setattr(get_settings(), "WEBHOOK_SECRET", "")
    assert verify_webhook_security(b"payload", None) == (True, None, None)


def test_no_secret_in_production_refuses(monkeypatch):
    monkeypatch.setattr(get_settings(), "WEBHOOK_SECRET", "")
    monkeypatch.setattr(get_settings(), "ENV", "production")
    valid, code, _ = verify_webhook_security(b"payload", None)
    assert valid is False
    assert code == "WEBHOOK_NOT_CONFIGURED"


@pytest.fixture
def signed(monkeypatch):
    """Configure a webhook secret; returns a helper that builds signed requests"""
    monkeypatch.setattr(get_settings(), "WEBHOOK_SECRET", SECRET)

    def _signed(payload: dict):
        body = json.dumps(payload).encode("utf-8")
        headers = {
            "Content-Type": "application/json",
            "X-Webhook-Signature": compute_signature(body, SECRET),
            "X-Webhook-Timestamp": str(int(time.time())),
        }
        return body, headers

    return _signed


@pytest.fixture
def pending_deposit(session_factory, make_user):
    db = session_factory()
    try:
        return deposits.initiate_deposit(db, owner_id=make_user(), amount=3000).id
    finally:
        db.close()


def test_endpoint_rejects_bad_signature(client, signed, pending_deposit):
    body, headers = signed({"request_id": str(pending_deposit), "outcome": "completed"})
    headers["X-Webhook-Signature"] = "0" * 64
    response = client.post("/webhooks/v1/settlement", content=body, headers=headers)
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "WEBHOOK_INVALID_SIGNATURE"


def test_endpoint_settles_once(client, signed, pending_deposit):
    body, headers = signed({"request_id": str(pending_deposit), "outcome": "completed", "reference": "psp-77"})

    first = client.post("/webhooks/v1/settlement", content=body, headers=headers)
    assert first.status_code == 200
    assert first.json() == {
        "request_type": "deposit",
        "request_id": str(pending_deposit),
        "status": "COMPLETED",
        "duplicate": False,
    }

    repeat = client.post("/webhooks/v1/settlement", content=body, headers=headers)
    assert repeat.status_code == 200
    assert repeat.json()["duplicate"] is True


def test_endpoint_rejects_malformed_payload(client, signed):
    body, headers = signed({"request_id": "not-a-uuid", "outcome": "completed"})
    response = client.post("/webhooks/v1/settlement", content=body, headers=headers)
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_endpoint_unknown_request(client, signed):
    body, headers = signed({"request_id": str(uuid4()), "outcome": "failed"})
    response = client.post("/webhooks/v1/settlement", content=body, headers=headers)
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"
