"""
HTTP surface tests - auth, user endpoints, admin endpoints, error envelope
"""

from uuid import uuid4

import pytest

from shopvest.core.users.models import KYCStatus
from tests.auth_utils import admin_headers, auth_headers


def test_missing_token_is_401(client):
    response = client.get("/api/v1/wallet")
    assert response.status_code == 401
    error = response.json()["error"]
    assert error["code"] == "AUTHORIZATION_MISSING"
    assert error["retryable"] is False
    assert error["trace_id"]


def test_garbage_token_is_401(client):
    response = client.get("/api/v1/wallet", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "INVALID_TOKEN"


def test_first_call_provisions_user(client):
    user_id = uuid4()
    response = client.get("/api/v1/wallet", headers=auth_headers(str(user_id), email="new@example.com"))
    assert response.status_code == 200
    assert response.json() == {
        "main_balance": 0,
        "investment_balance": 0,
        "profit_balance": 0,
        "total_balance": 0,
    }

    users = client.get("/admin/v1/users", headers=admin_headers()).json()
    assert [u["email"] for u in users] == ["new@example.com"]
    assert users[0]["kyc_status"] == KYCStatus.NOT_SUBMITTED.value


def test_user_token_cannot_reach_admin(client, make_user):
    user_id = make_user()
    response = client.get("/admin/v1/shops", headers=auth_headers(str(user_id)))
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "HTTP_403"


def test_admin_creates_shop_and_user_invests(client, make_user):
    user_id = make_user(main=50000)
    headers = auth_headers(str(user_id))

    created = client.post(
        "/admin/v1/shops",
        headers=admin_headers(),
        json={
            "name": "Harbour Cafe",
            "daily_percent": "2.00",
            "duration_days": 10,
            "min_amount": 1000,
            "max_amount": 40000,
            "total_slots": 2,
        },
    )
    assert created.status_code == 201
    shop = created.json()
    assert shop["available_slots"] == 2
    assert shop["status"] == "ACTIVE"

    listed = client.get("/api/v1/shops", headers=headers).json()
    assert [s["id"] for s in listed] == [shop["id"]]

    opened = client.post("/api/v1/investments", headers=headers, json={"shop_id": shop["id"], "amount": 20000})
    assert opened.status_code == 201
    investment = opened.json()
    assert investment["daily_profit"] == 400
    assert investment["shop_name"] == "Harbour Cafe"

    wallet = client.get("/api/v1/wallet", headers=headers).json()
    assert wallet["main_balance"] == 30000

    shop_after = client.get(f"/api/v1/shops/{shop['id']}", headers=headers).json()
    assert shop_after["filled_slots"] == 1

    too_much = client.post("/api/v1/investments", headers=headers, json={"shop_id": shop["id"], "amount": 45000})
    assert too_much.status_code == 400
    assert too_much.json()["error"]["code"] == "OUT_OF_RANGE"


def test_transactions_and_export(client, make_user):
    user_id = make_user(main=5000, profit=700)
    headers = auth_headers(str(user_id))

    page = client.get("/api/v1/wallet/transactions", headers=headers, params={"limit": 1}).json()
    assert page["total"] == 2
    assert page["limit"] == 1
    assert len(page["items"]) == 1

    income = client.get("/api/v1/wallet/transactions", headers=headers, params={"category": "income"}).json()
    assert [item["amount"] for item in income["items"]] == [700]

    export = client.get("/api/v1/wallet/transactions/export", headers=headers)
    assert export.status_code == 200
    assert export.headers["content-type"].startswith("text/csv")
    assert export.text.splitlines()[0] == "Type,Amount,Status,Date"
    assert len(export.text.strip().splitlines()) == 3


def test_kyc_gate_through_api(client, make_user):
    user_id = make_user(kyc_status=KYCStatus.PENDING, profit=20000)
    headers = auth_headers(str(user_id))
    body = {"kind": "PROFIT", "amount": 5000, "method": "VELVPAY"}

    blocked = client.post("/api/v1/withdrawals", headers=headers, json=body)
    assert blocked.status_code == 403
    assert blocked.json()["error"]["code"] == "KYC_REQUIRED"

    verdict = client.put(f"/admin/v1/users/{user_id}/kyc", headers=admin_headers(), json={"status": "APPROVED"})
    assert verdict.status_code == 200
    assert verdict.json()["kyc_status"] == "APPROVED"

    allowed = client.post("/api/v1/withdrawals", headers=headers, json=body)
    assert allowed.status_code == 201
    assert allowed.json()["fee"] == 50
    assert allowed.json()["net_amount"] == 4950


def test_withdrawal_approve_and_reject(client, make_user):
    user_id = make_user(profit=20000)
    headers = auth_headers(str(user_id))
    body = {"kind": "PROFIT", "amount": 5000, "method": "VELVPAY"}

    first = client.post("/api/v1/withdrawals", headers=headers, json=body).json()
    second = client.post("/api/v1/withdrawals", headers=headers, json=body).json()
    assert client.get("/api/v1/wallet", headers=headers).json()["profit_balance"] == 10000

    approved = client.post(f"/admin/v1/withdrawals/{first['id']}/approve", headers=admin_headers())
    assert approved.status_code == 200
    assert approved.json()["status"] == "APPROVED"
    assert approved.json()["payout_reference"].startswith("payout-")

    rejected = client.post(
        f"/admin/v1/withdrawals/{second['id']}/reject",
        headers=admin_headers(),
        json={"reason": "Bank details mismatch"},
    )
    assert rejected.status_code == 200
    assert rejected.json()["status"] == "REJECTED"
    assert rejected.json()["reason"] == "Bank details mismatch"
    assert client.get("/api/v1/wallet", headers=headers).json()["profit_balance"] == 15000

    again = client.post(f"/admin/v1/withdrawals/{second['id']}/reject", headers=admin_headers())
    assert again.status_code == 400
    assert again.json()["error"]["code"] == "VALIDATION_ERROR"

    paid_out = client.post(f"/admin/v1/withdrawals/{first['id']}/reject", headers=admin_headers())
    assert paid_out.status_code == 400
    assert client.get("/api/v1/wallet", headers=headers).json()["profit_balance"] == 15000

    pending =client.get("/admin/v1/withdrawals", headers=admin_headers(), params={"status": "APPROVED"}).json()
    assert [w["id"] for w in pending] == [first["id"]]


def test_discriminated_withdrawal_body(client, make_user):
    headers = auth_headers(str(make_user(profit=20000)))
    response = client.post("/api/v1/withdrawals", headers=headers, json={"kind": "BONUS", "amount": 5000})
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_transfer_between_users(client, make_user):
    sender = make_user(main=20000)
    recipient = make_user()
    sender_headers = auth_headers(str(sender))

    created = client.post(
        "/api/v1/transfers",
        headers=sender_headers,
        json={"kind": "USER", "recipient_id": str(recipient), "amount": 10000},
    )
    assert created.status_code == 201
    transfer = created.json()
    assert transfer["fee"] == 50

    approved = client.post(f"/admin/v1/transfers/{transfer['id']}/approve", headers=admin_headers())
    assert approved.status_code == 200
    assert approved.json()["status"] == "COMPLETED"

    recipient_wallet = client.get("/api/v1/wallet", headers=auth_headers(str(recipient))).json()
    assert recipient_wallet["main_balance"] == 9950
    received = client.get("/api/v1/transfers", headers=auth_headers(str(recipient))).json()
    assert [t["id"] for t in received] == [transfer["id"]]


def test_transfer_reject_and_cancel(client, make_user):
    user_id = make_user(main=20000)
    headers = auth_headers(str(user_id))
    body = {"kind": "WALLET", "from_wallet": "MAIN", "to_wallet": "PROFIT", "amount": 5000}

    first = client.post("/api/v1/transfers", headers=headers, json=body).json()
    second = client.post("/api/v1/transfers", headers=headers, json=body).json()

    rejected = client.post(f"/admin/v1/transfers/{first['id']}/reject", headers=admin_headers())
    assert rejected.json()["status"] == "REJECTED"
    cancelled = client.post(f"/api/v1/transfers/{second['id']}/cancel", headers=headers)
    assert cancelled.json()["status"] == "CANCELLED"

    assert client.get("/api/v1/wallet", headers=headers).json()["main_balance"] == 20000


def test_maintenance_mode_blocks_money_movement(client, make_user):
    headers = auth_headers(str(make_user(profit=20000)))

    updated = client.put(
        "/admin/v1/settings/system",
        headers=admin_headers(),
        json={"maintenance_mode": True, "maintenance_message": "Upgrading", "change_note": "release"},
    )
    assert updated.status_code == 200
    assert updated.json()["version"] == 1
    assert updated.json()["maintenance_mode"] is True

    response = client.post("/api/v1/withdrawals", headers=headers, json={"kind": "PROFIT", "amount": 5000, "method": "VELVPAY"})
    assert response.status_code == 503
    error = response.json()["error"]
    assert error["code"] == "SYSTEM_UNAVAILABLE"

    history = client.get("/admin/v1/settings/system/history", headers=admin_headers()).json()
    assert [h["version"] for h in history] == [1]


def test_invalid_settings_update_is_rejected(client):
    response = client.put("/admin/v1/settings/system", headers=admin_headers(), json={"withdrawal_fee_rate": "1.5"})
    assert response.status_code == 422
    current = client.get("/admin/v1/settings/system", headers=admin_headers()).json()
    assert current["version"] == 0


def test_deposit_flow(client, make_user):
    user_id = make_user()
    headers = auth_headers(str(user_id))

    created = client.post("/api/v1/deposits", headers=headers, json={"amount": 2500})
    assert created.status_code == 201
    assert created.json()["status"] == "PENDING"

    settled = client.post(
        "/webhooks/v1/settlement",
        json={"request_id": created.json()["id"], "outcome": "completed", "reference": "psp-1"},
    )
    assert settled.status_code == 200
    assert settled.json()["request_type"] == "deposit"

    deposits = client.get("/api/v1/deposits", headers=headers).json()
    assert deposits[0]["status"] == "COMPLETED"
    assert deposits[0]["provider_reference"] == "psp-1"
    assert client.get("/api/v1/wallet", headers=headers).json()["main_balance"] == 2500

    summary = client.get("/api/v1/analytics/summary", headers=headers).json()
    assert summary["totals"]["deposit"] == 2500
    assert summary["net_flow"] == 2500


def test_analytics_inverted_window(client, make_user):
    headers = auth_headers(str(make_user()))
    response = client.get(
        "/api/v1/analytics/summary",
        headers=headers,
        params={"date_from": "2026-03-01", "date_to": "2026-02-01"},
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_admin_wallet_adjustment(client, make_user):
    user_id = make_user(main=1000)

    credit = client.post(
        "/admin/v1/wallets/adjust",
        headers=admin_headers(),
        json={"user_id": str(user_id), "wallet_kind": "MAIN", "amount": 500, "reason": "Goodwill credit"},
    )
    assert credit.status_code == 201
    assert credit.json()["category"] == "adjustment"

    overdraw = client.post(
        "/admin/v1/wallets/adjust",
        headers=admin_headers(),
        json={"user_id": str(user_id), "wallet_kind": "MAIN", "amount": -5000, "reason": "Chargeback"},
    )
    assert overdraw.status_code == 409
    assert overdraw.json()["error"]["code"] == "INSUFFICIENT_FUNDS"

    unknown = client.post(
        "/admin/v1/wallets/adjust",
        headers=admin_headers(),
        json={"user_id": str(uuid4()), "wallet_kind": "MAIN", "amount": 500, "reason": "Typo"},
    )
    assert unknown.status_code == 404

    report = client.get("/admin/v1/wallets/reconcile", headers=admin_headers()).json()
    assert report["drift"] == []


def test_dashboard_and_jobs(client, make_user, make_shop):
    user_id = make_user(main=10000)
    shop_id = make_shop()
    client.post("/api/v1/investments", headers=auth_headers(str(user_id)), json={"shop_id": str(shop_id), "amount": 10000})

    summary = client.get("/admin/v1/dashboard/summary", headers=admin_headers())
    assert summary.status_code == 200
    assert summary.json()["active_capital"] == 10000
    assert summary.json()["users"] == 1

    accrued = client.post("/admin/v1/jobs/accrue", headers=admin_headers())
    assert accrued.status_code == 200
    assert accrued.json()["errors_count"] == 0

    matured = client.post("/admin/v1/jobs/maturity", headers=admin_headers(), json={"as_of_date": "2026-01-01"})
    assert matured.status_code == 200
    assert matured.json()["matured_count"] == 0


@pytest.mark.parametrize("path", ["/api/v1/shops/not-a-uuid", "/api/v1/investments?status=BOGUS"])
def test_request_validation_envelope(client, make_user, path):
    response = client.get(path, headers=auth_headers(str(make_user())))
    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["details"]
