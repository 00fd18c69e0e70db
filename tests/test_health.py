"""
Health, readiness and metrics endpoint tests
"""

from fastapi.testclient import TestClient

from tests.auth_utils import admin_headers, auth_headers


def test_health_endpoint(client: TestClient):
    """Test /health endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_ready_endpoint_all_connected(client: TestClient, monkeypatch):
    monkeypatch.setattr("shopvest.api.public.health.ping_redis", lambda: True)
    response = client.get("/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["database"] == "connected"
    assert data["redis"] == "connected"


def test_ready_endpoint_redis_down(client: TestClient, monkeypatch):
    monkeypatch.setattr("shopvest.api.public.health.ping_redis", lambda: False)
    response = client.get("/ready")
    assert response.status_code == 503
    data = response.json()
    assert data["status"] == "not_ready"
    assert data["redis"] == "disconnected"


def test_trace_id_in_error_response(client: TestClient):
    """Test that trace_id exists in error responses"""
    response = client.get("/nonexistent-endpoint")
    assert response.status_code == 404
    data = response.json()
    assert "error" in data
    assert data["error"]["trace_id"] is not None
    assert "X-Trace-ID" in response.headers
    assert data["error"]["trace_id"] == response.headers["X-Trace-ID"]


def test_trace_id_is_propagated_from_request(client: TestClient):
    response = client.get("/health", headers={"X-Trace-ID": "trace-from-gateway"})
    assert response.headers["X-Trace-ID"] == "trace-from-gateway"


def test_metrics_denied_without_credentials(client: TestClient):
    response = client.get("/metrics")
    assert response.status_code == 403


def test_metrics_with_token(client: TestClient):
    client.get("/health")
    response = client.get("/metrics", headers={"X-Metrics-Token": "test-metrics-token"})
    assert response.status_code == 200
    assert "http_requests_total" in response.text


def test_metrics_with_admin_jwt(client: TestClient):
    assert client.get("/metrics", headers=admin_headers()).status_code == 200


def test_metrics_denied_for_user_jwt(client: TestClient):
    assert client.get("/metrics", headers=auth_headers("00000000-0000-0000-0000-000000000001")).status_code == 403
