"""Health endpoint and the JSON error envelope."""
from fastapi.testclient import TestClient


def test_health_returns_ok(client: TestClient):
    r = client.get("/health")
    assert r.status_code == 200
    j = r.json()
    assert j.get("status") == "ok"
    assert j.get("database") == "ok"
    assert j.get("paystack_configured") is True
    assert j.get("mail_configured") is False


def test_request_id_header(client: TestClient):
    r = client.get("/health")
    assert r.headers.get("X-Request-ID")


def test_not_found_uses_error_envelope(client: TestClient):
    r = client.get("/api/solutions/does-not-exist")
    assert r.status_code == 404
    j = r.json()
    assert j["error"] == "Solution not found"
    assert j["status_code"] == 404
    assert j["request_id"] == r.headers["X-Request-ID"]


def test_validation_error_names_the_field(client: TestClient):
    r = client.get("/api/payments/verify")
    assert r.status_code == 422
    j = r.json()
    assert j["error"] == "reference is required"
    assert isinstance(j["detail"], list)
