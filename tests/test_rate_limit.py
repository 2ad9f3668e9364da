"""Rate limiting: client IP resolution and the 429 envelope."""
from fastapi.testclient import TestClient
from starlette.requests import Request

from app.core.rate_limit import client_ip, limiter


def _request(headers: dict | None = None, client=("10.0.0.5", 1234)) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


def test_client_ip_prefers_forwarded_for():
    req = _request({"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})
    assert client_ip(req) == "203.0.113.7"


def test_client_ip_falls_back_to_peer():
    assert client_ip(_request()) == "10.0.0.5"


def test_client_ip_without_peer():
    assert client_ip(_request(client=None)) == "127.0.0.1"


def test_rate_limit_returns_429_envelope(client: TestClient, make_solution, checkout, monkeypatch):
    solution = make_solution()
    calls = {"n": 0}

    def over_limit(*args, **kwargs):
        calls["n"] += 1
        return False

    # Every hit counts as over the limit
    monkeypatch.setattr(limiter.limiter, "hit", over_limit)
    r = client.post("/api/payments/initiate", json=checkout(solution.id))
    assert r.status_code == 429
    assert r.json()["error"].startswith("Too many requests")
    assert calls["n"] >= 1
