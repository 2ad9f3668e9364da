"""Paystack client against a stubbed transport."""
import io
import json
from urllib.error import HTTPError, URLError

import pytest

from app.services import paystack
from app.services.paystack import PaystackClient, PaystackError, to_kobo


class _Response(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def _stub(monkeypatch, body=None, error=None):
    calls = []

    def fake_urlopen(req, timeout):
        calls.append(req)
        if error is not None:
            raise error
        return _Response(json.dumps(body).encode())

    monkeypatch.setattr(paystack, "urlopen", fake_urlopen)
    return calls


def test_to_kobo():
    assert to_kobo(9000) == 900_000
    assert to_kobo(10493.82) == 1_049_382


def test_initialize_sends_kobo_and_bearer(monkeypatch):
    calls = _stub(
        monkeypatch,
        {"status": True, "data": {"authorization_url": "https://checkout.paystack.com/x", "reference": "r1", "access_code": "a"}},
    )
    client = PaystackClient("sk_test_abc", base_url="https://api.paystack.test/")
    tx = client.initialize_transaction("ada@example.com", 900_000, "https://credulen.com/cb", {"registrationId": 1})
    assert tx.reference == "r1"
    req = calls[0]
    assert req.full_url == "https://api.paystack.test/transaction/initialize"
    assert req.get_header("Authorization") == "Bearer sk_test_abc"
    payload = json.loads(req.data)
    assert payload == {
        "email": "ada@example.com",
        "amount": 900_000,
        "metadata": {"registrationId": 1},
        "callback_url": "https://credulen.com/cb",
    }


def test_verify_parses_transaction(monkeypatch):
    calls = _stub(
        monkeypatch,
        {"status": True, "data": {"reference": "r 1", "status": "success", "channel": "card", "amount": 900_000, "metadata": ""}},
    )
    tx = PaystackClient("sk_test_abc").verify_transaction("r 1")
    assert tx.successful
    assert tx.metadata == {}
    assert tx.channel == "card"
    assert calls[0].full_url.endswith("/transaction/verify/r%201")


def test_status_false_is_an_error(monkeypatch):
    _stub(monkeypatch, {"status": False, "message": "Invalid key"})
    with pytest.raises(PaystackError, match="Invalid key"):
        PaystackClient("sk_test_abc").verify_transaction("r1")


def test_http_error(monkeypatch):
    error = HTTPError("https://api.paystack.co", 401, "Unauthorized", {}, io.BytesIO(b'{"message": "Invalid key"}'))
    _stub(monkeypatch, error=error)
    with pytest.raises(PaystackError, match="401"):
        PaystackClient("sk_test_abc").initialize_transaction("a@example.com", 100, None, {})


def test_connection_error(monkeypatch):
    _stub(monkeypatch, error=URLError("timed out"))
    with pytest.raises(PaystackError, match="connection error"):
        PaystackClient("sk_test_abc").verify_transaction("r1")


def test_initialize_without_url_is_an_error(monkeypatch):
    _stub(monkeypatch, {"status": True, "data": {"reference": "r1"}})
    with pytest.raises(PaystackError):
        PaystackClient("sk_test_abc").initialize_transaction("a@example.com", 100, None, {})
