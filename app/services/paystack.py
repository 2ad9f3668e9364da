"""Paystack client: initialize and verify transactions. Amounts go over the wire in kobo."""
import json
import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request as UrlRequest
from urllib.request import urlopen

from app.core.config import settings

log = logging.getLogger("credulen.paystack")

STATUS_SUCCESS = "success"


class PaystackError(Exception):
    """Gateway unreachable, rejected the call, or answered with something unreadable."""


@dataclass
class InitializedTransaction:
    authorization_url: str
    reference: str
    access_code: str | None = None


@dataclass
class VerifiedTransaction:
    reference: str
    status: str
    channel: str | None = None
    amount: int | None = None  # kobo
    metadata: dict[str, Any] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def successful(self) -> bool:
        return self.status == STATUS_SUCCESS


def to_kobo(amount: float) -> int:
    return int(round(amount * 100))


class PaystackClient:
    def __init__(self, secret_key: str, base_url: str = "https://api.paystack.co", timeout: float = 20.0):
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _request(self, method: str, path: str, payload: dict | None = None) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self.secret_key}"}
        data = None
        if payload is not None:
            data = json.dumps(payload).encode()
            headers["Content-Type"] = "application/json"
        req = UrlRequest(f"{self.base_url}{path}", data=data, method=method, headers=headers)
        try:
            with urlopen(req, timeout=self.timeout) as resp:
                body = json.loads(resp.read().decode())
        except HTTPError as e:
            detail = ""
            try:
                detail = json.loads(e.read().decode()).get("message", "")
            except (ValueError, OSError):
                pass
            raise PaystackError(f"Paystack HTTP {e.code}: {detail or e.reason}") from e
        except (URLError, OSError, ValueError) as e:
            raise PaystackError(f"Paystack connection error: {str(e)[:120]}") from e
        if not isinstance(body, dict) or not body.get("status"):
            message = body.get("message") if isinstance(body, dict) else None
            raise PaystackError(message or "Paystack request failed")
        data_out = body.get("data")
        if not isinstance(data_out, dict):
            raise PaystackError("Paystack response has no data")
        return data_out

    def initialize_transaction(
        self,
        email: str,
        amount_kobo: int,
        callback_url: str | None,
        metadata: dict[str, Any],
    ) -> InitializedTransaction:
        payload: dict[str, Any] = {"email": email, "amount": amount_kobo, "metadata": metadata}
        if callback_url:
            payload["callback_url"] = callback_url
        data = self._request("POST", "/transaction/initialize", payload)
        if not data.get("authorization_url") or not data.get("reference"):
            raise PaystackError("Paystack did not return an authorization URL")
        log.info("Paystack transaction initialized reference=%s amount_kobo=%s", data["reference"], amount_kobo)
        return InitializedTransaction(
            authorization_url=data["authorization_url"],
            reference=data["reference"],
            access_code=data.get("access_code"),
        )

    def verify_transaction(self, reference: str) -> VerifiedTransaction:
        data = self._request("GET", f"/transaction/verify/{quote(reference, safe='')}")
        metadata = data.get("metadata")
        return VerifiedTransaction(
            reference=data.get("reference") or reference,
            status=str(data.get("status") or ""),
            channel=data.get("channel"),
            amount=data.get("amount"),
            # Paystack sends "" when a transaction was opened without metadata
            metadata=metadata if isinstance(metadata, dict) else {},
            raw=data,
        )


def get_gateway() -> PaystackClient:
    """FastAPI dependency; tests override it with a fake gateway."""
    return PaystackClient(
        secret_key=settings.paystack_secret_key,
        base_url=settings.paystack_base_url,
        timeout=settings.paystack_timeout_seconds,
    )
