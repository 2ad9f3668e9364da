"""Pytest fixtures: test client, in-memory SQLite, fake Paystack gateway and recording mailer."""
import os
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

# In-memory SQLite for tests (must be set before the app is imported)
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ADMIN_SECRET", "test-admin-secret")
os.environ.setdefault("PAYSTACK_SECRET_KEY", "sk_test_dummy")
os.environ.setdefault("REMINDERS_ENABLED", "false")
os.environ.setdefault("EMAIL_RETRY_DELAY_SECONDS", "0")
# High limits so the whole suite fits in one window
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "1000")
os.environ.setdefault("RATE_LIMIT_PAYMENT_PER_MINUTE", "1000")

from sqlmodel import Session, SQLModel

from app.core.clock import utcnow
from app.core.database import engine
from app.core.rate_limit import limiter
from app.main import app
from app.models import Event, EventRegistration, Solution, Voucher, Webinar
from app.services.email_sender import get_mailer
from app.services.paystack import InitializedTransaction, PaystackError, VerifiedTransaction, get_gateway

ADMIN_HEADERS = {"X-Admin-Secret": "test-admin-secret"}


class FakeGateway:
    """Stands in for PaystackClient; remembers what it initialized so verify can echo the metadata."""

    def __init__(self):
        self.initialized: list[dict] = []
        self.verified: list[str] = []
        self.transactions: dict[str, dict] = {}
        self.fail_initialize = False
        self.fail_verify = False
        self.status = "success"
        self.channel = "card"
        self.on_verify = None

    def initialize_transaction(self, email, amount_kobo, callback_url, metadata):
        if self.fail_initialize:
            raise PaystackError("Paystack HTTP 401: Invalid key")
        reference = f"ref_{len(self.initialized) + 1:04d}"
        self.initialized.append(
            {"email": email, "amount_kobo": amount_kobo, "callback_url": callback_url, "metadata": metadata}
        )
        self.transactions[reference] = {"amount": amount_kobo, "metadata": dict(metadata)}
        return InitializedTransaction(
            authorization_url=f"https://checkout.paystack.com/{reference}",
            reference=reference,
            access_code=f"ac_{reference}",
        )

    def verify_transaction(self, reference):
        self.verified.append(reference)
        if self.on_verify is not None:
            self.on_verify(reference)
        if self.fail_verify:
            raise PaystackError("Paystack connection error: timed out")
        tx = self.transactions.get(reference, {})
        return VerifiedTransaction(
            reference=reference,
            status=self.status,
            channel=self.channel,
            amount=tx.get("amount"),
            metadata=tx.get("metadata", {}),
            raw={"reference": reference, "status": self.status, "channel": self.channel},
        )


class RecordingMailer:
    """Mailer that records every call; `outcomes` are consumed in order (bool or exception), then True."""

    def __init__(self, outcomes=None):
        self.sent: list[tuple[str, str, str]] = []
        self.outcomes = list(outcomes or [])

    def __call__(self, to, subject, html_body):
        self.sent.append((to, subject, html_body))
        if self.outcomes:
            outcome = self.outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        return True

    @property
    def recipients(self) -> list[str]:
        return [to for to, _, _ in self.sent]


@pytest.fixture(autouse=True)
def _fresh_tables():
    """Every test starts on empty tables and an empty rate limit window."""
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    limiter.reset()
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def client(gateway, mailer):
    """TestClient with the Paystack gateway and the mailer replaced."""
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_mailer] = lambda: mailer
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db():
    with Session(engine) as session:
        yield session


@pytest.fixture
def admin_headers():
    return dict(ADMIN_HEADERS)


@pytest.fixture
def make_solution(db):
    counter = {"n": 0}

    def _make(**kwargs) -> Solution:
        counter["n"] += 1
        n = counter["n"]
        data = {
            "title": f"Data Science Bootcamp {n}",
            "slug": f"data-science-bootcamp-{n}",
            "content": "Twelve weeks of applied data science",
            "category": "Training",
            "solution_type": "training school",
            "price": 10000.0,
            "status": "published",
            "is_active": True,
        }
        data.update(kwargs)
        solution = Solution(**data)
        db.add(solution)
        db.commit()
        db.refresh(solution)
        return solution

    return _make


@pytest.fixture
def make_voucher(db):
    def _make(code: str = "SAVE10", **kwargs) -> Voucher:
        data = {
            "code": code,
            "discount_type": "percentage",
            "discount_value": 10,
            "expiry_date": utcnow() + timedelta(days=30),
            "usage_limit": 0,
            "usage_count": 0,
        }
        data.update(kwargs)
        voucher = Voucher(**data)
        db.add(voucher)
        db.commit()
        db.refresh(voucher)
        return voucher

    return _make


@pytest.fixture
def make_event(db):
    def _make(slug: str = "ai-summit", starts_in: timedelta = timedelta(days=7), attendees=(), **kwargs) -> Event:
        data = {
            "title": slug.replace("-", " ").title(),
            "event_type": "conference",
            "category": "AI",
            "date": utcnow() + starts_in,
            "venue": "Lagos Continental",
            "slug": slug,
        }
        data.update(kwargs)
        event = Event(**data)
        db.add(event)
        for email in attendees:
            db.add(EventRegistration(full_name="Ada Obi", email=email, event_title=event.title, slug=slug))
        db.commit()
        db.refresh(event)
        return event

    return _make


@pytest.fixture
def make_webinar(db):
    def _make(slug: str = "intro-to-ml", **kwargs) -> Webinar:
        data = {
            "title": slug.replace("-", " ").title(),
            "category": "AI",
            "amount": 5000.0,
            "slug": slug,
            "image": "https://cdn.example.com/webinar.png",
        }
        data.update(kwargs)
        webinar = Webinar(**data)
        db.add(webinar)
        db.commit()
        db.refresh(webinar)
        return webinar

    return _make


def checkout_body(solution_id: int, **overrides) -> dict:
    body = {
        "firstName": "Ada",
        "lastName": "Obi",
        "email": "ada@example.com",
        "phoneNumber": "+2348012345678",
        "employmentStatus": "Employed",
        "jobTitle": "Analyst",
        "solutionId": solution_id,
    }
    body.update(overrides)
    return body


@pytest.fixture
def checkout():
    return checkout_body


@pytest.fixture
def register_user(client):
    """Registers and logs in a user; returns (user_id, auth headers)."""

    def _register(email: str = "buyer@example.com", password: str = "secret123", full_name: str = "Ada Obi"):
        r = client.post(
            "/auth/register",
            data={"email": email, "password": password, "full_name": full_name, "phone_number": "+2348012345678"},
        )
        assert r.status_code == 200, r.text
        user_id = r.json()["id"]
        r = client.post("/auth/login", data={"email": email, "password": password})
        assert r.status_code == 200, f"Login failed: {r.status_code} {r.text}"
        return user_id, {"Authorization": f"Bearer {r.json()['access_token']}"}

    return _register
