"""Payment verification: at-most-once side effects per reference."""
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, select

from app.core.database import engine
from app.core.errors import PaymentVerificationError
from app.models import AuditLog, Notification, ProcessedPayment, SolutionRegistration, User, Voucher
from app.services import ledger
from app.services.payments import PaymentService


def _start_checkout(client, solution, checkout, **overrides) -> str:
    r = client.post("/api/payments/initiate", json=checkout(solution.id, **overrides))
    assert r.status_code == 200, r.text
    return r.json()["reference"]


def _titles(db) -> list[str]:
    db.expire_all()
    return list(db.exec(select(Notification.title)).all())


def test_verify_completes_order(client: TestClient, db, mailer, make_solution, checkout):
    solution = make_solution(price=15000)
    reference = _start_checkout(client, solution, checkout)
    r = client.get("/api/payments/verify", params={"reference": reference})
    assert r.status_code == 200, r.text
    j = r.json()
    assert j["success"] is True
    assert j["message"] == "Payment verified successfully"
    assert j["data"]["amount"] == 15000
    assert j["data"]["selectedSolution"] == solution.title
    assert j["data"]["email"] == "ada@example.com"
    assert j["data"]["paymentDate"]

    db.expire_all()
    reg = db.exec(select(SolutionRegistration)).one()
    assert reg.payment_status == "completed"
    assert reg.payment_method == "card"
    assert reg.payment_details["reference"] == reference
    assert mailer.recipients == ["ada@example.com"]
    assert mailer.sent[0][1] == f"Payment Confirmed: {solution.title}"
    assert reference in mailer.sent[0][2]


def test_verify_creates_buyer_account(client: TestClient, db, make_solution, checkout):
    solution = make_solution()
    reference = _start_checkout(client, solution, checkout)
    client.get("/api/payments/verify", params={"reference": reference})
    user = db.exec(select(User).where(User.email == "ada@example.com")).one()
    assert user.hashed_password is None
    assert user.first_name == "Ada"
    assert db.exec(select(AuditLog).where(AuditLog.event == "payment_completed")).one().user_id == user.id


def test_double_verify_runs_side_effects_once(client: TestClient, db, gateway, mailer, make_solution, checkout):
    solution = make_solution()
    reference = _start_checkout(client, solution, checkout)
    first = client.get("/api/payments/verify", params={"reference": reference})
    second = client.get("/api/payments/verify", params={"reference": reference})
    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json()["message"] == "Payment already processed"
    assert second.json()["data"]["email"] == "ada@example.com"
    # The ledger answers the retry; the gateway is asked only once
    assert gateway.verified == [reference]
    assert len(mailer.sent) == 1
    titles = _titles(db)
    assert titles.count("Payment Successful") == 1
    assert titles.count("New Payment Received") == 1
    assert len(db.exec(select(ProcessedPayment)).all()) == 1


def test_double_verify_redeems_voucher_once(client: TestClient, db, make_solution, make_voucher, checkout):
    solution = make_solution()
    make_voucher("SAVE10", usage_limit=10)
    reference = _start_checkout(client, solution, checkout, voucherCode="SAVE10")
    client.get("/api/payments/verify", params={"reference": reference})
    client.get("/api/payments/verify", params={"reference": reference})
    db.expire_all()
    assert db.exec(select(Voucher).where(Voucher.code == "SAVE10")).one().usage_count == 1


def test_concurrent_verify_loses_claim(client: TestClient, db, gateway, mailer, make_solution, checkout):
    """Another request claims the reference while this one is talking to Paystack."""
    solution = make_solution()
    reference = _start_checkout(client, solution, checkout)

    def racing_winner(ref):
        with Session(engine) as other:
            assert ledger.claim(other, ref, timedelta(minutes=30))

    gateway.on_verify = racing_winner
    r = client.get("/api/payments/verify", params={"reference": reference})
    assert r.status_code == 200
    assert r.json()["message"] == "Payment already processed"
    assert mailer.sent == []
    assert "Payment Successful" not in _titles(db)
    assert len(db.exec(select(ProcessedPayment)).all()) == 1


def test_expired_ledger_entry_still_completes_once(db, gateway, mailer, make_solution):
    """After the ledger TTL lapses the order's own status keeps the transition single."""
    solution = make_solution()
    reg = SolutionRegistration(
        first_name="Ada",
        email="ada@example.com",
        solution_id=solution.id,
        selected_solution=solution.title,
        slug=solution.slug,
        base_amount=10000,
        final_amount=10000,
        payment_reference="ref_late",
    )
    db.add(reg)
    db.commit()
    gateway.transactions["ref_late"] = {"amount": 1_000_000, "metadata": {"registrationId": reg.id}}

    service = PaymentService(db, gateway, mailer, ttl=timedelta(seconds=-1))
    first = service.verify("ref_late")
    second = service.verify("ref_late")
    assert not first.already_processed
    assert second.already_processed
    assert len(mailer.sent) == 1


def test_save10_scenario(client: TestClient, db, gateway, make_solution, make_voucher, checkout):
    solution = make_solution(price=10000)
    make_voucher("SAVE10", discount_value=10, usage_limit=5, usage_count=4)
    reference = _start_checkout(client, solution, checkout, voucherCode="SAVE10")
    assert gateway.initialized[0]["amount_kobo"] == 900_000

    r = client.get("/api/payments/verify", params={"reference": reference})
    assert r.json()["data"]["amount"] == 9000
    db.expire_all()
    assert db.exec(select(Voucher).where(Voucher.code == "SAVE10")).one().usage_count == 5

    r = client.post("/api/payments/initiate", json=checkout(solution.id, email="bola@example.com", voucherCode="SAVE10"))
    assert r.status_code == 400
    assert r.json()["error"] == "Voucher usage limit reached"


def test_unsuccessful_transaction_notifies_failure(client: TestClient, db, gateway, mailer, make_solution, checkout):
    solution = make_solution()
    reference = _start_checkout(client, solution, checkout)
    gateway.status = "abandoned"
    r = client.get("/api/payments/verify", params={"reference": reference})
    assert r.status_code == 400
    assert r.json()["error"] == "Payment verification failed"
    assert "Payment Failed" in _titles(db)
    db.expire_all()
    assert db.exec(select(SolutionRegistration)).one().payment_status == "pending"
    assert db.exec(select(ProcessedPayment)).all() == []
    assert mailer.sent == []


def test_underpaid_transaction_is_rejected(client: TestClient, db, gateway, mailer, make_solution, checkout):
    solution = make_solution(price=10000)
    reference = _start_checkout(client, solution, checkout)
    gateway.transactions[reference]["amount"] = 100
    r = client.get("/api/payments/verify", params={"reference": reference})
    assert r.status_code == 400
    assert r.json()["error"] == "Payment verification failed"
    assert "Payment Failed" in _titles(db)
    db.expire_all()
    assert db.exec(select(SolutionRegistration)).one().payment_status == "pending"
    assert db.exec(select(ProcessedPayment)).all() == []
    assert mailer.sent == []


def test_discounted_order_expects_discounted_amount(client: TestClient, db, gateway, make_solution, make_voucher, checkout):
    solution = make_solution(price=10000)
    make_voucher("SAVE10")
    reference = _start_checkout(client, solution, checkout, voucherCode="SAVE10")
    # Paid the undiscounted price
    gateway.transactions[reference]["amount"] = 1_000_000
    r = client.get("/api/payments/verify", params={"reference": reference})
    assert r.status_code == 400
    gateway.transactions[reference]["amount"] = 900_000
    r = client.get("/api/payments/verify", params={"reference": reference})
    assert r.status_code == 200
    assert r.json()["data"]["amount"] == 9000


def test_gateway_error_on_verify(client: TestClient, db, gateway, make_solution, checkout):
    solution = make_solution()
    reference = _start_checkout(client, solution, checkout)
    gateway.fail_verify = True
    r = client.get("/api/payments/verify", params={"reference": reference})
    assert r.status_code == 400
    # Nothing was claimed, so a later retry can still succeed
    gateway.fail_verify = False
    r = client.get("/api/payments/verify", params={"reference": reference})
    assert r.status_code == 200
    assert r.json()["message"] == "Payment verified successfully"


def test_unknown_reference(client: TestClient, db):
    r = client.get("/api/payments/verify", params={"reference": "ref_missing"})
    assert r.status_code == 400
    assert db.exec(select(Notification)).all() == []


def test_registration_found_by_reference_without_metadata(client: TestClient, db, gateway, make_solution, checkout):
    solution = make_solution()
    reference = _start_checkout(client, solution, checkout)
    gateway.transactions[reference]["metadata"] = {}
    r = client.get("/api/payments/verify", params={"reference": reference})
    assert r.status_code == 200
    assert r.json()["message"] == "Payment verified successfully"


def test_email_failure_does_not_fail_payment(db, gateway, mailer, make_solution):
    solution = make_solution()
    reg = SolutionRegistration(
        first_name="Ada",
        email="ada@example.com",
        solution_id=solution.id,
        selected_solution=solution.title,
        slug=solution.slug,
        base_amount=10000,
        final_amount=10000,
        payment_reference="ref_mail",
    )
    db.add(reg)
    db.commit()
    gateway.transactions["ref_mail"] = {"amount": 1_000_000, "metadata": {"registrationId": reg.id}}
    mailer.outcomes = [False, RuntimeError("smtp down"), False]
    sleeps: list[float] = []

    result = PaymentService(db, gateway, mailer, sleep=sleeps.append).verify("ref_mail")
    assert not result.already_processed
    assert len(mailer.sent) == 3
    email_effect = next(e for e in result.side_effects if e.name == "email")
    assert not email_effect.ok
    db.refresh(reg)
    assert reg.payment_status == "completed"


def test_empty_reference_rejected(db, gateway, mailer):
    with pytest.raises(PaymentVerificationError):
        PaymentService(db, gateway, mailer).verify("   ")
