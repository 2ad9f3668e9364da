"""Payment initiation: Paystack checkout, free registrations and pricing."""
from fastapi.testclient import TestClient
from sqlmodel import select

from app.models import AuditLog, Notification, NotificationRecipient, SolutionRegistration, Voucher
from app.models.notification import ADMIN_RECIPIENT


def _registrations(db) -> list[SolutionRegistration]:
    db.expire_all()
    return list(db.exec(select(SolutionRegistration)).all())


def test_initiate_opens_paystack_transaction(client: TestClient, db, gateway, make_solution, checkout):
    solution = make_solution(price=15000)
    r = client.post("/api/payments/initiate", json=checkout(solution.id, email="Ada@Example.com"))
    assert r.status_code == 200, r.text
    j = r.json()
    assert j["reference"] == "ref_0001"
    assert j["authorization_url"].endswith("ref_0001")

    call = gateway.initialized[0]
    assert call["email"] == "ada@example.com"
    assert call["amount_kobo"] == 1_500_000
    assert call["metadata"]["solutionId"] == solution.id
    assert call["metadata"]["fullName"] == "Ada Obi"

    [reg] = _registrations(db)
    assert reg.payment_status == "pending"
    assert reg.payment_reference == "ref_0001"
    assert reg.final_amount == 15000
    assert reg.selected_solution == solution.title
    assert call["metadata"]["registrationId"] == reg.id


def test_initiate_price_comes_from_catalogue(client: TestClient, db, gateway, make_solution, checkout):
    solution = make_solution(price=4200)
    r = client.post("/api/payments/initiate", json=checkout(solution.id, amount=1, price=1))
    assert r.status_code == 200
    assert gateway.initialized[0]["amount_kobo"] == 420_000


def test_initiate_uses_callback_url(client: TestClient, gateway, make_solution, checkout):
    solution = make_solution()
    client.post(
        "/api/payments/initiate",
        json=checkout(solution.id, callback_url="https://credulen.com/payment/callback"),
    )
    assert gateway.initialized[0]["callback_url"] == "https://credulen.com/payment/callback"


def test_initiate_notifies_admin_and_audits(client: TestClient, db, make_solution, checkout):
    solution = make_solution()
    client.post("/api/payments/initiate", json=checkout(solution.id))
    admin_titles = db.exec(
        select(Notification.title)
        .join(NotificationRecipient, NotificationRecipient.notification_id == Notification.id)
        .where(NotificationRecipient.recipient == ADMIN_RECIPIENT)
    ).all()
    assert admin_titles == ["New Payment Initiated"]
    audit = db.exec(select(AuditLog).where(AuditLog.event == "payment_initiated")).one()
    assert audit.reference == "ref_0001"


def test_initiate_with_voucher_matches_preview(client: TestClient, gateway, make_solution, make_voucher, checkout):
    solution = make_solution(price=12345.67)
    make_voucher("TAKE15", discount_value=15)
    preview = client.post(
        "/api/payments/discounted-amount",
        json={"voucherCode": "TAKE15", "solutionId": solution.id, "email": "ada@example.com"},
    ).json()
    r = client.post("/api/payments/initiate", json=checkout(solution.id, voucherCode="TAKE15"))
    assert r.status_code == 200
    assert gateway.initialized[0]["amount_kobo"] == round(preview["discountedAmount"] * 100)
    assert gateway.initialized[0]["metadata"]["voucherCode"] == "TAKE15"


def test_initiate_does_not_redeem_voucher(client: TestClient, db, make_solution, make_voucher, checkout):
    solution = make_solution()
    make_voucher("SAVE10", usage_limit=5)
    client.post("/api/payments/initiate", json=checkout(solution.id, voucherCode="SAVE10"))
    db.expire_all()
    assert db.exec(select(Voucher).where(Voucher.code == "SAVE10")).one().usage_count == 0


def test_initiate_rejected_voucher(client: TestClient, db, gateway, make_solution, make_voucher, checkout):
    solution = make_solution()
    make_voucher("FULL", usage_limit=1, usage_count=1)
    r = client.post("/api/payments/initiate", json=checkout(solution.id, voucherCode="FULL"))
    assert r.status_code == 400
    assert r.json()["error"] == "Voucher usage limit reached"
    assert gateway.initialized == []
    assert _registrations(db) == []


def test_gateway_failure_removes_pending_order(client: TestClient, db, gateway, make_solution, checkout):
    gateway.fail_initialize = True
    solution = make_solution()
    r = client.post("/api/payments/initiate", json=checkout(solution.id))
    assert r.status_code == 502
    assert r.json()["error"] == "Failed to initialize payment"
    assert _registrations(db) == []


def test_initiate_unknown_or_inactive_solution(client: TestClient, make_solution, checkout):
    r = client.post("/api/payments/initiate", json=checkout(999))
    assert r.status_code == 404
    hidden = make_solution(is_active=False)
    r = client.post("/api/payments/initiate", json=checkout(hidden.id))
    assert r.status_code == 404
    assert r.json()["error"] == "Solution not found"


def test_initiate_validation(client: TestClient, make_solution, checkout):
    solution = make_solution()
    assert client.post("/api/payments/initiate", json=checkout(solution.id, email="not-an-email")).status_code == 422
    assert client.post("/api/payments/initiate", json=checkout(solution.id, firstName="   ")).status_code == 422
    body = checkout(solution.id)
    del body["solutionId"]
    r = client.post("/api/payments/initiate", json=body)
    assert r.status_code == 422
    assert r.json()["error"] == "solutionId is required"


# ---------- zero-amount orders ----------
def test_free_solution_completes_without_gateway(client: TestClient, db, gateway, mailer, make_solution, checkout):
    solution = make_solution(price=0)
    r = client.post("/api/payments/initiate", json=checkout(solution.id))
    assert r.status_code == 200, r.text
    j = r.json()
    assert j["success"] is True
    assert j["data"]["payment_status"] == "completed"
    assert j["data"]["payment_method"] == "free"
    assert j["data"]["final_amount"] == 0
    assert gateway.initialized == []
    assert mailer.recipients == ["ada@example.com"]
    subject = mailer.sent[0][1]
    assert "Registration" in subject


def test_full_voucher_completes_and_redeems(client: TestClient, db, gateway, mailer, make_solution, make_voucher, checkout):
    solution = make_solution(price=8000)
    make_voucher("FREE100", discount_value=100, usage_limit=3)
    r = client.post("/api/payments/initiate", json=checkout(solution.id, voucherCode="free100"))
    assert r.status_code == 200
    assert r.json()["data"]["voucher_code"] == "FREE100"
    assert gateway.initialized == []
    db.expire_all()
    assert db.exec(select(Voucher).where(Voucher.code == "FREE100")).one().usage_count == 1
    [reg] = _registrations(db)
    assert reg.payment_status == "completed"
    assert reg.base_amount == 8000
    assert reg.payment_reference is None


def test_free_registration_notifies_admin(client: TestClient, db, make_solution, checkout):
    solution = make_solution(price=0)
    client.post("/api/payments/initiate", json=checkout(solution.id))
    titles = db.exec(select(Notification.title)).all()
    assert "New Free Registration" in titles


def test_fixed_voucher_above_price_is_free(client: TestClient, gateway, make_solution, make_voucher, checkout):
    solution = make_solution(price=3000)
    make_voucher("BIGFIX", discount_type="fixed", discount_value=5000)
    r = client.post("/api/payments/initiate", json=checkout(solution.id, voucherCode="BIGFIX"))
    assert r.status_code == 200
    assert r.json()["data"]["final_amount"] == 0
    assert gateway.initialized == []
