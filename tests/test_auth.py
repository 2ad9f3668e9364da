"""Auth: register, login, validation, claiming a buyer account."""
from fastapi.testclient import TestClient
from sqlmodel import select

from app.models import AuditLog, User


def test_register_success(client: TestClient):
    r = client.post(
        "/auth/register",
        data={
            "email": "new@example.com",
            "password": "secure123",
            "full_name": "New User",
            "phone_number": "+2348011111111",
        },
    )
    assert r.status_code == 200
    j = r.json()
    assert j.get("email") == "new@example.com"
    assert j.get("full_name") == "New User"
    assert j.get("first_name") == "New"
    assert j.get("last_name") == "User"


def test_register_validation(client: TestClient):
    r = client.post(
        "/auth/register",
        data={"email": "bad", "password": "123", "full_name": ""},
    )
    assert r.status_code == 422
    assert r.json()["status_code"] == 422


def test_register_duplicate_email(client: TestClient, register_user):
    register_user(email="dup@example.com")
    r = client.post(
        "/auth/register",
        data={"email": "DUP@example.com", "password": "another123", "full_name": "Dup User"},
    )
    assert r.status_code == 400
    assert r.json()["error"] == "Email is already registered"


def test_register_claims_buyer_account(client: TestClient, db):
    db.add(User(email="buyer@example.com", full_name="Ada Obi", first_name="Ada", last_name="Obi"))
    db.commit()
    r = client.post(
        "/auth/register",
        data={"email": "buyer@example.com", "password": "secret123", "full_name": "Ada Obi"},
    )
    assert r.status_code == 200
    r = client.post("/auth/login", data={"email": "buyer@example.com", "password": "secret123"})
    assert r.status_code == 200
    db.expire_all()
    assert len(db.exec(select(User).where(User.email == "buyer@example.com")).all()) == 1


def test_login_success(client: TestClient, db):
    client.post(
        "/auth/register",
        data={"email": "login@example.com", "password": "pass123456", "full_name": "Login User"},
    )
    r = client.post(
        "/auth/login",
        data={"email": "login@example.com", "password": "pass123456"},
    )
    assert r.status_code == 200
    assert "access_token" in r.json()
    events = db.exec(select(AuditLog.event)).all()
    assert "register" in events
    assert "login" in events


def test_login_wrong_password(client: TestClient):
    client.post(
        "/auth/register",
        data={"email": "wrong@example.com", "password": "right123", "full_name": "Wrong User"},
    )
    r = client.post(
        "/auth/login",
        data={"email": "wrong@example.com", "password": "wrongpass"},
    )
    assert r.status_code == 401


def test_login_passwordless_buyer_rejected(client: TestClient, db):
    db.add(User(email="nopass@example.com", full_name="No Pass"))
    db.commit()
    r = client.post("/auth/login", data={"email": "nopass@example.com", "password": "anything"})
    assert r.status_code == 401


def test_me_requires_auth(client: TestClient):
    r = client.get("/auth/me")
    assert r.status_code == 401


def test_me_with_token(client: TestClient, register_user):
    _, headers = register_user(email="me@example.com")
    r = client.get("/auth/me", headers=headers)
    assert r.status_code == 200
    assert r.json().get("email") == "me@example.com"


def test_me_with_garbage_token(client: TestClient):
    r = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
