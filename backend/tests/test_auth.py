# tests/test_auth.py
from __future__ import annotations

import pytest
from sqlalchemy import select

from app.core.roles import UserRole, UserStatus
from app.models.user import MAX_LOGIN_ATTEMPTS, User

DEFAULT_PASSWORD = "Passw0rd!"

BASE = "/api/v1/auth"


def register_payload(email: str, **extra) -> dict:
    body = {
        "email": email,
        "password": "Str0ng!Pass",
        "firstName": "  Ada   Grace ",
        "lastName": "Lovelace",
    }
    body.update(extra)
    return body


async def load_user(db, email: str) -> User:
    db.expire_all()
    return (await db.execute(select(User).where(User.email == email))).scalar_one()


@pytest.mark.asyncio
async def test_register_creates_pending_user(client, db):
    r = await client.post(f"{BASE}/register", json=register_payload("New.User@Example.com"))
    assert r.status_code == 201, r.text
    body = r.json()

    assert body["tokenType"] == "Bearer"
    assert body["accessToken"]
    assert body["user"]["email"] == "new.user@example.com"
    assert body["user"]["firstName"] == "Ada Grace"
    assert body["user"]["status"] == "pending"
    assert body["user"]["role"] == "staff"
    assert body["user"]["emailVerified"] is False
    assert "passwordHash" not in body["user"]
    assert len(body["verificationCode"]) == 6

    user = await load_user(db, "new.user@example.com")
    assert user.password_hash != "Str0ng!Pass"
    assert user.email_verification_code == body["verificationCode"]


@pytest.mark.asyncio
async def test_register_duplicate_email(client):
    r = await client.post(f"{BASE}/register", json=register_payload("dup@example.com"))
    assert r.status_code == 201

    r = await client.post(f"{BASE}/register", json=register_payload("DUP@example.com"))
    assert r.status_code == 409
    assert r.json()["detail"] == "User with this email already exists"


@pytest.mark.asyncio
async def test_register_rejects_weak_password_and_super_admin(client):
    r = await client.post(f"{BASE}/register", json=register_payload("weak@example.com", password="password1"))
    assert r.status_code == 422

    r = await client.post(
        f"{BASE}/register",
        json=register_payload("boss@example.com", role=UserRole.SUPER_ADMIN.value),
    )
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_login_and_me(client, make_user):
    user = await make_user(email="login@example.com")

    r = await client.post(f"{BASE}/login", json={"email": "LOGIN@example.com", "password": DEFAULT_PASSWORD})
    assert r.status_code == 200, r.text
    token = r.json()["accessToken"]

    r = await client.get(f"{BASE}/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json()["id"] == str(user.id)
    assert r.json()["hasPendingRequest"] is False


@pytest.mark.asyncio
async def test_login_lockout_after_repeated_failures(client, db, make_user):
    await make_user(email="locked@example.com")

    for _ in range(MAX_LOGIN_ATTEMPTS):
        r = await client.post(f"{BASE}/login", json={"email": "locked@example.com", "password": "Wrong!Pass1"})
        assert r.status_code == 401
        assert r.json()["detail"] == "Invalid credentials"

    user = await load_user(db, "locked@example.com")
    assert user.login_attempts == MAX_LOGIN_ATTEMPTS
    assert user.is_locked()

    # even the right password is refused while locked
    r = await client.post(f"{BASE}/login", json={"email": "locked@example.com", "password": DEFAULT_PASSWORD})
    assert r.status_code == 401
    assert r.json()["detail"].startswith("Account is locked")


@pytest.mark.asyncio
async def test_login_refuses_suspended_and_inactive(client, make_user):
    await make_user(email="suspended@example.com", status=UserStatus.SUSPENDED)
    await make_user(email="inactive@example.com", status=UserStatus.INACTIVE)

    r = await client.post(f"{BASE}/login", json={"email": "suspended@example.com", "password": DEFAULT_PASSWORD})
    assert r.status_code == 401
    assert r.json()["detail"] == "Your account has been suspended"

    r = await client.post(f"{BASE}/login", json={"email": "inactive@example.com", "password": DEFAULT_PASSWORD})
    assert r.status_code == 401
    assert r.json()["detail"] == "Your account is inactive"


@pytest.mark.asyncio
async def test_verify_email_activates_user(client, db):
    r = await client.post(f"{BASE}/register", json=register_payload("verify@example.com"))
    code = r.json()["verificationCode"]

    wrong = "000000"  # issued codes are 100000-999999
    r = await client.post(f"{BASE}/verify-email", json={"email": "verify@example.com", "code": wrong})
    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid verification code"

    r = await client.post(f"{BASE}/verify-email", json={"email": "verify@example.com", "code": code})
    assert r.status_code == 200
    assert r.json()["user"]["emailVerified"] is True
    assert r.json()["user"]["status"] == "active"

    r = await client.post(f"{BASE}/verify-email", json={"email": "verify@example.com", "code": code})
    assert r.status_code == 400
    assert r.json()["detail"] == "Email is already verified"

    user = await load_user(db, "verify@example.com")
    assert user.email_verification_code is None


@pytest.mark.asyncio
async def test_password_reset_flow(client, db, make_user):
    await make_user(email="reset@example.com")

    r = await client.post(f"{BASE}/forgot-password", json={"email": "reset@example.com"})
    assert r.status_code == 200
    code = r.json()["code"]

    r = await client.post(f"{BASE}/verify-reset-code", json={"email": "reset@example.com", "code": code})
    assert r.status_code == 200

    r = await client.post(
        f"{BASE}/reset-password",
        json={"email": "reset@example.com", "code": code, "newPassword": "N3w!Secret"},
    )
    assert r.status_code == 200

    r = await client.post(f"{BASE}/login", json={"email": "reset@example.com", "password": "N3w!Secret"})
    assert r.status_code == 200

    # codes are single use
    r = await client.post(f"{BASE}/verify-reset-code", json={"email": "reset@example.com", "code": code})
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_forgot_password_does_not_leak_accounts(client):
    r = await client.post(f"{BASE}/forgot-password", json={"email": "nobody@example.com"})
    assert r.status_code == 200
    assert r.json()["code"] is None
    assert r.json()["message"].startswith("If an account with that email exists")


@pytest.mark.asyncio
async def test_protected_routes_require_valid_token(client):
    r = await client.get(f"{BASE}/me", headers={"Authorization": "Bearer not-a-token"})
    assert r.status_code == 401
