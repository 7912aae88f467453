"""
认证流程测试：注册、邮箱验证、登录、个人信息
"""
from decimal import Decimal

import pytest
from sqlalchemy import select

from vestisen import database
from vestisen.models.user import User, UserRole

from tests.conftest import DEFAULT_PASSWORD, auth_headers, create_user

pytestmark = pytest.mark.anyio


def _register_payload(**overrides) -> dict:
    payload = {
        "email": "Awa.Diop@vestisen.sn",
        "password": "motdepasse",
        "first_name": "Awa",
        "last_name": "Diop",
    }
    payload.update(overrides)
    return payload


async def _verification_token(email: str) -> str:
    async with database.AsyncSessionLocal() as session:
        result = await session.execute(select(User.verification_token).where(User.email == email))
        return result.scalar_one()


async def test_register_verify_login_me(client, seeded):
    response = await client.post("/api/v1/auth/register", json=_register_payload())
    assert response.status_code == 201
    body = response.json()
    assert body["email"] == "awa.diop@vestisen.sn"
    assert body["role"] == "USER"
    assert body["enabled"] is False
    assert body["email_verified"] is False
    assert "password_hash" not in body
    assert "verification_token" not in body

    login = await client.post(
        "/api/v1/auth/login",
        json={"email": "awa.diop@vestisen.sn", "password": "motdepasse"},
    )
    assert login.status_code == 403

    token = await _verification_token("awa.diop@vestisen.sn")
    verified = await client.get("/api/v1/auth/verify-email", params={"token": token})
    assert verified.status_code == 200

    again = await client.get("/api/v1/auth/verify-email", params={"token": token})
    assert again.status_code == 400

    login = await client.post(
        "/api/v1/auth/login",
        json={"email": "awa.diop@vestisen.sn", "password": "motdepasse"},
    )
    assert login.status_code == 200
    access_token = login.json()["access_token"]

    me = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {access_token}"})
    assert me.status_code == 200
    assert me.json()["email_verified"] is True
    assert Decimal(str(me.json()["credit_balance"])) == Decimal("0")


async def test_register_duplicate_email_conflicts(client, seeded):
    await create_user("taken@vestisen.sn")

    response = await client.post(
        "/api/v1/auth/register",
        json=_register_payload(email="TAKEN@vestisen.sn"),
    )
    assert response.status_code == 409
    assert response.json()["error"] == "EMAIL_EXISTS"


async def test_register_seller_requires_contact_details(client, seeded):
    response = await client.post(
        "/api/v1/auth/register",
        json=_register_payload(account_type="VENDEUR"),
    )
    assert response.status_code == 422

    response = await client.post(
        "/api/v1/auth/register",
        json=_register_payload(
            account_type="VENDEUR",
            phone="+221770000001",
            address="Médina, Dakar",
            whatsapp="+221770000001",
        ),
    )
    assert response.status_code == 201
    assert response.json()["role"] == "VENDEUR"


async def test_verify_email_without_token(client, seeded):
    response = await client.get("/api/v1/auth/verify-email")
    assert response.status_code == 400


async def test_login_wrong_password(client, seeded):
    await create_user("wrong@vestisen.sn")

    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "wrong@vestisen.sn", "password": "pas-le-bon"},
    )
    assert response.status_code == 401


async def test_login_lockout_after_repeated_failures(client, seeded, fake_redis):
    await create_user("locked@vestisen.sn")
    fake_redis.store["login_fail:locked@vestisen.sn"] = "20"

    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "locked@vestisen.sn", "password": DEFAULT_PASSWORD},
    )
    assert response.status_code == 429


async def test_disabled_account_cannot_login(client, seeded):
    await create_user("off@vestisen.sn", enabled=False)

    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "off@vestisen.sn", "password": DEFAULT_PASSWORD},
    )
    assert response.status_code == 403


async def test_me_requires_token(client, seeded):
    response = await client.get("/api/v1/auth/me")
    assert response.status_code == 401


async def test_update_profile(client, seeded):
    user = await create_user("profile@vestisen.sn", UserRole.VENDEUR)

    response = await client.put(
        "/api/v1/auth/me",
        json={"first_name": "Moussa", "whatsapp": "+221771234567"},
        headers=auth_headers(user),
    )
    assert response.status_code == 200
    assert response.json()["first_name"] == "Moussa"
    assert response.json()["whatsapp"] == "+221771234567"


async def test_legacy_prefix_still_served(client, seeded):
    user = await create_user("legacy@vestisen.sn")

    response = await client.get("/api/auth/me", headers=auth_headers(user))
    assert response.status_code == 200
    assert response.json()["email"] == "legacy@vestisen.sn"


async def test_forgot_and_reset_password(client, seeded):
    await create_user("oubli@vestisen.sn")

    unknown = await client.post("/api/v1/auth/forgot-password", json={"email": "personne@vestisen.sn"})
    known = await client.post("/api/v1/auth/forgot-password", json={"email": "oubli@vestisen.sn"})
    assert unknown.status_code == known.status_code == 200
    assert unknown.json()["message"] == known.json()["message"]

    async with database.AsyncSessionLocal() as session:
        result = await session.execute(
            select(User.reset_password_token).where(User.email == "oubli@vestisen.sn")
        )
        token = result.scalar_one()

    reset = await client.post(
        "/api/v1/auth/reset-password",
        json={"token": token, "new_password": "nouveau-secret"},
    )
    assert reset.status_code == 200

    reused = await client.post(
        "/api/v1/auth/reset-password",
        json={"token": token, "new_password": "encore-autre"},
    )
    assert reused.status_code == 400

    login = await client.post(
        "/api/v1/auth/login",
        json={"email": "oubli@vestisen.sn", "password": "nouveau-secret"},
    )
    assert login.status_code == 200
