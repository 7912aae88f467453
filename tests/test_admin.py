"""
管理后台测试：权限、审核、分类档位、积分配置、操作日志
"""
from decimal import Decimal

import pytest
from sqlalchemy import select

from vestisen import database
from vestisen.models.action_log import ActionLog
from vestisen.models.user import User, UserRole
from vestisen.services import action_log_service

from tests.conftest import annonce_payload, auth_headers, category_id, create_user

pytestmark = pytest.mark.anyio


@pytest.fixture
async def admin(seeded):
    return await create_user("admin@vestisen.sn", UserRole.ADMIN)


async def _pending_listing(client, balance: Decimal = Decimal("20"), **overrides) -> dict:
    seller = await create_user(f"s{len(overrides)}-{balance}@vestisen.sn", UserRole.VENDEUR, balance=balance)
    response = await client.post(
        "/api/v1/annonces",
        json=annonce_payload(await category_id(), **overrides),
        headers=auth_headers(seller),
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_derive_resource_from_path():
    uid = "0b6f2c9e-8a4d-4c1e-9a7b-2f3d4e5f6a7b"
    assert action_log_service.derive_resource(f"/api/v1/annonces/{uid}/buy") == ("annonces", uid)
    assert action_log_service.derive_resource(f"/api/admin/annonces/{uid}/approve") == ("annonces", uid)
    assert action_log_service.derive_resource("/api/v1/auth/login") == ("auth", None)


async def test_admin_routes_reject_non_admin(client, seeded):
    user = await create_user("lambda@vestisen.sn", UserRole.VENDEUR)

    for path in ("/api/v1/admin/users", "/api/v1/admin/annonces", "/api/v1/admin/action-logs"):
        response = await client.get(path, headers=auth_headers(user))
        assert response.status_code == 403, path


async def test_admin_approve_and_reject(client, admin):
    annonce = await _pending_listing(client, publication_type="Premium")
    headers = auth_headers(admin)

    pending = await client.get("/api/v1/admin/annonces", params={"status": "PENDING"}, headers=headers)
    assert [a["id"] for a in pending.json()["annonces"]] == [annonce["id"]]

    approved = await client.post(f"/api/v1/admin/annonces/{annonce['id']}/approve", headers=headers)
    assert approved.status_code == 200
    body = approved.json()
    assert body["status"] == "APPROVED"
    assert body["published_at"] is not None
    assert body["expires_at"] is not None

    public = await client.get("/api/v1/annonces/public")
    assert public.json()["total"] == 1

    rejected = await client.post(f"/api/v1/admin/annonces/{annonce['id']}/reject", headers=headers)
    assert rejected.json()["status"] == "REJECTED"
    assert rejected.json()["published_at"] is None
    assert rejected.json()["expires_at"] is None

    public = await client.get("/api/v1/annonces/public")
    assert public.json()["total"] == 0


async def test_admin_update_changes_tier_cost(client, admin):
    annonce = await _pending_listing(client)
    headers = auth_headers(admin)

    response = await client.put(
        f"/api/v1/admin/annonces/{annonce['id']}",
        json={"publication_type": "Top Pub", "title": "Titre corrigé"},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["publication_type"] == "Top Pub"
    assert Decimal(str(response.json()["publication_credit_cost"])) == Decimal("30")
    assert response.json()["title"] == "Titre corrigé"

    deleted = await client.delete(f"/api/v1/admin/annonces/{annonce['id']}", headers=headers)
    assert deleted.status_code == 200
    missing = await client.post(f"/api/v1/admin/annonces/{annonce['id']}/approve", headers=headers)
    assert missing.status_code == 404


async def test_admin_category_and_tarif_crud(client, admin):
    headers = auth_headers(admin)

    created = await client.post(
        "/api/v1/admin/categories",
        json={"name": "Chaussures", "icon": "👟"},
        headers=headers,
    )
    assert created.status_code == 201
    duplicate = await client.post("/api/v1/admin/categories", json={"name": "Chaussures"}, headers=headers)
    assert duplicate.status_code == 409

    disabled = await client.put(
        f"/api/v1/admin/categories/{created.json()['id']}",
        json={"active": False},
        headers=headers,
    )
    assert disabled.json()["active"] is False
    public = await client.get("/api/v1/categories")
    assert "Chaussures" not in [c["name"] for c in public.json()]

    tarif = await client.post(
        "/api/v1/admin/tarifs",
        json={"type_name": "Flash", "price": "8", "duration_days": -1},
        headers=headers,
    )
    assert tarif.status_code == 201
    assert tarif.json()["duration_days"] == 0

    removed = await client.delete(f"/api/v1/admin/tarifs/{tarif.json()['id']}", headers=headers)
    assert removed.status_code == 200
    names = [t["type_name"] for t in (await client.get("/api/v1/admin/tarifs", headers=headers)).json()]
    assert "Flash" not in names


async def test_admin_credit_config_and_confirmation(client, admin):
    headers = auth_headers(admin)

    updated = await client.put(
        "/api/v1/admin/credit-config",
        json={"price_per_credit_fcfa": "250"},
        headers=headers,
    )
    assert updated.status_code == 200
    public = await client.get("/api/v1/credits/config")
    assert Decimal(str(public.json()["price_per_credit_fcfa"])) == Decimal("250")

    seller = await create_user("paying@vestisen.sn", UserRole.VENDEUR)
    purchase = await client.post(
        "/api/v1/credits/purchase",
        json={"credits": "4", "payment_method": "CARD"},
        headers=auth_headers(seller),
    )
    assert Decimal(str(purchase.json()["amount_fcfa"])) == Decimal("1000")

    listing = await client.get(
        "/api/v1/admin/credit-transactions", params={"status": "PENDING"}, headers=headers
    )
    assert listing.json()["total"] == 1

    confirmed = await client.post(
        f"/api/v1/admin/credit-transactions/{purchase.json()['id']}/confirm", headers=headers
    )
    assert confirmed.status_code == 200
    assert Decimal(str(confirmed.json()["balance"])) == Decimal("4")


async def test_admin_user_management(client, admin):
    headers = auth_headers(admin)

    created = await client.post(
        "/api/v1/admin/users",
        json={
            "email": "nouveau@vestisen.sn",
            "password": "secret123",
            "first_name": "Fatou",
            "last_name": "Sall",
            "role": "VENDEUR",
        },
        headers=headers,
    )
    assert created.status_code == 201
    user_id = created.json()["id"]
    assert created.json()["enabled"] is True

    updated = await client.put(
        f"/api/v1/admin/users/{user_id}",
        json={"credit_balance": "12", "enabled": False},
        headers=headers,
    )
    assert updated.status_code == 200
    assert updated.json()["enabled"] is False

    listing = await client.get("/api/v1/admin/users", params={"search": "fatou"}, headers=headers)
    assert [u["id"] for u in listing.json()["users"]] == [user_id]

    async with database.AsyncSessionLocal() as session:
        stored = await session.get(User, user_id)
        assert stored.credit_balance == Decimal("12")


async def test_mutating_requests_are_logged(client, admin):
    annonce = await _pending_listing(client)
    headers = auth_headers(admin)

    await client.post(f"/api/v1/admin/annonces/{annonce['id']}/approve", headers=headers)
    await client.get("/api/v1/annonces/public")

    async with database.AsyncSessionLocal() as session:
        logs = (await session.execute(
            select(ActionLog).where(ActionLog.http_method != "INTERNAL")
        )).scalars().all()

    methods = {(log.http_method, log.request_uri) for log in logs}
    assert ("POST", "/api/v1/annonces") in methods
    assert ("POST", f"/api/v1/admin/annonces/{annonce['id']}/approve") in methods
    assert all(log.http_method != "GET" for log in logs)

    approval = next(log for log in logs if log.request_uri.endswith("/approve"))
    assert approval.user_id == admin.id
    assert approval.user_role == "ADMIN"
    assert approval.resource_type == "annonces"
    assert approval.resource_id == annonce["id"]
    assert approval.success is True

    api = await client.get("/api/v1/admin/action-logs", params={"resource_type": "annonces"}, headers=headers)
    assert api.status_code == 200
    assert api.json()["total"] >= 2
