"""
交易相关接口测试：发布、购买、评价、会话、购物车、积分
"""
from decimal import Decimal

import pytest

from vestisen import database
from vestisen.models.user import UserRole
from vestisen.services.annonce_service import AnnonceService

from tests.conftest import annonce_payload, auth_headers, category_id, create_user

pytestmark = pytest.mark.anyio


async def _approve(annonce_id: str) -> None:
    async with database.AsyncSessionLocal() as session:
        await AnnonceService(session).approve(annonce_id)
        await session.commit()


async def _create_listing(client, seller, **overrides) -> dict:
    response = await client.post(
        "/api/v1/annonces",
        json=annonce_payload(await category_id(), **overrides),
        headers=auth_headers(seller),
    )
    assert response.status_code == 201, response.text
    return response.json()


async def test_create_annonce_requires_seller(client, seeded):
    buyer = await create_user("simple@vestisen.sn", balance=Decimal("50"))

    response = await client.post(
        "/api/v1/annonces",
        json=annonce_payload(await category_id()),
        headers=auth_headers(buyer),
    )
    assert response.status_code == 403


async def test_create_annonce_without_credits(client, seeded):
    seller = await create_user("empty@vestisen.sn", UserRole.VENDEUR)

    response = await client.post(
        "/api/v1/annonces",
        json=annonce_payload(await category_id()),
        headers=auth_headers(seller),
    )
    assert response.status_code == 400
    assert response.json()["error"] == "INSUFFICIENT_CREDITS"


async def test_create_and_list_own_annonces(client, seeded):
    seller = await create_user("mine@vestisen.sn", UserRole.VENDEUR, balance=Decimal("20"))

    created = await _create_listing(client, seller, publication_type="Premium")
    assert created["status"] == "PENDING"
    assert created["publication_type"] == "Premium"
    assert created["category"]["name"] == "Vêtements femme"

    balance = await client.get("/api/v1/credits/balance", headers=auth_headers(seller))
    assert Decimal(str(balance.json()["balance"])) == Decimal("5")

    mine = await client.get("/api/v1/annonces/my-annonces", headers=auth_headers(seller))
    assert [item["id"] for item in mine.json()] == [created["id"]]

    other = await create_user("other@vestisen.sn")
    forbidden = await client.get(f"/api/v1/annonces/{created['id']}", headers=auth_headers(other))
    assert forbidden.status_code == 403


async def test_buy_then_review_flow(client, seeded):
    seller = await create_user("maison@vestisen.sn", UserRole.VENDEUR, balance=Decimal("20"))
    buyer = await create_user("acheteur@vestisen.sn")
    stranger = await create_user("passant@vestisen.sn")
    annonce = await _create_listing(client, seller)
    await _approve(annonce["id"])

    not_buyer = await client.post(
        "/api/v1/reviews",
        json={"annonce_id": annonce["id"], "rating": 5},
        headers=auth_headers(stranger),
    )
    assert not_buyer.status_code == 403

    bought = await client.post(f"/api/v1/annonces/{annonce['id']}/buy", headers=auth_headers(buyer))
    assert bought.status_code == 200
    assert bought.json()["status"] == "SOLD"

    purchases = await client.get("/api/v1/annonces/my-purchases", headers=auth_headers(buyer))
    assert [item["id"] for item in purchases.json()] == [annonce["id"]]

    review = await client.post(
        "/api/v1/reviews",
        json={"annonce_id": annonce["id"], "rating": 4, "comment": "Très bon vendeur"},
        headers=auth_headers(buyer),
    )
    assert review.status_code == 201
    assert review.json()["reviewee_id"] == seller.id

    duplicate = await client.post(
        "/api/v1/reviews",
        json={"annonce_id": annonce["id"], "rating": 1},
        headers=auth_headers(buyer),
    )
    assert duplicate.status_code == 409

    summary = await client.get(f"/api/v1/reviews/seller/{seller.id}")
    assert summary.status_code == 200
    assert summary.json()["total"] == 1
    assert summary.json()["average_rating"] == 4.0


async def test_review_rating_bounds(client, seeded):
    buyer = await create_user("note@vestisen.sn")

    response = await client.post(
        "/api/v1/reviews",
        json={"annonce_id": "missing", "rating": 6},
        headers=auth_headers(buyer),
    )
    assert response.status_code == 422


async def test_conversation_flow(client, seeded):
    seller = await create_user("chat-seller@vestisen.sn", UserRole.VENDEUR, balance=Decimal("20"))
    buyer = await create_user("chat-buyer@vestisen.sn")
    annonce = await _create_listing(client, seller)

    own = await client.post(
        f"/api/v1/conversations/annonce/{annonce['id']}", headers=auth_headers(seller)
    )
    assert own.status_code == 400

    opened = await client.post(
        f"/api/v1/conversations/annonce/{annonce['id']}", headers=auth_headers(buyer)
    )
    assert opened.status_code == 200
    conversation_id = opened.json()["id"]

    reopened = await client.post(
        f"/api/v1/conversations/annonce/{annonce['id']}", headers=auth_headers(buyer)
    )
    assert reopened.json()["id"] == conversation_id

    sent = await client.post(
        "/api/v1/conversations/messages",
        json={"conversation_id": conversation_id, "content": "Toujours disponible ?"},
        headers=auth_headers(buyer),
    )
    assert sent.status_code == 201
    assert sent.json()["read_at"] is None

    listed = await client.get("/api/v1/conversations", headers=auth_headers(seller))
    assert [c["id"] for c in listed.json()] == [conversation_id]

    detail = await client.get(f"/api/v1/conversations/{conversation_id}", headers=auth_headers(seller))
    assert detail.status_code == 200
    messages = detail.json()["messages"]
    assert len(messages) == 1
    assert messages[0]["read_at"] is not None

    intruder = await create_user("intrus@vestisen.sn")
    denied = await client.get(f"/api/v1/conversations/{conversation_id}", headers=auth_headers(intruder))
    assert denied.status_code == 403


async def test_cart_is_idempotent(client, seeded):
    seller = await create_user("cart-seller@vestisen.sn", UserRole.VENDEUR, balance=Decimal("20"))
    buyer = await create_user("cart-buyer@vestisen.sn")
    annonce = await _create_listing(client, seller)
    headers = auth_headers(buyer)

    for _ in range(2):
        added = await client.post(f"/api/v1/cart/annonce/{annonce['id']}", headers=headers)
        assert added.status_code == 200

    cart = await client.get("/api/v1/cart", headers=headers)
    assert [item["id"] for item in cart.json()] == [annonce["id"]]

    for _ in range(2):
        removed = await client.delete(f"/api/v1/cart/annonce/{annonce['id']}", headers=headers)
        assert removed.status_code == 200

    assert (await client.get("/api/v1/cart", headers=headers)).json() == []

    missing = await client.post("/api/v1/cart/annonce/does-not-exist", headers=headers)
    assert missing.status_code == 404


async def test_contact_counter_only_for_approved(client, seeded):
    seller = await create_user("contact@vestisen.sn", UserRole.VENDEUR, balance=Decimal("20"))
    annonce = await _create_listing(client, seller)

    pending = await client.post(f"/api/v1/annonces/{annonce['id']}/contact")
    assert pending.json()["contact_count"] == 0

    await _approve(annonce["id"])
    approved = await client.post(f"/api/v1/annonces/{annonce['id']}/contact")
    assert approved.json()["contact_count"] == 1


async def test_upload_photos_skips_unsupported_files(client, seeded):
    seller = await create_user("photos@vestisen.sn", UserRole.VENDEUR, balance=Decimal("20"))
    annonce = await _create_listing(client, seller)

    response = await client.post(
        f"/api/v1/annonces/{annonce['id']}/photos",
        files=[
            ("files", ("robe.jpg", b"\xff\xd8\xff fake jpeg", "image/jpeg")),
            ("files", ("notes.txt", b"hello", "text/plain")),
            ("files", ("vide.png", b"", "image/png")),
        ],
        headers=auth_headers(seller),
    )
    assert response.status_code == 200
    images = response.json()["images"]
    assert len(images) == 1
    assert images[0].startswith(f"/uploads/annonce/user/{annonce['code']}/")
    assert images[0].endswith("_robe.jpg")

    other = await create_user("not-owner@vestisen.sn", UserRole.VENDEUR)
    denied = await client.post(
        f"/api/v1/annonces/{annonce['id']}/photos",
        files=[("files", ("robe.jpg", b"data", "image/jpeg"))],
        headers=auth_headers(other),
    )
    assert denied.status_code == 403


async def test_credit_purchase_and_confirm(client, seeded):
    seller = await create_user("credits@vestisen.sn", UserRole.VENDEUR)
    headers = auth_headers(seller)

    purchase = await client.post(
        "/api/v1/credits/purchase",
        json={"credits": "10", "payment_method": "WAVE"},
        headers=headers,
    )
    assert purchase.status_code == 201
    tx_id = purchase.json()["id"]
    assert purchase.json()["status"] == "PENDING"

    other = await create_user("thief@vestisen.sn", UserRole.VENDEUR)
    stolen = await client.post(f"/api/v1/credits/confirm/{tx_id}", headers=auth_headers(other))
    assert stolen.status_code == 403

    confirmed = await client.post(f"/api/v1/credits/confirm/{tx_id}", headers=headers)
    assert confirmed.status_code == 200
    assert Decimal(str(confirmed.json()["balance"])) == Decimal("10")

    twice = await client.post(f"/api/v1/credits/confirm/{tx_id}", headers=headers)
    assert twice.status_code == 409

    balance = await client.get("/api/v1/credits/balance", headers=headers)
    assert Decimal(str(balance.json()["balance"])) == Decimal("10")

    history = await client.get("/api/v1/credits/transactions", headers=headers)
    assert [tx["status"] for tx in history.json()] == ["COMPLETED"]


async def test_stripe_webhook_requires_secret(client, seeded):
    response = await client.post(
        "/api/v1/credits/webhook/stripe",
        content=b"{}",
        headers={"Stripe-Signature": "t=0,v1=bad"},
    )
    assert response.status_code == 400


async def test_catalog_lists_active_entries(client, seeded):
    categories = await client.get("/api/v1/categories")
    assert categories.status_code == 200
    assert len(categories.json()) == 6

    tarifs = await client.get("/api/v1/tarifs")
    assert [t["type_name"] for t in tarifs.json()] == ["Standard", "Premium", "Top Pub"]


async def test_listing_payment_approves_annonce(client, seeded):
    seller = await create_user("pay@vestisen.sn", UserRole.VENDEUR, balance=Decimal("20"))
    annonce = await _create_listing(client, seller, publication_type="Premium")
    headers = auth_headers(seller)

    created = await client.post(
        "/api/v1/payments",
        json={"annonce_id": annonce["id"], "payment_method": "PAIEMENT_LIVRAISON"},
        headers=headers,
    )
    assert created.status_code == 201
    payment = created.json()
    assert payment["status"] == "PENDING"
    assert payment["transaction_id"] == f"LIVRAISON-{payment['id']}"
    assert Decimal(str(payment["amount"])) == Decimal("15")

    duplicate = await client.post(
        "/api/v1/payments",
        json={"annonce_id": annonce["id"], "payment_method": "WAVE"},
        headers=headers,
    )
    assert duplicate.status_code == 409

    confirmed = await client.post(f"/api/v1/payments/{payment['id']}/confirm", headers=headers)
    assert confirmed.status_code == 200
    assert confirmed.json()["status"] == "COMPLETED"

    again = await client.post(f"/api/v1/payments/{payment['id']}/confirm", headers=headers)
    assert again.status_code == 409

    detail = await client.get(f"/api/v1/annonces/public/{annonce['id']}")
    assert detail.status_code == 200
    assert detail.json()["published_at"] is not None
