"""
公开搜索测试：仅 APPROVED、付费优先排序、经纬度包围盒
"""
from decimal import Decimal

import pytest

from vestisen import database
from vestisen.models.user import UserRole
from vestisen.schemas.annonce import AnnonceCreate
from vestisen.services.annonce_service import AnnonceService, bounding_box, KM_PER_DEGREE

from tests.conftest import annonce_payload, category_id, create_user

pytestmark = pytest.mark.anyio

DAKAR = (14.7167, -17.4677)


async def _publish(seller, approve: bool = True, **overrides) -> str:
    data = AnnonceCreate(**annonce_payload(await category_id(), **overrides))
    async with database.AsyncSessionLocal() as session:
        service = AnnonceService(session)
        annonce = await service.create(seller, data)
        if approve:
            await service.approve(annonce.id)
        await session.commit()
        return annonce.id


def test_bounding_box_is_symmetric_around_centre():
    min_lat, max_lat, min_lng, max_lng = bounding_box(DAKAR[0], DAKAR[1], 10)
    assert min_lat < DAKAR[0] < max_lat
    assert min_lng < DAKAR[1] < max_lng
    assert max_lat - DAKAR[0] == pytest.approx(10 / KM_PER_DEGREE)
    # 经度跨度随纬度放大
    assert (max_lng - min_lng) > (max_lat - min_lat)


def test_bounding_box_near_pole_stays_finite():
    min_lat, max_lat, min_lng, max_lng = bounding_box(90.0, 0.0, 5)
    assert max_lng - min_lng < 360


async def test_search_only_returns_approved(client, seeded):
    seller = await create_user("shop@vestisen.sn", UserRole.VENDEUR, balance=Decimal("100"))
    visible = await _publish(seller, title="Boubou brodé")
    await _publish(seller, approve=False, title="Boubou en attente")

    response = await client.get("/api/v1/annonces/public")
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert [item["id"] for item in body["items"]] == [visible]


async def test_search_orders_paid_tiers_first_then_recency(client, seeded):
    seller = await create_user("tiers@vestisen.sn", UserRole.VENDEUR, balance=Decimal("200"))
    old_standard = await _publish(seller, publication_type="Standard")
    top = await _publish(seller, publication_type="Top Pub")
    premium = await _publish(seller, publication_type="Premium")
    new_standard = await _publish(seller, publication_type="Standard")

    response = await client.get("/api/v1/annonces/public", params={"size": 10})
    ids = [item["id"] for item in response.json()["items"]]
    assert ids == [top, premium, new_standard, old_standard]


async def test_search_filters(client, seeded):
    seller = await create_user("filters@vestisen.sn", UserRole.VENDEUR, balance=Decimal("100"))
    robe = await _publish(seller, title="Robe wax", size="M", price="12000", brand="Dakar Style")
    await _publish(
        seller, title="Veste jean", description="Veste en jean brut",
        size="L", price="30000", brand="Levis",
    )

    by_text = await client.get("/api/v1/annonces/public", params={"search": "robe"})
    assert [item["id"] for item in by_text.json()["items"]] == [robe]

    by_size = await client.get("/api/v1/annonces/public", params={"taille": "M"})
    assert [item["id"] for item in by_size.json()["items"]] == [robe]

    by_price = await client.get("/api/v1/annonces/public", params={"max_price": "20000"})
    assert [item["id"] for item in by_price.json()["items"]] == [robe]

    by_brand = await client.get("/api/v1/annonces/public", params={"brand": "dakar"})
    assert [item["id"] for item in by_brand.json()["items"]] == [robe]


async def test_search_radius_filter(client, seeded):
    seller = await create_user("geo@vestisen.sn", UserRole.VENDEUR, balance=Decimal("100"))
    radius_km = 10
    near = await _publish(seller, latitude=DAKAR[0], longitude=DAKAR[1])
    await _publish(
        seller,
        latitude=DAKAR[0] + 1.5 * radius_km / KM_PER_DEGREE,
        longitude=DAKAR[1],
    )
    await _publish(seller)

    response = await client.get(
        "/api/v1/annonces/public",
        params={"lat": DAKAR[0], "lng": DAKAR[1], "radius_km": radius_km},
    )
    assert [item["id"] for item in response.json()["items"]] == [near]


async def test_search_pagination_is_zero_based(client, seeded):
    seller = await create_user("pages@vestisen.sn", UserRole.VENDEUR, balance=Decimal("100"))
    for index in range(3):
        await _publish(seller, title=f"Article {index}")

    first = (await client.get("/api/v1/annonces/public", params={"page": 0, "size": 2})).json()
    second = (await client.get("/api/v1/annonces/public", params={"page": 1, "size": 2})).json()

    assert first["total"] == 3
    assert len(first["items"]) == 2
    assert len(second["items"]) == 1
    assert not {i["id"] for i in first["items"]} & {i["id"] for i in second["items"]}


async def test_public_detail_hides_pending_and_counts_views(client, seeded):
    seller = await create_user("detail@vestisen.sn", UserRole.VENDEUR, balance=Decimal("100"))
    approved = await _publish(seller)
    pending = await _publish(seller, approve=False)

    assert (await client.get(f"/api/v1/annonces/public/{pending}")).status_code == 404

    await client.get(f"/api/v1/annonces/public/{approved}")
    response = await client.get(f"/api/v1/annonces/public/{approved}")
    assert response.status_code == 200
    assert response.json()["view_count"] == 2


async def test_top_by_type(client, seeded):
    seller = await create_user("top@vestisen.sn", UserRole.VENDEUR, balance=Decimal("100"))
    premium = await _publish(seller, publication_type="Premium")
    await _publish(seller, publication_type="Standard")

    response = await client.get("/api/v1/annonces/public/top", params={"type": "Premium"})
    assert [item["id"] for item in response.json()] == [premium]
