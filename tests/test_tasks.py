"""
定时任务测试
"""
from datetime import timedelta
from decimal import Decimal

import pytest

from vestisen import database
from vestisen.celery_app import celery_app
from vestisen.models.annonce import Annonce
from vestisen.models.user import UserRole
from vestisen.schemas.annonce import AnnonceCreate
from vestisen.services.annonce_service import AnnonceService
from vestisen.tasks.publication_tasks import revert_expired_publications
from vestisen.utils.timezone import utc_now_naive

from tests.conftest import annonce_payload, category_id, create_user


def test_hourly_revert_is_scheduled():
    entry = celery_app.conf.beat_schedule["revert-expired-publications-hourly"]
    assert entry["task"] == "vestisen.tasks.publication_tasks.revert_expired_publications_task"
    assert entry["task"] in celery_app.tasks


@pytest.mark.anyio
async def test_revert_task_uses_its_own_session(seeded):
    seller = await create_user("task@vestisen.sn", UserRole.VENDEUR, balance=Decimal("20"))
    data = AnnonceCreate(**annonce_payload(await category_id(), publication_type="Premium"))
    async with database.AsyncSessionLocal() as session:
        service = AnnonceService(session)
        annonce = await service.create(seller, data)
        await service.approve(annonce.id)
        annonce.expires_at = utc_now_naive() - timedelta(hours=1)
        await session.commit()

    assert await revert_expired_publications() == 1
    assert await revert_expired_publications() == 0

    async with database.AsyncSessionLocal() as session:
        stored = await session.get(Annonce, annonce.id)
        assert stored.publication_type == "Standard"
        assert stored.expires_at is None
