"""
分类与发布档位管理
"""
import logging
from decimal import Decimal
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vestisen.models.category import Category
from vestisen.models.publication_tarif import PublicationTarif
from vestisen.schemas.catalog import CategoryCreate, CategoryUpdate, TarifCreate, TarifUpdate
from vestisen.services.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


def normalize_duration(duration_days) -> int:
    """空值和非正数统一存为 0（不限时）"""
    if duration_days is None or duration_days <= 0:
        return 0
    return duration_days


class CatalogService:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ---------------- 分类 ----------------
    async def list_categories(self, active_only: bool = True) -> List[Category]:
        query = select(Category).order_by(Category.name)
        if active_only:
            query = query.where(Category.active.is_(True))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_category(self, category_id: str) -> Category:
        category = await self.db.get(Category, category_id)
        if category is None:
            raise NotFoundError("Catégorie non trouvée", "CATEGORY_NOT_FOUND")
        return category

    async def _ensure_category_name_free(self, name: str, exclude_id: str = None) -> None:
        query = select(Category.id).where(Category.name == name)
        if exclude_id:
            query = query.where(Category.id != exclude_id)
        if (await self.db.execute(query)).first():
            raise ConflictError(f"La catégorie '{name}' existe déjà", "CATEGORY_EXISTS")

    async def create_category(self, data: CategoryCreate) -> Category:
        name = data.name.strip()
        await self._ensure_category_name_free(name)
        category = Category(
            name=name,
            description=data.description,
            icon=data.icon,
            active=data.active,
        )
        self.db.add(category)
        await self.db.flush()
        return category

    async def update_category(self, category_id: str, data: CategoryUpdate) -> Category:
        category = await self.get_category(category_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("name"):
            changes["name"] = changes["name"].strip()
            await self._ensure_category_name_free(changes["name"], exclude_id=category.id)
        for field, value in changes.items():
            if value is None and field in ("name", "active"):
                continue
            setattr(category, field, value)
        await self.db.flush()
        return category

    async def delete_category(self, category_id: str) -> None:
        category = await self.get_category(category_id)
        await self.db.delete(category)
        await self.db.flush()

    # ---------------- 档位 ----------------
    async def list_tarifs(self, active_only: bool = True) -> List[PublicationTarif]:
        query = select(PublicationTarif).order_by(PublicationTarif.price)
        if active_only:
            query = query.where(PublicationTarif.active.is_(True))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_tarif(self, tarif_id: str) -> PublicationTarif:
        tarif = await self.db.get(PublicationTarif, tarif_id)
        if tarif is None:
            raise NotFoundError("Tarif non trouvé", "TARIF_NOT_FOUND")
        return tarif

    async def _ensure_tarif_name_free(self, type_name: str, exclude_id: str = None) -> None:
        query = select(PublicationTarif.id).where(PublicationTarif.type_name == type_name)
        if exclude_id:
            query = query.where(PublicationTarif.id != exclude_id)
        if (await self.db.execute(query)).first():
            raise ConflictError(f"Le tarif '{type_name}' existe déjà", "TARIF_EXISTS")

    async def create_tarif(self, data: TarifCreate) -> PublicationTarif:
        type_name = data.type_name.strip()
        await self._ensure_tarif_name_free(type_name)
        tarif = PublicationTarif(
            type_name=type_name,
            price=max(data.price, Decimal("0")),
            duration_days=normalize_duration(data.duration_days),
            active=data.active,
        )
        self.db.add(tarif)
        await self.db.flush()
        logger.info("Tarif created: %s (%s credits, %s days)", type_name, tarif.price, tarif.duration_days)
        return tarif

    async def update_tarif(self, tarif_id: str, data: TarifUpdate) -> PublicationTarif:
        tarif = await self.get_tarif(tarif_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("type_name"):
            changes["type_name"] = changes["type_name"].strip()
            await self._ensure_tarif_name_free(changes["type_name"], exclude_id=tarif.id)
        if "duration_days" in changes:
            changes["duration_days"] = normalize_duration(changes["duration_days"])
        for field, value in changes.items():
            if value is None and field in ("type_name", "price", "active"):
                continue
            setattr(tarif, field, value)
        await self.db.flush()
        return tarif

    async def delete_tarif(self, tarif_id: str) -> None:
        tarif = await self.get_tarif(tarif_id)
        await self.db.delete(tarif)
        await self.db.flush()
