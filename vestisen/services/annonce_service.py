"""
商品发布 (annonce) 生命周期服务

状态流转：
    PENDING -> APPROVED -> SOLD
    PENDING -> REJECTED
付费档位过期后不会下架，而是降级为默认档位 (Standard) 并变为不限时。

发布计时从审核通过开始：approve() 在同一事务中调用 _start_publication_clock()，
仅当 published_at 为空时写入 published_at / expires_at，重复审核不会重置计时。
退回 PENDING 或被拒绝会同时清空两者，重新审核后重新计时。
"""
import logging
import math
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from fastapi import UploadFile
from sqlalchemy import select, update, delete, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from vestisen.config import get_settings
from vestisen.models.annonce import Annonce, AnnonceStatus
from vestisen.models.cart_item import CartItem
from vestisen.models.category import Category
from vestisen.models.publication_tarif import PublicationTarif
from vestisen.models.user import User
from vestisen.schemas.annonce import AnnonceCreate, AnnonceAdminUpdate, AnnonceSearchParams
from vestisen.services import action_log_service, file_storage
from vestisen.services.credit_service import CreditService
from vestisen.services.errors import NotFoundError, ValidationError, ForbiddenError
from vestisen.utils.codes import generate_unique_code
from vestisen.utils.metrics import PUBLICATIONS_REVERTED
from vestisen.utils.timezone import utc_now_naive

logger = logging.getLogger(__name__)
settings = get_settings()

KM_PER_DEGREE = 111.0
MIN_LNG_SCALE = 0.01


def bounding_box(latitude: float, longitude: float, radius_km: float) -> Tuple[float, float, float, float]:
    """
    等距矩形近似计算经纬度包围盒

    Returns:
        (min_lat, max_lat, min_lng, max_lng)
    """
    lat_delta = radius_km / KM_PER_DEGREE
    lng_delta = radius_km / (KM_PER_DEGREE * max(MIN_LNG_SCALE, math.cos(math.radians(latitude))))
    return (
        latitude - lat_delta,
        latitude + lat_delta,
        longitude - lng_delta,
        longitude + lng_delta,
    )


def compute_expiry(start: datetime, duration_days: Optional[int]) -> Optional[datetime]:
    """duration_days 为空或 <= 0 表示不限时"""
    if not duration_days or duration_days <= 0:
        return None
    return start + timedelta(days=duration_days)


class AnnonceService:
    """商品发布服务"""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ------------------------------------------------------------------
    # 查询辅助
    # ------------------------------------------------------------------
    async def get(self, annonce_id: str, for_update: bool = False) -> Annonce:
        query = select(Annonce).where(Annonce.id == annonce_id)
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        annonce = result.scalar_one_or_none()
        if annonce is None:
            raise NotFoundError("Annonce non trouvée", "ANNONCE_NOT_FOUND")
        return annonce

    async def find_tarif(self, type_name: str, active_only: bool = True) -> Optional[PublicationTarif]:
        query = select(PublicationTarif).where(PublicationTarif.type_name == type_name)
        if active_only:
            query = query.where(PublicationTarif.active.is_(True))
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def resolve_tarif(self, type_name: str) -> PublicationTarif:
        tarif = await self.find_tarif(type_name)
        if tarif is None:
            raise ValidationError(
                f"Type de publication invalide ou inactif: {type_name}", "INVALID_PUBLICATION_TYPE"
            )
        return tarif

    async def resolve_category(self, category_id: str) -> Category:
        category = await self.db.get(Category, category_id)
        if category is None:
            raise NotFoundError("Catégorie non trouvée", "CATEGORY_NOT_FOUND")
        if not category.active:
            raise ValidationError("Catégorie inactive", "CATEGORY_INACTIVE")
        return category

    async def _default_tier_price(self) -> Decimal:
        tarif = await self.find_tarif(settings.default_publication_type)
        if tarif is None or tarif.price is None:
            return Decimal("0")
        return max(tarif.price, Decimal("0"))

    # ------------------------------------------------------------------
    # 创建
    # ------------------------------------------------------------------
    async def create(self, seller: User, data: AnnonceCreate) -> Annonce:
        """
        创建发布

        校验分类与档位有效，按档位价格扣除积分（余额不足抛 InsufficientCreditsError），
        扣费与插入在同一事务中，任一失败整体回滚。
        """
        category = await self.resolve_category(data.category_id)
        tarif = await self.resolve_tarif(data.publication_type)
        cost = max(tarif.price or Decimal("0"), Decimal("0"))

        await CreditService(self.db).deduct(seller.id, cost)

        annonce = Annonce(
            code=await generate_unique_code(self.db, Annonce),
            title=data.title,
            description=data.description,
            price=data.price,
            category_id=category.id,
            category=category,
            publication_type=tarif.type_name,
            publication_credit_cost=cost,
            condition=data.condition.value,
            size=data.size,
            brand=data.brand,
            color=data.color,
            location=data.location,
            latitude=data.latitude,
            longitude=data.longitude,
            images=list(data.images),
            seller_id=seller.id,
            seller=seller,
            status=AnnonceStatus.PENDING.value,
            view_count=0,
            contact_count=0,
            tout_doit_partir=data.tout_doit_partir,
            original_price=data.original_price,
            is_lot=data.is_lot,
            accept_payment_on_delivery=data.accept_payment_on_delivery,
            expires_at=None,
        )
        self.db.add(annonce)
        await self.db.flush()
        logger.info("Annonce created: %s by %s (tier=%s cost=%s)", annonce.code, seller.id, tarif.type_name, cost)
        return annonce

    # ------------------------------------------------------------------
    # 审核
    # ------------------------------------------------------------------
    async def _start_publication_clock(self, annonce: Annonce) -> bool:
        """审核通过后开始计时，已开始过则不做任何事"""
        if annonce.status != AnnonceStatus.APPROVED.value or annonce.published_at is not None:
            return False

        now = utc_now_naive()
        tarif = await self.find_tarif(annonce.publication_type, active_only=False)
        annonce.published_at = now
        annonce.expires_at = compute_expiry(now, tarif.duration_days if tarif else None)
        await self.db.flush()
        await action_log_service.log_internal(
            self.db,
            "Publication acceptée - décompte démarré",
            "annonces",
            annonce.id,
            user=await self.db.get(User, annonce.seller_id),
        )
        return True

    async def _set_status(self, annonce: Annonce, new_status: AnnonceStatus) -> None:
        """
        修改状态并维护计时字段

        售出时清空 expires_at 保留 published_at；退回 PENDING 或被拒绝时两者都清空，
        之后重新审核会重新开始计时。
        """
        annonce.status = new_status.value
        if new_status == AnnonceStatus.APPROVED:
            await self.db.flush()
            await self._start_publication_clock(annonce)
            return
        annonce.expires_at = None
        if new_status != AnnonceStatus.SOLD:
            annonce.published_at = None
        await self.db.flush()

    async def approve(self, annonce_id: str) -> Annonce:
        annonce = await self.get(annonce_id, for_update=True)
        if annonce.status == AnnonceStatus.SOLD.value:
            raise ValidationError("Annonce déjà vendue", "ANNONCE_SOLD")
        await self._set_status(annonce, AnnonceStatus.APPROVED)
        logger.info("Annonce approved: %s", annonce.code)
        return annonce

    async def reject(self, annonce_id: str) -> Annonce:
        annonce = await self.get(annonce_id, for_update=True)
        if annonce.status == AnnonceStatus.SOLD.value:
            raise ValidationError("Annonce déjà vendue", "ANNONCE_SOLD")
        await self._set_status(annonce, AnnonceStatus.REJECTED)
        logger.info("Annonce rejected: %s", annonce.code)
        return annonce

    # ------------------------------------------------------------------
    # 过期降级
    # ------------------------------------------------------------------
    async def revert_expired_publications(self, now: Optional[datetime] = None) -> int:
        """
        将所有已过期的付费发布降级为默认档位

        条件更新 (status=APPROVED 且 expires_at < now)，重复执行或并发执行都是幂等的：
        第一次执行后 expires_at 为空，不会再被选中。

        Returns:
            降级的数量
        """
        now = now or utc_now_naive()
        default_price = await self._default_tier_price()

        result = await self.db.execute(
            update(Annonce)
            .where(
                Annonce.status == AnnonceStatus.APPROVED.value,
                Annonce.expires_at.is_not(None),
                Annonce.expires_at < now,
            )
            .values(
                publication_type=settings.default_publication_type,
                publication_credit_cost=default_price,
                expires_at=None,
            )
            .returning(Annonce.id, Annonce.seller_id)
        )
        reverted = result.all()
        if not reverted:
            return 0

        sellers = {
            user.id: user
            for user in (await self.db.execute(
                select(User).where(User.id.in_({seller_id for _, seller_id in reverted}))
            )).scalars()
        }
        for annonce_id, seller_id in reverted:
            await action_log_service.log_internal(
                self.db,
                f"Annonce repassée en {settings.default_publication_type} (durée dépassée)",
                "annonces",
                annonce_id,
                user=sellers.get(seller_id),
            )
        PUBLICATIONS_REVERTED.inc(len(reverted))
        logger.info("Reverted %d expired publications to %s", len(reverted), settings.default_publication_type)
        return len(reverted)

    async def revert_if_expired(self, annonce: Annonce, now: Optional[datetime] = None) -> bool:
        """单条发布读取时的惰性降级"""
        now = now or utc_now_naive()
        if (
            annonce.status != AnnonceStatus.APPROVED.value
            or annonce.expires_at is None
            or annonce.expires_at >= now
        ):
            return False

        annonce.publication_type = settings.default_publication_type
        annonce.publication_credit_cost = await self._default_tier_price()
        annonce.expires_at = None
        await self.db.flush()
        PUBLICATIONS_REVERTED.inc()
        await action_log_service.log_internal(
            self.db,
            f"Annonce repassée en {settings.default_publication_type} (durée dépassée)",
            "annonces",
            annonce.id,
            user=await self.db.get(User, annonce.seller_id),
        )
        return True

    # ------------------------------------------------------------------
    # 公开读取
    # ------------------------------------------------------------------
    async def _increment_counter(self, annonce: Annonce, field: str) -> None:
        """原子自增计数器并同步内存中的对象"""
        column = getattr(Annonce, field)
        result = await self.db.execute(
            update(Annonce)
            .where(Annonce.id == annonce.id, Annonce.status == AnnonceStatus.APPROVED.value)
            .values({column: column + 1})
            .returning(column)
            .execution_options(synchronize_session=False)
        )
        value = result.scalar_one_or_none()
        if value is not None:
            set_committed_value(annonce, field, value)

    async def get_public(self, annonce_id: str) -> Annonce:
        """公开详情：仅 APPROVED 可见，读取时惰性降级并增加浏览数"""
        annonce = await self.get(annonce_id)
        if annonce.status != AnnonceStatus.APPROVED.value:
            raise NotFoundError("Annonce non disponible", "ANNONCE_NOT_AVAILABLE")
        await self.revert_if_expired(annonce)
        await self._increment_counter(annonce, "view_count")
        return annonce

    async def get_for_owner(self, annonce_id: str, user: User) -> Annonce:
        annonce = await self.get(annonce_id)
        if annonce.seller_id != user.id and not user.is_admin:
            raise ForbiddenError("Cette annonce ne vous appartient pas")
        return annonce

    async def increment_contact_count(self, annonce_id: str) -> Annonce:
        """联系卖家计数，仅 APPROVED 生效"""
        annonce = await self.get(annonce_id)
        if annonce.status == AnnonceStatus.APPROVED.value:
            await self._increment_counter(annonce, "contact_count")
        return annonce

    async def search(
        self,
        params: AnnonceSearchParams,
        page: int = 0,
        size: int = 20,
    ) -> Tuple[List[Annonce], int]:
        """
        搜索已上架发布

        先执行过期降级，再按 publication_credit_cost 降序 (空值最后)、创建时间降序排序。
        """
        await self.revert_expired_publications()

        query = select(Annonce).where(Annonce.status == AnnonceStatus.APPROVED.value)

        if params.category_id:
            query = query.where(Annonce.category_id == params.category_id)
        if params.min_price is not None:
            query = query.where(Annonce.price >= params.min_price)
        if params.max_price is not None:
            query = query.where(Annonce.price <= params.max_price)
        if params.size:
            query = query.where(Annonce.size == params.size)
        if params.brand:
            query = query.where(Annonce.brand.icontains(params.brand, autoescape=True))
        if params.condition is not None:
            query = query.where(Annonce.condition == params.condition.value)
        if params.search:
            query = query.where(or_(
                Annonce.title.icontains(params.search, autoescape=True),
                Annonce.description.icontains(params.search, autoescape=True),
            ))
        if params.tout_doit_partir is not None:
            query = query.where(Annonce.tout_doit_partir.is_(params.tout_doit_partir))
        if (
            params.latitude is not None
            and params.longitude is not None
            and params.radius_km is not None
            and params.radius_km > 0
        ):
            min_lat, max_lat, min_lng, max_lng = bounding_box(
                params.latitude, params.longitude, params.radius_km
            )
            query = query.where(
                Annonce.latitude.is_not(None),
                Annonce.longitude.is_not(None),
                Annonce.latitude.between(min_lat, max_lat),
                Annonce.longitude.between(min_lng, max_lng),
            )

        total = (await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar() or 0

        result = await self.db.execute(
            query.order_by(
                Annonce.publication_credit_cost.desc().nulls_last(),
                Annonce.created_at.desc(),
            )
            .offset(page * size)
            .limit(size)
        )
        return list(result.scalars().all()), total

    async def top_by_type(self, publication_type: str, limit: int = 10) -> List[Annonce]:
        await self.revert_expired_publications()
        result = await self.db.execute(
            select(Annonce)
            .where(
                Annonce.status == AnnonceStatus.APPROVED.value,
                Annonce.publication_type == publication_type,
            )
            .order_by(Annonce.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def top_viewed(self, limit: int = 10) -> List[Annonce]:
        await self.revert_expired_publications()
        result = await self.db.execute(
            select(Annonce)
            .where(Annonce.status == AnnonceStatus.APPROVED.value)
            .order_by(Annonce.view_count.desc(), Annonce.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_by_seller(self, seller_id: str) -> List[Annonce]:
        result = await self.db.execute(
            select(Annonce)
            .where(Annonce.seller_id == seller_id)
            .order_by(Annonce.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_purchases(self, buyer_id: str) -> List[Annonce]:
        result = await self.db.execute(
            select(Annonce)
            .where(Annonce.buyer_id == buyer_id)
            .order_by(Annonce.updated_at.desc())
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # 购买与图片
    # ------------------------------------------------------------------
    async def buy(self, annonce_id: str, buyer: User) -> Annonce:
        """购买：不能买自己的、不能重复购买、只能购买 APPROVED/PENDING 的发布"""
        annonce = await self.get(annonce_id, for_update=True)
        if annonce.seller_id == buyer.id:
            raise ValidationError("Vous ne pouvez pas acheter votre propre annonce", "OWN_ANNONCE")
        if annonce.status == AnnonceStatus.SOLD.value:
            raise ValidationError("Cette annonce est déjà vendue", "ANNONCE_SOLD")
        if annonce.status not in (AnnonceStatus.APPROVED.value, AnnonceStatus.PENDING.value):
            raise ValidationError("Cette annonce n'est pas disponible à l'achat", "ANNONCE_NOT_AVAILABLE")

        annonce.buyer_id = buyer.id
        annonce.buyer = buyer
        await self._set_status(annonce, AnnonceStatus.SOLD)

        await self.db.execute(
            delete(CartItem).where(CartItem.user_id == buyer.id, CartItem.annonce_id == annonce.id)
        )
        logger.info("Annonce %s bought by %s", annonce.code, buyer.id)
        return annonce

    async def add_photos(self, annonce_id: str, seller: User, files: Iterable[UploadFile]) -> Annonce:
        annonce = await self.get(annonce_id)
        if annonce.seller_id != seller.id:
            raise ForbiddenError("Seul le vendeur peut ajouter des photos")

        stored = await file_storage.store_annonce_images(annonce.code, files)
        if stored:
            annonce.images = [*(annonce.images or []), *(file_storage.public_url(p) for p in stored)]
            await self.db.flush()
        return annonce

    # ------------------------------------------------------------------
    # 管理
    # ------------------------------------------------------------------
    async def list_all(
        self,
        status: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[Annonce], int]:
        query = select(Annonce)
        if status:
            query = query.where(Annonce.status == status)
        total = (await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar() or 0
        result = await self.db.execute(
            query.order_by(Annonce.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total

    async def admin_update(self, annonce_id: str, data: AnnonceAdminUpdate) -> Annonce:
        """部分更新；修改档位会按新档位重新计算 publication_credit_cost，修改状态走统一状态流转"""
        annonce = await self.get(annonce_id, for_update=True)
        changes = data.model_dump(exclude_unset=True)
        new_status = changes.pop("status", None)
        new_type = changes.pop("publication_type", None)
        category_id = changes.pop("category_id", None)

        if category_id is not None:
            annonce.category = await self.resolve_category(category_id)
            annonce.category_id = annonce.category.id
        if new_type is not None:
            tarif = await self.resolve_tarif(new_type)
            annonce.publication_type = tarif.type_name
            annonce.publication_credit_cost = max(tarif.price or Decimal("0"), Decimal("0"))
            # 已上架的发布按新档位时长从 published_at 重新计算
            if annonce.status == AnnonceStatus.APPROVED.value and annonce.published_at is not None:
                annonce.expires_at = compute_expiry(annonce.published_at, tarif.duration_days)
        if "condition" in changes and changes["condition"] is not None:
            changes["condition"] = changes["condition"].value
        for field, value in changes.items():
            setattr(annonce, field, value)
        await self.db.flush()

        if new_status is not None and new_status.value != annonce.status:
            await self._set_status(annonce, new_status)
        return annonce

    async def delete(self, annonce_id: str) -> None:
        annonce = await self.get(annonce_id)
        await self.db.delete(annonce)
        await self.db.flush()
        logger.info("Annonce deleted: %s", annonce.code)
