"""
评价服务

只有记录在案的买家可以评价卖家，每个 (annonce, reviewer) 仅一条评价。
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from vestisen.models.annonce import Annonce
from vestisen.models.review import Review
from vestisen.models.user import User
from vestisen.schemas.review import ReviewCreate
from vestisen.services.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class ReviewService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, reviewer: User, data: ReviewCreate) -> Review:
        annonce = await self.db.get(Annonce, data.annonce_id)
        if annonce is None:
            raise NotFoundError("Annonce non trouvée", "ANNONCE_NOT_FOUND")
        if annonce.seller_id == reviewer.id:
            raise ValidationError("Vous ne pouvez pas évaluer votre propre annonce", "OWN_ANNONCE")
        if annonce.buyer_id != reviewer.id:
            raise ForbiddenError("Seul l'acheteur de cette annonce peut laisser un avis", "NOT_BUYER")

        existing = await self.db.execute(
            select(Review.id).where(
                Review.annonce_id == annonce.id,
                Review.reviewer_id == reviewer.id,
            )
        )
        if existing.first():
            raise ConflictError("Vous avez déjà évalué cette annonce", "ALREADY_REVIEWED")

        review = Review(
            annonce_id=annonce.id,
            annonce=annonce,
            reviewer_id=reviewer.id,
            reviewer=reviewer,
            reviewee_id=annonce.seller_id,
            rating=data.rating,
            comment=data.comment,
        )
        self.db.add(review)
        await self.db.flush()
        logger.info("Review created: annonce=%s reviewer=%s rating=%s", annonce.id, reviewer.id, data.rating)
        return review

    async def list_for_seller(self, seller_id: str, limit: int = 20) -> Tuple[List[Review], int, Optional[float]]:
        """返回 (最新评价, 总数, 平均分)"""
        stats = await self.db.execute(
            select(func.count(Review.id), func.avg(Review.rating)).where(Review.reviewee_id == seller_id)
        )
        total, average = stats.one()
        result = await self.db.execute(
            select(Review)
            .where(Review.reviewee_id == seller_id)
            .order_by(Review.created_at.desc())
            .limit(limit)
        )
        return (
            list(result.scalars().all()),
            total or 0,
            round(float(average), 2) if average is not None else None,
        )
