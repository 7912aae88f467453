"""
评价路由
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from vestisen.database import get_db
from vestisen.models.user import User
from vestisen.schemas.review import ReviewCreate, ReviewResponse, SellerReviews
from vestisen.services.review_service import ReviewService
from vestisen.utils.security import get_current_user

router = APIRouter()


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def create_review(
    data: ReviewCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """买家评价卖家（每个发布仅一次）"""
    return await ReviewService(db).create(current_user, data)


@router.get("/seller/{seller_id}", response_model=SellerReviews)
async def seller_reviews(
    seller_id: str,
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    reviews, total, average = await ReviewService(db).list_for_seller(seller_id, limit)
    return SellerReviews(
        seller_id=seller_id,
        average_rating=average,
        total=total,
        reviews=[ReviewResponse.model_validate(r) for r in reviews],
    )
