"""
评价 Schemas
"""
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List

from vestisen.schemas.user import UserBrief


class ReviewCreate(BaseModel):
    annonce_id: str
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = Field(default=None, max_length=1000)


class ReviewResponse(BaseModel):
    id: str
    annonce_id: str
    reviewer: Optional[UserBrief] = None
    reviewee_id: str
    rating: int
    comment: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class SellerReviews(BaseModel):
    seller_id: str
    average_rating: Optional[float] = None
    total: int
    reviews: List[ReviewResponse]
