"""
商品发布相关 Schemas
"""
from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from vestisen.models.annonce import AnnonceCondition, AnnonceStatus
from vestisen.schemas.user import UserBrief


class AnnonceCreate(BaseModel):
    """创建发布请求"""
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    price: Decimal = Field(ge=0)
    category_id: str
    publication_type: str = Field(default="Standard", max_length=50)
    condition: AnnonceCondition = AnnonceCondition.OCCASION
    size: Optional[str] = Field(default=None, max_length=50)
    brand: Optional[str] = Field(default=None, max_length=100)
    color: Optional[str] = Field(default=None, max_length=50)
    location: Optional[str] = Field(default=None, max_length=200)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    images: List[str] = Field(default_factory=list)
    tout_doit_partir: bool = False
    original_price: Optional[Decimal] = Field(default=None, ge=0)
    is_lot: bool = False
    accept_payment_on_delivery: bool = False


class AnnonceAdminUpdate(BaseModel):
    """管理员部分更新，未传字段保持不变"""
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    price: Optional[Decimal] = Field(default=None, ge=0)
    category_id: Optional[str] = None
    publication_type: Optional[str] = Field(default=None, max_length=50)
    condition: Optional[AnnonceCondition] = None
    status: Optional[AnnonceStatus] = None
    size: Optional[str] = Field(default=None, max_length=50)
    brand: Optional[str] = Field(default=None, max_length=100)
    color: Optional[str] = Field(default=None, max_length=50)
    location: Optional[str] = Field(default=None, max_length=200)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    tout_doit_partir: Optional[bool] = None
    original_price: Optional[Decimal] = Field(default=None, ge=0)
    is_lot: Optional[bool] = None
    accept_payment_on_delivery: Optional[bool] = None


class AnnonceSearchParams(BaseModel):
    """搜索过滤条件，全部可选"""
    category_id: Optional[str] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    size: Optional[str] = None
    brand: Optional[str] = None
    condition: Optional[AnnonceCondition] = None
    search: Optional[str] = None
    tout_doit_partir: Optional[bool] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    radius_km: Optional[float] = None


class CategoryBrief(BaseModel):
    id: str
    name: str

    class Config:
        from_attributes = True


class AnnonceResponse(BaseModel):
    """发布信息响应"""
    id: str
    code: str
    title: str
    description: Optional[str] = None
    price: Decimal
    category: Optional[CategoryBrief] = None
    publication_type: str
    publication_credit_cost: Optional[Decimal] = None
    condition: str
    size: Optional[str] = None
    brand: Optional[str] = None
    color: Optional[str] = None
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    images: List[str] = []
    seller: Optional[UserBrief] = None
    buyer_id: Optional[str] = None
    status: str
    view_count: int
    contact_count: int
    tout_doit_partir: bool
    original_price: Optional[Decimal] = None
    is_lot: bool
    accept_payment_on_delivery: bool
    created_at: datetime
    updated_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AnnoncePage(BaseModel):
    """分页结果"""
    items: List[AnnonceResponse]
    total: int
    page: int
    size: int
