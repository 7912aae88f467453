"""
分类与发布档位 Schemas
"""
from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    icon: Optional[str] = Field(default=None, max_length=50)
    active: bool = True


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    icon: Optional[str] = Field(default=None, max_length=50)
    active: Optional[bool] = None


class CategoryResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class TarifCreate(BaseModel):
    type_name: str = Field(min_length=1, max_length=50)
    price: Decimal = Field(ge=0)
    duration_days: Optional[int] = None  # 0 / 空 / 负数 均表示不限时
    active: bool = True


class TarifUpdate(BaseModel):
    type_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    price: Optional[Decimal] = Field(default=None, ge=0)
    duration_days: Optional[int] = None
    active: Optional[bool] = None


class TarifResponse(BaseModel):
    id: str
    type_name: str
    price: Decimal
    duration_days: Optional[int] = None
    active: bool

    class Config:
        from_attributes = True
