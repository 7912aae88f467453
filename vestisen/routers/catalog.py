"""
公开的分类与发布档位
"""
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from vestisen.database import get_db
from vestisen.schemas.catalog import CategoryResponse, TarifResponse
from vestisen.services.catalog_service import CatalogService

categories_router = APIRouter()
tarifs_router = APIRouter()


@categories_router.get("", response_model=List[CategoryResponse])
async def list_categories(db: AsyncSession = Depends(get_db)):
    """启用的分类"""
    return await CatalogService(db).list_categories(active_only=True)


@tarifs_router.get("", response_model=List[TarifResponse])
async def list_tarifs(db: AsyncSession = Depends(get_db)):
    """启用的发布档位（按价格升序）"""
    return await CatalogService(db).list_tarifs(active_only=True)
