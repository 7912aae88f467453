"""
分类与发布档位管理路由
"""
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from vestisen.database import get_db
from vestisen.models.user import User
from vestisen.schemas.catalog import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    TarifCreate,
    TarifResponse,
    TarifUpdate,
)
from vestisen.schemas.user import MessageResponse
from vestisen.services.catalog_service import CatalogService
from vestisen.utils.security import get_admin_user

router = APIRouter()


# ============ 分类 ============

@router.get("/categories", response_model=List[CategoryResponse])
async def list_categories(
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """全部分类（含停用）"""
    return await CatalogService(db).list_categories(active_only=False)


@router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    data: CategoryCreate,
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    return await CatalogService(db).create_category(data)


@router.put("/categories/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: str,
    data: CategoryUpdate,
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    return await CatalogService(db).update_category(category_id, data)


@router.delete("/categories/{category_id}", response_model=MessageResponse)
async def delete_category(
    category_id: str,
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    await CatalogService(db).delete_category(category_id)
    return MessageResponse(message="Catégorie supprimée")


# ============ 档位 ============

@router.get("/tarifs", response_model=List[TarifResponse])
async def list_tarifs(
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    return await CatalogService(db).list_tarifs(active_only=False)


@router.post("/tarifs", response_model=TarifResponse, status_code=status.HTTP_201_CREATED)
async def create_tarif(
    data: TarifCreate,
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """新增档位，duration_days <= 0 表示不限时"""
    return await CatalogService(db).create_tarif(data)


@router.put("/tarifs/{tarif_id}", response_model=TarifResponse)
async def update_tarif(
    tarif_id: str,
    data: TarifUpdate,
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    return await CatalogService(db).update_tarif(tarif_id, data)


@router.delete("/tarifs/{tarif_id}", response_model=MessageResponse)
async def delete_tarif(
    tarif_id: str,
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    await CatalogService(db).delete_tarif(tarif_id)
    return MessageResponse(message="Tarif supprimé")
