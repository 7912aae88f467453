"""
商品发布路由
"""
from decimal import Decimal
from typing import List, Optional
from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from vestisen.database import get_db
from vestisen.models.annonce import AnnonceCondition
from vestisen.models.user import User
from vestisen.schemas.annonce import AnnonceCreate, AnnonceResponse, AnnoncePage, AnnonceSearchParams
from vestisen.services.annonce_service import AnnonceService
from vestisen.utils.security import get_current_user, get_seller_user

router = APIRouter()


@router.get("/public", response_model=AnnoncePage)
async def search_annonces(
    category_id: Optional[str] = None,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
    size_filter: Optional[str] = Query(None, alias="taille"),
    brand: Optional[str] = None,
    condition: Optional[AnnonceCondition] = None,
    search: Optional[str] = None,
    tout_doit_partir: Optional[bool] = None,
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    radius_km: Optional[float] = Query(None, ge=0),
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """
    搜索已上架的发布

    付费档位优先 (publication_credit_cost 降序)，同档位按发布时间倒序。
    提供 lat/lng/radius_km 时按经纬度包围盒过滤。
    """
    params = AnnonceSearchParams(
        category_id=category_id,
        min_price=min_price,
        max_price=max_price,
        size=size_filter,
        brand=brand,
        condition=condition,
        search=search,
        tout_doit_partir=tout_doit_partir,
        latitude=lat,
        longitude=lng,
        radius_km=radius_km,
    )
    items, total = await AnnonceService(db).search(params, page=page, size=size)
    return AnnoncePage(
        items=[AnnonceResponse.model_validate(a) for a in items],
        total=total,
        page=page,
        size=size,
    )


@router.get("/public/top", response_model=List[AnnonceResponse])
async def top_annonces(
    type: Optional[str] = Query(None, description="档位名称，不传则按浏览量排序"),
    limit: int = Query(10, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
):
    service = AnnonceService(db)
    if type:
        return await service.top_by_type(type, limit)
    return await service.top_viewed(limit)


@router.get("/public/{annonce_id}", response_model=AnnonceResponse)
async def get_public_annonce(annonce_id: str, db: AsyncSession = Depends(get_db)):
    """公开详情（浏览数 +1）"""
    return await AnnonceService(db).get_public(annonce_id)


@router.post("", response_model=AnnonceResponse, status_code=status.HTTP_201_CREATED)
async def create_annonce(
    data: AnnonceCreate,
    current_user: User = Depends(get_seller_user),
    db: AsyncSession = Depends(get_db),
):
    """创建发布（扣除档位积分，待审核）"""
    return await AnnonceService(db).create(current_user, data)


@router.get("/my-annonces", response_model=List[AnnonceResponse])
async def my_annonces(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await AnnonceService(db).list_by_seller(current_user.id)


@router.get("/my-purchases", response_model=List[AnnonceResponse])
async def my_purchases(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await AnnonceService(db).list_purchases(current_user.id)


@router.get("/{annonce_id}", response_model=AnnonceResponse)
async def get_my_annonce(
    annonce_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """卖家查看自己的发布（任意状态）"""
    return await AnnonceService(db).get_for_owner(annonce_id, current_user)


@router.post("/{annonce_id}/buy", response_model=AnnonceResponse)
async def buy_annonce(
    annonce_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await AnnonceService(db).buy(annonce_id, current_user)


@router.post("/{annonce_id}/contact", response_model=AnnonceResponse)
async def contact_seller(
    annonce_id: str,
    db: AsyncSession = Depends(get_db),
):
    """记录一次联系卖家"""
    return await AnnonceService(db).increment_contact_count(annonce_id)


@router.post("/{annonce_id}/photos", response_model=AnnonceResponse)
async def upload_photos(
    annonce_id: str,
    files: List[UploadFile] = File(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """上传图片（jpg/jpeg/png/webp/gif，单张不超过 5MB）"""
    return await AnnonceService(db).add_photos(annonce_id, current_user, files)
