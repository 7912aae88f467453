"""
发布审核与管理路由
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from vestisen.database import get_db
from vestisen.models.annonce import AnnonceStatus
from vestisen.models.user import User
from vestisen.schemas.admin import AdminAnnonceListResponse
from vestisen.schemas.annonce import AnnonceAdminUpdate, AnnonceResponse
from vestisen.schemas.user import MessageResponse
from vestisen.services.annonce_service import AnnonceService
from vestisen.utils.security import get_admin_user

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/annonces", response_model=AdminAnnonceListResponse)
async def list_annonces(
    status: Optional[AnnonceStatus] = Query(None, description="状态筛选"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    annonces, total = await AnnonceService(db).list_all(
        status=status.value if status else None,
        page=page,
        page_size=page_size,
    )
    return AdminAnnonceListResponse(
        annonces=[AnnonceResponse.model_validate(a) for a in annonces],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("/annonces/{annonce_id}/approve", response_model=AnnonceResponse)
async def approve_annonce(
    annonce_id: str,
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """审核通过，首次通过时开始发布计时"""
    annonce = await AnnonceService(db).approve(annonce_id)
    logger.info("Admin %s approved annonce %s", admin.email, annonce.code)
    return annonce


@router.post("/annonces/{annonce_id}/reject", response_model=AnnonceResponse)
async def reject_annonce(
    annonce_id: str,
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    annonce = await AnnonceService(db).reject(annonce_id)
    logger.info("Admin %s rejected annonce %s", admin.email, annonce.code)
    return annonce


@router.put("/annonces/{annonce_id}", response_model=AnnonceResponse)
async def update_annonce(
    annonce_id: str,
    data: AnnonceAdminUpdate,
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    return await AnnonceService(db).admin_update(annonce_id, data)


@router.delete("/annonces/{annonce_id}", response_model=MessageResponse)
async def delete_annonce(
    annonce_id: str,
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    await AnnonceService(db).delete(annonce_id)
    return MessageResponse(message="Annonce supprimée")
