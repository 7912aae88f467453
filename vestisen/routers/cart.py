"""
购物车路由
"""
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from vestisen.database import get_db
from vestisen.models.user import User
from vestisen.schemas.annonce import AnnonceResponse
from vestisen.schemas.user import MessageResponse
from vestisen.services.cart_service import CartService
from vestisen.utils.security import get_current_user

router = APIRouter()


@router.get("", response_model=List[AnnonceResponse])
async def get_cart(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await CartService(db).list_annonces(current_user)


@router.post("/annonce/{annonce_id}", response_model=MessageResponse)
async def add_to_cart(
    annonce_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """加入购物车（重复添加无副作用）"""
    await CartService(db).add(current_user, annonce_id)
    return MessageResponse(message="Annonce ajoutée au panier")


@router.delete("/annonce/{annonce_id}", response_model=MessageResponse)
async def remove_from_cart(
    annonce_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await CartService(db).remove(current_user, annonce_id)
    return MessageResponse(message="Annonce retirée du panier")
