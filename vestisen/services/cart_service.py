"""
购物车（收藏夹）服务：无数量概念，重复添加和删除不存在的条目均为空操作
"""
from typing import List

from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vestisen.models.annonce import Annonce
from vestisen.models.cart_item import CartItem
from vestisen.models.user import User
from vestisen.services.errors import NotFoundError


class CartService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_annonces(self, user: User) -> List[Annonce]:
        result = await self.db.execute(
            select(CartItem)
            .where(CartItem.user_id == user.id)
            .order_by(CartItem.created_at.desc())
        )
        return [item.annonce for item in result.scalars().all() if item.annonce is not None]

    async def add(self, user: User, annonce_id: str) -> None:
        if await self.db.get(Annonce, annonce_id) is None:
            raise NotFoundError("Annonce non trouvée", "ANNONCE_NOT_FOUND")

        existing = await self.db.execute(
            select(CartItem.id).where(CartItem.user_id == user.id, CartItem.annonce_id == annonce_id)
        )
        if existing.first():
            return
        try:
            async with self.db.begin_nested():
                self.db.add(CartItem(user_id=user.id, annonce_id=annonce_id))
        except IntegrityError:
            # 并发添加，已存在即可
            pass

    async def remove(self, user: User, annonce_id: str) -> None:
        await self.db.execute(
            delete(CartItem).where(CartItem.user_id == user.id, CartItem.annonce_id == annonce_id)
        )
