"""
用户管理路由
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from vestisen.database import get_db
from vestisen.models.user import User, UserRole
from vestisen.schemas.admin import (
    AdminUserCreate,
    AdminUserResponse,
    AdminUserUpdate,
    UserListResponse,
)
from vestisen.schemas.user import MessageResponse
from vestisen.services.user_service import UserService
from vestisen.utils.security import get_admin_user

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_response(user: User, annonces_count: int = 0) -> AdminUserResponse:
    response = AdminUserResponse.model_validate(user)
    response.annonces_count = annonces_count
    return response


@router.get("/users", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1, description="页码"),
    page_size: int = Query(20, ge=1, le=100, description="每页数量"),
    search: Optional[str] = Query(None, description="按邮箱/姓名/电话搜索"),
    role: Optional[UserRole] = Query(None, description="角色筛选"),
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """
    获取用户列表

    Returns:
        分页用户列表，每个用户附带发布数
    """
    service = UserService(db)
    users, total = await service.list_users(
        page=page,
        page_size=page_size,
        search=search,
        role=role.value if role else None,
    )
    counts = await service.count_annonces([u.id for u in users])
    return UserListResponse(
        users=[_to_response(u, counts.get(u.id, 0)) for u in users],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("/users", response_model=AdminUserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: AdminUserCreate,
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """创建用户（直接启用）"""
    user = await UserService(db).admin_create(data)
    logger.info("Admin %s created user %s (%s)", admin.email, user.email, user.role)
    return _to_response(user)


@router.get("/users/{user_id}", response_model=AdminUserResponse)
async def get_user(
    user_id: str,
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    service = UserService(db)
    user = await service.get(user_id)
    counts = await service.count_annonces([user.id])
    return _to_response(user, counts.get(user.id, 0))


@router.put("/users/{user_id}", response_model=AdminUserResponse)
async def update_user(
    user_id: str,
    data: AdminUserUpdate,
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    service = UserService(db)
    user = await service.admin_update(user_id, data)
    counts = await service.count_annonces([user.id])
    return _to_response(user, counts.get(user.id, 0))


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: str,
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """删除用户（管理员账号不可删除）"""
    await UserService(db).admin_delete(user_id)
    logger.info("Admin %s deleted user %s", admin.email, user_id)
    return MessageResponse(message="Utilisateur supprimé")
