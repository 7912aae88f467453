"""
操作日志查询路由
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from vestisen.database import get_db
from vestisen.models.user import User
from vestisen.schemas.admin import ActionLogListResponse, ActionLogResponse
from vestisen.services import action_log_service
from vestisen.utils.security import get_admin_user

router = APIRouter()


@router.get("/action-logs", response_model=ActionLogListResponse)
async def list_action_logs(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    user_id: Optional[str] = Query(None, description="操作人"),
    resource_type: Optional[str] = Query(None, description="资源类型，如 annonces"),
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """操作日志，最新优先"""
    logs, total = await action_log_service.list_logs(
        db, page=page, page_size=page_size, user_id=user_id, resource_type=resource_type
    )
    return ActionLogListResponse(
        logs=[ActionLogResponse.model_validate(log) for log in logs],
        total=total,
        page=page,
        page_size=page_size,
    )
