"""
操作日志服务

- 请求日志：由中间件在响应后写入，使用独立会话
- 内部日志：业务流程中写入（如定时降级），使用 SAVEPOINT 隔离

写入失败只记录 warning，绝不影响主流程。
"""
import logging
import re
from typing import Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vestisen import database
from vestisen.models.action_log import ActionLog
from vestisen.models.user import User

logger = logging.getLogger(__name__)

_ID_SEGMENT = re.compile(r"^([0-9a-fA-F-]{36}|[A-Z0-9]{18}|\d+)$")
_API_PREFIX = re.compile(r"^/api(/v\d+)?/")

# 常见操作的可读标签
_ACTION_LABELS = {
    ("POST", "auth"): "Authentification",
    ("POST", "annonces"): "Création / action sur annonce",
    ("PUT", "admin"): "Modification administrateur",
    ("DELETE", "admin"): "Suppression administrateur",
    ("POST", "credits"): "Opération sur crédits",
    ("POST", "payments"): "Opération de paiement",
    ("POST", "reviews"): "Dépôt d'avis",
    ("POST", "conversations"): "Messagerie",
    ("POST", "cart"): "Ajout au panier",
    ("DELETE", "cart"): "Retrait du panier",
}


def derive_resource(path: str) -> Tuple[Optional[str], Optional[str]]:
    """从请求路径推导资源类型与资源 ID"""
    stripped = _API_PREFIX.sub("", path)
    segments = [s for s in stripped.split("/") if s]
    if not segments:
        return None, None
    resource_type = segments[0]
    if resource_type == "admin" and len(segments) > 1:
        resource_type = segments[1]
    resource_id = next((s for s in segments[1:] if _ID_SEGMENT.match(s)), None)
    return resource_type, resource_id


def action_label(method: str, path: str) -> Optional[str]:
    stripped = _API_PREFIX.sub("", path)
    head = stripped.split("/", 1)[0]
    return _ACTION_LABELS.get((method, head))


async def record_request(**fields) -> None:
    """写入一条请求日志（独立会话，失败吞掉）"""
    try:
        async with database.AsyncSessionLocal() as session:
            session.add(ActionLog(**fields))
            await session.commit()
    except SQLAlchemyError as exc:
        logger.warning("Failed to persist action log for %s %s: %s",
                       fields.get("http_method"), fields.get("request_uri"), exc)


async def log_internal(
    db: AsyncSession,
    action_label: str,
    resource_type: str,
    resource_id: Optional[str] = None,
    user: Optional[User] = None,
) -> None:
    """在当前事务中以 SAVEPOINT 写入内部日志，失败吞掉"""
    try:
        async with db.begin_nested():
            db.add(ActionLog(
                user_id=user.id if user else None,
                username=user.email if user else "system",
                user_role=user.role if user else None,
                http_method="INTERNAL",
                request_uri=f"internal:{resource_type}",
                resource_type=resource_type,
                resource_id=resource_id,
                action_label=action_label,
                success=True,
            ))
    except SQLAlchemyError as exc:
        logger.warning("Failed to persist internal action log '%s': %s", action_label, exc)


async def list_logs(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 50,
    user_id: Optional[str] = None,
    resource_type: Optional[str] = None,
):
    """分页查询日志，返回 (items, total)"""
    query = select(ActionLog)
    if user_id:
        query = query.where(ActionLog.user_id == user_id)
    if resource_type:
        query = query.where(ActionLog.resource_type == resource_type)

    total = (await db.execute(
        select(func.count()).select_from(query.subquery())
    )).scalar() or 0

    result = await db.execute(
        query.order_by(ActionLog.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(result.scalars().all()), total
