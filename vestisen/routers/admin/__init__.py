"""
管理后台路由 - 主入口

聚合所有管理后台子路由，全部需要 ADMIN 角色。

模块结构:
    - users: 用户管理
    - catalog: 分类与发布档位
    - annonces: 发布审核
    - credits: 积分配置与交易
    - action_logs: 操作日志
"""
from fastapi import APIRouter

from .users import router as users_router
from .catalog import router as catalog_router
from .annonces import router as annonces_router
from .credits import router as credits_router
from .action_logs import router as action_logs_router

# 创建主路由器，聚合所有子路由
router = APIRouter()

router.include_router(users_router, tags=["管理后台-用户"])
router.include_router(catalog_router, tags=["管理后台-分类与档位"])
router.include_router(annonces_router, tags=["管理后台-发布审核"])
router.include_router(credits_router, tags=["管理后台-积分"])
router.include_router(action_logs_router, tags=["管理后台-操作日志"])

# 导出主路由器供 main.py 使用
__all__ = ["router"]
