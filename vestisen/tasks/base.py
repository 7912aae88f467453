"""
Celery 任务基础工具

提供：
- 任务级数据库会话（每次任务独立的 NullPool 引擎）
- 任务结果记录
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Dict, Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from vestisen.database import database_url

logger = logging.getLogger(__name__)


@asynccontextmanager
async def task_session():
    """
    为任务创建数据库会话

    async_to_sync 每次调用都在新的事件循环中运行，连接不能跨循环复用，
    因此每个任务使用独立的 NullPool 引擎，结束时释放。
    成功时提交，异常时回滚。
    """
    engine = create_async_engine(database_url, poolclass=NullPool)
    session_maker = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    try:
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
    finally:
        await engine.dispose()


def record_task_result(
    task_id: str,
    task_name: str,
    status: str,
    result: Optional[Any] = None,
    error: Optional[str] = None,
    duration: float = 0,
) -> Dict[str, Any]:
    """
    记录任务执行结果

    Args:
        task_id: 任务ID
        task_name: 任务名称
        status: 任务状态 (success/failed)
        result: 任务结果
        error: 错误信息
        duration: 执行时长（秒）

    Returns:
        任务结果字典
    """
    log_data = {
        "task_id": task_id,
        "task_name": task_name,
        "status": status,
        "duration": f"{duration:.2f}s",
        "timestamp": datetime.now().isoformat(),
    }

    if error:
        log_data["error"] = error
        logger.error(f"Task failed: {log_data}")
    else:
        log_data["result"] = result
        logger.info(f"Task completed: {log_data}")

    return log_data
