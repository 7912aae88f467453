"""
发布维护任务

- 付费发布过期降级（每小时）
"""
import logging
from datetime import datetime
from typing import Dict, Any

from asgiref.sync import async_to_sync

from vestisen.celery_app import celery_app
from vestisen.tasks.base import record_task_result, task_session

logger = logging.getLogger(__name__)


async def revert_expired_publications() -> int:
    from vestisen.services.annonce_service import AnnonceService

    async with task_session() as db:
        return await AnnonceService(db).revert_expired_publications()


@celery_app.task(
    name="vestisen.tasks.publication_tasks.revert_expired_publications_task",
    bind=True,
)
def revert_expired_publications_task(self) -> Dict[str, Any]:
    """
    将过期的付费发布降级为默认档位（定时任务）

    条件更新保证重复执行幂等，和搜索前的降级并发执行也不会重复处理。
    """
    task_id = self.request.id
    start_time = datetime.now()
    logger.info(f"[{task_id}] 开始执行发布过期降级任务")

    try:
        reverted = async_to_sync(revert_expired_publications)()
    except Exception as e:
        duration = (datetime.now() - start_time).total_seconds()
        record_task_result(
            task_id=task_id,
            task_name="revert_expired_publications",
            status="failed",
            error=str(e),
            duration=duration,
        )
        raise

    duration = (datetime.now() - start_time).total_seconds()
    return record_task_result(
        task_id=task_id,
        task_name="revert_expired_publications",
        status="success",
        result={"reverted": reverted},
        duration=duration,
    )
