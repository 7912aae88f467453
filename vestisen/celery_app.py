"""
Celery 应用配置

队列：
- default: 默认队列
- maintenance: 定时维护任务（付费发布过期降级）
"""
import os
from celery import Celery
from celery.schedules import crontab

from vestisen.config import get_settings

settings = get_settings()

# Redis 配置
broker_url = settings.celery_broker or settings.redis_url
backend_url = settings.celery_backend or broker_url

celery_app = Celery(
    "vestisen",
    broker=broker_url,
    backend=backend_url,
    include=[
        "vestisen.tasks.publication_tasks",
    ]
)

# Celery 配置
celery_app.conf.update(
    # 任务结果过期时间（1天）
    result_expires=86400,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="Africa/Dakar",
    enable_utc=True,
    task_time_limit=1800,
    task_soft_time_limit=1500,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_routes={
        "vestisen.tasks.publication_tasks.*": {"queue": "maintenance"},
    },
    task_reject_on_worker_lost=True,
    # 定时任务
    beat_schedule={
        # 每小时整点降级已过期的付费发布
        "revert-expired-publications-hourly": {
            "task": "vestisen.tasks.publication_tasks.revert_expired_publications_task",
            "schedule": crontab(minute=0),
        },
    },
)

# Worker 配置
celery_app.conf.worker_max_tasks_per_child = 1000
celery_app.conf.worker_concurrency = os.cpu_count() or 4

if __name__ == "__main__":
    celery_app.start()
