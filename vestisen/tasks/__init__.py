"""
Celery 任务模块

- publication_tasks: 付费发布过期降级
"""
from vestisen.celery_app import celery_app

__all__ = ["celery_app"]
