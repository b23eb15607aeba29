"""Celery application used by the notification worker."""

from celery import Celery

from tripflow.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "tripflow",
    broker=settings.redis_url,
    backend=settings.celery_result_backend,
    include=["tripflow.services.notifications.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
)
