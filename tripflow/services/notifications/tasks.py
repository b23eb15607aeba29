"""
Celery tasks for background notification processing.

The API enqueues serialized notification plans after its transaction
commits; the worker resolves recipients and persists the notification in its
own database session.
"""

import asyncio
from typing import Any, Optional

from celery import Task, shared_task
from sqlalchemy.exc import SQLAlchemyError

from tripflow.core.celery_app import celery_app  # noqa: F401
from tripflow.core.logging import get_logger
from tripflow.database.connection import close_database_connections, get_session
from tripflow.schemas.notifications import PushNotificationRequest
from tripflow.services.notifications.service import (
    NotificationServiceError,
    get_notification_service,
)

logger = get_logger(__name__)


class NotificationTask(Task):
    """
    Base task class for notification tasks with retry logic.

    Retries with exponential backoff on service and database errors and logs
    every lifecycle transition.
    """

    autoretry_for = (NotificationServiceError, SQLAlchemyError)
    retry_kwargs = {"max_retries": 3}
    retry_backoff = True
    retry_backoff_max = 600
    retry_jitter = True

    def on_failure(
        self,
        exc: Exception,
        task_id: str,
        args: tuple,
        kwargs: dict,
        einfo: Any,
    ) -> None:
        logger.error(
            "Notification task failed",
            task_id=task_id,
            exception=str(exc),
            exc_info=einfo,
        )

    def on_retry(
        self,
        exc: Exception,
        task_id: str,
        args: tuple,
        kwargs: dict,
        einfo: Any,
    ) -> None:
        logger.warning(
            "Notification task retrying",
            task_id=task_id,
            exception=str(exc),
            retry_count=self.request.retries,
            max_retries=self.max_retries,
        )

    def on_success(
        self,
        retval: Any,
        task_id: str,
        args: tuple,
        kwargs: dict,
    ) -> None:
        logger.info(
            "Notification task completed successfully",
            task_id=task_id,
            result=retval,
        )


async def _push_notification(request: PushNotificationRequest) -> Optional[str]:
    # each task runs in a fresh event loop; pooled connections cannot outlive it
    try:
        async with get_session() as session:
            service = get_notification_service(session)
            notification = await service.push_notification(request)
            return str(notification.id) if notification else None
    finally:
        await close_database_connections()


@shared_task(
    bind=True,
    base=NotificationTask,
    name="notifications.push_notification",
    time_limit=120,
    soft_time_limit=90,
)
def push_notification_task(self: Task, request: dict[str, Any]) -> Optional[str]:
    """
    Persist a notification from a serialized ``PushNotificationRequest``.

    Args:
        self: Task instance
        request: JSON-compatible request dictionary

    Returns:
        Created notification id, or None when the request was ignored
    """
    push_request = PushNotificationRequest.model_validate(request)
    logger.info(
        "Processing notification task",
        task_id=self.request.id,
        notification_type=push_request.type.value if push_request.type else None,
        target_id=str(push_request.target_id) if push_request.target_id else None,
    )
    return asyncio.run(_push_notification(push_request))
