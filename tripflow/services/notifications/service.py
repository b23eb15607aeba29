"""
Notification worker service.

Turns a ``PushNotificationRequest`` into a persisted notification: resolves
recipients from explicit receivers, order participants and organization
roles, derives translation keys and rendering meta, and stores the
``Notification`` with its recipients.
"""

import uuid
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tripflow.core.logging import get_logger
from tripflow.database.models.notification import Notification, NotificationType
from tripflow.schemas.notifications import PushNotificationRequest
from tripflow.services.notifications.repository import (
    NotificationRepository,
    NotificationRepositoryError,
)
from tripflow.services.organizations.settings import OrganizationSettingsService

logger = get_logger(__name__)

NON_SYSTEM_STATUS_KEY = "is_not_system"


class NotificationServiceError(Exception):
    """Base exception for notification service errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.context = context


def _consolidated_codes(meta: dict[str, Any], consolidation_enabled: bool) -> dict[str, Any]:
    group_code = meta.get("order_group_code")
    if not (consolidation_enabled and group_code):
        return meta
    meta = dict(meta)
    for key in ("order_code", "trip_code"):
        if meta.get(key):
            meta[key] = group_code
    meta["group_code"] = group_code
    return meta


def generate_notification(
    notification_type: NotificationType,
    data: dict[str, Any],
    consolidation_enabled: bool = False,
) -> tuple[str, str, dict[str, Any]]:
    """
    Build translation keys and meta for a notification.

    Keys follow ``notification.<type>[.<status>].subject|message``. When
    order consolidation is on and a group code is present, the group code
    stands in for order and trip codes.

    Returns:
        ``(subject_key, message_key, meta)``
    """
    prefix = f"notification.{notification_type.value.lower()}"
    subject = f"{prefix}.subject"
    message = f"{prefix}.message"
    meta = {key: value for key, value in data.items() if value not in (None, "")}

    match notification_type:
        case NotificationType.TRIP_STATUS_CHANGED:
            status = meta.get("trip_status")
            status_key = status.lower() if status else NON_SYSTEM_STATUS_KEY
            subject = f"{prefix}.{status_key}.subject"
            message = f"{prefix}.{status_key}.message"
        case NotificationType.ORDER_STATUS_CHANGED:
            order_status = meta.get("order_status", "")
            message = f"{prefix}.message.{order_status.lower()}"
        case NotificationType.ORDER_GROUP_STATUS_CHANGED:
            group_status = meta.get("order_group_status", "").lower()
            subject = f"{prefix}.{group_status}.subject"
            message = f"{prefix}.{group_status}.message"
        case _:
            pass

    return subject, message, _consolidated_codes(meta, consolidation_enabled)


class NotificationService:
    """
    Persists notifications for resolved recipients.

    Attributes:
        repository: Notification data access
        settings_service: Organization settings lookups
    """

    def __init__(
        self,
        db_session: AsyncSession,
        repository: Optional[NotificationRepository] = None,
        settings_service: Optional[OrganizationSettingsService] = None,
    ) -> None:
        self.db = db_session
        self.repository = repository or NotificationRepository(db_session)
        self.settings_service = settings_service or OrganizationSettingsService(db_session)

    async def resolve_recipients(self, request: PushNotificationRequest) -> list[uuid.UUID]:
        """
        Resolve recipient users in order: receivers, participants, role members.

        Duplicates and the creator are dropped; first occurrence wins.
        """
        candidates: list[uuid.UUID] = list(request.receivers)

        order_code = request.data.get("order_code")
        if request.send_to_participants and order_code:
            candidates.extend(
                await self.repository.list_participant_user_ids(request.organization_id, order_code)
            )

        if request.org_member_roles:
            candidates.extend(
                await self.repository.list_member_user_ids(
                    request.organization_id, request.org_member_roles
                )
            )

        seen: set[uuid.UUID] = set()
        recipients: list[uuid.UUID] = []
        for user_id in candidates:
            if user_id is None or user_id == request.created_by_id or user_id in seen:
                continue
            seen.add(user_id)
            recipients.append(user_id)
        return recipients

    async def push_notification(
        self, request: PushNotificationRequest
    ) -> Optional[Notification]:
        """
        Persist the notification described by a request.

        Incomplete requests (missing type, organization, target or creator)
        are ignored.

        Raises:
            NotificationServiceError: If recipient lookup or persistence fails
        """
        if not request.is_complete:
            logger.warning(
                "Ignoring incomplete notification request",
                notification_type=request.type.value if request.type else None,
                target_id=str(request.target_id) if request.target_id else None,
            )
            return None

        try:
            recipients = await self.resolve_recipients(request)
            consolidation = await self.settings_service.is_order_consolidation_enabled(
                request.organization_id
            )
            subject, message, meta = generate_notification(request.type, request.data, consolidation)
            notification = await self.repository.create_notification(
                organization_id=request.organization_id,
                notification_type=request.type,
                target_id=request.target_id,
                created_by_id=request.created_by_id,
                subject=subject,
                message=message,
                meta=meta,
                recipient_ids=recipients,
            )
        except NotificationRepositoryError as e:
            raise NotificationServiceError(
                "Failed to persist notification",
                **{**e.context, "notification_type": request.type.value},
            ) from e

        logger.info(
            "Notification persisted",
            notification_id=str(notification.id),
            notification_type=request.type.value,
            recipients=len(recipients),
        )
        return notification


def get_notification_service(db_session: AsyncSession) -> NotificationService:
    """Factory function to create notification service instance."""
    return NotificationService(db_session=db_session)
