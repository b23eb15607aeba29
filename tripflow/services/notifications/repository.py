"""
Data access for notification recipients and notification records.
"""

import uuid
from typing import Any, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tripflow.core.logging import get_logger
from tripflow.database.models.notification import (
    Notification,
    NotificationRecipient,
    NotificationType,
)
from tripflow.database.models.order import Order, OrderParticipant
from tripflow.database.models.organization import OrganizationMember, OrganizationRoleType

logger = get_logger(__name__)


class NotificationRepositoryError(Exception):
    """Raised when notification data access fails."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.context = context


class NotificationRepository:
    """Repository for notification data access operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_participant_user_ids(
        self,
        organization_id: uuid.UUID,
        order_code: str,
    ) -> list[uuid.UUID]:
        """Users participating in the order with the given code."""
        try:
            stmt = (
                select(OrderParticipant.user_id)
                .join(Order, Order.id == OrderParticipant.order_id)
                .where(
                    Order.organization_id == organization_id,
                    Order.code == order_code,
                )
                .order_by(OrderParticipant.created_at)
            )
            result = await self.session.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise NotificationRepositoryError(
                "Failed to list order participants",
                order_code=order_code,
                error=str(e),
            ) from e

    async def list_member_user_ids(
        self,
        organization_id: uuid.UUID,
        roles: Sequence[OrganizationRoleType],
    ) -> list[uuid.UUID]:
        """Organization members holding any of the roles."""
        if not roles:
            return []
        try:
            stmt = (
                select(OrganizationMember.user_id)
                .where(
                    OrganizationMember.organization_id == organization_id,
                    OrganizationMember.role.in_(list(roles)),
                )
                .order_by(OrganizationMember.created_at)
            )
            result = await self.session.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise NotificationRepositoryError(
                "Failed to list organization members",
                roles=[role.value for role in roles],
                error=str(e),
            ) from e

    async def create_notification(
        self,
        organization_id: uuid.UUID,
        notification_type: NotificationType,
        target_id: uuid.UUID,
        created_by_id: Optional[uuid.UUID],
        subject: str,
        message: str,
        meta: dict[str, Any],
        recipient_ids: Sequence[uuid.UUID],
    ) -> Notification:
        """Persist a notification with one recipient row per user."""
        try:
            notification = Notification(
                organization_id=organization_id,
                type=notification_type,
                target_id=target_id,
                created_by_id=created_by_id,
                subject=subject,
                message=message,
                meta=meta,
                recipients=[NotificationRecipient(user_id=user_id) for user_id in recipient_ids],
            )
            self.session.add(notification)
            await self.session.flush()
            return notification
        except SQLAlchemyError as e:
            logger.error(
                "Failed to create notification",
                notification_type=notification_type.value,
                target_id=str(target_id),
                error=str(e),
            )
            raise NotificationRepositoryError(
                "Failed to create notification",
                notification_type=notification_type.value,
                error=str(e),
            ) from e
