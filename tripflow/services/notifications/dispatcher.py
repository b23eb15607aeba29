"""
Notification planning and dispatch.

Planning is pure: a status and the trip facts map to a ``NotificationPlan``
naming the payload, the explicit receivers, the organization roles to
broadcast to and whether order participants are included. Dispatch enqueues
the plan for the notification worker after the transaction has committed and
never raises.
"""

import uuid
from dataclasses import dataclass
from typing import Any, Optional

from tripflow.core.logging import get_logger
from tripflow.database.models.notification import NotificationType
from tripflow.database.models.organization import OrganizationRoleType
from tripflow.database.models.trip import OrderTripStatusType
from tripflow.schemas.notifications import PushNotificationRequest
from tripflow.services.notifications.payloads import (
    BillOfLadingReceivedPayload,
    NotificationPayload,
    OrderCompletedPayload,
    OrderGroupStatusPayload,
    TripCompletedPayload,
    TripNotificationContext,
    build_trip_status_payload,
)
from tripflow.services.notifications.tasks import push_notification_task

logger = get_logger(__name__)

MANAGEMENT_ROLES = (OrganizationRoleType.MANAGER, OrganizationRoleType.ACCOUNTANT)


@dataclass(frozen=True)
class NotificationPlan:
    """What to send and to whom."""

    type: NotificationType
    target_id: uuid.UUID
    payload: NotificationPayload
    receivers: tuple[uuid.UUID, ...] = ()
    org_member_roles: tuple[OrganizationRoleType, ...] = ()
    send_to_participants: bool = True

    def to_request(
        self,
        organization_id: uuid.UUID,
        created_by_id: Optional[uuid.UUID],
    ) -> PushNotificationRequest:
        return PushNotificationRequest(
            type=self.type,
            organization_id=organization_id,
            target_id=self.target_id,
            created_by_id=created_by_id,
            data=self.payload.model_dump(mode="json", exclude_none=True),
            receivers=list(self.receivers),
            org_member_roles=list(self.org_member_roles),
            send_to_participants=self.send_to_participants,
        )


def _receivers(driver_user_id: Optional[uuid.UUID]) -> tuple[uuid.UUID, ...]:
    return (driver_user_id,) if driver_user_id else ()


def plan_for_status(
    status: Optional[OrderTripStatusType],
    context: TripNotificationContext,
    driver_user_id: Optional[uuid.UUID] = None,
) -> Optional[NotificationPlan]:
    """
    Plan the notification for a status edit.

    Returns None for statuses that do not notify (COMPLETED, CANCELED).
    """
    payload = build_trip_status_payload(status, context)
    if payload is None:
        return None

    match status:
        case OrderTripStatusType.PENDING_CONFIRMATION:
            roles: tuple[OrganizationRoleType, ...] = ()
            send_to_participants = False
        case OrderTripStatusType.WAITING_FOR_DELIVERY | OrderTripStatusType.DELIVERED | None:
            roles = (OrganizationRoleType.ACCOUNTANT,)
            send_to_participants = True
        case _:
            roles = ()
            send_to_participants = True

    return NotificationPlan(
        type=NotificationType.TRIP_STATUS_CHANGED,
        target_id=context.trip_id,
        payload=payload,
        receivers=_receivers(driver_user_id),
        org_member_roles=roles,
        send_to_participants=send_to_participants,
    )


def plan_bill_of_lading_received(
    trip_id: uuid.UUID,
    payload: BillOfLadingReceivedPayload,
    driver_user_id: Optional[uuid.UUID] = None,
) -> NotificationPlan:
    return NotificationPlan(
        type=NotificationType.BILL_OF_LADING_RECEIVED,
        target_id=trip_id,
        payload=payload,
        receivers=_receivers(driver_user_id),
        org_member_roles=MANAGEMENT_ROLES,
    )


def plan_trip_completed(
    trip_id: uuid.UUID,
    payload: TripCompletedPayload,
    driver_user_id: Optional[uuid.UUID] = None,
) -> NotificationPlan:
    return NotificationPlan(
        type=NotificationType.TRIP_STATUS_CHANGED,
        target_id=trip_id,
        payload=payload,
        receivers=_receivers(driver_user_id),
        org_member_roles=(OrganizationRoleType.ACCOUNTANT,),
    )


def plan_order_completed(order_id: uuid.UUID, payload: OrderCompletedPayload) -> NotificationPlan:
    return NotificationPlan(
        type=NotificationType.ORDER_STATUS_CHANGED,
        target_id=order_id,
        payload=payload,
        org_member_roles=MANAGEMENT_ROLES,
        send_to_participants=False,
    )


def plan_order_group_status(
    group_id: uuid.UUID,
    payload: OrderGroupStatusPayload,
) -> NotificationPlan:
    return NotificationPlan(
        type=NotificationType.ORDER_GROUP_STATUS_CHANGED,
        target_id=group_id,
        payload=payload,
        org_member_roles=MANAGEMENT_ROLES,
        send_to_participants=False,
    )


class NotificationDispatcher:
    """
    Enqueues notification plans for the worker.

    Args:
        task: Celery task used for delivery; defaults to
            ``push_notification_task``
    """

    def __init__(self, task: Any = None):
        self.task = task or push_notification_task

    def dispatch(
        self,
        plan: NotificationPlan,
        organization_id: uuid.UUID,
        created_by_id: Optional[uuid.UUID],
    ) -> bool:
        """
        Enqueue a plan. Errors are logged and swallowed.

        Returns:
            True when the plan was enqueued
        """
        try:
            request = plan.to_request(organization_id, created_by_id)
            self.task.delay(request.model_dump(mode="json"))
        except Exception as e:
            logger.error(
                "Failed to enqueue notification",
                notification_type=plan.type.value,
                target_id=str(plan.target_id),
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        logger.info(
            "Notification enqueued",
            notification_type=plan.type.value,
            target_id=str(plan.target_id),
            receivers=len(plan.receivers),
            roles=[role.value for role in plan.org_member_roles],
            send_to_participants=plan.send_to_participants,
        )
        return True
