"""
Tests for notification payload selection, planning and dispatch.
"""

import uuid
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from tripflow.database.models.notification import NotificationType
from tripflow.database.models.order import OrderGroupStatusType
from tripflow.database.models.organization import OrganizationRoleType
from tripflow.database.models.trip import OrderTripStatusType
from tripflow.services.notifications.dispatcher import (
    NotificationDispatcher,
    plan_bill_of_lading_received,
    plan_for_status,
    plan_order_completed,
    plan_order_group_status,
)
from tripflow.services.notifications.payloads import (
    TripCompletedExpensePayload,
    TripCompletedPayload,
    TripConfirmedPayload,
    TripDeliveryStepPayload,
    TripGoingToPickupPayload,
    TripNotificationContext,
    TripPendingConfirmationPayload,
    build_bill_of_lading_received_payload,
    build_order_completed_payload,
    build_order_group_status_payload,
    build_trip_completed_payload,
    build_trip_status_payload,
    format_currency,
)

DRIVER_USER_ID = uuid.uuid4()


@pytest.fixture
def context() -> TripNotificationContext:
    return TripNotificationContext(
        trip_id=uuid.uuid4(),
        order_code="O001",
        trip_code="T001",
        order_id=uuid.uuid4(),
        driver_report_id=uuid.uuid4(),
        driver_report_name="Arrived",
        driver_full_name="Tran Binh",
        full_name="Nguyen Van A",
        vehicle_number="51C-12345",
        unit_of_measure="TON",
        weight=Decimal("12.5"),
        pickup_point="Kho A",
    )


@pytest.mark.parametrize(
    "status,payload_type",
    [
        (OrderTripStatusType.PENDING_CONFIRMATION, TripPendingConfirmationPayload),
        (OrderTripStatusType.CONFIRMED, TripConfirmedPayload),
        (OrderTripStatusType.WAREHOUSE_PICKED_UP, TripConfirmedPayload),
        (OrderTripStatusType.WAITING_FOR_PICKUP, TripGoingToPickupPayload),
        (OrderTripStatusType.WAREHOUSE_GOING_TO_PICKUP, TripGoingToPickupPayload),
        (OrderTripStatusType.WAITING_FOR_DELIVERY, TripDeliveryStepPayload),
        (OrderTripStatusType.DELIVERED, TripDeliveryStepPayload),
        (None, TripDeliveryStepPayload),
    ],
)
def test_payload_shape_per_status(context, status, payload_type):
    payload = build_trip_status_payload(status, context)

    assert type(payload) is payload_type
    assert payload.trip_status == status


@pytest.mark.parametrize("status", [OrderTripStatusType.COMPLETED, OrderTripStatusType.CANCELED])
def test_terminal_statuses_have_no_plan(context, status):
    assert build_trip_status_payload(status, context) is None
    assert plan_for_status(status, context, DRIVER_USER_ID) is None


@pytest.mark.parametrize(
    "status,roles,participants",
    [
        (OrderTripStatusType.PENDING_CONFIRMATION, (), False),
        (OrderTripStatusType.CONFIRMED, (), True),
        (OrderTripStatusType.WAITING_FOR_PICKUP, (), True),
        (OrderTripStatusType.WAREHOUSE_PICKED_UP, (), True),
        (OrderTripStatusType.WAITING_FOR_DELIVERY, (OrganizationRoleType.ACCOUNTANT,), True),
        (OrderTripStatusType.DELIVERED, (OrganizationRoleType.ACCOUNTANT,), True),
        (None, (OrganizationRoleType.ACCOUNTANT,), True),
    ],
)
def test_recipient_plan_per_status(context, status, roles, participants):
    plan = plan_for_status(status, context, DRIVER_USER_ID)

    assert plan.type == NotificationType.TRIP_STATUS_CHANGED
    assert plan.target_id == context.trip_id
    assert plan.receivers == (DRIVER_USER_ID,)
    assert plan.org_member_roles == roles
    assert plan.send_to_participants is participants


def test_plan_without_driver_account(context):
    plan = plan_for_status(OrderTripStatusType.CONFIRMED, context, None)

    assert plan.receivers == ()


def test_completed_payload_with_expense_drops_report(context):
    payload = build_trip_completed_payload(context, "BL-1", expense="1,000 VND")

    assert isinstance(payload, TripCompletedExpensePayload)
    assert payload.driver_report_id is None
    assert payload.trip_status == OrderTripStatusType.COMPLETED


def test_completed_payload_without_expense_keeps_report(context):
    payload = build_trip_completed_payload(context, "BL-1")

    assert type(payload) is TripCompletedPayload
    assert payload.driver_report_id == context.driver_report_id


def test_management_plans():
    order_id, group_id, trip_id = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()

    received = plan_bill_of_lading_received(
        trip_id, build_bill_of_lading_received_payload("A", "O1", "T1"), DRIVER_USER_ID
    )
    order = plan_order_completed(order_id, build_order_completed_payload("O1"))
    group = plan_order_group_status(
        group_id, build_order_group_status_payload("G1", OrderGroupStatusType.DELIVERED)
    )

    management = (OrganizationRoleType.MANAGER, OrganizationRoleType.ACCOUNTANT)
    assert received.org_member_roles == management
    assert received.send_to_participants is True
    assert order.org_member_roles == management
    assert order.send_to_participants is False
    assert group.type == NotificationType.ORDER_GROUP_STATUS_CHANGED
    assert group.send_to_participants is False


def test_dispatch_serializes_request(context):
    task = MagicMock()
    organization_id, creator = uuid.uuid4(), uuid.uuid4()
    plan = plan_for_status(OrderTripStatusType.DELIVERED, context, DRIVER_USER_ID)

    assert NotificationDispatcher(task=task).dispatch(plan, organization_id, creator) is True

    request = task.delay.call_args.args[0]
    assert request["organization_id"] == str(organization_id)
    assert request["created_by_id"] == str(creator)
    assert request["type"] == NotificationType.TRIP_STATUS_CHANGED.value
    assert request["org_member_roles"] == [OrganizationRoleType.ACCOUNTANT.value]
    assert "weight" not in request["data"]
    assert request["data"]["driver_report_name"] == "Arrived"
    assert request["data"]["trip_status"] == OrderTripStatusType.DELIVERED.value


def test_dispatch_swallows_enqueue_errors(context):
    task = MagicMock()
    task.delay.side_effect = ConnectionError("broker unavailable")
    plan = plan_for_status(OrderTripStatusType.CONFIRMED, context, DRIVER_USER_ID)

    assert NotificationDispatcher(task=task).dispatch(plan, uuid.uuid4(), uuid.uuid4()) is False


def test_format_currency_uses_currency_code():
    assert format_currency(Decimal("1500000"), "VND") == "1,500,000 VND"
    assert format_currency(Decimal("12.5"), "USD") == "12.50 USD"
    assert format_currency(Decimal("250000")) == "250,000 VND"
