"""
Typed notification payloads and their builders.

One immutable model per payload shape. ``build_trip_status_payload`` picks
the shape for a trip status; the other builders cover the bill-of-lading
flow and aggregate rollups.
"""

import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

from tripflow.core.config import get_settings
from tripflow.database.models.order import OrderGroupStatusType, OrderStatusType
from tripflow.database.models.trip import OrderTripStatusType


class NotificationPayload(BaseModel):
    """Base class for notification payloads."""

    model_config = ConfigDict(frozen=True)


class TripStatusPayload(NotificationPayload):
    order_code: str
    trip_code: str
    trip_id: uuid.UUID
    order_group_code: Optional[str] = None
    trip_status: Optional[OrderTripStatusType] = None
    driver_report_id: Optional[uuid.UUID] = None
    driver_full_name: Optional[str] = None


class TripPendingConfirmationPayload(TripStatusPayload):
    full_name: str = ""
    order_id: Optional[uuid.UUID] = None
    unit_of_measure: str = ""
    vehicle_number: str = ""
    weight: Optional[Decimal] = None


class TripConfirmedPayload(TripStatusPayload):
    pass


class TripGoingToPickupPayload(TripStatusPayload):
    pickup_point: str = ""


class TripDeliveryStepPayload(TripStatusPayload):
    driver_report_name: str = ""
    vehicle_number: str = ""


class TripCompletedPayload(TripStatusPayload):
    bill_of_lading: str


class TripCompletedExpensePayload(TripCompletedPayload):
    expense: str


class BillOfLadingReceivedPayload(NotificationPayload):
    full_name: str
    order_code: str
    trip_code: str
    order_group_code: Optional[str] = None


class OrderCompletedPayload(NotificationPayload):
    order_code: str
    order_group_code: Optional[str] = None
    order_status: OrderStatusType = OrderStatusType.COMPLETED


class OrderGroupStatusPayload(NotificationPayload):
    group_code: str
    order_group_status: OrderGroupStatusType


@dataclass(frozen=True)
class TripNotificationContext:
    """Trip facts available to the status payload builders."""

    trip_id: uuid.UUID
    order_code: str
    trip_code: str
    order_id: Optional[uuid.UUID] = None
    order_group_code: Optional[str] = None
    driver_report_id: Optional[uuid.UUID] = None
    driver_report_name: str = ""
    driver_full_name: str = ""
    full_name: str = ""
    vehicle_number: str = ""
    unit_of_measure: str = ""
    weight: Optional[Decimal] = None
    pickup_point: str = ""


def format_currency(amount: Decimal, currency_code: Optional[str] = None) -> str:
    """Format an expense amount with thousands separators and currency code."""
    currency_code = currency_code or get_settings().currency_code
    if currency_code == "VND":
        return f"{Decimal(amount):,.0f} {currency_code}"
    return f"{Decimal(amount):,.2f} {currency_code}"


def _common(status: Optional[OrderTripStatusType], context: TripNotificationContext) -> dict:
    return {
        "order_code": context.order_code,
        "trip_code": context.trip_code,
        "trip_id": context.trip_id,
        "order_group_code": context.order_group_code,
        "trip_status": status,
        "driver_report_id": context.driver_report_id,
        "driver_full_name": context.driver_full_name,
    }


def build_trip_status_payload(
    status: Optional[OrderTripStatusType],
    context: TripNotificationContext,
) -> Optional[TripStatusPayload]:
    """
    Select and build the payload for a status edit.

    A missing status is a custom driver report step and uses the delivery
    step shape. COMPLETED and CANCELED produce no payload here.
    """
    match status:
        case OrderTripStatusType.PENDING_CONFIRMATION:
            return TripPendingConfirmationPayload(
                **_common(status, context),
                full_name=context.full_name,
                order_id=context.order_id,
                unit_of_measure=context.unit_of_measure,
                vehicle_number=context.vehicle_number,
                weight=context.weight,
            )
        case OrderTripStatusType.CONFIRMED | OrderTripStatusType.WAREHOUSE_PICKED_UP:
            return TripConfirmedPayload(**_common(status, context))
        case OrderTripStatusType.WAITING_FOR_PICKUP | OrderTripStatusType.WAREHOUSE_GOING_TO_PICKUP:
            return TripGoingToPickupPayload(
                **_common(status, context),
                pickup_point=context.pickup_point,
            )
        case OrderTripStatusType.WAITING_FOR_DELIVERY | OrderTripStatusType.DELIVERED | None:
            return TripDeliveryStepPayload(
                **_common(status, context),
                driver_report_name=context.driver_report_name,
                vehicle_number=context.vehicle_number,
            )
        case _:
            return None


def build_bill_of_lading_received_payload(
    full_name: str,
    order_code: str,
    trip_code: str,
    order_group_code: Optional[str] = None,
) -> BillOfLadingReceivedPayload:
    return BillOfLadingReceivedPayload(
        full_name=full_name,
        order_code=order_code,
        trip_code=trip_code,
        order_group_code=order_group_code,
    )


def build_trip_completed_payload(
    context: TripNotificationContext,
    bill_of_lading: str,
    expense: Optional[str] = None,
) -> TripCompletedPayload:
    """Completed payload; carries the formatted driver cost when there is one."""
    common = _common(OrderTripStatusType.COMPLETED, context)
    if expense:
        common["driver_report_id"] = None
        return TripCompletedExpensePayload(**common, bill_of_lading=bill_of_lading, expense=expense)
    return TripCompletedPayload(**common, bill_of_lading=bill_of_lading)


def build_order_completed_payload(
    order_code: str,
    order_group_code: Optional[str] = None,
) -> OrderCompletedPayload:
    return OrderCompletedPayload(order_code=order_code, order_group_code=order_group_code)


def build_order_group_status_payload(
    group_code: str,
    status: OrderGroupStatusType,
) -> OrderGroupStatusPayload:
    return OrderGroupStatusPayload(group_code=group_code, order_group_status=status)
