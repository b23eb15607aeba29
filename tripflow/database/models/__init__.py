"""
Database models package initialization.

Models are imported here so they register with the Base metadata for Alembic
and for string-based relationship resolution.
"""

from tripflow.database.base import (
    Base,
    BaseModel,
    OrganizationScopedMixin,
    OrganizationScopedModel,
    TimestampMixin,
    UUIDMixin,
)
from tripflow.database.models.file import UploadFile
from tripflow.database.models.fleet import Driver, Vehicle
from tripflow.database.models.notification import (
    Notification,
    NotificationRecipient,
    NotificationType,
)
from tripflow.database.models.order import (
    Order,
    OrderGroup,
    OrderGroupStatus,
    OrderGroupStatusType,
    OrderParticipant,
    OrderStatus,
    OrderStatusType,
    Route,
    RoutePoint,
)
from tripflow.database.models.organization import (
    Organization,
    OrganizationMember,
    OrganizationRoleType,
    OrganizationSetting,
    OrganizationSettingKey,
)
from tripflow.database.models.trip import (
    DriverReport,
    OrderTrip,
    OrderTripMessage,
    OrderTripMessageType,
    OrderTripStatus,
    OrderTripStatusType,
    TripDriverExpense,
    order_trip_bill_of_lading_images,
    order_trip_message_images,
)
from tripflow.database.models.user import User

__all__ = [
    "Base",
    "BaseModel",
    "OrganizationScopedMixin",
    "OrganizationScopedModel",
    "TimestampMixin",
    "UUIDMixin",
    "UploadFile",
    "Driver",
    "Vehicle",
    "Notification",
    "NotificationRecipient",
    "NotificationType",
    "Order",
    "OrderGroup",
    "OrderGroupStatus",
    "OrderGroupStatusType",
    "OrderParticipant",
    "OrderStatus",
    "OrderStatusType",
    "Route",
    "RoutePoint",
    "Organization",
    "OrganizationMember",
    "OrganizationRoleType",
    "OrganizationSetting",
    "OrganizationSettingKey",
    "DriverReport",
    "OrderTrip",
    "OrderTripMessage",
    "OrderTripMessageType",
    "OrderTripStatus",
    "OrderTripStatusType",
    "TripDriverExpense",
    "order_trip_bill_of_lading_images",
    "order_trip_message_images",
    "User",
]
