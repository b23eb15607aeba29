"""
Order trip models: trips, their status history and the records a status
change produces.

A trip's status history is append-only. Each entry gets the next ordinal
sequence for the trip and the trip row keeps a denormalized copy of the
latest status type in ``last_status_type``. Messages bundle images and
geolocation captured with a transition.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum as SQLEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tripflow.database.base import Base, OrganizationScopedModel


class OrderTripStatusType(str, enum.Enum):
    """
    Trip lifecycle status.

    The nominal path is PENDING_CONFIRMATION -> CONFIRMED ->
    WAITING_FOR_PICKUP / WAREHOUSE_GOING_TO_PICKUP -> WAREHOUSE_PICKED_UP ->
    WAITING_FOR_DELIVERY -> DELIVERED -> COMPLETED. CANCELED is absorbing.
    Transition legality is advisory and left to callers.
    """

    PENDING_CONFIRMATION = "PENDING_CONFIRMATION"
    CONFIRMED = "CONFIRMED"
    WAITING_FOR_PICKUP = "WAITING_FOR_PICKUP"
    WAREHOUSE_GOING_TO_PICKUP = "WAREHOUSE_GOING_TO_PICKUP"
    WAREHOUSE_PICKED_UP = "WAREHOUSE_PICKED_UP"
    WAITING_FOR_DELIVERY = "WAITING_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"

    @classmethod
    def from_string(cls, value: str) -> "OrderTripStatusType":
        """
        Create OrderTripStatusType from string value.

        Raises:
            ValueError: If value is not a valid status
        """
        try:
            return cls(value.upper())
        except ValueError:
            raise ValueError(f"Invalid trip status: {value}")

    @property
    def is_terminal(self) -> bool:
        """Check if status is terminal (no further transitions)."""
        return self in (OrderTripStatusType.COMPLETED, OrderTripStatusType.CANCELED)

    @property
    def lifecycle_rank(self) -> int:
        """
        Position on the nominal lifecycle path.

        The two pickup variants share a rank. CANCELED ranks above
        everything since it is absorbing.
        """
        return _LIFECYCLE_RANKS[self]


_LIFECYCLE_RANKS = {
    OrderTripStatusType.PENDING_CONFIRMATION: 0,
    OrderTripStatusType.CONFIRMED: 1,
    OrderTripStatusType.WAITING_FOR_PICKUP: 2,
    OrderTripStatusType.WAREHOUSE_GOING_TO_PICKUP: 2,
    OrderTripStatusType.WAREHOUSE_PICKED_UP: 3,
    OrderTripStatusType.WAITING_FOR_DELIVERY: 4,
    OrderTripStatusType.DELIVERED: 5,
    OrderTripStatusType.COMPLETED: 6,
    OrderTripStatusType.CANCELED: 7,
}


class OrderTripMessageType(str, enum.Enum):
    """Statuses that also tag a trip message."""

    WAREHOUSE_PICKED_UP = "WAREHOUSE_PICKED_UP"
    WAITING_FOR_DELIVERY = "WAITING_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"

    @classmethod
    def from_status(cls, status: Optional[OrderTripStatusType]) -> Optional["OrderTripMessageType"]:
        """Map a trip status to a message type, or None when it is not one."""
        if status is None:
            return None
        try:
            return cls(status.value)
        except ValueError:
            return None


order_trip_bill_of_lading_images = Table(
    "order_trip_bill_of_lading_images",
    Base.metadata,
    Column(
        "trip_id",
        UUID(as_uuid=True),
        ForeignKey("order_trips.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "upload_file_id",
        UUID(as_uuid=True),
        ForeignKey("upload_files.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)

order_trip_message_images = Table(
    "order_trip_message_images",
    Base.metadata,
    Column(
        "message_id",
        UUID(as_uuid=True),
        ForeignKey("order_trip_messages.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "upload_file_id",
        UUID(as_uuid=True),
        ForeignKey("upload_files.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class OrderTrip(OrganizationScopedModel):
    """
    Delivery trip of an order.

    Attributes:
        order_id: Parent order
        code: Trip code, unique within the order
        driver_id: Assigned driver
        vehicle_id: Assigned vehicle
        weight: Carried weight in the order's unit of measure
        pickup_date: Planned pickup date
        delivery_date: Planned delivery date
        last_status_type: Latest status type from the history log
        bill_of_lading: Bill-of-lading number
        bill_of_lading_received: Whether the paper bill was received
        bill_of_lading_received_date: When the bill was marked received
        updated_by_id: Last user to modify the trip
        published_at: Soft lifecycle marker; trips are never hard-deleted
        updated_at: Optimistic concurrency token (from TimestampMixin)
    """

    __tablename__ = "order_trips"

    order_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Parent order",
    )

    code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Trip code",
    )

    driver_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("drivers.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Assigned driver",
    )

    vehicle_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("vehicles.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Assigned vehicle",
    )

    weight: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=12, scale=3),
        nullable=True,
        comment="Carried weight",
    )

    pickup_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
        comment="Planned pickup date",
    )

    delivery_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Planned delivery date",
    )

    last_status_type: Mapped[Optional[OrderTripStatusType]] = mapped_column(
        SQLEnum(OrderTripStatusType, name="order_trip_status_type", native_enum=False),
        nullable=True,
        index=True,
        comment="Latest status type",
    )

    bill_of_lading: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        index=True,
        comment="Bill-of-lading number",
    )

    bill_of_lading_received: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Paper bill of lading received",
    )

    bill_of_lading_received_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the bill of lading was received",
    )

    updated_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="Last user to modify the trip",
    )

    published_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Publication timestamp",
    )

    statuses: Mapped[list["OrderTripStatus"]] = relationship(
        "OrderTripStatus",
        back_populates="trip",
        lazy="selectin",
        order_by="OrderTripStatus.sequence",
    )

    bill_of_lading_images: Mapped[list["UploadFile"]] = relationship(
        "UploadFile",
        secondary=order_trip_bill_of_lading_images,
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("order_id", "code", name="uq_order_trips_order_code"),
        Index("ix_order_trips_org_bill_of_lading", "organization_id", "bill_of_lading"),
    )


class OrderTripStatus(OrganizationScopedModel):
    """
    Immutable status history entry of a trip.

    ``sequence`` is the ordinal of the entry within its trip. The unique
    constraint turns a concurrent ordinal collision into an integrity error.
    """

    __tablename__ = "order_trip_statuses"

    trip_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("order_trips.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Trip",
    )

    type: Mapped[Optional[OrderTripStatusType]] = mapped_column(
        SQLEnum(OrderTripStatusType, name="order_trip_status_type", native_enum=False),
        nullable=True,
        comment="Status type, empty for non-system driver report steps",
    )

    sequence: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Ordinal within the trip",
    )

    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Status notes",
    )

    driver_report_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("driver_reports.id", ondelete="SET NULL"),
        nullable=True,
        comment="Driver report step",
    )

    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="Creator",
    )

    trip: Mapped["OrderTrip"] = relationship("OrderTrip", back_populates="statuses")

    __table_args__ = (
        UniqueConstraint("trip_id", "sequence", name="uq_order_trip_statuses_trip_sequence"),
    )


class OrderTripMessage(OrganizationScopedModel):
    """Message attached to a trip, optionally with images and geolocation."""

    __tablename__ = "order_trip_messages"

    trip_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("order_trips.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Trip",
    )

    type: Mapped[Optional[OrderTripMessageType]] = mapped_column(
        SQLEnum(OrderTripMessageType, name="order_trip_message_type", native_enum=False),
        nullable=True,
        comment="Message type derived from the trip status",
    )

    message: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Message body",
    )

    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="Creator",
    )

    images: Mapped[list["UploadFile"]] = relationship(
        "UploadFile",
        secondary=order_trip_message_images,
        lazy="selectin",
    )


class DriverReport(OrganizationScopedModel):
    """
    Report step configured by an organization for its drivers.

    System steps carry the trip status they record; custom steps have no type.
    """

    __tablename__ = "driver_reports"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Report step name",
    )

    type: Mapped[Optional[OrderTripStatusType]] = mapped_column(
        SQLEnum(OrderTripStatusType, name="order_trip_status_type", native_enum=False),
        nullable=True,
        comment="Trip status recorded by this step",
    )

    display_order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Display order",
    )

    __table_args__ = (
        Index("ix_driver_reports_org_type", "organization_id", "type"),
    )


class TripDriverExpense(OrganizationScopedModel):
    """Amount charged to a trip for its driver."""

    __tablename__ = "trip_driver_expenses"

    trip_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("order_trips.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Trip",
    )

    amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=14, scale=2),
        nullable=True,
        comment="Expense amount",
    )
