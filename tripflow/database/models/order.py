"""
Order models: orders with their status history, routes, participants and
order groups.

Orders are the parent aggregate of trips. Completion of an order is recorded
as an ``OrderStatus`` history entry once every trip satisfies the completion
predicate; grouped orders additionally roll up into ``OrderGroupStatus``.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tripflow.database.base import OrganizationScopedModel


class OrderStatusType(str, enum.Enum):
    """
    Order lifecycle status.

    Each type has a fixed display position in the order's status list;
    COMPLETED always occupies position 4.
    """

    NEW = "NEW"
    RECEIVED = "RECEIVED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"

    @property
    def position(self) -> int:
        """Reserved display position of this status."""
        return _ORDER_STATUS_POSITIONS[self]


_ORDER_STATUS_POSITIONS = {
    OrderStatusType.NEW: 1,
    OrderStatusType.RECEIVED: 2,
    OrderStatusType.IN_PROGRESS: 3,
    OrderStatusType.COMPLETED: 4,
    OrderStatusType.CANCELED: 5,
}


class OrderGroupStatusType(str, enum.Enum):
    """Order group rollup status."""

    IN_PROGRESS = "IN_PROGRESS"
    DELIVERED = "DELIVERED"
    COMPLETED = "COMPLETED"


class OrderGroup(OrganizationScopedModel):
    """Group of orders consolidated for delivery."""

    __tablename__ = "order_groups"

    code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Order group code",
    )

    orders: Mapped[list["Order"]] = relationship(
        "Order",
        back_populates="order_group",
        lazy="selectin",
    )

    statuses: Mapped[list["OrderGroupStatus"]] = relationship(
        "OrderGroupStatus",
        back_populates="group",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("organization_id", "code", name="uq_order_groups_org_code"),
    )


class OrderGroupStatus(OrganizationScopedModel):
    """Status history entry of an order group."""

    __tablename__ = "order_group_statuses"

    group_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("order_groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Order group",
    )

    type: Mapped[OrderGroupStatusType] = mapped_column(
        SQLEnum(OrderGroupStatusType, name="order_group_status_type", native_enum=False),
        nullable=False,
        comment="Group status type",
    )

    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="Creator",
    )

    group: Mapped["OrderGroup"] = relationship("OrderGroup", back_populates="statuses")


class Route(OrganizationScopedModel):
    """Customer route with ordered pickup points."""

    __tablename__ = "routes"

    code: Mapped[str] = mapped_column(String(50), nullable=False, comment="Route code")

    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, comment="Route name")

    pickup_points: Mapped[list["RoutePoint"]] = relationship(
        "RoutePoint",
        back_populates="route",
        lazy="selectin",
        order_by="RoutePoint.display_order",
    )


class RoutePoint(OrganizationScopedModel):
    """Pickup point of a route."""

    __tablename__ = "route_points"

    route_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("routes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Route",
    )

    code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    route: Mapped["Route"] = relationship("Route", back_populates="pickup_points")


class Order(OrganizationScopedModel):
    """
    Customer order carried out by one or more trips.

    Attributes:
        code: Order code, unique within the organization
        order_date: Order date, also used to bucket uploaded files by month
        weight: Ordered weight
        unit_of_measure: Unit of ``weight``
        route_id: Route with the pickup points
        order_group_id: Optional consolidation group
        published_at: Soft lifecycle marker
    """

    __tablename__ = "orders"

    code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Order code",
    )

    order_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Order date",
    )

    weight: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=12, scale=3),
        nullable=True,
        comment="Ordered weight",
    )

    unit_of_measure: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        comment="Weight unit",
    )

    route_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("routes.id", ondelete="SET NULL"),
        nullable=True,
        comment="Route",
    )

    order_group_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("order_groups.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Consolidation group",
    )

    published_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Publication timestamp",
    )

    route: Mapped[Optional["Route"]] = relationship("Route", lazy="selectin")

    order_group: Mapped[Optional["OrderGroup"]] = relationship(
        "OrderGroup",
        back_populates="orders",
    )

    trips: Mapped[list["OrderTrip"]] = relationship("OrderTrip", lazy="selectin")

    statuses: Mapped[list["OrderStatus"]] = relationship(
        "OrderStatus",
        back_populates="order",
        lazy="selectin",
        order_by="OrderStatus.position",
    )

    __table_args__ = (
        UniqueConstraint("organization_id", "code", name="uq_orders_org_code"),
    )


class OrderStatus(OrganizationScopedModel):
    """Status history entry of an order at its reserved display position."""

    __tablename__ = "order_statuses"

    order_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Order",
    )

    type: Mapped[OrderStatusType] = mapped_column(
        SQLEnum(OrderStatusType, name="order_status_type", native_enum=False),
        nullable=False,
        comment="Order status type",
    )

    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Display position",
    )

    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="Creator",
    )

    order: Mapped["Order"] = relationship("Order", back_populates="statuses")

    __table_args__ = (
        Index("ix_order_statuses_order_type", "order_id", "type"),
    )


class OrderParticipant(OrganizationScopedModel):
    """User following an order; receives participant notifications."""

    __tablename__ = "order_participants"

    order_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Order",
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Participant user",
    )

    __table_args__ = (
        UniqueConstraint("order_id", "user_id", name="uq_order_participants_user"),
    )
