"""
Order data access for completion rollups.

Reads trip state across an order or an order group and appends order and
order-group status entries. Queries are organization-scoped.
"""

import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from sqlalchemy import and_, exists, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tripflow.core.logging import get_logger
from tripflow.database.models.order import (
    Order,
    OrderGroup,
    OrderGroupStatus,
    OrderGroupStatusType,
    OrderStatus,
    OrderStatusType,
    Route,
    RoutePoint,
)
from tripflow.database.models.trip import OrderTrip, OrderTripStatus, OrderTripStatusType

logger = get_logger(__name__)


class OrderRepositoryError(Exception):
    """Base exception for order repository errors."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.context = context


class OrderRepository:
    """Repository for order and order group rollup data."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Commit the body as one unit, rolling back on error."""
        try:
            yield
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error(
                "Order transaction rolled back",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

    async def count_completed_trips_with_bill_of_lading(
        self,
        organization_id: uuid.UUID,
        order_code: str,
    ) -> int:
        """
        Count an order's trips that have a bill of lading and a COMPLETED
        status entry.

        Raises:
            OrderRepositoryError: If query fails
        """
        try:
            completed = exists().where(
                and_(
                    OrderTripStatus.trip_id == OrderTrip.id,
                    OrderTripStatus.type == OrderTripStatusType.COMPLETED,
                )
            )
            stmt = (
                select(func.count(OrderTrip.id))
                .join(Order, Order.id == OrderTrip.order_id)
                .where(
                    Order.organization_id == organization_id,
                    Order.code == order_code,
                    OrderTrip.organization_id == organization_id,
                    OrderTrip.bill_of_lading.is_not(None),
                    completed,
                )
            )
            result = await self.session.execute(stmt)
            return int(result.scalar_one())
        except SQLAlchemyError as e:
            logger.error(
                "Failed to count completed trips",
                order_code=order_code,
                error=str(e),
            )
            raise OrderRepositoryError(
                "Failed to count completed trips",
                order_code=order_code,
                error=str(e),
            ) from e

    async def has_order_status(
        self,
        organization_id: uuid.UUID,
        order_id: uuid.UUID,
        status_type: OrderStatusType,
    ) -> bool:
        try:
            stmt = select(OrderStatus.id).where(
                OrderStatus.organization_id == organization_id,
                OrderStatus.order_id == order_id,
                OrderStatus.type == status_type,
            )
            result = await self.session.execute(stmt.limit(1))
            return result.first() is not None
        except SQLAlchemyError as e:
            raise OrderRepositoryError(
                "Failed to read order statuses",
                order_id=str(order_id),
                error=str(e),
            ) from e

    async def append_order_status(
        self,
        organization_id: uuid.UUID,
        order_id: uuid.UUID,
        status_type: OrderStatusType,
        created_by_id: Optional[uuid.UUID],
    ) -> OrderStatus:
        """Append an order status entry at its reserved position."""
        entry = OrderStatus(
            organization_id=organization_id,
            order_id=order_id,
            type=status_type,
            position=status_type.position,
            created_by_id=created_by_id,
        )
        self.session.add(entry)
        await self.session.flush()
        logger.info(
            "Order status appended",
            order_id=str(order_id),
            status=status_type.value,
            position=entry.position,
        )
        return entry

    async def get_order_group(
        self,
        organization_id: uuid.UUID,
        group_id: uuid.UUID,
    ) -> Optional[OrderGroup]:
        try:
            stmt = select(OrderGroup).where(
                OrderGroup.organization_id == organization_id,
                OrderGroup.id == group_id,
            )
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise OrderRepositoryError(
                "Failed to fetch order group",
                group_id=str(group_id),
                error=str(e),
            ) from e

    async def get_order_group_by_order(
        self,
        organization_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> Optional[OrderGroup]:
        try:
            stmt = (
                select(OrderGroup)
                .join(Order, Order.order_group_id == OrderGroup.id)
                .where(
                    Order.organization_id == organization_id,
                    Order.id == order_id,
                )
            )
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise OrderRepositoryError(
                "Failed to fetch order group of order",
                order_id=str(order_id),
                error=str(e),
            ) from e

    async def list_group_trip_statuses(
        self,
        organization_id: uuid.UUID,
        group_id: uuid.UUID,
    ) -> list[Optional[OrderTripStatusType]]:
        """Latest status of every trip across all orders of a group."""
        try:
            stmt = (
                select(OrderTrip.last_status_type)
                .join(Order, Order.id == OrderTrip.order_id)
                .where(
                    Order.organization_id == organization_id,
                    Order.order_group_id == group_id,
                )
            )
            result = await self.session.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise OrderRepositoryError(
                "Failed to read group trip statuses",
                group_id=str(group_id),
                error=str(e),
            ) from e

    async def has_group_status(
        self,
        organization_id: uuid.UUID,
        group_id: uuid.UUID,
        status_type: OrderGroupStatusType,
    ) -> bool:
        try:
            stmt = select(OrderGroupStatus.id).where(
                OrderGroupStatus.organization_id == organization_id,
                OrderGroupStatus.group_id == group_id,
                OrderGroupStatus.type == status_type,
            )
            result = await self.session.execute(stmt.limit(1))
            return result.first() is not None
        except SQLAlchemyError as e:
            raise OrderRepositoryError(
                "Failed to read group statuses",
                group_id=str(group_id),
                error=str(e),
            ) from e

    async def append_group_status(
        self,
        organization_id: uuid.UUID,
        group_id: uuid.UUID,
        status_type: OrderGroupStatusType,
        created_by_id: Optional[uuid.UUID],
    ) -> OrderGroupStatus:
        entry = OrderGroupStatus(
            organization_id=organization_id,
            group_id=group_id,
            type=status_type,
            created_by_id=created_by_id,
        )
        self.session.add(entry)
        await self.session.flush()
        logger.info(
            "Order group status appended",
            group_id=str(group_id),
            status=status_type.value,
        )
        return entry

    async def get_first_pickup_point_label(
        self,
        organization_id: uuid.UUID,
        order_code: str,
    ) -> str:
        """Name, else code, of the first pickup point on the order's route."""
        try:
            stmt = (
                select(RoutePoint.name, RoutePoint.code)
                .join(Route, Route.id == RoutePoint.route_id)
                .join(Order, Order.route_id == Route.id)
                .where(
                    Order.organization_id == organization_id,
                    Order.code == order_code,
                )
                .order_by(RoutePoint.display_order)
                .limit(1)
            )
            row = (await self.session.execute(stmt)).first()
        except SQLAlchemyError as e:
            raise OrderRepositoryError(
                "Failed to read pickup point",
                order_code=order_code,
                error=str(e),
            ) from e
        if row is None:
            return ""
        return row.name or row.code or ""
