"""
Aggregate rollup of trip state into orders and order groups.

After a trip changes, the parent order may be complete and a consolidated
order group may have reached DELIVERED or COMPLETED. Each check re-reads the
current trip state and appends a status entry only when it is not there yet,
so repeated calls are harmless.
"""

import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Union

from tripflow.core.logging import get_logger
from tripflow.database.models.order import OrderGroup, OrderGroupStatusType, OrderStatusType
from tripflow.database.models.trip import OrderTripStatusType
from tripflow.services.orders.repository import OrderRepository
from tripflow.services.organizations.settings import OrganizationSettingsService

logger = get_logger(__name__)

_GROUP_TARGET_TRIP_STATUS = {
    OrderGroupStatusType.DELIVERED: OrderTripStatusType.DELIVERED,
    OrderGroupStatusType.COMPLETED: OrderTripStatusType.COMPLETED,
}


@dataclass(frozen=True)
class GroupRollupResult:
    """Outcome of an order group rollup."""

    group_id: uuid.UUID
    group_code: str
    status: OrderGroupStatusType
    status_created: bool


@dataclass(frozen=True)
class OrderRollupResult:
    """Outcome of an order completion rollup."""

    order_completed: bool
    status_created: bool = False
    group: Optional[GroupRollupResult] = None

    @property
    def order_group_code(self) -> Optional[str]:
        return self.group.group_code if self.group else None


class AggregateRollupEvaluator:
    """Rolls trip completion up into orders and order groups."""

    def __init__(
        self,
        repository: OrderRepository,
        settings_service: OrganizationSettingsService,
    ):
        self.repository = repository
        self.settings_service = settings_service

    async def is_order_completed(
        self,
        organization_id: uuid.UUID,
        order_code: str,
        total_trip_count: int,
        remaining_capacity: Union[Decimal, int, float],
    ) -> bool:
        """
        Check whether every trip of the order is done.

        True when the number of trips carrying a bill of lading and a
        COMPLETED status equals ``total_trip_count`` and no capacity remains.
        """
        completed = await self.repository.count_completed_trips_with_bill_of_lading(
            organization_id, order_code
        )
        result = completed == total_trip_count and Decimal(str(remaining_capacity)) == 0
        logger.debug(
            "Order completion evaluated",
            order_code=order_code,
            completed_trips=completed,
            total_trips=total_trip_count,
            remaining_capacity=str(remaining_capacity),
            completed=result,
        )
        return result

    async def complete_order_if_fulfilled(
        self,
        organization_id: uuid.UUID,
        order_id: uuid.UUID,
        order_code: str,
        total_trip_count: int,
        remaining_capacity: Union[Decimal, int, float],
        created_by_id: Optional[uuid.UUID],
    ) -> OrderRollupResult:
        """
        Append the COMPLETED order status when the order is fulfilled, then
        roll up its order group when consolidation is enabled.
        """
        if not await self.is_order_completed(
            organization_id, order_code, total_trip_count, remaining_capacity
        ):
            return OrderRollupResult(order_completed=False)

        status_created = False
        async with self.repository.transaction():
            if not await self.repository.has_order_status(
                organization_id, order_id, OrderStatusType.COMPLETED
            ):
                await self.repository.append_order_status(
                    organization_id, order_id, OrderStatusType.COMPLETED, created_by_id
                )
                status_created = True

        group = None
        if await self.settings_service.is_order_consolidation_enabled(organization_id):
            group = await self.update_order_group_status_if_all_trips_completed(
                organization_id,
                order_id=order_id,
                created_by_id=created_by_id,
            )

        logger.info(
            "Order completion rolled up",
            order_id=str(order_id),
            status_created=status_created,
            group_code=group.group_code if group else None,
        )
        return OrderRollupResult(
            order_completed=True,
            status_created=status_created,
            group=group,
        )

    async def update_order_group_status_if_all_trips_completed(
        self,
        organization_id: uuid.UUID,
        group_id: Optional[uuid.UUID] = None,
        order_id: Optional[uuid.UUID] = None,
        created_by_id: Optional[uuid.UUID] = None,
    ) -> Optional[GroupRollupResult]:
        return await self._update_group_status(
            organization_id,
            OrderGroupStatusType.COMPLETED,
            group_id=group_id,
            order_id=order_id,
            created_by_id=created_by_id,
        )

    async def update_order_group_status_if_all_trips_delivered(
        self,
        organization_id: uuid.UUID,
        group_id: Optional[uuid.UUID] = None,
        order_id: Optional[uuid.UUID] = None,
        created_by_id: Optional[uuid.UUID] = None,
    ) -> Optional[GroupRollupResult]:
        return await self._update_group_status(
            organization_id,
            OrderGroupStatusType.DELIVERED,
            group_id=group_id,
            order_id=order_id,
            created_by_id=created_by_id,
        )

    async def _update_group_status(
        self,
        organization_id: uuid.UUID,
        target: OrderGroupStatusType,
        group_id: Optional[uuid.UUID],
        order_id: Optional[uuid.UUID],
        created_by_id: Optional[uuid.UUID],
    ) -> Optional[GroupRollupResult]:
        group = await self._resolve_group(organization_id, group_id, order_id)
        if group is None:
            logger.debug(
                "No order group to roll up",
                group_id=str(group_id) if group_id else None,
                order_id=str(order_id) if order_id else None,
            )
            return None

        trip_status = _GROUP_TARGET_TRIP_STATUS[target]
        statuses = await self.repository.list_group_trip_statuses(organization_id, group.id)
        all_reached = bool(statuses) and all(status == trip_status for status in statuses)

        status_created = False
        if all_reached:
            async with self.repository.transaction():
                if not await self.repository.has_group_status(organization_id, group.id, target):
                    await self.repository.append_group_status(
                        organization_id, group.id, target, created_by_id
                    )
                    status_created = True

        return GroupRollupResult(
            group_id=group.id,
            group_code=group.code,
            status=target,
            status_created=status_created,
        )

    async def _resolve_group(
        self,
        organization_id: uuid.UUID,
        group_id: Optional[uuid.UUID],
        order_id: Optional[uuid.UUID],
    ) -> Optional[OrderGroup]:
        if group_id is not None:
            return await self.repository.get_order_group(organization_id, group_id)
        if order_id is not None:
            return await self.repository.get_order_group_by_order(organization_id, order_id)
        return None
