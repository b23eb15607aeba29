"""
Trip data access repository with transaction support.

All queries are scoped by organization. Status entries, messages and
bill-of-lading updates are written through this repository inside
``transaction()`` so they commit or roll back together.
"""

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, AsyncIterator, Optional, Sequence

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tripflow.core.logging import get_logger
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

logger = get_logger(__name__)


class TripRepositoryError(Exception):
    """Base exception for trip repository errors."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.context = context


class TripRepository:
    """
    Repository for trip data access operations.

    Write methods only flush; ``transaction()`` owns commit and rollback.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """
        Run the body as one atomic unit.

        Commits on success. Rolls back and re-raises on any error.
        """
        try:
            yield
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error(
                "Trip transaction rolled back",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

    async def rollback(self) -> None:
        """Discard work flushed outside ``transaction()``, such as upload records."""
        await self.session.rollback()
        logger.info("Pending trip changes discarded")

    async def get_updated_at(
        self,
        organization_id: uuid.UUID,
        trip_id: uuid.UUID,
    ) -> Optional[datetime]:
        """Current ``updated_at`` of a trip, or None when it does not exist."""
        try:
            stmt = select(OrderTrip.updated_at).where(
                OrderTrip.id == trip_id,
                OrderTrip.organization_id == organization_id,
            )
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Failed to read trip timestamp", trip_id=str(trip_id), error=str(e))
            raise TripRepositoryError(
                "Failed to read trip timestamp",
                trip_id=str(trip_id),
                error=str(e),
            ) from e

    async def get_pickup_date(
        self,
        organization_id: uuid.UUID,
        trip_id: uuid.UUID,
    ) -> Optional[datetime]:
        try:
            stmt = select(OrderTrip.pickup_date).where(
                OrderTrip.id == trip_id,
                OrderTrip.organization_id == organization_id,
            )
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise TripRepositoryError(
                "Failed to read trip pickup date",
                trip_id=str(trip_id),
                error=str(e),
            ) from e

    async def count_statuses(self, organization_id: uuid.UUID, trip_id: uuid.UUID) -> int:
        """Number of status entries recorded for a trip."""
        try:
            stmt = select(func.count(OrderTripStatus.id)).where(
                OrderTripStatus.trip_id == trip_id,
                OrderTripStatus.organization_id == organization_id,
            )
            result = await self.session.execute(stmt)
            return int(result.scalar_one())
        except SQLAlchemyError as e:
            logger.error("Failed to count trip statuses", trip_id=str(trip_id), error=str(e))
            raise TripRepositoryError(
                "Failed to count trip statuses",
                trip_id=str(trip_id),
                error=str(e),
            ) from e

    async def append_status(
        self,
        organization_id: uuid.UUID,
        trip_id: uuid.UUID,
        status_type: Optional[OrderTripStatusType],
        sequence: int,
        created_by_id: Optional[uuid.UUID],
        notes: Optional[str] = None,
        driver_report_id: Optional[uuid.UUID] = None,
    ) -> OrderTripStatus:
        """
        Append a status entry and refresh the trip's denormalized status.

        The trip's ``updated_at`` is bumped so concurrent editors holding the
        previous timestamp are rejected.
        """
        entry = OrderTripStatus(
            organization_id=organization_id,
            trip_id=trip_id,
            type=status_type,
            sequence=sequence,
            notes=notes,
            driver_report_id=driver_report_id,
            created_by_id=created_by_id,
        )
        self.session.add(entry)
        await self.session.flush()

        values: dict[str, Any] = {
            "updated_at": datetime.now(timezone.utc),
            "updated_by_id": created_by_id,
        }
        if status_type is not None:
            values["last_status_type"] = status_type
        await self.session.execute(
            update(OrderTrip)
            .where(
                OrderTrip.id == trip_id,
                OrderTrip.organization_id == organization_id,
            )
            .values(**values)
        )

        logger.info(
            "Trip status appended",
            trip_id=str(trip_id),
            status=status_type.value if status_type else None,
            sequence=sequence,
        )
        return entry

    async def create_message(
        self,
        organization_id: uuid.UUID,
        trip_id: uuid.UUID,
        created_by_id: Optional[uuid.UUID],
        message_type: Optional[OrderTripMessageType] = None,
        message: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        image_ids: Sequence[uuid.UUID] = (),
    ) -> OrderTripMessage:
        """Insert a trip message and link its images."""
        record = OrderTripMessage(
            organization_id=organization_id,
            trip_id=trip_id,
            type=message_type,
            message=message,
            latitude=latitude,
            longitude=longitude,
            created_by_id=created_by_id,
        )
        self.session.add(record)
        await self.session.flush()

        if image_ids:
            await self.session.execute(
                insert(order_trip_message_images),
                [{"message_id": record.id, "upload_file_id": image_id} for image_id in image_ids],
            )

        logger.info(
            "Trip message created",
            trip_id=str(trip_id),
            message_id=str(record.id),
            images=len(image_ids),
        )
        return record

    async def update_bill_of_lading(
        self,
        organization_id: uuid.UUID,
        trip_id: uuid.UUID,
        bill_of_lading: str,
        received: bool,
        updated_by_id: Optional[uuid.UUID],
        image_ids: Sequence[uuid.UUID] = (),
        delete_image_ids: Sequence[uuid.UUID] = (),
    ) -> uuid.UUID:
        """
        Record the bill of lading on a trip and relink its images.

        Raises:
            TripRepositoryError: If the trip does not exist in the organization
        """
        now = datetime.now(timezone.utc)
        result = await self.session.execute(
            update(OrderTrip)
            .where(
                OrderTrip.id == trip_id,
                OrderTrip.organization_id == organization_id,
            )
            .values(
                bill_of_lading=bill_of_lading,
                bill_of_lading_received=received,
                bill_of_lading_received_date=now if received else None,
                updated_by_id=updated_by_id,
                updated_at=now,
            )
        )
        if result.rowcount == 0:
            raise TripRepositoryError("Trip not found", trip_id=str(trip_id))

        if delete_image_ids:
            await self.session.execute(
                delete(order_trip_bill_of_lading_images).where(
                    order_trip_bill_of_lading_images.c.trip_id == trip_id,
                    order_trip_bill_of_lading_images.c.upload_file_id.in_(list(delete_image_ids)),
                )
            )
        if image_ids:
            await self.session.execute(
                insert(order_trip_bill_of_lading_images),
                [{"trip_id": trip_id, "upload_file_id": image_id} for image_id in image_ids],
            )

        logger.info(
            "Bill of lading updated",
            trip_id=str(trip_id),
            received=received,
            linked=len(image_ids),
            unlinked=len(delete_image_ids),
        )
        return trip_id

    async def bill_of_lading_exists(
        self,
        organization_id: uuid.UUID,
        trip_id: uuid.UUID,
        bill_of_lading: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> bool:
        """
        Check whether another trip of the organization uses the number.

        When ``start`` and ``end`` are given only trips picked up inside the
        window are compared.
        """
        try:
            stmt = select(OrderTrip.id).where(
                OrderTrip.organization_id == organization_id,
                OrderTrip.id != trip_id,
                OrderTrip.bill_of_lading == bill_of_lading,
            )
            if start is not None and end is not None:
                stmt = stmt.where(
                    OrderTrip.pickup_date >= start,
                    OrderTrip.pickup_date <= end,
                )
            result = await self.session.execute(stmt.limit(1))
            return result.first() is not None
        except SQLAlchemyError as e:
            logger.error(
                "Failed to check bill of lading",
                trip_id=str(trip_id),
                error=str(e),
            )
            raise TripRepositoryError(
                "Failed to check bill of lading",
                trip_id=str(trip_id),
                error=str(e),
            ) from e

    async def get_driver_report_by_type(
        self,
        organization_id: uuid.UUID,
        status_type: OrderTripStatusType,
    ) -> Optional[DriverReport]:
        try:
            stmt = (
                select(DriverReport)
                .where(
                    DriverReport.organization_id == organization_id,
                    DriverReport.type == status_type,
                )
                .order_by(DriverReport.display_order)
                .limit(1)
            )
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise TripRepositoryError(
                "Failed to fetch driver report",
                status=status_type.value,
                error=str(e),
            ) from e

    async def sum_driver_expenses(
        self,
        organization_id: uuid.UUID,
        trip_id: uuid.UUID,
    ) -> Decimal:
        """Total driver cost charged to a trip."""
        try:
            stmt = select(func.coalesce(func.sum(TripDriverExpense.amount), 0)).where(
                TripDriverExpense.organization_id == organization_id,
                TripDriverExpense.trip_id == trip_id,
            )
            result = await self.session.execute(stmt)
            return Decimal(result.scalar_one())
        except SQLAlchemyError as e:
            raise TripRepositoryError(
                "Failed to sum driver expenses",
                trip_id=str(trip_id),
                error=str(e),
            ) from e
