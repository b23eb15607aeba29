"""
Trip status service orchestrating the status change workflow.

A status change runs in fixed stages: guards (exclusivity, bill-of-lading
uniqueness, driver report), attachment upload, one transaction that appends
the status entry together with its message, then best-effort aggregate
rollup and notification dispatch after commit. Only guard, upload and
transaction failures reach the caller.
"""

import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tripflow.core.locale import create_translator
from tripflow.core.logging import get_logger
from tripflow.database.models.trip import OrderTripStatusType
from tripflow.schemas.trips import UpdateBillOfLadingRequest, UpdateTripStatusRequest
from tripflow.services.notifications.dispatcher import (
    NotificationDispatcher,
    plan_bill_of_lading_received,
    plan_for_status,
    plan_order_completed,
    plan_order_group_status,
    plan_trip_completed,
)
from tripflow.services.notifications.payloads import (
    TripNotificationContext,
    build_bill_of_lading_received_payload,
    build_order_completed_payload,
    build_order_group_status_payload,
    build_trip_completed_payload,
    format_currency,
)
from tripflow.services.orders.repository import OrderRepository
from tripflow.services.orders.rollup import (
    AggregateRollupEvaluator,
    GroupRollupResult,
    OrderRollupResult,
)
from tripflow.services.organizations.settings import OrganizationSettingsService
from tripflow.services.trips.attachments import AttachmentIngestor
from tripflow.services.trips.bill_of_lading import BillOfLadingChecker
from tripflow.services.trips.errors import (
    AttachmentUploadError,
    BillOfLadingExistsError,
    DriverReportNotFoundError,
    TripTransactionError,
    TripValidationError,
)
from tripflow.services.trips.exclusivity import ExclusivityGuard
from tripflow.services.trips.messages import TripMessageComposer, compose_bill_of_lading_text
from tripflow.services.trips.repository import TripRepository, TripRepositoryError
from tripflow.services.uploads.service import UploadService

logger = get_logger(__name__)

_PICKUP_STATUSES = (
    OrderTripStatusType.WAITING_FOR_PICKUP,
    OrderTripStatusType.WAREHOUSE_GOING_TO_PICKUP,
)

class TripStatusService:
    """
    Trip status service.

    Collaborators default to instances bound to ``session``; tests inject
    their own.

    Attributes:
        repository: Trip data access
        order_repository: Order rollup data access
        settings_service: Organization settings lookups
        dispatcher: Notification dispatcher
    """

    def __init__(
        self,
        session: Optional[AsyncSession] = None,
        repository: Optional[TripRepository] = None,
        order_repository: Optional[OrderRepository] = None,
        settings_service: Optional[OrganizationSettingsService] = None,
        upload_service: Optional[UploadService] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
    ):
        self.repository = repository or TripRepository(session)
        self.order_repository = order_repository or OrderRepository(session)
        self.settings_service = settings_service or OrganizationSettingsService(session)
        self.dispatcher = dispatcher or NotificationDispatcher()

        self.guard = ExclusivityGuard(self.repository)
        self.bill_of_lading_checker = BillOfLadingChecker(self.repository, self.settings_service)
        self.ingestor = AttachmentIngestor(upload_service or UploadService(session))
        self.composer = TripMessageComposer(self.repository)
        self.rollup = AggregateRollupEvaluator(self.order_repository, self.settings_service)

    async def complete_bill_of_lading(
        self,
        organization_id: uuid.UUID,
        user_id: uuid.UUID,
        request: UpdateBillOfLadingRequest,
    ) -> uuid.UUID:
        """
        Record the bill of lading and complete the trip.

        Args:
            organization_id: Organization of the caller
            user_id: Acting user
            request: Bill-of-lading update

        Returns:
            Trip identifier

        Raises:
            ExclusiveUpdateError: If the trip changed since the client read it
            BillOfLadingExistsError: If another trip uses the number
            DriverReportNotFoundError: If no COMPLETED driver report exists
            AttachmentUploadError: If an image cannot be stored
            TripTransactionError: If the transactional write fails
        """
        trip_id = request.id
        log = logger.bind(trip_id=str(trip_id), organization_id=str(organization_id))
        log.info("Completing trip with bill of lading", bill_of_lading=request.bill_of_lading)

        if not request.ignore_check_exclusives:
            await self.guard.ensure_exclusive(organization_id, trip_id, request.last_updated_at)

        if await self.bill_of_lading_checker.exists(organization_id, trip_id, request.bill_of_lading):
            raise BillOfLadingExistsError(
                "Bill of lading already exists",
                trip_id=str(trip_id),
                bill_of_lading=request.bill_of_lading,
            )

        driver_report = await self.repository.get_driver_report_by_type(
            organization_id, OrderTripStatusType.COMPLETED
        )
        if driver_report is None:
            raise DriverReportNotFoundError(
                "Driver report for completed trips not found",
                organization_id=str(organization_id),
            )

        try:
            images = await self.ingestor.ingest_bill_of_lading_images(
                request.bill_of_lading_images,
                organization_id=organization_id,
                order_code=request.order.code,
                trip_code=request.code,
                order_date=request.order.order_date,
            )
        except AttachmentUploadError:
            await self.repository.rollback()
            raise

        translate = create_translator(request.locale)
        notes = request.status.notes if request.status else None

        try:
            async with self.repository.transaction():
                previous_count = await self.repository.count_statuses(organization_id, trip_id)
                await self.repository.update_bill_of_lading(
                    organization_id,
                    trip_id,
                    bill_of_lading=request.bill_of_lading,
                    received=request.bill_of_lading_received,
                    updated_by_id=user_id,
                    image_ids=images.new_ids,
                    delete_image_ids=request.delete_image,
                )
                await self.repository.append_status(
                    organization_id,
                    trip_id,
                    OrderTripStatusType.COMPLETED,
                    sequence=previous_count + 1,
                    created_by_id=user_id,
                    notes=notes,
                    driver_report_id=driver_report.id,
                )
                text = compose_bill_of_lading_text(
                    translate,
                    request.bill_of_lading,
                    notes=notes,
                    received=request.bill_of_lading_received,
                    has_images=bool(request.bill_of_lading_images),
                )
                await self.composer.record_bill_of_lading_message(
                    organization_id,
                    trip_id,
                    text,
                    created_by_id=user_id,
                    image_ids=images.all_ids,
                )
        except (TripRepositoryError, SQLAlchemyError) as e:
            log.error("Bill of lading transaction failed", error=str(e))
            raise TripTransactionError(
                "Failed to complete trip",
                trip_id=str(trip_id),
                error=str(e),
            ) from e

        log.info("Trip completed", images=len(images.all_ids))

        rollup = await self._complete_order(organization_id, user_id, request)
        if rollup.group and rollup.group.status_created:
            self._notify_group_status(organization_id, user_id, rollup.group)

        if request.bill_of_lading and request.full_name and request.order.code and request.code:
            await self._notify_bill_of_lading(
                organization_id,
                user_id,
                request,
                driver_report_id=driver_report.id,
                rollup=rollup,
            )

        return trip_id

    async def edit_status(
        self,
        organization_id: uuid.UUID,
        user_id: uuid.UUID,
        request: UpdateTripStatusRequest,
    ) -> uuid.UUID:
        """
        Append a status entry to a trip.

        Args:
            organization_id: Organization of the caller
            user_id: Acting user
            request: Status edit

        Returns:
            Identifier of the new status entry

        Raises:
            ExclusiveUpdateError: If the trip changed since the client read it
            BillOfLadingExistsError: If the supplied number is used by another trip
            TripValidationError: If the driver report id is missing
            AttachmentUploadError: If an attachment cannot be stored
            TripTransactionError: If the transactional write fails
        """
        trip_id = request.id
        log = logger.bind(trip_id=str(trip_id), organization_id=str(organization_id))
        log.info(
            "Editing trip status",
            status=request.status.value if request.status else None,
        )

        if not request.ignore_check_exclusives:
            await self.guard.ensure_exclusive(organization_id, trip_id, request.last_updated_at)

        if request.bill_of_lading and await self.bill_of_lading_checker.exists(
            organization_id, trip_id, request.bill_of_lading
        ):
            raise BillOfLadingExistsError(
                "Bill of lading already exists",
                trip_id=str(trip_id),
                bill_of_lading=request.bill_of_lading,
            )

        if not request.driver_report_id:
            raise TripValidationError("Driver report id is required", trip_id=str(trip_id))

        try:
            attachments = await self.ingestor.ingest_message_attachments(
                request.attachments,
                organization_id=organization_id,
                order_date=request.order_date,
            )
        except AttachmentUploadError:
            await self.repository.rollback()
            raise

        try:
            async with self.repository.transaction():
                previous_count = await self.repository.count_statuses(organization_id, trip_id)
                status_entry = await self.repository.append_status(
                    organization_id,
                    trip_id,
                    request.status,
                    sequence=previous_count + 1,
                    created_by_id=user_id,
                    notes=request.notes,
                    driver_report_id=request.driver_report_id,
                )
                await self.composer.record_status_message(
                    organization_id,
                    trip_id,
                    request.status,
                    created_by_id=user_id,
                    latitude=request.latitude,
                    longitude=request.longitude,
                    image_ids=attachments.new_ids,
                )
        except (TripRepositoryError, SQLAlchemyError) as e:
            log.error("Status transaction failed", error=str(e))
            raise TripTransactionError(
                "Failed to record trip status",
                trip_id=str(trip_id),
                error=str(e),
            ) from e

        log.info("Trip status recorded", status_id=str(status_entry.id), sequence=status_entry.sequence)

        if request.order_group_id:
            group = await self._roll_up_group(organization_id, user_id, request)
            if group and group.status_created:
                self._notify_group_status(organization_id, user_id, group)

        if request.push_notification:
            await self._notify_status(organization_id, user_id, request)
        else:
            log.debug("Notification suppressed")

        return status_entry.id

    async def _complete_order(
        self,
        organization_id: uuid.UUID,
        user_id: uuid.UUID,
        request: UpdateBillOfLadingRequest,
    ) -> OrderRollupResult:
        try:
            return await self.rollup.complete_order_if_fulfilled(
                organization_id,
                order_id=request.order.id,
                order_code=request.order.code,
                total_trip_count=request.total_trips,
                remaining_capacity=request.remaining_weight_capacity,
                created_by_id=user_id,
            )
        except Exception as e:
            logger.error(
                "Order completion rollup failed",
                order_id=str(request.order.id),
                error=str(e),
                error_type=type(e).__name__,
            )
            return OrderRollupResult(order_completed=False)

    async def _roll_up_group(
        self,
        organization_id: uuid.UUID,
        user_id: uuid.UUID,
        request: UpdateTripStatusRequest,
    ) -> Optional[GroupRollupResult]:
        try:
            if not await self.settings_service.is_order_consolidation_enabled(organization_id):
                return None
            match request.status:
                case OrderTripStatusType.DELIVERED:
                    return await self.rollup.update_order_group_status_if_all_trips_delivered(
                        organization_id,
                        group_id=request.order_group_id,
                        created_by_id=user_id,
                    )
                case OrderTripStatusType.COMPLETED:
                    return await self.rollup.update_order_group_status_if_all_trips_completed(
                        organization_id,
                        group_id=request.order_group_id,
                        created_by_id=user_id,
                    )
                case _:
                    return None
        except Exception as e:
            logger.error(
                "Order group rollup failed",
                group_id=str(request.order_group_id),
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

    async def _notify_status(
        self,
        organization_id: uuid.UUID,
        user_id: uuid.UUID,
        request: UpdateTripStatusRequest,
    ) -> None:
        try:
            pickup_point = ""
            if request.status in _PICKUP_STATUSES and request.order_code:
                pickup_point = await self.order_repository.get_first_pickup_point_label(
                    organization_id, request.order_code
                )

            context = TripNotificationContext(
                trip_id=request.id,
                order_code=request.order_code or "",
                trip_code=request.code or "",
                order_id=request.order_id,
                order_group_code=request.order_group_code,
                driver_report_id=request.driver_report_id,
                driver_report_name=request.driver_report_name or "",
                driver_full_name=request.driver.full_name if request.driver else "",
                full_name=request.full_name or "",
                vehicle_number=(request.vehicle.vehicle_number or "") if request.vehicle else "",
                unit_of_measure=request.unit_of_measure or "",
                weight=request.weight,
                pickup_point=pickup_point,
            )
            plan = plan_for_status(
                request.status,
                context,
                driver_user_id=request.driver.user_id if request.driver else None,
            )
        except Exception as e:
            logger.error(
                "Failed to plan status notification",
                trip_id=str(request.id),
                error=str(e),
                error_type=type(e).__name__,
            )
            return

        if plan is None:
            logger.debug("Status does not notify", status=request.status.value if request.status else None)
            return
        self.dispatcher.dispatch(plan, organization_id, user_id)

    async def _notify_bill_of_lading(
        self,
        organization_id: uuid.UUID,
        user_id: uuid.UUID,
        request: UpdateBillOfLadingRequest,
        driver_report_id: uuid.UUID,
        rollup: OrderRollupResult,
    ) -> None:
        driver_user_id = request.driver.user_id if request.driver else None
        order_group_code = rollup.order_group_code

        if request.bill_of_lading_received:
            payload = build_bill_of_lading_received_payload(
                full_name=request.full_name,
                order_code=request.order.code,
                trip_code=request.code,
                order_group_code=order_group_code,
            )
            self.dispatcher.dispatch(
                plan_bill_of_lading_received(request.id, payload, driver_user_id),
                organization_id,
                user_id,
            )

        previous_type = request.status.type if request.status else None
        if previous_type != OrderTripStatusType.COMPLETED:
            try:
                driver_cost = await self.repository.sum_driver_expenses(organization_id, request.id)
            except Exception as e:
                logger.error(
                    "Failed to read driver cost",
                    trip_id=str(request.id),
                    error=str(e),
                )
                driver_cost = Decimal("0")

            context = TripNotificationContext(
                trip_id=request.id,
                order_code=request.order.code,
                trip_code=request.code,
                order_id=request.order.id,
                order_group_code=order_group_code,
                driver_report_id=driver_report_id,
                driver_full_name=request.driver.full_name if request.driver else "",
            )
            payload = build_trip_completed_payload(
                context,
                request.bill_of_lading,
                expense=format_currency(driver_cost) if driver_cost > 0 else None,
            )
            self.dispatcher.dispatch(
                plan_trip_completed(request.id, payload, driver_user_id),
                organization_id,
                user_id,
            )

        if rollup.order_completed and rollup.status_created:
            payload = build_order_completed_payload(request.order.code, order_group_code)
            self.dispatcher.dispatch(
                plan_order_completed(request.order.id, payload),
                organization_id,
                user_id,
            )

    def _notify_group_status(
        self,
        organization_id: uuid.UUID,
        user_id: uuid.UUID,
        group: GroupRollupResult,
    ) -> None:
        payload = build_order_group_status_payload(group.group_code, group.status)
        self.dispatcher.dispatch(
            plan_order_group_status(group.group_id, payload),
            organization_id,
            user_id,
        )


def get_trip_status_service(session: AsyncSession) -> TripStatusService:
    """Factory function to create trip status service instance."""
    return TripStatusService(session=session)
