"""
Pytest configuration and shared test fixtures.

Workflow tests run against in-memory repositories that mirror the
transactional behaviour of the SQLAlchemy ones: ``transaction()`` snapshots
state and restores it when the body raises.
"""

import copy
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from typing import Any, Optional
from unittest.mock import MagicMock

import pytest

from tripflow.database.models.trip import OrderTripStatusType
from tripflow.services.notifications.dispatcher import NotificationDispatcher
from tripflow.services.trips.repository import TripRepositoryError
from tripflow.services.trips.service import TripStatusService
from tripflow.services.uploads.service import UploadError


# ============================================================================
# In-memory repositories
# ============================================================================


@dataclass
class FakeTrip:
    id: uuid.UUID
    organization_id: uuid.UUID
    code: str
    updated_at: datetime
    pickup_date: Optional[datetime] = None
    bill_of_lading: Optional[str] = None
    bill_of_lading_received: bool = False
    last_status_type: Optional[OrderTripStatusType] = None
    image_ids: list[uuid.UUID] = field(default_factory=list)


class FakeTripRepository:
    """In-memory stand-in for ``TripRepository``."""

    def __init__(self):
        self.trips: dict[uuid.UUID, FakeTrip] = {}
        self.statuses: list[SimpleNamespace] = []
        self.messages: list[SimpleNamespace] = []
        self.driver_reports: list[SimpleNamespace] = []
        self.expenses: dict[uuid.UUID, Decimal] = {}
        self.fail_on_create_message = False
        self.commits = 0
        self.rollbacks = 0

    def add_trip(self, organization_id: uuid.UUID, code: str = "T001", **kwargs: Any) -> FakeTrip:
        trip = FakeTrip(
            id=kwargs.pop("id", uuid.uuid4()),
            organization_id=organization_id,
            code=code,
            updated_at=kwargs.pop("updated_at", datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)),
            **kwargs,
        )
        self.trips[trip.id] = trip
        return trip

    def add_driver_report(
        self,
        organization_id: uuid.UUID,
        status_type: Optional[OrderTripStatusType],
        name: str = "Report",
    ) -> SimpleNamespace:
        report = SimpleNamespace(
            id=uuid.uuid4(),
            organization_id=organization_id,
            type=status_type,
            name=name,
        )
        self.driver_reports.append(report)
        return report

    def statuses_for(self, trip_id: uuid.UUID) -> list[SimpleNamespace]:
        return [entry for entry in self.statuses if entry.trip_id == trip_id]

    def messages_for(self, trip_id: uuid.UUID) -> list[SimpleNamespace]:
        return [message for message in self.messages if message.trip_id == trip_id]

    def _state(self) -> tuple:
        return (self.trips, self.statuses, self.messages)

    @asynccontextmanager
    async def transaction(self):
        snapshot = copy.deepcopy(self._state())
        try:
            yield
            self.commits += 1
        except Exception:
            self.trips, self.statuses, self.messages = snapshot
            self.rollbacks += 1
            raise

    async def rollback(self):
        self.rollbacks += 1

    def _trip(self, organization_id: uuid.UUID, trip_id: uuid.UUID) -> Optional[FakeTrip]:
        trip = self.trips.get(trip_id)
        if trip is None or trip.organization_id != organization_id:
            return None
        return trip

    async def get_updated_at(self, organization_id, trip_id):
        trip = self._trip(organization_id, trip_id)
        return trip.updated_at if trip else None

    async def get_pickup_date(self, organization_id, trip_id):
        trip = self._trip(organization_id, trip_id)
        return trip.pickup_date if trip else None

    async def count_statuses(self, organization_id, trip_id):
        return len(self.statuses_for(trip_id))

    async def append_status(
        self,
        organization_id,
        trip_id,
        status_type,
        sequence,
        created_by_id,
        notes=None,
        driver_report_id=None,
    ):
        if any(entry.sequence == sequence for entry in self.statuses_for(trip_id)):
            raise TripRepositoryError("Duplicate status sequence", trip_id=str(trip_id))
        entry = SimpleNamespace(
            id=uuid.uuid4(),
            organization_id=organization_id,
            trip_id=trip_id,
            type=status_type,
            sequence=sequence,
            notes=notes,
            driver_report_id=driver_report_id,
            created_by_id=created_by_id,
        )
        self.statuses.append(entry)
        trip = self._trip(organization_id, trip_id)
        if trip is not None:
            trip.updated_at = datetime.now(timezone.utc)
            if status_type is not None:
                trip.last_status_type = status_type
        return entry

    async def create_message(
        self,
        organization_id,
        trip_id,
        created_by_id,
        message_type=None,
        message=None,
        latitude=None,
        longitude=None,
        image_ids=(),
    ):
        if self.fail_on_create_message:
            raise TripRepositoryError("Message insert failed", trip_id=str(trip_id))
        record = SimpleNamespace(
            id=uuid.uuid4(),
            trip_id=trip_id,
            type=message_type,
            message=message,
            latitude=latitude,
            longitude=longitude,
            image_ids=list(image_ids),
            created_by_id=created_by_id,
        )
        self.messages.append(record)
        return record

    async def update_bill_of_lading(
        self,
        organization_id,
        trip_id,
        bill_of_lading,
        received,
        updated_by_id,
        image_ids=(),
        delete_image_ids=(),
    ):
        trip = self._trip(organization_id, trip_id)
        if trip is None:
            raise TripRepositoryError("Trip not found", trip_id=str(trip_id))
        trip.bill_of_lading = bill_of_lading
        trip.bill_of_lading_received = received
        trip.updated_at = datetime.now(timezone.utc)
        trip.image_ids = [i for i in trip.image_ids if i not in set(delete_image_ids)]
        trip.image_ids.extend(image_ids)
        return trip_id

    async def bill_of_lading_exists(self, organization_id, trip_id, bill_of_lading, start=None, end=None):
        for trip in self.trips.values():
            if trip.organization_id != organization_id or trip.id == trip_id:
                continue
            if trip.bill_of_lading != bill_of_lading:
                continue
            if start is not None and end is not None:
                if trip.pickup_date is None or not (start <= trip.pickup_date <= end):
                    continue
            return True
        return False

    async def get_driver_report_by_type(self, organization_id, status_type):
        for report in self.driver_reports:
            if report.organization_id == organization_id and report.type == status_type:
                return report
        return None

    async def sum_driver_expenses(self, organization_id, trip_id):
        return self.expenses.get(trip_id, Decimal("0"))


class FakeOrderRepository:
    """In-memory stand-in for ``OrderRepository``."""

    def __init__(self):
        self.completed_trips: dict[str, int] = {}
        self.order_statuses: list[SimpleNamespace] = []
        self.groups: dict[uuid.UUID, SimpleNamespace] = {}
        self.order_groups: dict[uuid.UUID, uuid.UUID] = {}
        self.group_trip_statuses: dict[uuid.UUID, list] = {}
        self.group_statuses: list[SimpleNamespace] = []
        self.pickup_labels: dict[str, str] = {}

    def add_group(self, code: str = "G001", trip_statuses: Optional[list] = None, order_ids=()):
        group = SimpleNamespace(id=uuid.uuid4(), code=code)
        self.groups[group.id] = group
        self.group_trip_statuses[group.id] = list(trip_statuses or [])
        for order_id in order_ids:
            self.order_groups[order_id] = group.id
        return group

    @asynccontextmanager
    async def transaction(self):
        yield

    async def count_completed_trips_with_bill_of_lading(self, organization_id, order_code):
        return self.completed_trips.get(order_code, 0)

    async def has_order_status(self, organization_id, order_id, status_type):
        return any(s.order_id == order_id and s.type == status_type for s in self.order_statuses)

    async def append_order_status(self, organization_id, order_id, status_type, created_by_id):
        entry = SimpleNamespace(
            id=uuid.uuid4(),
            order_id=order_id,
            type=status_type,
            position=status_type.position,
            created_by_id=created_by_id,
        )
        self.order_statuses.append(entry)
        return entry

    async def get_order_group(self, organization_id, group_id):
        return self.groups.get(group_id)

    async def get_order_group_by_order(self, organization_id, order_id):
        group_id = self.order_groups.get(order_id)
        return self.groups.get(group_id) if group_id else None

    async def list_group_trip_statuses(self, organization_id, group_id):
        return list(self.group_trip_statuses.get(group_id, []))

    async def has_group_status(self, organization_id, group_id, status_type):
        return any(s.group_id == group_id and s.type == status_type for s in self.group_statuses)

    async def append_group_status(self, organization_id, group_id, status_type, created_by_id):
        entry = SimpleNamespace(id=uuid.uuid4(), group_id=group_id, type=status_type)
        self.group_statuses.append(entry)
        return entry

    async def get_first_pickup_point_label(self, organization_id, order_code):
        return self.pickup_labels.get(order_code, "")


class FakeSettingsService:
    """Organization settings with fixed values."""

    def __init__(
        self,
        consolidation: bool = False,
        prevent_duplicates: bool = True,
        start_day=None,
    ):
        self.consolidation = consolidation
        self.prevent_duplicates = prevent_duplicates
        self.start_day = start_day

    async def is_order_consolidation_enabled(self, organization_id):
        return self.consolidation

    async def is_duplicate_bill_of_lading_prevented(self, organization_id):
        return self.prevent_duplicates

    async def get_bill_of_lading_check_start_day(self, organization_id):
        return self.start_day


class FakeUploadService:
    """Records uploads and returns stored file stubs."""

    def __init__(self):
        self.calls: list[dict[str, Any]] = []
        self.fail_on: Optional[str] = None

    async def upload_file(self, **kwargs):
        if kwargs["source_name"] == self.fail_on:
            raise UploadError("Storage unavailable", error="disk full")
        self.calls.append(kwargs)
        return SimpleNamespace(id=uuid.uuid4(), name=kwargs["dest_name"])


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def organization_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def user_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def trip_repository() -> FakeTripRepository:
    return FakeTripRepository()


@pytest.fixture
def order_repository() -> FakeOrderRepository:
    return FakeOrderRepository()


@pytest.fixture
def settings_service() -> FakeSettingsService:
    return FakeSettingsService()


@pytest.fixture
def upload_service() -> FakeUploadService:
    return FakeUploadService()


@pytest.fixture
def notification_task() -> MagicMock:
    """Celery task double; enqueued requests land in ``delay.call_args_list``."""
    return MagicMock()


@pytest.fixture
def dispatcher(notification_task) -> NotificationDispatcher:
    return NotificationDispatcher(task=notification_task)


@pytest.fixture
def trip_service(
    trip_repository,
    order_repository,
    settings_service,
    upload_service,
    dispatcher,
) -> TripStatusService:
    return TripStatusService(
        repository=trip_repository,
        order_repository=order_repository,
        settings_service=settings_service,
        upload_service=upload_service,
        dispatcher=dispatcher,
    )


def enqueued(notification_task: MagicMock) -> list[dict[str, Any]]:
    """Requests passed to the notification task."""
    return [call.args[0] for call in notification_task.delay.call_args_list]

