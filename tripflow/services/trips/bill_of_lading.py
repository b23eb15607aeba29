"""
Bill-of-lading uniqueness rules.

Organizations may forbid reusing a bill-of-lading number. The comparison can
be limited to a monthly window around the trip's pickup date, configured by
``MONTHLY_BOL_DUPLICATE_CHECK_START_DAY``:

- a number ``d``: from the start of the previous month plus ``d`` days to the
  start of the pickup month plus ``d`` days (inclusive of that whole day)
- ``startOfMonth``: the calendar month of the pickup date
- ``endOfMonth``: from the last day of the previous month to the end of the
  pickup month
"""

import calendar
import uuid
from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from tripflow.core.config import get_settings
from tripflow.core.logging import get_logger
from tripflow.services.organizations.settings import (
    END_OF_MONTH,
    START_OF_MONTH,
    BillOfLadingCheckStartDay,
    OrganizationSettingsService,
)
from tripflow.services.trips.repository import TripRepository

logger = get_logger(__name__)

Window = tuple[datetime, datetime]


def _start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def _end_of_day(value: datetime) -> datetime:
    return value.replace(hour=23, minute=59, second=59, microsecond=999999)


def _start_of_month(value: datetime) -> datetime:
    return _start_of_day(value.replace(day=1))


def _end_of_month(value: datetime) -> datetime:
    last_day = calendar.monthrange(value.year, value.month)[1]
    return _end_of_day(value.replace(day=last_day))


def duplicate_check_window(
    pickup_date: datetime,
    start_day: BillOfLadingCheckStartDay,
    tz: ZoneInfo,
) -> Optional[Window]:
    """
    Compute the pickup-date window for the duplicate check.

    Returns:
        Inclusive ``(start, end)`` in ``tz``, or None for an unknown setting
    """
    pickup = pickup_date.astimezone(tz)
    month_start = _start_of_month(pickup)

    if isinstance(start_day, int):
        previous_month_start = _start_of_month(month_start - timedelta(days=1))
        return (
            previous_month_start + timedelta(days=start_day),
            _end_of_day(month_start + timedelta(days=start_day)),
        )
    if start_day == START_OF_MONTH:
        return month_start, _end_of_month(pickup)
    if start_day == END_OF_MONTH:
        return _start_of_day(month_start - timedelta(days=1)), _end_of_month(pickup)
    return None


class BillOfLadingChecker:
    """Applies the organization's bill-of-lading uniqueness policy."""

    def __init__(
        self,
        repository: TripRepository,
        settings_service: OrganizationSettingsService,
        timezone_name: Optional[str] = None,
    ):
        self.repository = repository
        self.settings_service = settings_service
        self.tz = ZoneInfo(timezone_name or get_settings().business_timezone)

    async def exists(
        self,
        organization_id: uuid.UUID,
        trip_id: uuid.UUID,
        bill_of_lading: Optional[str],
    ) -> bool:
        """
        Check whether another trip already uses the number.

        Returns False when the number is blank, when the organization allows
        duplicates, or when a windowed check applies and the trip has no
        pickup date.
        """
        number = (bill_of_lading or "").strip()
        if not number:
            return False

        if not await self.settings_service.is_duplicate_bill_of_lading_prevented(organization_id):
            return False

        window: Optional[Window] = None
        start_day = await self.settings_service.get_bill_of_lading_check_start_day(organization_id)
        if start_day is not None:
            pickup_date = await self.repository.get_pickup_date(organization_id, trip_id)
            if pickup_date is None:
                return False
            window = duplicate_check_window(pickup_date, start_day, self.tz)

        start, end = window if window else (None, None)
        exists = await self.repository.bill_of_lading_exists(
            organization_id,
            trip_id,
            number,
            start=start,
            end=end,
        )
        if exists:
            logger.info(
                "Duplicate bill of lading",
                trip_id=str(trip_id),
                bill_of_lading=number,
                windowed=window is not None,
            )
        return exists
