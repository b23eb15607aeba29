"""
Tests for bill-of-lading uniqueness rules and the monthly comparison window.
"""

from datetime import datetime, timezone
from uuid import uuid4
from zoneinfo import ZoneInfo

import pytest

from conftest import FakeSettingsService
from tripflow.services.organizations.settings import parse_bool, parse_check_start_day
from tripflow.services.trips.bill_of_lading import BillOfLadingChecker, duplicate_check_window

TZ = ZoneInfo("Asia/Ho_Chi_Minh")
PICKUP = datetime(2024, 5, 20, 3, 0, tzinfo=timezone.utc)


class TestDuplicateCheckWindow:
    def test_numeric_start_day(self):
        start, end = duplicate_check_window(PICKUP, 5, TZ)

        assert start == datetime(2024, 4, 6, tzinfo=TZ)
        assert end == datetime(2024, 5, 6, 23, 59, 59, 999999, tzinfo=TZ)

    def test_start_of_month(self):
        start, end = duplicate_check_window(PICKUP, "startOfMonth", TZ)

        assert start == datetime(2024, 5, 1, tzinfo=TZ)
        assert end == datetime(2024, 5, 31, 23, 59, 59, 999999, tzinfo=TZ)

    def test_end_of_month(self):
        start, end = duplicate_check_window(PICKUP, "endOfMonth", TZ)

        assert start == datetime(2024, 4, 30, tzinfo=TZ)
        assert end == datetime(2024, 5, 31, 23, 59, 59, 999999, tzinfo=TZ)

    def test_pickup_is_read_in_business_timezone(self):
        # 2024-05-31T18:00Z is already June 1st in Ho Chi Minh City
        start, _ = duplicate_check_window(
            datetime(2024, 5, 31, 18, 0, tzinfo=timezone.utc), "startOfMonth", TZ
        )

        assert start == datetime(2024, 6, 1, tzinfo=TZ)

    def test_unknown_setting(self):
        assert duplicate_check_window(PICKUP, "weekly", TZ) is None


class TestSettingParsing:
    @pytest.mark.parametrize(
        "value,expected",
        [("5", 5), ("startOfMonth", "startOfMonth"), ("endOfMonth", "endOfMonth"), ("", None), (None, None), ("x", None)],
    )
    def test_parse_check_start_day(self, value, expected):
        assert parse_check_start_day(value) == expected

    @pytest.mark.parametrize(
        "value,default,expected",
        [("true", False, True), ("0", True, False), (None, True, True), ("  ", False, False)],
    )
    def test_parse_bool(self, value, default, expected):
        assert parse_bool(value, default) is expected


def make_checker(trip_repository, **settings) -> BillOfLadingChecker:
    return BillOfLadingChecker(
        trip_repository,
        FakeSettingsService(**settings),
        timezone_name="Asia/Ho_Chi_Minh",
    )


async def test_blank_number_never_exists(trip_repository, organization_id):
    trip = trip_repository.add_trip(organization_id)
    trip_repository.add_trip(organization_id, code="T2", bill_of_lading="")

    assert await make_checker(trip_repository).exists(organization_id, trip.id, "   ") is False


async def test_number_is_trimmed(trip_repository, organization_id):
    trip = trip_repository.add_trip(organization_id)
    trip_repository.add_trip(organization_id, code="T2", bill_of_lading="BL-1")

    assert await make_checker(trip_repository).exists(organization_id, trip.id, " BL-1 ") is True


async def test_own_trip_is_excluded(trip_repository, organization_id):
    trip = trip_repository.add_trip(organization_id, bill_of_lading="BL-1")

    assert await make_checker(trip_repository).exists(organization_id, trip.id, "BL-1") is False


async def test_duplicates_allowed_when_prevention_disabled(trip_repository, organization_id):
    trip = trip_repository.add_trip(organization_id)
    trip_repository.add_trip(organization_id, code="T2", bill_of_lading="BL-1")
    checker = make_checker(trip_repository, prevent_duplicates=False)

    assert await checker.exists(organization_id, trip.id, "BL-1") is False


async def test_other_organization_is_ignored(trip_repository, organization_id):
    trip = trip_repository.add_trip(organization_id)
    trip_repository.add_trip(uuid4(), code="T2", bill_of_lading="BL-1")

    assert await make_checker(trip_repository).exists(organization_id, trip.id, "BL-1") is False


async def test_windowed_check_skipped_without_pickup_date(trip_repository, organization_id):
    trip = trip_repository.add_trip(organization_id)
    trip_repository.add_trip(organization_id, code="T2", bill_of_lading="BL-1", pickup_date=PICKUP)
    checker = make_checker(trip_repository, start_day="startOfMonth")

    assert await checker.exists(organization_id, trip.id, "BL-1") is False


async def test_windowed_check_compares_same_month_only(trip_repository, organization_id):
    trip = trip_repository.add_trip(organization_id, pickup_date=PICKUP)
    trip_repository.add_trip(
        organization_id,
        code="T2",
        bill_of_lading="BL-1",
        pickup_date=datetime(2024, 4, 10, tzinfo=timezone.utc),
    )
    trip_repository.add_trip(
        organization_id,
        code="T3",
        bill_of_lading="BL-2",
        pickup_date=datetime(2024, 5, 2, tzinfo=timezone.utc),
    )
    checker = make_checker(trip_repository, start_day="startOfMonth")

    assert await checker.exists(organization_id, trip.id, "BL-1") is False
    assert await checker.exists(organization_id, trip.id, "BL-2") is True
