"""Tests for the optimistic concurrency guard."""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from tripflow.services.trips.errors import ExclusiveUpdateError
from tripflow.services.trips.exclusivity import ExclusivityGuard


@pytest.fixture
def guard(trip_repository) -> ExclusivityGuard:
    return ExclusivityGuard(trip_repository)


async def test_matching_timestamp_is_not_a_conflict(guard, trip_repository, organization_id):
    trip = trip_repository.add_trip(organization_id)

    assert await guard.check_exclusive(organization_id, trip.id, trip.updated_at) is False


async def test_naive_client_timestamp_is_read_as_utc(guard, trip_repository, organization_id):
    trip = trip_repository.add_trip(
        organization_id,
        updated_at=datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc),
    )

    assert await guard.check_exclusive(organization_id, trip.id, datetime(2024, 5, 1, 8, 0)) is False


async def test_same_instant_in_other_offset_matches(guard, trip_repository, organization_id):
    trip = trip_repository.add_trip(organization_id)
    local = trip.updated_at.astimezone(timezone(timedelta(hours=7)))

    assert await guard.check_exclusive(organization_id, trip.id, local) is False


async def test_stale_timestamp_conflicts(guard, trip_repository, organization_id):
    trip = trip_repository.add_trip(organization_id)

    assert await guard.check_exclusive(
        organization_id, trip.id, trip.updated_at - timedelta(milliseconds=1)
    ) is True


async def test_missing_client_timestamp_conflicts(guard, trip_repository, organization_id):
    trip = trip_repository.add_trip(organization_id)

    assert await guard.check_exclusive(organization_id, trip.id, None) is True


async def test_unknown_trip_conflicts(guard, trip_repository, organization_id):
    other_org_trip = trip_repository.add_trip(organization_id)

    assert await guard.check_exclusive(uuid4(), other_org_trip.id, other_org_trip.updated_at) is True


async def test_ensure_exclusive_raises(guard, trip_repository, organization_id):
    trip = trip_repository.add_trip(organization_id)

    with pytest.raises(ExclusiveUpdateError) as exc_info:
        await guard.ensure_exclusive(organization_id, trip.id, None)

    assert exc_info.value.status_code == 409
    assert exc_info.value.error_type.value == "EXCLUSIVE"
