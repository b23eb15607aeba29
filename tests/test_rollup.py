"""Tests for order and order group rollup."""

import uuid
from decimal import Decimal

import pytest

from conftest import FakeSettingsService
from tripflow.database.models.order import OrderGroupStatusType, OrderStatusType
from tripflow.database.models.trip import OrderTripStatusType
from tripflow.services.orders.rollup import AggregateRollupEvaluator

ORDER_ID = uuid.uuid4()


def make_evaluator(order_repository, consolidation=False) -> AggregateRollupEvaluator:
    return AggregateRollupEvaluator(order_repository, FakeSettingsService(consolidation=consolidation))


@pytest.mark.parametrize(
    "completed,total,remaining,expected",
    [
        (3, 3, Decimal("0"), True),
        (2, 3, Decimal("0"), False),
        (3, 3, Decimal("0.5"), False),
        (3, 3, 0, True),
    ],
)
async def test_is_order_completed(order_repository, organization_id, completed, total, remaining, expected):
    order_repository.completed_trips["O001"] = completed

    result = await make_evaluator(order_repository).is_order_completed(
        organization_id, "O001", total, remaining
    )

    assert result is expected


async def test_order_completion_is_idempotent(order_repository, organization_id, user_id):
    order_repository.completed_trips["O001"] = 2
    evaluator = make_evaluator(order_repository)

    first = await evaluator.complete_order_if_fulfilled(
        organization_id, ORDER_ID, "O001", 2, Decimal("0"), user_id
    )
    second = await evaluator.complete_order_if_fulfilled(
        organization_id, ORDER_ID, "O001", 2, Decimal("0"), user_id
    )

    assert [s.type for s in order_repository.order_statuses] == [OrderStatusType.COMPLETED]
    assert first.order_completed and first.status_created
    assert second.order_completed and not second.status_created


async def test_order_completion_rolls_up_group(order_repository, organization_id, user_id):
    order_repository.completed_trips["O001"] = 1
    group = order_repository.add_group(
        "G007",
        trip_statuses=[OrderTripStatusType.COMPLETED, OrderTripStatusType.COMPLETED],
        order_ids=[ORDER_ID],
    )

    result = await make_evaluator(order_repository, consolidation=True).complete_order_if_fulfilled(
        organization_id, ORDER_ID, "O001", 1, 0, user_id
    )

    assert result.order_group_code == "G007"
    assert result.group.status_created
    [group_status] = order_repository.group_statuses
    assert group_status.group_id == group.id
    assert group_status.type == OrderGroupStatusType.COMPLETED


async def test_group_waits_for_every_trip(order_repository, organization_id, user_id):
    group = order_repository.add_group(
        trip_statuses=[OrderTripStatusType.DELIVERED, OrderTripStatusType.WAITING_FOR_DELIVERY]
    )

    result = await make_evaluator(order_repository).update_order_group_status_if_all_trips_delivered(
        organization_id, group_id=group.id, created_by_id=user_id
    )

    assert result.status_created is False
    assert order_repository.group_statuses == []


async def test_empty_group_is_not_rolled_up(order_repository, organization_id, user_id):
    group = order_repository.add_group(trip_statuses=[])

    result = await make_evaluator(order_repository).update_order_group_status_if_all_trips_completed(
        organization_id, group_id=group.id, created_by_id=user_id
    )

    assert result.status_created is False


async def test_group_status_appended_once(order_repository, organization_id, user_id):
    group = order_repository.add_group(trip_statuses=[OrderTripStatusType.DELIVERED])
    evaluator = make_evaluator(order_repository)

    for _ in range(2):
        await evaluator.update_order_group_status_if_all_trips_delivered(
            organization_id, group_id=group.id, created_by_id=user_id
        )

    assert len(order_repository.group_statuses) == 1


async def test_unknown_group_returns_none(order_repository, organization_id):
    result = await make_evaluator(order_repository).update_order_group_status_if_all_trips_completed(
        organization_id, group_id=uuid.uuid4()
    )

    assert result is None
