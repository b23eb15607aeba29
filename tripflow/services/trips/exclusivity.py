"""
Optimistic concurrency check for trip edits.

A client sends the ``updated_at`` it last saw. Any difference from the
stored value means another writer changed the trip in between.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from tripflow.core.logging import get_logger
from tripflow.services.trips.errors import ExclusiveUpdateError
from tripflow.services.trips.repository import TripRepository

logger = get_logger(__name__)


def _as_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ExclusivityGuard:
    """Compares the client's trip timestamp with the stored one."""

    def __init__(self, repository: TripRepository):
        self.repository = repository

    async def check_exclusive(
        self,
        organization_id: uuid.UUID,
        trip_id: uuid.UUID,
        client_last_updated_at: Optional[datetime],
    ) -> bool:
        """
        Detect a concurrent modification.

        Returns:
            True on conflict: the trip is missing, the client sent no
            timestamp, or the timestamps differ
        """
        current = await self.repository.get_updated_at(organization_id, trip_id)
        if current is None or client_last_updated_at is None:
            conflict = True
        else:
            conflict = _as_aware(current) != _as_aware(client_last_updated_at)

        if conflict:
            logger.info(
                "Trip exclusivity conflict",
                trip_id=str(trip_id),
                stored=current.isoformat() if current else None,
                client=client_last_updated_at.isoformat() if client_last_updated_at else None,
            )
        return conflict

    async def ensure_exclusive(
        self,
        organization_id: uuid.UUID,
        trip_id: uuid.UUID,
        client_last_updated_at: Optional[datetime],
    ) -> None:
        """
        Raises:
            ExclusiveUpdateError: If the trip changed since the client read it
        """
        if await self.check_exclusive(organization_id, trip_id, client_last_updated_at):
            raise ExclusiveUpdateError(
                "Trip was modified by another user",
                trip_id=str(trip_id),
            )
