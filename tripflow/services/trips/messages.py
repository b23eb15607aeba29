"""
Trip message composition.

A status change produces a trip message only when it carries something worth
showing: newly uploaded images or a full geolocation. Bill-of-lading
completion always records one with a translated summary.
"""

import uuid
from typing import Optional, Sequence

from tripflow.core.locale import Translator
from tripflow.core.logging import get_logger
from tripflow.database.models.trip import (
    OrderTripMessage,
    OrderTripMessageType,
    OrderTripStatusType,
)
from tripflow.services.trips.repository import TripRepository

logger = get_logger(__name__)

LINE_SEPARATOR = "\r\n"


def should_record_message(
    image_ids: Sequence[uuid.UUID],
    latitude: Optional[float],
    longitude: Optional[float],
) -> bool:
    """A status message is recorded for new images or a complete location."""
    return bool(image_ids) or (latitude is not None and longitude is not None)


def compose_bill_of_lading_text(
    translate: Translator,
    bill_of_lading: str,
    notes: Optional[str] = None,
    received: bool = False,
    has_images: bool = False,
) -> str:
    """Summary lines for a bill-of-lading update."""
    lines = [translate("trip.message.bill_of_lading_number", bill_of_lading=bill_of_lading)]
    if notes:
        lines.append(translate("trip.message.bill_of_lading_notes", notes=notes))
    if received:
        lines.append(translate("trip.message.bill_of_lading_received"))
    if has_images:
        lines.append(translate("trip.message.bill_of_lading_image"))
    return LINE_SEPARATOR.join(lines)


class TripMessageComposer:
    """Builds and stores trip messages tied to a status change."""

    def __init__(self, repository: TripRepository):
        self.repository = repository

    async def record_status_message(
        self,
        organization_id: uuid.UUID,
        trip_id: uuid.UUID,
        status: Optional[OrderTripStatusType],
        created_by_id: Optional[uuid.UUID],
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        image_ids: Sequence[uuid.UUID] = (),
    ) -> Optional[OrderTripMessage]:
        """
        Store the message for a status edit, if there is one to store.

        Returns:
            Created message, or None when nothing qualifies
        """
        if not should_record_message(image_ids, latitude, longitude):
            logger.debug("No trip message to record", trip_id=str(trip_id))
            return None

        return await self.repository.create_message(
            organization_id=organization_id,
            trip_id=trip_id,
            created_by_id=created_by_id,
            message_type=OrderTripMessageType.from_status(status),
            latitude=latitude,
            longitude=longitude,
            image_ids=image_ids,
        )

    async def record_bill_of_lading_message(
        self,
        organization_id: uuid.UUID,
        trip_id: uuid.UUID,
        text: str,
        created_by_id: Optional[uuid.UUID],
        image_ids: Sequence[uuid.UUID] = (),
    ) -> OrderTripMessage:
        return await self.repository.create_message(
            organization_id=organization_id,
            trip_id=trip_id,
            created_by_id=created_by_id,
            message=text,
            image_ids=image_ids,
        )
