"""
Attachment ingestion for trip status changes.

Staged client files are copied into durable storage before the status
transaction starts. Items that already reference an upload pass through.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Sequence

from tripflow.core.config import Settings, get_settings
from tripflow.core.logging import get_logger
from tripflow.schemas.trips import AttachmentImage
from tripflow.services.trips.errors import AttachmentUploadError
from tripflow.services.uploads.service import UploadError, UploadService

logger = get_logger(__name__)


@dataclass
class IngestResult:
    """Upload ids produced by an ingestion run."""

    new_ids: list[uuid.UUID] = field(default_factory=list)
    existing_ids: list[uuid.UUID] = field(default_factory=list)

    @property
    def all_ids(self) -> list[uuid.UUID]:
        return [*self.existing_ids, *self.new_ids]


def format_year_month(value: Optional[datetime]) -> str:
    """``MMYYYY`` bucket of a date; the current month when missing."""
    return (value or datetime.now(timezone.utc)).strftime("%m%Y")


class AttachmentIngestor:
    """Uploads pending attachments and collects their ids."""

    def __init__(self, upload_service: UploadService, settings: Optional[Settings] = None):
        self.upload_service = upload_service
        self.settings = settings or get_settings()

    async def ingest_bill_of_lading_images(
        self,
        images: Sequence[AttachmentImage],
        organization_id: uuid.UUID,
        order_code: str,
        trip_code: str,
        order_date: Optional[datetime],
    ) -> IngestResult:
        """
        Store new bill-of-lading images.

        New files are named ``{order_code}_{trip_code}_{name}`` and bucketed
        by the order month.

        Raises:
            AttachmentUploadError: If any upload fails
        """
        result = IngestResult()
        year_month = format_year_month(order_date)

        for image in images:
            if image.id is not None:
                result.existing_ids.append(image.id)
                continue
            upload = await self._upload(
                source_name=image.name,
                dest_name=f"{order_code}_{trip_code}_{image.name}",
                folder=self.settings.bill_of_lading_folder,
                organization_id=organization_id,
                year_month=year_month,
            )
            result.new_ids.append(upload.id)

        logger.debug(
            "Bill of lading images ingested",
            new=len(result.new_ids),
            existing=len(result.existing_ids),
        )
        return result

    async def ingest_message_attachments(
        self,
        names: Sequence[str],
        organization_id: uuid.UUID,
        order_date: Optional[datetime],
    ) -> IngestResult:
        """
        Store status message attachments under their original names.

        Raises:
            AttachmentUploadError: If any upload fails
        """
        result = IngestResult()
        year_month = format_year_month(order_date)

        for name in names:
            upload = await self._upload(
                source_name=name,
                dest_name=name,
                folder=self.settings.internal_message_folder,
                organization_id=organization_id,
                year_month=year_month,
            )
            result.new_ids.append(upload.id)

        return result

    async def _upload(
        self,
        source_name: str,
        dest_name: str,
        folder: str,
        organization_id: uuid.UUID,
        year_month: str,
    ):
        try:
            return await self.upload_service.upload_file(
                local_path=self.settings.upload_source_dir,
                source_name=source_name,
                dest_name=dest_name,
                folder=folder,
                organization_id=organization_id,
                year_month=year_month,
            )
        except UploadError as e:
            raise AttachmentUploadError(
                "Failed to upload attachment",
                source_name=source_name,
                folder=folder,
                **e.context,
            ) from e
