"""
Durable file storage for client uploads.

Pending uploads are staged by the client in a local directory. This service
streams them into the upload root under a deterministic path and records an
``UploadFile`` row for each stored file.
"""

import mimetypes
import uuid
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tripflow.core.config import Settings, get_settings
from tripflow.core.logging import get_logger
from tripflow.database.models.file import UploadFile

logger = get_logger(__name__)

CHUNK_SIZE = 64 * 1024


class UploadError(Exception):
    """Raised when a file cannot be stored."""

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.context = context


def build_storage_path(
    folder: str,
    organization_id: uuid.UUID,
    year_month: str,
    dest_name: str,
) -> str:
    """Relative storage path ``{folder}/{org}/{MMYYYY}/{name}``."""
    return f"{folder}/{organization_id}/{year_month}/{dest_name}"


class UploadService:
    """Copies staged uploads into durable storage."""

    def __init__(self, session: AsyncSession, settings: Optional[Settings] = None):
        self.session = session
        self.settings = settings or get_settings()

    async def upload_file(
        self,
        local_path: str,
        source_name: str,
        dest_name: str,
        folder: str,
        organization_id: uuid.UUID,
        year_month: str,
    ) -> UploadFile:
        """
        Stream a staged file into storage and persist its record.

        Args:
            local_path: Directory holding the staged file
            source_name: Staged file name
            dest_name: Stored file name
            folder: Logical storage folder
            organization_id: Owning organization
            year_month: ``MMYYYY`` bucket of the owning order

        Returns:
            Persisted upload record

        Raises:
            UploadError: If reading, writing or persisting fails
        """
        source = Path(local_path) / source_name
        relative_path = build_storage_path(folder, organization_id, year_month, dest_name)
        target = Path(self.settings.upload_root) / relative_path

        logger.info(
            "Uploading file",
            source=str(source),
            path=relative_path,
            organization_id=str(organization_id),
        )

        size = 0
        try:
            await aiofiles.os.makedirs(target.parent, exist_ok=True)
            async with aiofiles.open(source, "rb") as src, aiofiles.open(target, "wb") as dst:
                while True:
                    chunk = await src.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    await dst.write(chunk)
                    size += len(chunk)
        except OSError as e:
            logger.error(
                "File upload failed - storage error",
                source=str(source),
                path=relative_path,
                error=str(e),
            )
            raise UploadError(
                "Failed to store uploaded file",
                source=str(source),
                path=relative_path,
                error=str(e),
            ) from e

        upload = UploadFile(
            organization_id=organization_id,
            name=dest_name,
            path=relative_path,
            folder=folder,
            mime_type=mimetypes.guess_type(dest_name)[0],
            size=size,
        )
        try:
            self.session.add(upload)
            await self.session.flush()
        except SQLAlchemyError as e:
            logger.error(
                "File upload failed - database error",
                path=relative_path,
                error=str(e),
            )
            raise UploadError(
                "Failed to record uploaded file",
                path=relative_path,
                error=str(e),
            ) from e

        logger.info("File uploaded", upload_file_id=str(upload.id), path=relative_path, size=size)
        return upload
