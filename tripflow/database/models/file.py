"""Uploaded file records."""

from typing import Optional

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from tripflow.database.base import OrganizationScopedModel


class UploadFile(OrganizationScopedModel):
    """
    Durable file stored under the upload root.

    Attributes:
        name: Stored file name
        path: Path relative to the upload root
        folder: Logical folder (bill-of-ladings, internal-messages, ...)
        mime_type: Guessed MIME type
        size: Size in bytes
    """

    __tablename__ = "upload_files"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Stored file name",
    )

    path: Mapped[str] = mapped_column(
        String(1024),
        nullable=False,
        unique=True,
        comment="Path relative to the upload root",
    )

    folder: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
        comment="Logical storage folder",
    )

    mime_type: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="MIME type",
    )

    size: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
        comment="File size in bytes",
    )
