"""
Notification models: organization-scoped event records and their recipients.

The workflow persists one ``Notification`` per event with translation keys
for subject and message and a JSON ``meta`` used to render them. Recipients
track read state; delivery channels consume these rows.
"""

import enum
import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tripflow.database.base import BaseModel, OrganizationScopedModel


class NotificationType(str, enum.Enum):
    """Notification type enumeration for categorizing notifications."""

    TRIP_STATUS_CHANGED = "TRIP_STATUS_CHANGED"
    BILL_OF_LADING_RECEIVED = "BILL_OF_LADING_RECEIVED"
    ORDER_STATUS_CHANGED = "ORDER_STATUS_CHANGED"
    ORDER_GROUP_STATUS_CHANGED = "ORDER_GROUP_STATUS_CHANGED"

    @classmethod
    def from_string(cls, value: str) -> "NotificationType":
        """
        Convert string to NotificationType enum.

        Raises:
            ValueError: If value is not a valid notification type
        """
        try:
            return cls[value.upper()]
        except KeyError:
            raise ValueError(f"Invalid notification type: {value}")


class Notification(OrganizationScopedModel):
    """
    Notification event.

    Attributes:
        type: Notification type
        target_id: Entity the notification is about (trip or order)
        created_by_id: User whose action raised the notification
        subject: Translation key of the subject
        message: Translation key of the message body
        meta: Parameters for rendering subject and message
    """

    __tablename__ = "notifications"

    type: Mapped[NotificationType] = mapped_column(
        SQLEnum(NotificationType, name="notification_type", native_enum=False),
        nullable=False,
        index=True,
        comment="Type of notification",
    )

    target_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        index=True,
        comment="Target entity identifier",
    )

    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="Creator",
    )

    subject: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Subject translation key",
    )

    message: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Message translation key",
    )

    meta: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
        server_default=text("'{}'::jsonb"),
        comment="Rendering parameters",
    )

    recipients: Mapped[list["NotificationRecipient"]] = relationship(
        "NotificationRecipient",
        back_populates="notification",
        lazy="selectin",
        cascade="all, delete-orphan",
    )


class NotificationRecipient(BaseModel):
    """Recipient of a notification with read tracking."""

    __tablename__ = "notification_recipients"

    notification_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("notifications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Notification",
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="Recipient user",
    )

    is_read: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Whether the recipient read the notification",
    )

    read_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the notification was read",
    )

    notification: Mapped["Notification"] = relationship(
        "Notification",
        back_populates="recipients",
    )

    __table_args__ = (
        UniqueConstraint("notification_id", "user_id", name="uq_notification_recipients_user"),
        Index("ix_notification_recipients_user_read", "user_id", "is_read"),
    )
