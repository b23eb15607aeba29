"""
Fleet models: drivers and vehicles assigned to trips.
"""

import uuid
from typing import Optional

from sqlalchemy import ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tripflow.database.base import OrganizationScopedModel


class Driver(OrganizationScopedModel):
    """
    Driver of an organization.

    Attributes:
        user_id: Linked application user, if the driver has an account
        first_name: Driver first name
        last_name: Driver last name
    """

    __tablename__ = "drivers"

    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Linked user account",
    )

    first_name: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Driver first name",
    )

    last_name: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Driver last name",
    )

    user: Mapped[Optional["User"]] = relationship("User", lazy="selectin")

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.last_name, self.first_name) if part)


class Vehicle(OrganizationScopedModel):
    """Vehicle of an organization."""

    __tablename__ = "vehicles"

    vehicle_number: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        index=True,
        comment="Registration number",
    )
