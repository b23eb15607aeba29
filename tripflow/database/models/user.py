"""User model."""

from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from tripflow.database.base import BaseModel


class User(BaseModel):
    """
    Application user. Identity is resolved upstream; this row only carries
    the profile fields used in notifications and audit columns.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
        comment="User email address",
    )

    first_name: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="User first name",
    )

    last_name: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="User last name",
    )

    @property
    def full_name(self) -> str:
        """Get user's full name."""
        return " ".join(part for part in (self.last_name, self.first_name) if part)
