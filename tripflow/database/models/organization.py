"""
Organization models for tenant scoping, membership roles and settings.

Every tenant-owned row references an organization. Members carry a role that
drives role-based notification broadcasts; settings are free-form key/value
pairs read through typed lookups.
"""

import enum
import uuid
from typing import Optional

from sqlalchemy import (
    Enum as SQLEnum,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tripflow.database.base import BaseModel, OrganizationScopedModel


class OrganizationRoleType(str, enum.Enum):
    """Role of a member inside an organization."""

    OWNER = "OWNER"
    MANAGER = "MANAGER"
    ACCOUNTANT = "ACCOUNTANT"
    DISPATCHER = "DISPATCHER"
    DRIVER = "DRIVER"


class OrganizationSettingKey(str, enum.Enum):
    """Known organization setting keys."""

    ORDER_CONSOLIDATION_ENABLED = "ORDER_CONSOLIDATION_ENABLED"
    PREVENT_DUPLICATE_BILL_OF_LADING = "PREVENT_DUPLICATE_BILL_OF_LADING"
    MONTHLY_BOL_DUPLICATE_CHECK_START_DAY = "MONTHLY_BOL_DUPLICATE_CHECK_START_DAY"


class Organization(BaseModel):
    """
    Tenant organization.

    Attributes:
        id: Unique organization identifier (UUID)
        name: Display name
        code: Short unique code
    """

    __tablename__ = "organizations"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Organization display name",
    )

    code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        comment="Organization short code",
    )

    members: Mapped[list["OrganizationMember"]] = relationship(
        "OrganizationMember",
        back_populates="organization",
        lazy="selectin",
        cascade="all, delete-orphan",
    )


class OrganizationMember(OrganizationScopedModel):
    """
    Membership of a user in an organization with a role.

    Attributes:
        user_id: Member user
        role: Organization role used for role-based broadcasts
    """

    __tablename__ = "organization_members"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Member user",
    )

    role: Mapped[OrganizationRoleType] = mapped_column(
        SQLEnum(OrganizationRoleType, name="organization_role_type", native_enum=False),
        nullable=False,
        index=True,
        comment="Member role",
    )

    organization: Mapped["Organization"] = relationship(
        "Organization",
        back_populates="members",
        foreign_keys="OrganizationMember.organization_id",
    )

    __table_args__ = (
        UniqueConstraint("organization_id", "user_id", name="uq_organization_members_user"),
        Index("ix_organization_members_org_role", "organization_id", "role"),
    )


class OrganizationSetting(OrganizationScopedModel):
    """Key/value setting for an organization. Values are stored as text."""

    __tablename__ = "organization_settings"

    key: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Setting key",
    )

    value: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Raw setting value",
    )

    __table_args__ = (
        UniqueConstraint("organization_id", "key", name="uq_organization_settings_key"),
    )
