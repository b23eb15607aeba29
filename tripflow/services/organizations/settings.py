"""
Typed lookups over organization key/value settings.
"""

import uuid
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tripflow.core.logging import get_logger
from tripflow.database.models.organization import OrganizationSetting, OrganizationSettingKey

logger = get_logger(__name__)

START_OF_MONTH = "startOfMonth"
END_OF_MONTH = "endOfMonth"

BillOfLadingCheckStartDay = Union[int, str]

_TRUE_VALUES = {"true", "1", "yes", "on"}


def parse_bool(value: Optional[str], default: bool) -> bool:
    """Parse a stored setting value as a boolean."""
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in _TRUE_VALUES


def parse_check_start_day(value: Optional[str]) -> Optional[BillOfLadingCheckStartDay]:
    """
    Parse the monthly bill-of-lading check start day.

    Returns an int day offset, one of the ``startOfMonth`` / ``endOfMonth``
    keywords, or None when the setting is unset or unrecognized.
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if value.lstrip("-").isdigit():
        return int(value)
    if value in (START_OF_MONTH, END_OF_MONTH):
        return value
    logger.warning("Unrecognized bill of lading check start day", value=value)
    return None


class OrganizationSettingsService:
    """Reads organization settings."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_organization_setting(
        self,
        organization_id: uuid.UUID,
        key: OrganizationSettingKey,
        default: Optional[str] = None,
    ) -> Optional[str]:
        """
        Get the raw value of a setting.

        Returns:
            Stored value, or ``default`` when the organization has no such
            setting
        """
        try:
            stmt = select(OrganizationSetting.value).where(
                OrganizationSetting.organization_id == organization_id,
                OrganizationSetting.key == key.value,
            )
            result = await self.session.execute(stmt)
            value = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(
                "Failed to read organization setting",
                organization_id=str(organization_id),
                key=key.value,
                error=str(e),
            )
            raise
        return default if value is None else value

    async def is_order_consolidation_enabled(self, organization_id: uuid.UUID) -> bool:
        value = await self.get_organization_setting(
            organization_id, OrganizationSettingKey.ORDER_CONSOLIDATION_ENABLED
        )
        return parse_bool(value, default=False)

    async def is_duplicate_bill_of_lading_prevented(self, organization_id: uuid.UUID) -> bool:
        value = await self.get_organization_setting(
            organization_id, OrganizationSettingKey.PREVENT_DUPLICATE_BILL_OF_LADING
        )
        return parse_bool(value, default=True)

    async def get_bill_of_lading_check_start_day(
        self, organization_id: uuid.UUID
    ) -> Optional[BillOfLadingCheckStartDay]:
        value = await self.get_organization_setting(
            organization_id, OrganizationSettingKey.MONTHLY_BOL_DUPLICATE_CHECK_START_DAY
        )
        return parse_check_start_day(value)
