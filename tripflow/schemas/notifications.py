"""
Notification request schema exchanged between the API process and the
notification worker.
"""

from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from tripflow.database.models.notification import NotificationType
from tripflow.database.models.organization import OrganizationRoleType


class PushNotificationRequest(BaseModel):
    """
    Serialized notification plan.

    ``data`` is the payload dumped to JSON-compatible values. Receivers are
    user ids; roles expand to organization members; participants are looked
    up by ``data["order_code"]``.
    """

    type: Optional[NotificationType] = None
    organization_id: Optional[UUID] = None
    target_id: Optional[UUID] = None
    created_by_id: Optional[UUID] = None
    data: dict[str, Any] = Field(default_factory=dict)
    receivers: list[UUID] = Field(default_factory=list)
    org_member_roles: list[OrganizationRoleType] = Field(default_factory=list)
    send_to_participants: bool = True

    @property
    def is_complete(self) -> bool:
        return all(
            value is not None
            for value in (self.type, self.organization_id, self.target_id, self.created_by_id)
        )
