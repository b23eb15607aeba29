"""
Trip workflow Pydantic schemas for API request/response validation.

Request bodies for the bill-of-lading completion and status edit endpoints,
the nested driver/vehicle/order context they carry, and the response
envelopes.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from tripflow.database.models.trip import OrderTripStatusType


class AttachmentImage(BaseModel):
    """Image reference: an existing upload id, or the name of a staged file."""

    id: Optional[UUID] = Field(None, description="Existing upload file identifier")
    name: Optional[str] = Field(None, max_length=255, description="Staged file name")

    @model_validator(mode="after")
    def validate_reference(self) -> "AttachmentImage":
        """Require either an id or a staged file name."""
        if self.id is None and not self.name:
            raise ValueError("Image requires either an id or a name")
        return self


class DriverUserRef(BaseModel):
    id: UUID


class DriverInfo(BaseModel):
    """Driver assigned to the trip."""

    id: Optional[UUID] = None
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    user: Optional[DriverUserRef] = None

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.last_name, self.first_name) if part)

    @property
    def user_id(self) -> Optional[UUID]:
        return self.user.id if self.user else None


class VehicleInfo(BaseModel):
    id: Optional[UUID] = None
    vehicle_number: Optional[str] = Field(None, max_length=20)


class OrderContext(BaseModel):
    """Order the trip belongs to, as known by the client."""

    id: UUID
    code: str = Field(..., min_length=1, max_length=50)
    order_date: Optional[datetime] = None


class PreviousStatus(BaseModel):
    """Status the trip had when the client loaded it."""

    type: Optional[OrderTripStatusType] = None
    notes: Optional[str] = Field(None, max_length=2000)


class UpdateBillOfLadingRequest(BaseModel):
    """Request to record the bill of lading and complete a trip."""

    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(..., description="Trip identifier")
    code: str = Field(..., min_length=1, max_length=50, description="Trip code")
    bill_of_lading: str = Field(..., min_length=1, max_length=100)
    bill_of_lading_received: bool = False
    bill_of_lading_images: list[AttachmentImage] = Field(default_factory=list)
    delete_image: list[UUID] = Field(
        default_factory=list,
        description="Upload ids to unlink from the trip",
    )
    status: Optional[PreviousStatus] = None
    order: OrderContext
    total_trips: int = Field(..., ge=0)
    remaining_weight_capacity: Decimal = Field(Decimal("0"))
    ignore_check_exclusives: bool = False
    last_updated_at: Optional[datetime] = None
    full_name: Optional[str] = Field(None, max_length=255, description="Actor full name")
    driver: Optional[DriverInfo] = None
    locale: Optional[str] = Field(None, max_length=10)


class UpdateTripStatusRequest(BaseModel):
    """Request to append a status entry to a trip."""

    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(..., description="Trip identifier")
    code: Optional[str] = Field(None, max_length=50, description="Trip code")
    status: Optional[OrderTripStatusType] = Field(
        None,
        description="Target status; empty for custom driver report steps",
    )
    notes: Optional[str] = Field(None, max_length=2000)
    attachments: list[str] = Field(
        default_factory=list,
        description="Staged file names to attach to the status message",
    )
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    order_date: Optional[datetime] = None
    driver: Optional[DriverInfo] = None
    vehicle: Optional[VehicleInfo] = None
    order_id: Optional[UUID] = None
    order_code: Optional[str] = Field(None, max_length=50)
    order_group_id: Optional[UUID] = None
    order_group_code: Optional[str] = Field(None, max_length=50)
    full_name: Optional[str] = Field(None, max_length=255)
    unit_of_measure: Optional[str] = Field(None, max_length=20)
    weight: Optional[Decimal] = None
    driver_report_id: Optional[UUID] = None
    driver_report_name: Optional[str] = Field(None, max_length=255)
    bill_of_lading: Optional[str] = Field(None, max_length=100)
    push_notification: bool = True
    ignore_check_exclusives: bool = False
    last_updated_at: Optional[datetime] = None

    @field_validator("attachments")
    @classmethod
    def validate_attachments(cls, v: list[str]) -> list[str]:
        """Drop blank names."""
        return [name for name in v if name and name.strip()]


class DataResponse(BaseModel):
    """Successful response carrying the affected record id."""

    data: UUID


class ErrorResponse(BaseModel):
    code: str
    message: str
