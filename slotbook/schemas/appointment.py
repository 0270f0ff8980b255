"""
Appointment request models.
"""
import datetime as dt
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from slotbook.core.exceptions import BookingValidationError
from slotbook.models.appointment import AppointmentStatus, CancellationSource
from slotbook.scheduling.time_window import parse_time


def validate_time_of_day(v):
    try:
        return parse_time(v)
    except BookingValidationError as e:
        raise ValueError(e.message)


class CustomerInfo(BaseModel):
    """Either an existing customer id or an inline name/email snapshot"""

    model_config = ConfigDict(str_strip_whitespace=True)

    customer_id: Optional[UUID] = None
    customer_name: Optional[str] = Field(None, max_length=100)
    customer_email: Optional[str] = Field(None, max_length=255)
    customer_phone: Optional[str] = Field(None, max_length=20)
    customer_notes: Optional[str] = None
    business_notes: Optional[str] = None

    @field_validator("customer_email")
    @classmethod
    def validate_email(cls, v):
        if v is not None and "@" not in v:
            raise ValueError("Invalid email address")
        return v.lower() if v else v


class AppointmentCreate(CustomerInfo):
    service_id: UUID
    date: dt.date
    start_time: str
    status: Optional[AppointmentStatus] = None
    booking_source: str = Field("website", pattern="^(website|dashboard|api)$")
    skip_conflict_check: bool = False

    @field_validator("start_time")
    @classmethod
    def validate_start_time(cls, v):
        return validate_time_of_day(v)


class AppointmentReschedule(BaseModel):
    date: dt.date
    start_time: str
    reason: Optional[str] = None
    skip_conflict_check: bool = False

    @field_validator("start_time")
    @classmethod
    def validate_start_time(cls, v):
        return validate_time_of_day(v)


class AppointmentCancel(BaseModel):
    source: CancellationSource = CancellationSource.BUSINESS
    reason: Optional[str] = None


class SeriesCancel(AppointmentCancel):
    pass


class ConflictCheckRequest(BaseModel):
    service_id: UUID
    date: dt.date
    start_time: str
    duration: Optional[int] = Field(None, gt=0)
    buffer_time: Optional[int] = Field(None, ge=0)
    exclude_appointment_id: Optional[UUID] = None

    @field_validator("start_time")
    @classmethod
    def validate_start_time(cls, v):
        return validate_time_of_day(v)
