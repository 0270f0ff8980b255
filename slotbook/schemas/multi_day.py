"""
Multi-day booking patterns and request model.
"""
from datetime import date
from typing import Annotated, List, Literal, Union
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from slotbook.schemas.appointment import CustomerInfo, validate_time_of_day


class ConsecutivePattern(BaseModel):
    """``days`` calendar days in a row from the start date"""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["consecutive"] = "consecutive"
    days: int = Field(2, ge=1, validation_alias=AliasChoices("days", "consecutive_days", "consecutiveDays"))


class WeeklyPattern(BaseModel):
    """Listed weekdays (0=Sunday) for ``week_count`` weeks"""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["weekly"] = "weekly"
    weekdays: List[int] = Field(
        ..., min_length=1, validation_alias=AliasChoices("weekdays", "weekly_days", "weeklyDays")
    )
    week_count: int = Field(1, ge=1, validation_alias=AliasChoices("week_count", "weekCount"))

    @field_validator("weekdays")
    @classmethod
    def validate_weekdays(cls, v):
        for day in v:
            if not 0 <= day <= 6:
                raise ValueError("weekdays must be between 0 (Sunday) and 6 (Saturday)")
        return v


class CustomPattern(BaseModel):
    """An explicit list of dates"""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["custom"] = "custom"
    dates: List[date] = Field(
        ..., min_length=1, validation_alias=AliasChoices("dates", "custom_dates", "customDates")
    )


MultiDayPattern = Annotated[
    Union[ConsecutivePattern, WeeklyPattern, CustomPattern],
    Field(discriminator="type"),
]


class MultiDayAppointmentRequest(CustomerInfo):
    service_id: UUID
    start_date: date
    start_time: str
    pattern: MultiDayPattern
    allow_partial: bool = False
    booking_source: str = Field("website", pattern="^(website|dashboard|api)$")
    skip_conflict_check: bool = False

    @field_validator("start_time")
    @classmethod
    def validate_start_time(cls, v):
        return validate_time_of_day(v)
