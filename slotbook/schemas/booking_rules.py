"""
Strongly typed booking rules.

The business ``settings`` JSON blob is parsed here once, at the service
boundary; nothing inside the engine reads the raw dict.
"""
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from slotbook.config.settings import Settings, get_settings
from slotbook.core.exceptions import BookingValidationError
from slotbook.scheduling.time_window import DAY_KEYS, time_to_minutes


UNLIMITED = -1


class BookingRules(BaseModel):
    """Effective booking policy for one business (optionally one service)"""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    slot_interval: int = Field(
        15, gt=0, validation_alias=AliasChoices("slot_interval", "slotInterval"),
        description="Minutes between candidate slot starts",
    )
    advance_booking_days: int = Field(
        30, ge=0, validation_alias=AliasChoices("advance_booking_days", "advanceBookingDays"),
    )
    same_day_booking: bool = Field(
        True, validation_alias=AliasChoices("same_day_booking", "sameDayBooking"),
    )
    same_day_lead_time: int = Field(
        60, ge=0, validation_alias=AliasChoices("same_day_lead_time", "sameDayLeadTime"),
        description="Minutes of notice required before a slot",
    )
    min_advance_hours: int = Field(
        0, ge=0, validation_alias=AliasChoices("min_advance_hours", "minAdvanceHours"),
    )
    buffer_time: int = Field(
        0, ge=0, validation_alias=AliasChoices("buffer_time", "bufferTime"),
        description="Minutes appended after an appointment before the next may start",
    )
    requires_approval: bool = Field(
        False, validation_alias=AliasChoices("requires_approval", "requireApproval", "requiresApproval"),
    )

    @classmethod
    def defaults(cls, settings: Optional[Settings] = None) -> "BookingRules":
        settings = settings or get_settings()
        return cls(
            slot_interval=settings.DEFAULT_SLOT_INTERVAL_MINUTES,
            advance_booking_days=settings.DEFAULT_ADVANCE_BOOKING_DAYS,
            same_day_booking=settings.DEFAULT_SAME_DAY_BOOKING,
            same_day_lead_time=settings.DEFAULT_SAME_DAY_LEAD_TIME_MINUTES,
            buffer_time=settings.DEFAULT_BUFFER_TIME_MINUTES,
            requires_approval=settings.DEFAULT_REQUIRE_APPROVAL,
        )

    @classmethod
    def from_settings_blob(cls, blob: Optional[Dict[str, Any]],
                           settings: Optional[Settings] = None) -> "BookingRules":
        """Merge a business settings blob over the configured defaults.

        Top-level keys are read first, then the nested ``booking`` section
        overrides them.
        """
        base = cls.defaults(settings).model_dump()
        blob = blob or {}
        if not isinstance(blob, dict):
            raise BookingValidationError("Business settings must be a JSON object")

        merged: Dict[str, Any] = dict(base)
        merged.update(_known_keys(blob))
        booking = blob.get("booking")
        if isinstance(booking, dict):
            merged.update(_known_keys(booking))

        try:
            return cls.model_validate(merged)
        except ValidationError as e:
            raise BookingValidationError(
                "Invalid booking settings", {"errors": e.errors(include_url=False, include_context=False)}
            ) from None

    @classmethod
    def for_business(cls, business, settings: Optional[Settings] = None) -> "BookingRules":
        return cls.from_settings_blob(getattr(business, "settings", None), settings)

    @classmethod
    def for_service(cls, business, service, settings: Optional[Settings] = None) -> "BookingRules":
        """Business rules overlaid with the service's own overrides"""
        settings = settings or get_settings()
        rules = cls.for_business(business, settings)
        return rules.with_service(service, settings)

    def with_service(self, service, settings: Optional[Settings] = None) -> "BookingRules":
        settings = settings or get_settings()
        updates: Dict[str, Any] = {}

        max_days = getattr(service, "max_advance_booking_days", None)
        if max_days is not None:
            updates["advance_booking_days"] = settings.UNLIMITED_ADVANCE_DAYS if max_days == UNLIMITED else max_days

        min_hours = getattr(service, "min_advance_hours", None)
        if min_hours is not None:
            updates["min_advance_hours"] = min_hours

        buffer_time = getattr(service, "buffer_time", None)
        if buffer_time is not None:
            updates["buffer_time"] = buffer_time

        if getattr(service, "requires_approval", False):
            updates["requires_approval"] = True

        # A day or more of required notice rules out same-day booking
        if updates.get("min_advance_hours", self.min_advance_hours) >= 24:
            updates["same_day_booking"] = False

        if not updates:
            return self

        try:
            return self.model_validate({**self.model_dump(), **updates})
        except ValidationError as e:
            raise BookingValidationError(
                "Invalid service booking overrides", {"errors": e.errors(include_url=False, include_context=False)}
            ) from None


def _known_keys(data: Dict[str, Any]) -> Dict[str, Any]:
    """Map camelCase or snake_case keys onto BookingRules field names"""
    result = {}
    for name, field in BookingRules.model_fields.items():
        for alias in field.validation_alias.choices:
            if alias in data and data[alias] is not None:
                result[name] = data[alias]
    return result


class CustomDayHours(BaseModel):
    """One entry of a service's custom_availability map"""

    model_config = ConfigDict(extra="ignore")

    open: str
    close: str
    closed: bool = False

    @field_validator("open", "close")
    @classmethod
    def validate_time(cls, v):
        try:
            time_to_minutes(v)
        except BookingValidationError as e:
            raise ValueError(e.message)
        return v


def parse_custom_availability(raw: Optional[Dict[str, Any]]) -> Dict[int, CustomDayHours]:
    """Parse {"monday": {"open": "09:00", "close": "17:00"}} into day index -> hours (0=Sunday)"""
    if not raw:
        return {}
    if not isinstance(raw, dict):
        raise BookingValidationError("custom_availability must be an object keyed by weekday")

    parsed: Dict[int, CustomDayHours] = {}
    for key, value in raw.items():
        day_key = str(key).lower()
        if day_key in DAY_KEYS:
            day_index = DAY_KEYS.index(day_key)
        elif day_key.isdigit() and int(day_key) < 7:
            day_index = int(day_key)
        else:
            raise BookingValidationError(f"Unknown weekday in custom_availability: {key!r}")
        if value is None:
            continue
        try:
            parsed[day_index] = CustomDayHours.model_validate(value)
        except ValidationError as e:
            raise BookingValidationError(
                f"Invalid custom hours for {key!r}", {"errors": e.errors(include_url=False, include_context=False)}
            ) from None
    return parsed
