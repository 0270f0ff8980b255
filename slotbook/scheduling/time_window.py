# slotbook/scheduling/time_window.py
"""Half-open time intervals and wall-clock helpers.

All ``HH:MM`` and ``YYYY-MM-DD`` inputs are combined and localized in the
business timezone before any interval arithmetic; intervals themselves are
held as UTC instants so that adding minutes is always absolute, including
across DST changes.
"""
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache
from typing import Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from slotbook.core.exceptions import BookingValidationError

TIME_PATTERN = re.compile(r"^([01][0-9]|2[0-3]):([0-5][0-9])$")
MINUTES_PER_DAY = 24 * 60

DAY_KEYS = ["sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday"]
DAY_NAMES = [key.capitalize() for key in DAY_KEYS]

TimeLike = Union[str, time, int]


@lru_cache(maxsize=128)
def get_zone(name: str) -> ZoneInfo:
    """Resolve an IANA timezone name"""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise BookingValidationError(f"Unknown timezone: {name!r}", {"timezone": name}) from None


def parse_date(value: Union[str, date]) -> date:
    """Parse a YYYY-MM-DD string (dates pass through)"""
    if isinstance(value, datetime):
        raise BookingValidationError("Expected a calendar date, got a datetime")
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise BookingValidationError(
            f"Invalid date {value!r} (use YYYY-MM-DD)", {"date": str(value)}
        ) from None


def time_to_minutes(value: TimeLike) -> int:
    """Minutes from midnight for an HH:MM string, a time, or minutes already"""
    if isinstance(value, bool):
        raise BookingValidationError(f"Invalid time {value!r}")
    if isinstance(value, int):
        if not 0 <= value < MINUTES_PER_DAY:
            raise BookingValidationError(f"Minute of day out of range: {value}")
        return value
    if isinstance(value, time):
        return value.hour * 60 + value.minute
    match = TIME_PATTERN.match(value or "")
    if not match:
        raise BookingValidationError(
            f"Invalid time {value!r} (use HH:MM)", {"time": str(value)}
        )
    return int(match.group(1)) * 60 + int(match.group(2))


def minutes_to_time(minutes: int) -> str:
    """Format minutes from midnight as HH:MM"""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_time(value: TimeLike) -> str:
    """Validate and normalise a time of day to HH:MM"""
    return minutes_to_time(time_to_minutes(value))


def day_of_week(value: date) -> int:
    """Day index with 0=Sunday ... 6=Saturday"""
    return (value.weekday() + 1) % 7


def localize(target_date: date, time_of_day: TimeLike, zone: ZoneInfo) -> datetime:
    """Wall-clock date + time in ``zone`` as an aware datetime"""
    minutes = time_to_minutes(time_of_day)
    naive = datetime.combine(target_date, time(minutes // 60, minutes % 60))
    return naive.replace(tzinfo=zone)


def wall_time_exists(target_date: date, time_of_day: TimeLike, zone: ZoneInfo) -> bool:
    """False for wall-clock times skipped by a spring-forward jump"""
    aware = localize(target_date, time_of_day, zone)
    round_trip = aware.astimezone(timezone.utc).astimezone(zone)
    return round_trip.replace(tzinfo=None) == aware.replace(tzinfo=None)


def local_date(instant: datetime, zone: ZoneInfo) -> date:
    return instant.astimezone(zone).date()


def local_minutes(instant: datetime, zone: ZoneInfo) -> int:
    local = instant.astimezone(zone)
    return local.hour * 60 + local.minute


def ensure_aware(instant: datetime) -> datetime:
    if instant.tzinfo is None or instant.utcoffset() is None:
        raise BookingValidationError("Datetimes must be timezone-aware")
    return instant


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval ``[start, end)`` held in UTC"""

    start: datetime
    end: datetime

    def __post_init__(self):
        start = ensure_aware(self.start).astimezone(timezone.utc)
        end = ensure_aware(self.end).astimezone(timezone.utc)
        if not start < end:
            raise BookingValidationError("A time window must start before it ends")
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @classmethod
    def from_local(cls, target_date: date, start_time: TimeLike, duration_minutes: int,
                   zone: ZoneInfo) -> "TimeWindow":
        if duration_minutes <= 0:
            raise BookingValidationError("Duration must be a positive number of minutes")
        start = localize(target_date, start_time, zone)
        return cls.from_start(start, duration_minutes)

    @classmethod
    def from_start(cls, start: datetime, duration_minutes: int) -> "TimeWindow":
        start_utc = ensure_aware(start).astimezone(timezone.utc)
        return cls(start_utc, start_utc + timedelta(minutes=duration_minutes))

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def overlaps(self, other: "TimeWindow") -> bool:
        """Touching boundaries do not overlap"""
        return self.start < other.end and other.start < self.end

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end

    def contains_window(self, other: "TimeWindow") -> bool:
        return self.start <= other.start and other.end <= self.end

    def expand_end(self, buffer_minutes: int) -> "TimeWindow":
        """Extend the end by a buffer. Only used for conflict comparisons."""
        if buffer_minutes < 0:
            raise BookingValidationError("Buffer time cannot be negative")
        if buffer_minutes == 0:
            return self
        return TimeWindow(self.start, self.end + timedelta(minutes=buffer_minutes))

    def in_zone(self, zone: ZoneInfo) -> Tuple[datetime, datetime]:
        return self.start.astimezone(zone), self.end.astimezone(zone)
