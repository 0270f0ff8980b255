# slotbook/scheduling/patterns.py
"""
Multi-day pattern expansion.

``generate_dates`` turns a recurrence description into an ordered list of
calendar dates; ``generate_slots`` pins a wall-clock start time onto each.
"""
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List

from zoneinfo import ZoneInfo

from slotbook.core.exceptions import BookingValidationError
from slotbook.schemas.multi_day import ConsecutivePattern, CustomPattern, MultiDayPattern, WeeklyPattern
from slotbook.scheduling.time_window import TimeWindow, day_of_week, parse_time


@dataclass(frozen=True)
class SeriesSlot:
    index: int  # 1-based session number
    date: date
    start_time: str
    window: TimeWindow

    def to_dict(self):
        return {
            "index": self.index,
            "date": self.date.isoformat(),
            "start_time": self.start_time,
            "start": self.window.start.isoformat(),
            "end": self.window.end.isoformat(),
        }


def generate_dates(start_date: date, pattern: MultiDayPattern) -> List[date]:
    if isinstance(pattern, ConsecutivePattern):
        dates = [start_date + timedelta(days=offset) for offset in range(pattern.days)]

    elif isinstance(pattern, WeeklyPattern):
        # Weeks run Sunday to Saturday, starting with the week containing start_date
        week_start = start_date - timedelta(days=day_of_week(start_date))
        weekdays = sorted(set(pattern.weekdays))
        dates = []
        for week in range(pattern.week_count):
            for weekday in weekdays:
                candidate = week_start + timedelta(weeks=week, days=weekday)
                if candidate >= start_date:
                    dates.append(candidate)

    elif isinstance(pattern, CustomPattern):
        dates = sorted(set(pattern.dates))

    else:
        raise BookingValidationError(f"Unsupported pattern: {type(pattern).__name__}")

    if not dates:
        raise BookingValidationError("Pattern produced no dates", {"start_date": start_date.isoformat()})
    return dates


def generate_slots(dates: List[date], start_time: str, duration: int, zone: ZoneInfo) -> List[SeriesSlot]:
    start_time = parse_time(start_time)
    return [
        SeriesSlot(
            index=index,
            date=session_date,
            start_time=start_time,
            window=TimeWindow.from_local(session_date, start_time, duration, zone),
        )
        for index, session_date in enumerate(dates, start=1)
    ]
