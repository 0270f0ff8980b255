# slotbook/scheduling/slot_generator.py
"""
Slot generation.

Walks the effective schedule of one service day by day and emits candidate
slots of exactly the service duration, stepping by the slot interval and
annotating every candidate with why it can or cannot be booked.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from slotbook.core.exceptions import BookingValidationError
from slotbook.models.appointment import AppointmentStatus
from slotbook.schemas.booking_rules import BookingRules
from slotbook.scheduling.conflicts import BOOKED, BUFFER, BookedInterval, overlap_reason
from slotbook.scheduling.rules import DayRule, booking_window_bounds, booking_window_violation, resolve_day_rules
from slotbook.scheduling.time_window import (
    DAY_NAMES,
    TimeWindow,
    get_zone,
    local_minutes,
    minutes_to_time,
    time_to_minutes,
    wall_time_exists,
)

MAX_RANGE_DAYS = 93
OCCUPIED_REASONS = (BOOKED, BUFFER)
NOT_ATTENDED = (AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW)


@dataclass
class Slot:
    start_time: str  # HH:MM, business local
    end_time: str
    window: TimeWindow
    available: bool
    reason: Optional[str] = None

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.start_time)

    def to_dict(self):
        return {
            "start_time": self.start_time,
            "end_time": self.end_time,
            "start": self.window.start.isoformat(),
            "end": self.window.end.isoformat(),
            "available": self.available,
            "reason": self.reason,
        }


@dataclass
class DayAvailability:
    rule: DayRule
    slot_interval: int
    slots: List[Slot] = field(default_factory=list)

    @property
    def date(self) -> date:
        return self.rule.date

    @property
    def is_open(self) -> bool:
        return self.rule.is_open

    @property
    def available_slots(self) -> List[Slot]:
        return [slot for slot in self.slots if slot.available]

    @property
    def total_count(self) -> int:
        return len(self.slots)

    @property
    def available_count(self) -> int:
        return len(self.available_slots)

    @property
    def booked_count(self) -> int:
        return sum(1 for slot in self.slots if slot.reason in OCCUPIED_REASONS)

    @property
    def utilization_percent(self) -> int:
        if not self.slots:
            return 0
        return round(self.booked_count / self.total_count * 100)

    @property
    def longest_gap(self) -> int:
        """Longest run of unavailable slots (minutes) that ends at an available slot"""
        longest = 0
        current = 0
        for slot in self.slots:
            if not slot.available:
                current += self.slot_interval
            else:
                longest = max(longest, current)
                current = 0
        return longest

    def summary(self) -> Dict[str, Any]:
        available = self.available_slots
        return {
            "first_available": available[0].start_time if available else None,
            "last_available": available[-1].start_time if available else None,
            "longest_gap": self.longest_gap,
        }

    def to_dict(self, include_slots: bool = True):
        data = {
            "date": self.date.isoformat(),
            "day_of_week": self.rule.day_of_week,
            "day_name": DAY_NAMES[self.rule.day_of_week],
            "is_open": self.is_open,
            "reason": self.rule.reason,
            "is_special_date": self.rule.special_date_name is not None,
            "special_date_name": self.rule.special_date_name,
            "business_hours": (
                {"open_time": self.rule.open_time, "close_time": self.rule.close_time}
                if self.is_open else None
            ),
            "total_slots": self.total_count,
            "available_slots": self.available_count,
            "booked_slots": self.booked_count,
            "utilization_percent": self.utilization_percent,
            "summary": self.summary(),
        }
        if include_slots:
            data["slots"] = [slot.to_dict() for slot in self.slots]
        return data


@dataclass(frozen=True)
class NextAvailableSlot:
    date: date
    start_time: str
    end_time: str

    def to_dict(self):
        return {"date": self.date.isoformat(), "start_time": self.start_time, "end_time": self.end_time}


def _slot_reason(window: TimeWindow, target_date: date, rules: BookingRules, now: datetime, zone,
                 buffer_minutes: int, existing: List[BookedInterval]) -> Optional[str]:
    violation = booking_window_violation(window.start, target_date, rules, now, zone)
    if violation:
        return violation

    reasons = set()
    for booked in existing:
        reason = overlap_reason(window, buffer_minutes, booked)
        if reason:
            reasons.add(reason)
    if BOOKED in reasons:
        return BOOKED
    if BUFFER in reasons:
        return BUFFER
    return None


def generate_day_availability(business, service, target_date: date, existing: Iterable[BookedInterval],
                              rules: BookingRules, now: datetime) -> DayAvailability:
    """Annotated candidate slots for one service on one date"""
    rule = resolve_day_rules(business, service, target_date)
    day = DayAvailability(rule=rule, slot_interval=rules.slot_interval)
    if not rule.is_open:
        return day

    zone = get_zone(business.timezone)
    duration = service.duration
    if duration <= 0:
        raise BookingValidationError("Service duration must be positive", {"service_id": str(service.id)})

    blocking = [booked for booked in existing if booked.blocks]
    minute = rule.open_minutes
    while minute + duration <= rule.close_minutes:
        if not wall_time_exists(target_date, minute, zone):
            minute += rules.slot_interval
            continue
        window = TimeWindow.from_local(target_date, minute, duration, zone)
        reason = _slot_reason(window, target_date, rules, now, zone, rules.buffer_time, blocking)
        day.slots.append(Slot(
            start_time=minutes_to_time(minute),
            end_time=minutes_to_time(local_minutes(window.end, zone)),
            window=window,
            available=reason is None,
            reason=reason,
        ))
        minute += rules.slot_interval

    return day


def generate_detailed_availability_range(business, service, start_date: date, end_date: date,
                                         existing: Iterable[BookedInterval], rules: BookingRules,
                                         now: datetime) -> List[DayAvailability]:
    """One DayAvailability per date across the inclusive range, in date order"""
    if end_date < start_date:
        raise BookingValidationError(
            "end_date must not be before start_date",
            {"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
        )
    total_days = (end_date - start_date).days + 1
    if total_days > MAX_RANGE_DAYS:
        raise BookingValidationError(f"Date range cannot exceed {MAX_RANGE_DAYS} days")

    existing = list(existing)
    return [
        generate_day_availability(business, service, start_date + timedelta(days=offset), existing, rules, now)
        for offset in range(total_days)
    ]


def find_next_available_slot(days: Iterable[DayAvailability],
                             preferred_time: Optional[str] = None) -> Optional[NextAvailableSlot]:
    """First day with an open slot; within it, the slot closest to ``preferred_time``.

    Ties go to the earlier slot. Without a preference the first available
    slot wins.
    """
    for day in days:
        available = day.available_slots
        if not available:
            continue
        best = available[0]
        if preferred_time is not None:
            target = time_to_minutes(preferred_time)
            # min() keeps the first of equal keys, i.e. the earliest slot
            best = min(available, key=lambda slot: abs(slot.start_minutes - target))
        return NextAvailableSlot(date=day.date, start_time=best.start_time, end_time=best.end_time)
    return None


def get_slots_around_time(day: DayAvailability, around_time: str, range_minutes: int = 60) -> List[Slot]:
    if range_minutes < 0:
        raise BookingValidationError("range_minutes cannot be negative")
    target = time_to_minutes(around_time)
    return [slot for slot in day.slots if abs(slot.start_minutes - target) <= range_minutes]


def get_next_available_dates(business, service, existing: Iterable[BookedInterval], rules: BookingRules,
                             now: datetime, count: int = 7) -> List[DayAvailability]:
    """The next ``count`` dates inside the booking window with at least one open slot"""
    if count <= 0:
        raise BookingValidationError("count must be positive")
    zone = get_zone(business.timezone)
    current, last = booking_window_bounds(rules, now, zone)
    existing = list(existing)

    found = []
    while len(found) < count and current <= last:
        day = generate_day_availability(business, service, current, existing, rules, now)
        if day.available_count:
            found.append(day)
        current += timedelta(days=1)
    return found


def calculate_availability_summary(days: Iterable[DayAvailability]) -> Dict[str, Any]:
    days = list(days)
    open_days = [day for day in days if day.is_open]

    total_slots = sum(day.total_count for day in open_days)
    available_slots = sum(day.available_count for day in open_days)
    booked_slots = sum(day.booked_count for day in open_days)

    busiest = None
    quietest = None
    for day in open_days:
        if busiest is None or day.booked_count > busiest.booked_count:
            busiest = day
        if quietest is None or day.booked_count < quietest.booked_count:
            quietest = day

    return {
        "total_days": len(days),
        "open_days": len(open_days),
        "closed_days": len(days) - len(open_days),
        "total_slots": total_slots,
        "available_slots": available_slots,
        "booked_slots": booked_slots,
        "overall_utilization": round(booked_slots / total_slots * 100) if total_slots else 0,
        "busiest_day": {"date": busiest.date.isoformat(), "bookings": busiest.booked_count} if busiest else None,
        "quietest_day": {"date": quietest.date.isoformat(), "bookings": quietest.booked_count} if quietest else None,
    }


def get_availability_heatmap(days: Iterable[DayAvailability]) -> Dict[int, int]:
    """Utilisation percent per day of week (0=Sunday), over all given days"""
    total = {dow: 0 for dow in range(7)}
    booked = {dow: 0 for dow in range(7)}
    for day in days:
        total[day.rule.day_of_week] += day.total_count
        booked[day.rule.day_of_week] += day.booked_count
    return {
        dow: round(booked[dow] / total[dow] * 100) if total[dow] else 0
        for dow in range(7)
    }


def get_peak_hours(booked: Iterable[BookedInterval], zone) -> List[Dict[str, int]]:
    """Bookings per local start hour, busiest first (ties by hour)"""
    counts = {hour: 0 for hour in range(24)}
    for interval in booked:
        if interval.status in NOT_ATTENDED:
            continue
        counts[interval.window.start.astimezone(zone).hour] += 1
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [{"hour": hour, "count": count} for hour, count in ranked]
