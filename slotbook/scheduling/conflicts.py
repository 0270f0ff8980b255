# slotbook/scheduling/conflicts.py
"""
Conflict detection.

Two bookings conflict when the candidate window, extended by its own
buffer, overlaps an existing window extended by *that* appointment's
service buffer. Raw overlaps are reported as ``booked``; overlaps that only
exist because of a buffer are reported as ``buffer``.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, List, Optional

from zoneinfo import ZoneInfo

from slotbook.models.appointment import AppointmentStatus
from slotbook.schemas.booking_rules import BookingRules
from slotbook.scheduling.rules import booking_window_violation, resolve_day_rules
from slotbook.scheduling.time_window import (
    TimeWindow,
    get_zone,
    local_minutes,
    minutes_to_time,
    time_to_minutes,
    wall_time_exists,
)

logger = logging.getLogger(__name__)

BOOKED = "booked"
BUFFER = "buffer"
OUTSIDE_HOURS = "outside_hours"
NONEXISTENT_TIME = "nonexistent_time"

# COMPLETED appointments still occupy their slot in the calendar
BLOCKING_STATUSES = frozenset({
    AppointmentStatus.PENDING,
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.COMPLETED,
})


@dataclass(frozen=True)
class BookedInterval:
    """An existing appointment as the engine sees it"""

    appointment_id: Any
    window: TimeWindow
    buffer_minutes: int = 0
    customer_name: Optional[str] = None
    status: Optional[AppointmentStatus] = AppointmentStatus.CONFIRMED
    service_name: Optional[str] = None

    @property
    def blocked_window(self) -> TimeWindow:
        return self.window.expand_end(self.buffer_minutes)

    @property
    def blocks(self) -> bool:
        return self.status in BLOCKING_STATUSES

    @classmethod
    def from_appointment(cls, appointment, default_buffer: int = 0) -> "BookedInterval":
        service = getattr(appointment, "service", None)
        buffer_minutes = default_buffer
        if service is not None and service.buffer_time is not None:
            buffer_minutes = service.buffer_time
        return cls(
            appointment_id=appointment.id,
            window=TimeWindow(appointment.start_time, appointment.end_time),
            buffer_minutes=buffer_minutes,
            customer_name=appointment.customer_name,
            status=appointment.status,
            service_name=service.name if service is not None else None,
        )


@dataclass(frozen=True)
class ConflictInfo:
    """What the caller may show about a clashing appointment (name only, no other PII)"""

    appointment_id: Any
    window: TimeWindow
    reason: str
    zone: ZoneInfo
    customer_name: Optional[str] = None
    service_name: Optional[str] = None

    def to_dict(self):
        start, end = self.window.in_zone(self.zone)
        return {
            "appointment_id": str(self.appointment_id),
            "start_time": start.strftime("%H:%M"),
            "end_time": end.strftime("%H:%M"),
            "start": start.isoformat(),
            "end": end.isoformat(),
            "customer_name": self.customer_name,
            "service_name": self.service_name,
            "reason": self.reason,
        }


@dataclass
class ConflictReport:
    available: bool
    window: Optional[TimeWindow] = None
    reason: Optional[str] = None
    conflicts: List[ConflictInfo] = field(default_factory=list)

    def to_dict(self):
        return {
            "available": self.available,
            "reason": self.reason,
            "conflicts": [conflict.to_dict() for conflict in self.conflicts],
        }


def overlap_reason(candidate: TimeWindow, buffer_minutes: int, existing: BookedInterval) -> Optional[str]:
    """``booked``, ``buffer`` or None for one candidate against one booking"""
    if candidate.overlaps(existing.window):
        return BOOKED
    if candidate.expand_end(buffer_minutes).overlaps(existing.blocked_window):
        return BUFFER
    return None


def find_conflicts(window: TimeWindow, buffer_minutes: int, existing: Iterable[BookedInterval],
                   zone: ZoneInfo, exclude_appointment_id: Any = None) -> List[ConflictInfo]:
    conflicts = []
    for booked in existing:
        if not booked.blocks:
            continue
        if exclude_appointment_id is not None and str(booked.appointment_id) == str(exclude_appointment_id):
            continue
        reason = overlap_reason(window, buffer_minutes, booked)
        if reason:
            conflicts.append(ConflictInfo(
                appointment_id=booked.appointment_id,
                window=booked.window,
                reason=reason,
                zone=zone,
                customer_name=booked.customer_name,
                service_name=booked.service_name,
            ))
    conflicts.sort(key=lambda c: c.window.start)
    return conflicts


def validate_booking_time(business, service, target_date: date, start_time, duration: int,
                          rules: BookingRules, now: datetime) -> Optional[str]:
    """Reason the time cannot be booked regardless of other bookings, or None.

    Booking-window checks run before opening hours, so asking for today when
    same-day booking is off is always "too soon", even on a closed day.
    """
    zone = get_zone(business.timezone)
    if not wall_time_exists(target_date, start_time, zone):
        return NONEXISTENT_TIME
    window = TimeWindow.from_local(target_date, start_time, duration, zone)

    violation = booking_window_violation(window.start, target_date, rules, now, zone)
    if violation:
        return violation

    day = resolve_day_rules(business, service, target_date)
    if not day.is_open:
        return day.reason

    start_minutes = time_to_minutes(start_time)
    if start_minutes < day.open_minutes or start_minutes + duration > day.close_minutes:
        return OUTSIDE_HOURS
    return None


def check_conflicts(business, service, target_date: date, start_time,
                    existing: Iterable[BookedInterval], rules: BookingRules, now: datetime,
                    exclude_appointment_id: Any = None, duration: Optional[int] = None,
                    buffer_time: Optional[int] = None) -> ConflictReport:
    """Full check of one requested time: booking window, hours and overlaps.

    Conflicts are always collected, even when the time also fails validation,
    so the caller can show both.
    """
    duration = duration or service.duration
    buffer_minutes = rules.buffer_time if buffer_time is None else buffer_time
    zone = get_zone(business.timezone)

    window = TimeWindow.from_local(target_date, start_time, duration, zone)
    reason = validate_booking_time(business, service, target_date, start_time, duration, rules, now)
    conflicts = find_conflicts(window, buffer_minutes, existing, zone, exclude_appointment_id)

    if reason is None and conflicts:
        reason = conflicts[0].reason
        logger.info(
            f"Requested {target_date} {minutes_to_time(local_minutes(window.start, zone))} for "
            f"business {business.id} conflicts with {len(conflicts)} appointment(s)"
        )

    return ConflictReport(
        available=reason is None,
        window=window,
        reason=reason,
        conflicts=conflicts,
    )
