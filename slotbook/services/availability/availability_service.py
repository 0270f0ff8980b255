# ===== slotbook/services/availability/availability_service.py =====
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID
import logging

from slotbook.config.settings import Settings, get_settings
from slotbook.core.exceptions import BookingValidationError, NotFoundError
from slotbook.models import Business, Service
from slotbook.repositories.base import AppointmentRepository
from slotbook.schemas.booking_rules import BookingRules
from slotbook.scheduling.conflicts import BLOCKING_STATUSES, BookedInterval, ConflictReport, check_conflicts
from slotbook.scheduling.rules import booking_window_bounds
from slotbook.scheduling.slot_generator import (
    DayAvailability,
    NextAvailableSlot,
    Slot,
    calculate_availability_summary,
    find_next_available_slot,
    generate_day_availability,
    generate_detailed_availability_range,
    get_availability_heatmap,
    get_next_available_dates,
    get_peak_hours,
    get_slots_around_time,
)
from slotbook.scheduling.time_window import get_zone, localize

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Read side of scheduling: loads business data and feeds the pure engine"""

    def __init__(self, repository: AppointmentRepository, settings: Optional[Settings] = None):
        self.repository = repository
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def get_business(self, business_id: UUID, lock: bool = False) -> Business:
        if lock:
            business = self.repository.lock_business(business_id)
        else:
            business = self.repository.find_business(business_id)
        if not business or not business.is_active:
            raise NotFoundError("Business", business_id)
        return business

    def get_service(self, business: Business, service_id: UUID) -> Service:
        service = self.repository.find_service(business.id, service_id)
        if not service:
            raise NotFoundError("Service", service_id)
        return service

    def load(self, business_id: UUID, service_id: UUID, lock: bool = False) -> Tuple[Business, Service, BookingRules]:
        """Business, service and the effective booking rules for the pair"""
        business = self.get_business(business_id, lock=lock)
        service = self.get_service(business, service_id)
        rules = BookingRules.for_service(business, service, self.settings)
        return business, service, rules

    def booked_intervals(self, business: Business, start_date: date, end_date: date) -> List[BookedInterval]:
        """Blocking appointments that can touch any slot between the two dates.

        The range is widened by a day on each side so buffers spilling over
        midnight are still seen.
        """
        zone = get_zone(business.timezone)
        range_start = localize(start_date - timedelta(days=1), 0, zone)
        range_end = localize(end_date + timedelta(days=2), 0, zone)
        default_buffer = BookingRules.for_business(business, self.settings).buffer_time

        appointments = self.repository.find_appointments_in_range(
            business.id, range_start, range_end, statuses=BLOCKING_STATUSES
        )
        return [BookedInterval.from_appointment(appt, default_buffer) for appt in appointments]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_day_availability(self, business_id: UUID, service_id: UUID, target_date: date,
                             now: datetime) -> DayAvailability:
        business, service, rules = self.load(business_id, service_id)
        existing = self.booked_intervals(business, target_date, target_date)
        day = generate_day_availability(business, service, target_date, existing, rules, now)
        logger.debug(
            f"Availability for service {service.id} on {target_date}: "
            f"{day.available_count}/{day.total_count} slots open"
        )
        return day

    def get_availability_range(self, business_id: UUID, service_id: UUID, start_date: date, end_date: date,
                               now: datetime) -> Tuple[List[DayAvailability], Dict[str, Any]]:
        business, service, rules = self.load(business_id, service_id)
        if end_date < start_date:
            raise BookingValidationError("end_date must not be before start_date")
        existing = self.booked_intervals(business, start_date, end_date)
        days = generate_detailed_availability_range(business, service, start_date, end_date, existing, rules, now)
        summary = calculate_availability_summary(days)
        summary["heatmap"] = get_availability_heatmap(days)
        return days, summary

    def get_peak_hours(self, business_id: UUID, start_date: date, end_date: date) -> List[Dict[str, int]]:
        """Bookings per local start hour between the two dates, busiest first.

        Cancelled and no-show appointments are left out.
        """
        business = self.get_business(business_id)
        if end_date < start_date:
            raise BookingValidationError("end_date must not be before start_date")
        zone = get_zone(business.timezone)
        range_start = localize(start_date, 0, zone)
        appointments = self.repository.find_appointments_in_range(
            business.id, range_start, localize(end_date + timedelta(days=1), 0, zone)
        )
        booked = [BookedInterval.from_appointment(appt) for appt in appointments if appt.start_time >= range_start]
        return get_peak_hours(booked, zone)

    def find_next_available(self, business_id: UUID, service_id: UUID, now: datetime,
                            preferred_time: Optional[str] = None,
                            days: Optional[int] = None) -> Optional[NextAvailableSlot]:
        """Earliest day with an open slot inside the booking window (or the next ``days`` days)"""
        business, service, rules = self.load(business_id, service_id)
        first, last = booking_window_bounds(rules, now, get_zone(business.timezone))
        if days is not None:
            if days <= 0:
                raise BookingValidationError("days must be positive")
            last = min(last, first + timedelta(days=days - 1))
        if last < first:
            return None

        existing = self.booked_intervals(business, first, last)
        current = first
        while current <= last:
            day = generate_day_availability(business, service, current, existing, rules, now)
            found = find_next_available_slot([day], preferred_time)
            if found:
                return found
            current += timedelta(days=1)
        return None

    def get_slots_around(self, business_id: UUID, service_id: UUID, target_date: date, around_time: str,
                         now: datetime, range_minutes: int = 60) -> Tuple[DayAvailability, List[Slot]]:
        day = self.get_day_availability(business_id, service_id, target_date, now)
        return day, get_slots_around_time(day, around_time, range_minutes)

    def get_next_available_dates(self, business_id: UUID, service_id: UUID, now: datetime,
                                 count: int = 7) -> List[DayAvailability]:
        business, service, rules = self.load(business_id, service_id)
        first, last = booking_window_bounds(rules, now, get_zone(business.timezone))
        existing = self.booked_intervals(business, first, last)
        return get_next_available_dates(business, service, existing, rules, now, count)

    def check_conflicts(self, business_id: UUID, service_id: UUID, target_date: date, start_time: str,
                        now: datetime, duration: Optional[int] = None, buffer_time: Optional[int] = None,
                        exclude_appointment_id: Optional[UUID] = None) -> ConflictReport:
        business, service, rules = self.load(business_id, service_id)
        existing = self.booked_intervals(business, target_date, target_date)
        return check_conflicts(
            business, service, target_date, start_time, existing, rules, now,
            exclude_appointment_id=exclude_appointment_id,
            duration=duration,
            buffer_time=buffer_time,
        )
