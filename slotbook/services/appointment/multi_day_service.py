# ============================================================================
# slotbook/services/appointment/multi_day_service.py
# ============================================================================
"""
Multi-day (series) booking.

Every generated session is checked before anything is written. By default a
single failing session fails the whole series and nothing is created;
``allow_partial`` books only the sessions that passed. Either way the
caller gets the per-date failures back.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from slotbook.config.settings import Settings, get_settings
from slotbook.core.exceptions import REASON_MESSAGES, BookingValidationError
from slotbook.models import Appointment, AppointmentStatus, Business, CancellationSource, Service
from slotbook.repositories.base import AppointmentRepository
from slotbook.schemas.booking_rules import BookingRules
from slotbook.schemas.multi_day import MultiDayAppointmentRequest
from slotbook.scheduling.conflicts import BOOKED, BUFFER, BookedInterval, ConflictInfo, check_conflicts
from slotbook.scheduling.patterns import SeriesSlot, generate_dates, generate_slots
from slotbook.scheduling.state_machine import is_terminal
from slotbook.scheduling.time_window import get_zone
from slotbook.services.appointment.booking_service import BookingService

logger = logging.getLogger(__name__)


@dataclass
class SessionCheck:
    slot: SeriesSlot
    available: bool
    appointment_id: UUID
    reason: Optional[str] = None
    conflicts: List[ConflictInfo] = field(default_factory=list)

    def to_dict(self):
        data = self.slot.to_dict()
        data.update({
            "available": self.available,
            "reason": self.reason,
            "message": REASON_MESSAGES.get(self.reason) if self.reason else None,
            "conflicts": [conflict.to_dict() for conflict in self.conflicts],
        })
        return data


@dataclass
class MultiDayResult:
    success: bool
    series_id: Optional[UUID] = None
    appointments: List[Appointment] = field(default_factory=list)
    failures: List[SessionCheck] = field(default_factory=list)
    sessions_requested: int = 0

    @property
    def partial(self) -> bool:
        return self.success and bool(self.failures)


class MultiDayBookingService:
    """Creates, lists and cancels appointment series"""

    def __init__(self, repository: AppointmentRepository, settings: Optional[Settings] = None):
        self.repository = repository
        self.settings = settings or get_settings()
        self.booking = BookingService(repository, self.settings)
        self.availability = self.booking.availability

    def build_sessions(self, business: Business, service: Service,
                       request: MultiDayAppointmentRequest) -> List[SeriesSlot]:
        dates = generate_dates(request.start_date, request.pattern)
        if len(dates) > self.settings.MAX_SERIES_SESSIONS:
            raise BookingValidationError(
                f"A series cannot have more than {self.settings.MAX_SERIES_SESSIONS} sessions",
                {"sessions": len(dates)},
            )
        return generate_slots(dates, request.start_time, service.duration, get_zone(business.timezone))

    def check_multi_day_availability(self, business: Business, service: Service, sessions: List[SeriesSlot],
                                     rules: BookingRules, now: datetime,
                                     skip_conflict_check: bool = False,
                                     customer_name: Optional[str] = None) -> List[SessionCheck]:
        """Check each session against existing bookings and the sessions accepted before it"""
        existing = self.availability.booked_intervals(business, sessions[0].date, sessions[-1].date)
        checks = []
        for session in sessions:
            report = check_conflicts(business, service, session.date, session.start_time, existing, rules, now)
            window_failure = report.reason is not None and report.reason not in (BOOKED, BUFFER)
            available = not window_failure and (not report.conflicts or skip_conflict_check)

            check = SessionCheck(
                slot=session,
                available=available,
                appointment_id=uuid.uuid4(),
                reason=None if available else report.reason,
                conflicts=report.conflicts,
            )
            checks.append(check)
            if available:
                # Later sessions must not overlap the ones already accepted
                existing.append(BookedInterval(
                    appointment_id=check.appointment_id,
                    window=session.window,
                    buffer_minutes=rules.buffer_time,
                    customer_name=customer_name,
                    status=AppointmentStatus.PENDING,
                    service_name=service.name,
                ))
        return checks

    def create_multi_day_appointment(self, business_id: UUID, request: MultiDayAppointmentRequest,
                                     now: datetime) -> MultiDayResult:
        with self.repository.atomic():
            business, service, rules = self.availability.load(business_id, request.service_id, lock=True)
            self.booking.ensure_bookable(service)
            self.booking.require_customer_details(request)
            known_customer = self.booking.resolve_customer(business, request) if request.customer_id else None
            sessions = self.build_sessions(business, service, request)

            checks = self.check_multi_day_availability(
                business, service, sessions, rules, now,
                skip_conflict_check=request.skip_conflict_check,
                customer_name=request.customer_name,
            )
            accepted = [check for check in checks if check.available]
            failures = [check for check in checks if not check.available]

            if failures and not request.allow_partial:
                logger.info(
                    f"Series for business {business.id} rejected: {len(failures)} of {len(checks)} sessions unavailable"
                )
                return MultiDayResult(success=False, failures=failures, sessions_requested=len(checks))
            if not accepted:
                logger.info(f"Series for business {business.id} rejected: no session available")
                return MultiDayResult(success=False, failures=failures, sessions_requested=len(checks))

            customer = known_customer or self.booking.resolve_customer(business, request)
            status = self.booking.initial_status(request.booking_source, rules)
            series_id = uuid.uuid4()
            pattern = request.pattern.model_dump(mode="json")

            appointments = []
            for check in accepted:
                appointment = self.repository.create_appointment(
                    id=check.appointment_id,
                    business_id=business.id,
                    service_id=service.id,
                    customer_id=customer.id,
                    customer_name=customer.name,
                    customer_email=customer.email,
                    customer_phone=request.customer_phone or customer.phone,
                    start_time=check.slot.window.start,
                    end_time=check.slot.window.end,
                    duration_minutes=service.duration,
                    timezone=business.timezone,
                    total_amount=service.price,
                    status=status,
                    booking_source=request.booking_source,
                    customer_notes=request.customer_notes,
                    business_notes=request.business_notes,
                    confirmed_at=now if status == AppointmentStatus.CONFIRMED else None,
                    series_id=series_id,
                    series_index=check.slot.index,
                    series_pattern=pattern,
                )
                self.repository.record_event(
                    appointment, "created", to_status=status,
                    details={"series_id": str(series_id), "series_index": check.slot.index},
                )
                appointments.append(appointment)

            self.booking.touch_customer_on_booking(customer, now, count=len(appointments))

        logger.info(
            f"Created series {series_id} for business {business.id}: "
            f"{len(appointments)} of {len(checks)} sessions booked"
        )
        return MultiDayResult(
            success=True,
            series_id=series_id,
            appointments=appointments,
            failures=failures,
            sessions_requested=len(checks),
        )

    def get_appointment_series(self, business_id: UUID, appointment_id: UUID) -> List[Appointment]:
        """All siblings of an appointment, ordered by start time"""
        appointment = self.booking.get_appointment(business_id, appointment_id)
        if appointment.series_id is None:
            return [appointment]
        return self.repository.find_series(business_id, appointment.series_id)

    def cancel_appointment_series(self, business_id: UUID, appointment_id: UUID, now: datetime,
                                  source: CancellationSource = CancellationSource.BUSINESS,
                                  reason: Optional[str] = None) -> int:
        """Cancel every non-terminal member of the series; returns how many were cancelled"""
        cancelled = 0
        with self.repository.atomic():
            for member in self.get_appointment_series(business_id, appointment_id):
                if is_terminal(member.status):
                    continue
                self.booking.cancel_loaded(member, now, source, reason)
                cancelled += 1

        logger.info(f"Cancelled {cancelled} appointment(s) in the series of {appointment_id}")
        return cancelled

    @staticmethod
    def serialize_result(result: MultiDayResult, serialize) -> Dict[str, Any]:
        return {
            "success": result.success,
            "partial": result.partial,
            "series_id": str(result.series_id) if result.series_id else None,
            "sessions_requested": result.sessions_requested,
            "appointments": [serialize(appt) for appt in result.appointments],
            "failures": [failure.to_dict() for failure in result.failures],
        }
