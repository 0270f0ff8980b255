# ============================================================================
# slotbook/services/appointment/booking_service.py
# ============================================================================
"""Booking lifecycle: create, confirm, cancel, reschedule, no-show, complete"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from slotbook.config.settings import Settings, get_settings
from slotbook.core.exceptions import (
    BookingValidationError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    error_for_reason,
)
from slotbook.models import Appointment, AppointmentStatus, Business, CancellationSource, Customer, Service
from slotbook.repositories.base import AppointmentRepository
from slotbook.schemas.appointment import AppointmentCreate, AppointmentReschedule, CustomerInfo
from slotbook.schemas.booking_rules import BookingRules
from slotbook.scheduling.conflicts import BOOKED, BUFFER, ConflictReport, check_conflicts
from slotbook.scheduling.state_machine import ensure_reschedulable, ensure_transition
from slotbook.scheduling.time_window import get_zone, local_date, local_minutes, minutes_to_time
from slotbook.services.availability.availability_service import AvailabilityService

logger = logging.getLogger(__name__)

DASHBOARD_SOURCE = "dashboard"


class BookingService:
    """Handles appointment state changes.

    Create and reschedule run read-check-write inside one ``atomic()`` block
    with the business row locked, so two requests for overlapping times on
    the same business cannot both succeed.
    """

    def __init__(self, repository: AppointmentRepository, settings: Optional[Settings] = None):
        self.repository = repository
        self.settings = settings or get_settings()
        self.availability = AvailabilityService(repository, self.settings)

    # ------------------------------------------------------------------
    # Helpers shared with the multi-day flow
    # ------------------------------------------------------------------

    def get_appointment(self, business_id: UUID, appointment_id: UUID) -> Appointment:
        appointment = self.repository.find_appointment(business_id, appointment_id)
        if not appointment:
            raise NotFoundError("Appointment", appointment_id)
        return appointment

    def resolve_customer(self, business: Business, info: CustomerInfo) -> Customer:
        if info.customer_id:
            customer = self.repository.find_customer(business.id, info.customer_id)
            if not customer:
                raise NotFoundError("Customer", info.customer_id)
            return customer

        self.require_customer_details(info)
        return self.repository.find_or_create_customer(
            business.id, info.customer_name, info.customer_email, info.customer_phone
        )

    @staticmethod
    def require_customer_details(info: CustomerInfo) -> None:
        if not info.customer_id and (not info.customer_name or not info.customer_email):
            raise BookingValidationError(
                "customer_name and customer_email are required when customer_id is not given"
            )

    @staticmethod
    def ensure_bookable(service: Service) -> None:
        if not service.is_active:
            raise BookingValidationError("Service is not available for booking", {"service_id": str(service.id)})
        if not service.duration or service.duration <= 0:
            raise BookingValidationError("Service duration must be positive", {"service_id": str(service.id)})

    @staticmethod
    def initial_status(booking_source: str, rules: BookingRules,
                       requested: Optional[AppointmentStatus] = None) -> AppointmentStatus:
        """Dashboard bookings are confirmed; self-serve ones wait for approval when required"""
        if requested is not None:
            if requested not in (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED):
                raise BookingValidationError(
                    "New appointments must be PENDING or CONFIRMED", {"status": requested.value}
                )
            return requested
        if booking_source == DASHBOARD_SOURCE:
            return AppointmentStatus.CONFIRMED
        if rules.requires_approval:
            return AppointmentStatus.PENDING
        return AppointmentStatus.CONFIRMED

    @staticmethod
    def raise_for_report(report: ConflictReport, skip_conflict_check: bool = False) -> None:
        """Turn a failed check into the matching typed error.

        ``skip_conflict_check`` only waives overlaps; closed days and
        booking-window violations always fail.
        """
        if report.reason and report.reason not in (BOOKED, BUFFER):
            raise error_for_reason(report.reason)
        if report.conflicts and not skip_conflict_check:
            raise ConflictError(
                f"Requested time conflicts with {len(report.conflicts)} existing appointment(s)",
                report.conflicts,
            )

    @staticmethod
    def touch_customer_on_booking(customer: Optional[Customer], now: datetime, count: int = 1) -> None:
        if customer is None:
            return
        customer.total_bookings = (customer.total_bookings or 0) + count
        if customer.first_booking_at is None:
            customer.first_booking_at = now
        customer.last_booking_at = now

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_appointment(self, business_id: UUID, data: AppointmentCreate, now: datetime) -> Appointment:
        with self.repository.atomic():
            business, service, rules = self.availability.load(business_id, data.service_id, lock=True)
            self.ensure_bookable(service)
            customer = self.resolve_customer(business, data)

            existing = self.availability.booked_intervals(business, data.date, data.date)
            report = check_conflicts(business, service, data.date, data.start_time, existing, rules, now)
            self.raise_for_report(report, data.skip_conflict_check)
            if report.conflicts:
                logger.warning(
                    f"Creating appointment for business {business.id} over {len(report.conflicts)} "
                    f"conflict(s) (skip_conflict_check)"
                )

            status = self.initial_status(data.booking_source, rules, data.status)
            appointment = self.repository.create_appointment(
                business_id=business.id,
                service_id=service.id,
                customer_id=customer.id,
                customer_name=customer.name,
                customer_email=customer.email,
                customer_phone=data.customer_phone or customer.phone,
                start_time=report.window.start,
                end_time=report.window.end,
                duration_minutes=service.duration,
                timezone=business.timezone,
                total_amount=service.price,
                status=status,
                booking_source=data.booking_source,
                customer_notes=data.customer_notes,
                business_notes=data.business_notes,
                confirmed_at=now if status == AppointmentStatus.CONFIRMED else None,
            )
            self.touch_customer_on_booking(customer, now)
            self.repository.record_event(
                appointment, "created", to_status=status,
                details={"booking_source": data.booking_source, "skip_conflict_check": data.skip_conflict_check},
            )

        logger.info(
            f"Created appointment {appointment.id} for business {business.id} on {data.date} "
            f"{data.start_time} ({status.value})"
        )
        return appointment

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _transition(self, appointment: Appointment, target: AppointmentStatus, event_type: str,
                    details: Optional[dict] = None, **fields: Any) -> Appointment:
        current = AppointmentStatus(appointment.status)
        try:
            ensure_transition(current, target)
        except InvalidTransitionError:
            logger.warning(f"Rejected transition for appointment {appointment.id}: {current.value} -> {target.value}")
            raise

        self.repository.update_appointment_status(appointment, target, **fields)
        self.repository.record_event(appointment, event_type, from_status=current, to_status=target,
                                     details=details)
        logger.info(f"Appointment {appointment.id}: {current.value} -> {target.value}")
        return appointment

    def confirm_appointment(self, business_id: UUID, appointment_id: UUID, now: datetime) -> Appointment:
        with self.repository.atomic():
            appointment = self.get_appointment(business_id, appointment_id)
            return self._transition(appointment, AppointmentStatus.CONFIRMED, "confirmed", confirmed_at=now)

    def cancel_appointment(self, business_id: UUID, appointment_id: UUID, now: datetime,
                           source: CancellationSource = CancellationSource.BUSINESS,
                           reason: Optional[str] = None) -> Appointment:
        """Cancel a non-terminal appointment. Cancelling twice is a no-op."""
        with self.repository.atomic():
            appointment = self.get_appointment(business_id, appointment_id)
            return self.cancel_loaded(appointment, now, source, reason)

    def cancel_loaded(self, appointment: Appointment, now: datetime,
                      source: CancellationSource = CancellationSource.BUSINESS,
                      reason: Optional[str] = None) -> Appointment:
        if AppointmentStatus(appointment.status) == AppointmentStatus.CANCELLED:
            logger.info(f"Appointment {appointment.id} already cancelled")
            return appointment

        self._transition(
            appointment, AppointmentStatus.CANCELLED, "cancelled",
            details={"source": source.value, "reason": reason},
            cancelled_at=now,
            cancellation_source=source,
            cancellation_reason=reason,
        )
        if appointment.customer is not None:
            appointment.customer.cancelled_bookings = (appointment.customer.cancelled_bookings or 0) + 1
        return appointment

    def mark_no_show(self, business_id: UUID, appointment_id: UUID, now: datetime) -> Appointment:
        with self.repository.atomic():
            appointment = self.get_appointment(business_id, appointment_id)
            self._transition(appointment, AppointmentStatus.NO_SHOW, "no_show", details={"marked_at": now.isoformat()})
            if appointment.customer is not None:
                appointment.customer.no_show_count = (appointment.customer.no_show_count or 0) + 1
            return appointment

    def complete_appointment(self, business_id: UUID, appointment_id: UUID, now: datetime) -> Appointment:
        with self.repository.atomic():
            appointment = self.get_appointment(business_id, appointment_id)
            self._transition(appointment, AppointmentStatus.COMPLETED, "completed", completed_at=now)
            customer = appointment.customer
            if customer is not None:
                customer.completed_bookings = (customer.completed_bookings or 0) + 1
                customer.total_spent = Decimal(customer.total_spent or 0) + Decimal(appointment.total_amount or 0)
            return appointment

    # ------------------------------------------------------------------
    # Reschedule
    # ------------------------------------------------------------------

    def reschedule_appointment(self, business_id: UUID, appointment_id: UUID, data: AppointmentReschedule,
                               now: datetime) -> Appointment:
        """Move an appointment, checking the new time against everything but itself"""
        with self.repository.atomic():
            business = self.availability.get_business(business_id, lock=True)
            appointment = self.get_appointment(business.id, appointment_id)
            ensure_reschedulable(appointment.status)

            zone = get_zone(business.timezone)
            old_start = appointment.start_time
            if (local_date(old_start, zone) == data.date
                    and minutes_to_time(local_minutes(old_start, zone)) == data.start_time):
                # Same slot: nothing to move and nothing to re-validate
                logger.info(f"Appointment {appointment.id} already starts at {data.date} {data.start_time}")
                return appointment

            service = self.availability.get_service(business, appointment.service_id)
            rules = BookingRules.for_service(business, service, self.settings)
            existing = self.availability.booked_intervals(business, data.date, data.date)
            report = check_conflicts(
                business, service, data.date, data.start_time, existing, rules, now,
                exclude_appointment_id=appointment.id,
                duration=appointment.duration_minutes,
            )
            self.raise_for_report(report, data.skip_conflict_check)

            self.repository.update_appointment_times(
                appointment,
                report.window.start,
                report.window.end,
                rescheduled_from=old_start,
                rescheduled_at=now,
                reschedule_reason=data.reason,
            )
            self.repository.record_event(
                appointment, "rescheduled",
                from_status=appointment.status,
                to_status=appointment.status,
                details={
                    "from": old_start.isoformat(),
                    "to": report.window.start.isoformat(),
                    "reason": data.reason,
                },
            )

        logger.info(
            f"Rescheduled appointment {appointment.id} from {local_date(old_start, zone)} "
            f"{minutes_to_time(local_minutes(old_start, zone))} to {data.date} {data.start_time}"
        )
        return appointment
