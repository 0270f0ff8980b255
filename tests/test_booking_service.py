"""Tests for the booking lifecycle against a SQLite session."""
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from slotbook.config.settings import get_settings
from slotbook.core.exceptions import (
    BookingValidationError,
    ClosedError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    TooFarAdvanceError,
    TooSoonError,
)
from slotbook.models import Appointment, AppointmentStatus, Business, CancellationSource, Customer
from slotbook.schemas.appointment import AppointmentCreate, AppointmentReschedule
from slotbook.schemas.booking_rules import BookingRules
from slotbook.services.appointment.booking_service import BookingService

from tests.factories import NEXT_MONDAY, NEXT_SATURDAY, NEXT_TUESDAY, NOW, TODAY, make_service


@pytest.fixture
def booking_service(repository, settings):
    return BookingService(repository, settings)


@pytest.fixture
def approval_service(db_session, stored_business):
    service = make_service(stored_business, name="Consultation", requires_approval=True)
    db_session.add(service)
    db_session.commit()
    return service


def booking_request(service, day=NEXT_MONDAY, start_time="10:00", email="ada@example.com", **kwargs):
    return AppointmentCreate(
        service_id=service.id,
        date=day,
        start_time=start_time,
        customer_name=kwargs.pop("customer_name", "Ada Lovelace"),
        customer_email=email,
        **kwargs,
    )


def utc(day, hour, minute=0):
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)


class TestCreateAppointment:
    def test_creates_confirmed_appointment(self, booking_service, stored_business, stored_service, db_session):
        appointment = booking_service.create_appointment(stored_business.id, booking_request(stored_service), NOW)

        assert appointment.status == AppointmentStatus.CONFIRMED
        assert appointment.start_time == utc(NEXT_MONDAY, 10)
        assert appointment.end_time == utc(NEXT_MONDAY, 11)
        assert appointment.duration_minutes == 60
        assert appointment.timezone == "Europe/London"
        assert appointment.total_amount == Decimal("40.00")
        assert appointment.confirmed_at == NOW
        assert [event.event_type for event in appointment.events] == ["created"]

        customer = db_session.query(Customer).one()
        assert customer.email == "ada@example.com"
        assert customer.total_bookings == 1
        assert customer.first_booking_at == NOW

    def test_reuses_customer_by_email(self, booking_service, stored_business, stored_service, db_session):
        booking_service.create_appointment(stored_business.id, booking_request(stored_service), NOW)
        booking_service.create_appointment(
            stored_business.id,
            booking_request(stored_service, day=NEXT_TUESDAY, email="ADA@example.com"),
            NOW,
        )

        customer = db_session.query(Customer).one()
        assert customer.total_bookings == 2
        assert db_session.query(Appointment).filter(Appointment.customer_id == customer.id).count() == 2

    def test_overlap_is_rejected(self, booking_service, stored_business, stored_service, db_session):
        booking_service.create_appointment(stored_business.id, booking_request(stored_service), NOW)

        with pytest.raises(ConflictError) as exc_info:
            booking_service.create_appointment(
                stored_business.id, booking_request(stored_service, start_time="10:30", email="grace@example.com"), NOW
            )

        assert exc_info.value.http_status == 409
        assert len(exc_info.value.conflicts) == 1
        assert exc_info.value.conflicts[0].reason == "booked"
        assert db_session.query(Appointment).count() == 1
        # The customer created before the check was rolled back with it
        assert db_session.query(Customer).filter(Customer.email == "grace@example.com").count() == 0

    def test_buffer_is_enforced(self, booking_service, stored_business, stored_service):
        booking_service.create_appointment(stored_business.id, booking_request(stored_service), NOW)

        with pytest.raises(ConflictError) as exc_info:
            booking_service.create_appointment(
                stored_business.id, booking_request(stored_service, start_time="11:00"), NOW
            )
        assert exc_info.value.conflicts[0].reason == "buffer"

        appointment = booking_service.create_appointment(
            stored_business.id, booking_request(stored_service, start_time="11:15"), NOW
        )
        assert appointment.start_time == utc(NEXT_MONDAY, 11, 15)

    def test_skip_conflict_check_allows_overlap(self, booking_service, stored_business, stored_service, db_session):
        booking_service.create_appointment(stored_business.id, booking_request(stored_service), NOW)
        booking_service.create_appointment(
            stored_business.id,
            booking_request(stored_service, start_time="10:30", booking_source="dashboard", skip_conflict_check=True),
            NOW,
        )
        assert db_session.query(Appointment).count() == 2

    def test_skip_conflict_check_does_not_open_closed_days(self, booking_service, stored_business, stored_service):
        with pytest.raises(ClosedError):
            booking_service.create_appointment(
                stored_business.id,
                booking_request(stored_service, day=NEXT_SATURDAY, skip_conflict_check=True),
                NOW,
            )

    def test_outside_hours(self, booking_service, stored_business, stored_service):
        with pytest.raises(ClosedError) as exc_info:
            booking_service.create_appointment(
                stored_business.id, booking_request(stored_service, start_time="16:30"), NOW
            )
        assert exc_info.value.details == {"reason": "outside_hours"}

    def test_same_day_disabled(self, booking_service, stored_business, stored_service, db_session):
        stored_business.settings = {"booking": {"slotInterval": 30, "sameDayBooking": False}}
        db_session.commit()

        with pytest.raises(TooSoonError) as exc_info:
            booking_service.create_appointment(
                stored_business.id, booking_request(stored_service, day=TODAY, start_time="12:00"), NOW
            )
        assert exc_info.value.details == {"reason": "same_day_lead_time"}

    def test_same_day_lead_time(self, booking_service, stored_business, stored_service):
        now = utc(TODAY, 10)
        with pytest.raises(TooSoonError):
            booking_service.create_appointment(
                stored_business.id, booking_request(stored_service, day=TODAY, start_time="10:30"), now
            )
        # Exactly the 60 minute lead time is enough
        appointment = booking_service.create_appointment(
            stored_business.id, booking_request(stored_service, day=TODAY, start_time="11:00"), now
        )
        assert appointment.start_time == utc(TODAY, 11)

    def test_too_far_in_advance(self, booking_service, stored_business, stored_service):
        with pytest.raises(TooFarAdvanceError):
            booking_service.create_appointment(
                stored_business.id, booking_request(stored_service, day=TODAY + timedelta(days=31)), NOW
            )

    def test_requires_approval_creates_pending(self, booking_service, stored_business, approval_service):
        appointment = booking_service.create_appointment(
            stored_business.id, booking_request(approval_service), NOW
        )
        assert appointment.status == AppointmentStatus.PENDING
        assert appointment.confirmed_at is None

    def test_dashboard_bookings_skip_approval(self, booking_service, stored_business, approval_service):
        appointment = booking_service.create_appointment(
            stored_business.id, booking_request(approval_service, booking_source="dashboard"), NOW
        )
        assert appointment.status == AppointmentStatus.CONFIRMED

    def test_unknown_references(self, booking_service, stored_business, stored_service):
        with pytest.raises(NotFoundError):
            booking_service.create_appointment(uuid.uuid4(), booking_request(stored_service), NOW)

        request = booking_request(stored_service)
        with pytest.raises(NotFoundError):
            booking_service.create_appointment(
                stored_business.id, request.model_copy(update={"service_id": uuid.uuid4()}), NOW
            )
        with pytest.raises(NotFoundError):
            booking_service.create_appointment(
                stored_business.id, request.model_copy(update={"customer_id": uuid.uuid4()}), NOW
            )

    def test_inactive_service(self, booking_service, stored_business, stored_service, db_session):
        stored_service.is_active = False
        db_session.commit()

        with pytest.raises(BookingValidationError):
            booking_service.create_appointment(stored_business.id, booking_request(stored_service), NOW)

    def test_customer_details_required(self, booking_service, stored_business, stored_service):
        request = AppointmentCreate(service_id=stored_service.id, date=NEXT_MONDAY, start_time="10:00")
        with pytest.raises(BookingValidationError):
            booking_service.create_appointment(stored_business.id, request, NOW)


class TestInitialStatus:
    def test_explicit_status_wins(self):
        rules = BookingRules(requires_approval=True)
        assert BookingService.initial_status("website", rules, AppointmentStatus.CONFIRMED) == AppointmentStatus.CONFIRMED

    def test_explicit_terminal_status_rejected(self):
        with pytest.raises(BookingValidationError):
            BookingService.initial_status("dashboard", BookingRules(), AppointmentStatus.COMPLETED)

    @pytest.mark.parametrize("source, requires_approval, expected", [
        ("website", False, AppointmentStatus.CONFIRMED),
        ("website", True, AppointmentStatus.PENDING),
        ("api", True, AppointmentStatus.PENDING),
        ("dashboard", True, AppointmentStatus.CONFIRMED),
    ])
    def test_defaults(self, source, requires_approval, expected):
        rules = BookingRules(requires_approval=requires_approval)
        assert BookingService.initial_status(source, rules) == expected


class TestTransitions:
    def test_confirm_pending(self, booking_service, stored_business, approval_service):
        appointment = booking_service.create_appointment(stored_business.id, booking_request(approval_service), NOW)

        confirmed = booking_service.confirm_appointment(stored_business.id, appointment.id, NOW)

        assert confirmed.status == AppointmentStatus.CONFIRMED
        assert confirmed.previous_status == AppointmentStatus.PENDING
        assert confirmed.confirmed_at == NOW
        assert [event.event_type for event in confirmed.events] == ["created", "confirmed"]

    def test_cancel_twice_is_a_no_op(self, booking_service, stored_business, stored_service):
        appointment = booking_service.create_appointment(stored_business.id, booking_request(stored_service), NOW)

        booking_service.cancel_appointment(
            stored_business.id, appointment.id, NOW, CancellationSource.CUSTOMER, "Feeling unwell"
        )
        again = booking_service.cancel_appointment(stored_business.id, appointment.id, NOW)

        assert again.status == AppointmentStatus.CANCELLED
        assert again.cancellation_source == CancellationSource.CUSTOMER
        assert again.cancellation_reason == "Feeling unwell"
        assert again.cancelled_at == NOW
        assert again.customer.cancelled_bookings == 1
        assert [event.event_type for event in again.events] == ["created", "cancelled"]

    def test_cancelled_slot_can_be_rebooked(self, booking_service, stored_business, stored_service):
        appointment = booking_service.create_appointment(stored_business.id, booking_request(stored_service), NOW)
        booking_service.cancel_appointment(stored_business.id, appointment.id, NOW)

        rebooked = booking_service.create_appointment(
            stored_business.id, booking_request(stored_service, email="grace@example.com"), NOW
        )
        assert rebooked.start_time == appointment.start_time

    def test_no_show_requires_confirmation(self, booking_service, stored_business, approval_service):
        appointment = booking_service.create_appointment(stored_business.id, booking_request(approval_service), NOW)

        with pytest.raises(InvalidTransitionError):
            booking_service.mark_no_show(stored_business.id, appointment.id, NOW)
        assert appointment.status == AppointmentStatus.PENDING

    def test_no_show_counts_on_customer(self, booking_service, stored_business, stored_service):
        appointment = booking_service.create_appointment(stored_business.id, booking_request(stored_service), NOW)

        marked = booking_service.mark_no_show(stored_business.id, appointment.id, NOW)

        assert marked.status == AppointmentStatus.NO_SHOW
        assert marked.customer.no_show_count == 1

    def test_complete_updates_customer_totals(self, booking_service, stored_business, stored_service):
        appointment = booking_service.create_appointment(stored_business.id, booking_request(stored_service), NOW)

        completed = booking_service.complete_appointment(stored_business.id, appointment.id, NOW)

        assert completed.status == AppointmentStatus.COMPLETED
        assert completed.completed_at == NOW
        assert completed.customer.completed_bookings == 1
        assert completed.customer.total_spent == Decimal("40.00")

    def test_terminal_states_are_final(self, booking_service, stored_business, stored_service):
        appointment = booking_service.create_appointment(stored_business.id, booking_request(stored_service), NOW)
        booking_service.complete_appointment(stored_business.id, appointment.id, NOW)

        with pytest.raises(InvalidTransitionError):
            booking_service.cancel_appointment(stored_business.id, appointment.id, NOW)

    def test_unknown_appointment(self, booking_service, stored_business):
        with pytest.raises(NotFoundError):
            booking_service.confirm_appointment(stored_business.id, uuid.uuid4(), NOW)

    def test_appointment_of_other_business(self, booking_service, stored_business, stored_service):
        appointment = booking_service.create_appointment(stored_business.id, booking_request(stored_service), NOW)

        with pytest.raises(NotFoundError):
            booking_service.cancel_appointment(uuid.uuid4(), appointment.id, NOW)


class TestReschedule:
    def test_can_overlap_its_own_old_time(self, booking_service, stored_business, stored_service):
        appointment = booking_service.create_appointment(stored_business.id, booking_request(stored_service), NOW)

        moved = booking_service.reschedule_appointment(
            stored_business.id, appointment.id,
            AppointmentReschedule(date=NEXT_MONDAY, start_time="10:30", reason="Running late"),
            NOW,
        )

        assert moved.start_time == utc(NEXT_MONDAY, 10, 30)
        assert moved.end_time == utc(NEXT_MONDAY, 11, 30)
        assert moved.rescheduled_from == utc(NEXT_MONDAY, 10)
        assert moved.rescheduled_at == NOW
        assert moved.reschedule_reason == "Running late"
        assert moved.status == AppointmentStatus.CONFIRMED
        assert moved.events[-1].event_type == "rescheduled"

    def test_conflict_leaves_appointment_in_place(self, booking_service, stored_business, stored_service):
        appointment = booking_service.create_appointment(stored_business.id, booking_request(stored_service), NOW)
        booking_service.create_appointment(
            stored_business.id, booking_request(stored_service, start_time="13:00", email="grace@example.com"), NOW
        )

        with pytest.raises(ConflictError):
            booking_service.reschedule_appointment(
                stored_business.id, appointment.id,
                AppointmentReschedule(date=NEXT_MONDAY, start_time="12:30"),
                NOW,
            )
        assert appointment.start_time == utc(NEXT_MONDAY, 10)

    def test_keeps_booked_duration(self, booking_service, stored_business, stored_service, db_session):
        appointment = booking_service.create_appointment(stored_business.id, booking_request(stored_service), NOW)
        stored_service.duration = 90
        db_session.commit()

        moved = booking_service.reschedule_appointment(
            stored_business.id, appointment.id,
            AppointmentReschedule(date=NEXT_TUESDAY, start_time="14:00"),
            NOW,
        )
        assert moved.end_time - moved.start_time == timedelta(minutes=60)

    def test_terminal_appointment_cannot_move(self, booking_service, stored_business, stored_service):
        appointment = booking_service.create_appointment(stored_business.id, booking_request(stored_service), NOW)
        booking_service.cancel_appointment(stored_business.id, appointment.id, NOW)

        with pytest.raises(InvalidTransitionError):
            booking_service.reschedule_appointment(
                stored_business.id, appointment.id,
                AppointmentReschedule(date=NEXT_TUESDAY, start_time="10:00"),
                NOW,
            )

    def test_reschedule_to_closed_day(self, booking_service, stored_business, stored_service):
        appointment = booking_service.create_appointment(stored_business.id, booking_request(stored_service), NOW)

        with pytest.raises(ClosedError):
            booking_service.reschedule_appointment(
                stored_business.id, appointment.id,
                AppointmentReschedule(date=NEXT_SATURDAY, start_time="10:00", skip_conflict_check=True),
                NOW,
            )

    def test_same_time_succeeds_inside_lead_time(self, booking_service, stored_business, stored_service):
        appointment = booking_service.create_appointment(stored_business.id, booking_request(stored_service), NOW)
        half_hour_before = utc(NEXT_MONDAY, 9, 30)

        unchanged = booking_service.reschedule_appointment(
            stored_business.id, appointment.id,
            AppointmentReschedule(date=NEXT_MONDAY, start_time="10:00"),
            half_hour_before,
        )

        assert unchanged.start_time == utc(NEXT_MONDAY, 10)
        assert unchanged.rescheduled_from is None
        assert [event.event_type for event in unchanged.events] == ["created"]

        with pytest.raises(TooSoonError):
            booking_service.reschedule_appointment(
                stored_business.id, appointment.id,
                AppointmentReschedule(date=NEXT_MONDAY, start_time="10:15"),
                half_hour_before,
            )


class TestBusinessDefaults:
    def test_timezone_defaults_to_configured_zone(self, db_session, monkeypatch):
        monkeypatch.setattr(get_settings(), "DEFAULT_TIMEZONE", "America/New_York")
        business = Business(name="No Zone Yet")
        db_session.add(business)
        db_session.commit()

        assert business.timezone == "America/New_York"
