"""Tests for conflict detection and booking-time validation."""
from datetime import date

from slotbook.models import AppointmentStatus
from slotbook.schemas.booking_rules import BookingRules
from slotbook.scheduling.conflicts import BookedInterval, check_conflicts, find_conflicts, validate_booking_time
from slotbook.scheduling.time_window import TimeWindow, get_zone

from tests.factories import (
    NEXT_MONDAY,
    NEXT_SATURDAY,
    NOW,
    TODAY,
    make_appointment,
    make_business,
    make_service,
    make_special_date,
)

LONDON = get_zone("Europe/London")


def interval(business, service, day, start_time, **kwargs):
    return BookedInterval.from_appointment(make_appointment(business, service, day, start_time, **kwargs))


class TestFindConflicts:
    def test_reports_booked_and_buffer_overlaps(self, business, service):
        existing = [
            interval(business, service, NEXT_MONDAY, "10:00", customer_name="Ada"),
            interval(business, service, NEXT_MONDAY, "12:00", customer_name="Grace"),
        ]
        # 11:00-12:00 touches both bookings; only the buffers make them clash
        candidate = TimeWindow.from_local(NEXT_MONDAY, "11:00", 60, LONDON)
        conflicts = find_conflicts(candidate, 15, existing, LONDON)
        assert [(c.customer_name, c.reason) for c in conflicts] == [("Ada", "buffer"), ("Grace", "buffer")]

    def test_existing_buffer_comes_from_its_own_service(self, business):
        long_buffer = make_service(business, name="Colour", buffer_time=45)
        existing = [interval(business, long_buffer, NEXT_MONDAY, "10:00")]
        candidate = TimeWindow.from_local(NEXT_MONDAY, "11:30", 30, LONDON)
        assert find_conflicts(candidate, 0, existing, LONDON)[0].reason == "buffer"
        later = TimeWindow.from_local(NEXT_MONDAY, "11:45", 30, LONDON)
        assert find_conflicts(later, 0, existing, LONDON) == []

    def test_excluded_appointment_is_ignored(self, business, service):
        booked = interval(business, service, NEXT_MONDAY, "10:00")
        candidate = TimeWindow.from_local(NEXT_MONDAY, "10:00", 60, LONDON)
        assert find_conflicts(candidate, 15, [booked], LONDON, exclude_appointment_id=booked.appointment_id) == []

    def test_non_blocking_statuses_are_ignored(self, business, service):
        existing = [
            interval(business, service, NEXT_MONDAY, "10:00", status=AppointmentStatus.CANCELLED),
            interval(business, service, NEXT_MONDAY, "10:00", status=AppointmentStatus.NO_SHOW),
        ]
        candidate = TimeWindow.from_local(NEXT_MONDAY, "10:00", 60, LONDON)
        assert find_conflicts(candidate, 15, existing, LONDON) == []

    def test_conflict_info_exposes_only_name(self, business, service):
        existing = [interval(business, service, NEXT_MONDAY, "14:00", customer_name="Ada")]
        candidate = TimeWindow.from_local(NEXT_MONDAY, "14:30", 30, LONDON)
        data = find_conflicts(candidate, 0, existing, LONDON)[0].to_dict()
        assert data["start_time"] == "14:00"
        assert data["end_time"] == "15:00"
        assert data["customer_name"] == "Ada"
        assert "customer_email" not in data


class TestValidateBookingTime:
    def test_valid_time(self, business, service, rules):
        assert validate_booking_time(business, service, NEXT_MONDAY, "10:15", 60, rules, NOW) is None

    def test_closed_day(self, business, service, rules):
        assert validate_booking_time(business, service, NEXT_SATURDAY, "10:00", 60, rules, NOW) == "business_closed"

    def test_outside_hours(self, business, service, rules):
        assert validate_booking_time(business, service, NEXT_MONDAY, "08:30", 60, rules, NOW) == "outside_hours"
        assert validate_booking_time(business, service, NEXT_MONDAY, "16:30", 60, rules, NOW) == "outside_hours"

    def test_special_closure(self, service, rules):
        business = make_business(special_dates=[make_special_date(NEXT_MONDAY)])
        assert validate_booking_time(business, service, NEXT_MONDAY, "10:00", 60, rules, NOW) == "special_closed"

    def test_same_day_disabled_is_too_soon_even_when_closed(self, settings):
        business = make_business(hours={}, settings={"booking": {"sameDayBooking": False}})
        service = make_service(business)
        rules = BookingRules.for_service(business, service, settings)
        assert validate_booking_time(business, service, TODAY, "12:00", 60, rules, NOW) == "same_day_lead_time"

    def test_time_skipped_by_clock_change(self, settings):
        business = make_business(hours={0: ("00:00", "04:00")})
        service = make_service(business)
        rules = BookingRules.for_service(business, service, settings)
        spring_forward = date(2026, 3, 29)

        assert validate_booking_time(business, service, spring_forward, "01:30", 60, rules, NOW) == "nonexistent_time"
        assert validate_booking_time(business, service, spring_forward, "02:00", 60, rules, NOW) is None


class TestCheckConflicts:
    def test_available(self, business, service, rules):
        report = check_conflicts(business, service, NEXT_MONDAY, "11:15", [], rules, NOW)
        assert report.available
        assert report.reason is None
        assert report.window.duration_minutes == 60

    def test_buffer_scenario_times(self, business, service, rules):
        existing = [interval(business, service, NEXT_MONDAY, "10:00")]
        results = {
            time_of_day: check_conflicts(business, service, NEXT_MONDAY, time_of_day, existing, rules, NOW)
            for time_of_day in ("10:00", "10:30", "11:00", "11:15")
        }
        assert results["10:00"].reason == "booked"
        assert results["10:30"].reason == "booked"
        assert results["11:00"].reason == "buffer"
        assert results["11:15"].available

    def test_validation_reason_wins_but_conflicts_are_kept(self, business, service, rules):
        existing = [interval(business, service, NEXT_MONDAY, "16:00")]
        report = check_conflicts(business, service, NEXT_MONDAY, "16:30", existing, rules, NOW)
        assert not report.available
        assert report.reason == "outside_hours"
        assert len(report.conflicts) == 1

    def test_explicit_duration_and_buffer(self, business, service, rules):
        existing = [interval(business, service, NEXT_MONDAY, "10:00")]
        report = check_conflicts(business, service, NEXT_MONDAY, "09:30", existing, rules, NOW,
                                 duration=30, buffer_time=0)
        assert report.available

    def test_reschedule_to_own_slot(self, business, service, rules):
        own = interval(business, service, NEXT_MONDAY, "10:00")
        report = check_conflicts(business, service, NEXT_MONDAY, "10:00", [own], rules, NOW,
                                 exclude_appointment_id=own.appointment_id)
        assert report.available

    def test_report_to_dict(self, business, service, rules):
        existing = [interval(business, service, NEXT_MONDAY, "10:00")]
        data = check_conflicts(business, service, NEXT_MONDAY, "10:30", existing, rules, NOW).to_dict()
        assert data["available"] is False
        assert data["reason"] == "booked"
        assert data["conflicts"][0]["start_time"] == "10:00"
