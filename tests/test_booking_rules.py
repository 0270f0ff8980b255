"""Tests for BookingRules parsing and service overrides."""
import pytest
from pydantic import ValidationError

from slotbook.core.exceptions import BookingValidationError
from slotbook.schemas.booking_rules import BookingRules, parse_custom_availability

from tests.factories import make_business, make_service


class TestBookingRulesParsing:
    def test_defaults_come_from_settings(self, settings):
        rules = BookingRules.from_settings_blob(None, settings)
        assert rules.slot_interval == settings.DEFAULT_SLOT_INTERVAL_MINUTES
        assert rules.advance_booking_days == settings.DEFAULT_ADVANCE_BOOKING_DAYS
        assert rules.same_day_booking is True
        assert rules.same_day_lead_time == 60
        assert rules.buffer_time == 0

    def test_camel_case_keys(self, settings):
        rules = BookingRules.from_settings_blob(
            {"slotInterval": 30, "advanceBookingDays": 14, "sameDayBooking": False, "requireApproval": True},
            settings,
        )
        assert rules.slot_interval == 30
        assert rules.advance_booking_days == 14
        assert rules.same_day_booking is False
        assert rules.requires_approval is True

    def test_booking_section_overrides_top_level(self, settings):
        rules = BookingRules.from_settings_blob(
            {"slot_interval": 15, "booking": {"slot_interval": 45}}, settings
        )
        assert rules.slot_interval == 45

    def test_unknown_keys_ignored(self, settings):
        rules = BookingRules.from_settings_blob({"theme": "dark", "booking": {"colour": "red"}}, settings)
        assert rules == BookingRules.defaults(settings)

    def test_invalid_values_raise(self, settings):
        with pytest.raises(BookingValidationError):
            BookingRules.from_settings_blob({"booking": {"slotInterval": 0}}, settings)
        with pytest.raises(BookingValidationError):
            BookingRules.from_settings_blob({"booking": {"advanceBookingDays": "soon"}}, settings)

    def test_rules_are_immutable(self, settings):
        rules = BookingRules.defaults(settings)
        with pytest.raises(ValidationError):
            rules.slot_interval = 5


class TestServiceOverrides:
    def test_service_buffer_and_window(self, settings):
        business = make_business()
        service = make_service(business, buffer_time=20, max_advance_booking_days=7, min_advance_hours=2)
        rules = BookingRules.for_service(business, service, settings)
        assert rules.buffer_time == 20
        assert rules.advance_booking_days == 7
        assert rules.min_advance_hours == 2
        assert rules.same_day_booking is True

    def test_null_service_buffer_falls_back_to_business(self, settings):
        business = make_business(settings={"booking": {"bufferTime": 10}})
        service = make_service(business, buffer_time=None)
        assert BookingRules.for_service(business, service, settings).buffer_time == 10

    def test_unlimited_advance_days_is_capped(self, settings):
        business = make_business()
        service = make_service(business, max_advance_booking_days=-1)
        rules = BookingRules.for_service(business, service, settings)
        assert rules.advance_booking_days == settings.UNLIMITED_ADVANCE_DAYS

    def test_a_day_of_notice_disables_same_day_booking(self, settings):
        business = make_business()
        service = make_service(business, min_advance_hours=24)
        assert BookingRules.for_service(business, service, settings).same_day_booking is False

    def test_service_approval_flag(self, settings):
        business = make_business()
        service = make_service(business, requires_approval=True)
        assert BookingRules.for_service(business, service, settings).requires_approval is True


class TestCustomAvailability:
    def test_day_names_map_to_sunday_based_indexes(self):
        parsed = parse_custom_availability({
            "monday": {"open": "10:00", "close": "14:00"},
            "Sunday": {"open": "12:00", "close": "16:00"},
        })
        assert set(parsed) == {0, 1}
        assert parsed[1].open == "10:00"

    def test_numeric_keys(self):
        assert parse_custom_availability({"3": {"open": "08:00", "close": "12:00"}})[3].close == "12:00"

    def test_invalid_entries(self):
        with pytest.raises(BookingValidationError):
            parse_custom_availability({"funday": {"open": "10:00", "close": "14:00"}})
        with pytest.raises(BookingValidationError):
            parse_custom_availability({"monday": {"open": "10am", "close": "14:00"}})
