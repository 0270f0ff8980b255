"""Tests for multi-day pattern expansion."""
from datetime import date

import pytest
from pydantic import TypeAdapter, ValidationError

from slotbook.core.exceptions import BookingValidationError
from slotbook.schemas.multi_day import ConsecutivePattern, CustomPattern, MultiDayPattern, WeeklyPattern
from slotbook.scheduling.patterns import generate_dates, generate_slots
from slotbook.scheduling.time_window import get_zone

MONDAY = date(2026, 3, 9)
WEDNESDAY = date(2026, 3, 11)

pattern_adapter = TypeAdapter(MultiDayPattern)


class TestGenerateDates:
    def test_consecutive(self):
        dates = generate_dates(MONDAY, ConsecutivePattern(days=3))
        assert dates == [date(2026, 3, 9), date(2026, 3, 10), date(2026, 3, 11)]

    def test_consecutive_crosses_weekends_and_months(self):
        dates = generate_dates(date(2026, 2, 27), ConsecutivePattern(days=4))
        assert dates == [date(2026, 2, 27), date(2026, 2, 28), date(2026, 3, 1), date(2026, 3, 2)]

    def test_weekly_from_a_monday(self):
        dates = generate_dates(MONDAY, WeeklyPattern(weekdays=[1, 3], week_count=2))
        assert dates == [date(2026, 3, 9), date(2026, 3, 11), date(2026, 3, 16), date(2026, 3, 18)]

    def test_weekly_skips_days_before_start_in_first_week(self):
        dates = generate_dates(WEDNESDAY, WeeklyPattern(weekdays=[1, 3], week_count=2))
        assert dates == [date(2026, 3, 11), date(2026, 3, 16), date(2026, 3, 18)]

    def test_weekly_weekdays_are_sorted_and_deduplicated(self):
        dates = generate_dates(MONDAY, WeeklyPattern(weekdays=[5, 1, 5], week_count=1))
        assert dates == [date(2026, 3, 9), date(2026, 3, 13)]

    def test_weekly_sunday_belongs_to_the_next_week(self):
        # The week containing Monday 9 March starts on Sunday 8 March
        dates = generate_dates(MONDAY, WeeklyPattern(weekdays=[0], week_count=2))
        assert dates == [date(2026, 3, 15)]

    def test_weekly_with_no_dates_on_or_after_start(self):
        with pytest.raises(BookingValidationError):
            generate_dates(date(2026, 3, 14), WeeklyPattern(weekdays=[1], week_count=1))

    def test_custom_is_sorted_and_deduplicated(self):
        pattern = CustomPattern(dates=[date(2026, 3, 20), date(2026, 3, 9), date(2026, 3, 20)])
        assert generate_dates(MONDAY, pattern) == [date(2026, 3, 9), date(2026, 3, 20)]


class TestPatternParsing:
    def test_discriminated_by_type(self):
        assert isinstance(pattern_adapter.validate_python({"type": "consecutive", "days": 2}), ConsecutivePattern)
        assert isinstance(
            pattern_adapter.validate_python({"type": "weekly", "weeklyDays": [1], "weekCount": 3}), WeeklyPattern
        )
        custom = pattern_adapter.validate_python({"type": "custom", "customDates": ["2026-03-09"]})
        assert custom.dates == [MONDAY]

    @pytest.mark.parametrize("payload", [
        {"type": "consecutive", "days": 0},
        {"type": "weekly", "weekdays": []},
        {"type": "weekly", "weekdays": [7]},
        {"type": "custom", "dates": []},
        {"type": "fortnightly"},
    ])
    def test_invalid_patterns(self, payload):
        with pytest.raises(ValidationError):
            pattern_adapter.validate_python(payload)


class TestGenerateSlots:
    def test_slots_share_the_wall_clock_time(self):
        london = get_zone("Europe/London")
        # Clocks change on 29 March; both sessions still start at 10:00 local
        slots = generate_slots([date(2026, 3, 27), date(2026, 3, 30)], "10:00", 45, london)
        assert [slot.index for slot in slots] == [1, 2]
        for slot in slots:
            local_start, local_end = slot.window.in_zone(london)
            assert local_start.strftime("%H:%M") == "10:00"
            assert local_end.strftime("%H:%M") == "10:45"
        assert slots[0].window.start.hour == 10
        assert slots[1].window.start.hour == 9
