# slotbook/scheduling/rules.py
"""
Availability rule resolution.

Turns weekly hours, special dates and per-service restrictions into the
effective open/closed schedule of one service on one calendar date, and
holds the booking-window policy (lead time, advance limit) that applies to
any individual start time.

Precedence: special dates beat weekly/custom hours; the service's
available_days restriction beats everything.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from zoneinfo import ZoneInfo

from slotbook.schemas.booking_rules import BookingRules, parse_custom_availability
from slotbook.scheduling.time_window import day_of_week, local_date, time_to_minutes

logger = logging.getLogger(__name__)

# Open reasons
BUSINESS_HOURS = "business_hours"
CUSTOM_HOURS = "custom_hours"
SPECIAL_HOURS = "special_hours"

# Closed reasons
SPECIAL_CLOSED = "special_closed"
BUSINESS_CLOSED = "business_closed"
NO_HOURS_CONFIGURED = "no_hours_configured"
SERVICE_CLOSED = "service_closed"
SERVICE_DAY_EXCLUDED = "service_day_excluded"


@dataclass(frozen=True)
class DayRule:
    """Effective schedule of one service on one date"""

    date: date
    day_of_week: int
    is_open: bool
    reason: str
    open_time: Optional[str] = None
    close_time: Optional[str] = None
    special_date_name: Optional[str] = None

    @property
    def open_minutes(self) -> int:
        return time_to_minutes(self.open_time)

    @property
    def close_minutes(self) -> int:
        return time_to_minutes(self.close_time)

    def to_dict(self):
        return {
            "date": self.date.isoformat(),
            "day_of_week": self.day_of_week,
            "is_open": self.is_open,
            "reason": self.reason,
            "open_time": self.open_time,
            "close_time": self.close_time,
            "special_date_name": self.special_date_name,
        }


def find_special_date(special_dates: Iterable, target_date: date):
    """Exact date first, then a recurring entry with the same month and day"""
    special_dates = list(special_dates or [])
    for special in special_dates:
        if special.date == target_date:
            return special
    for special in special_dates:
        if special.is_recurring and (special.date.month, special.date.day) == (target_date.month, target_date.day):
            return special
    return None


def _valid_hours(open_time: Optional[str], close_time: Optional[str]) -> bool:
    if not open_time or not close_time:
        return False
    return time_to_minutes(open_time) < time_to_minutes(close_time)


def resolve_day_rules(business, service, target_date: date) -> DayRule:
    """Effective open/closed schedule for ``service`` on ``target_date``"""
    dow = day_of_week(target_date)
    rule = _resolve_hours(business, service, target_date, dow)

    available_days = getattr(service, "available_days", None) or []
    if available_days and dow not in available_days:
        return DayRule(
            date=target_date,
            day_of_week=dow,
            is_open=False,
            reason=SERVICE_DAY_EXCLUDED,
            special_date_name=rule.special_date_name,
        )

    return rule


def _resolve_hours(business, service, target_date: date, dow: int) -> DayRule:
    special = find_special_date(getattr(business, "special_dates", None), target_date)
    if special is not None:
        if special.is_closed:
            return DayRule(target_date, dow, False, SPECIAL_CLOSED, special_date_name=special.name)
        if _valid_hours(special.open_time, special.close_time):
            return DayRule(
                target_date, dow, True, SPECIAL_HOURS,
                open_time=special.open_time,
                close_time=special.close_time,
                special_date_name=special.name,
            )
        logger.warning(
            f"Special date {special.date} for business {business.id} is open without valid hours; "
            f"falling back to regular hours"
        )

    if service is None or service.use_business_hours:
        hours = next(
            (bh for bh in (business.business_hours or []) if bh.day_of_week == dow),
            None,
        )
        if hours is None:
            return DayRule(target_date, dow, False, NO_HOURS_CONFIGURED)
        if hours.is_closed:
            return DayRule(target_date, dow, False, BUSINESS_CLOSED)
        if not _valid_hours(hours.open_time, hours.close_time):
            logger.warning(f"Business {business.id} has invalid hours for day {dow}")
            return DayRule(target_date, dow, False, NO_HOURS_CONFIGURED)
        return DayRule(target_date, dow, True, BUSINESS_HOURS,
                       open_time=hours.open_time, close_time=hours.close_time)

    custom = parse_custom_availability(service.custom_availability).get(dow)
    if custom is None or custom.closed or not _valid_hours(custom.open, custom.close):
        return DayRule(target_date, dow, False, SERVICE_CLOSED)
    return DayRule(target_date, dow, True, CUSTOM_HOURS, open_time=custom.open, close_time=custom.close)


# ---------------------------------------------------------------------------
# Booking window
# ---------------------------------------------------------------------------

PAST = "past"
SAME_DAY_LEAD_TIME = "same_day_lead_time"
MIN_NOTICE = "min_notice"
TOO_FAR_ADVANCE = "too_far_advance"


def booking_window_violation(start: datetime, target_date: date, rules: BookingRules,
                             now: datetime, zone: ZoneInfo) -> Optional[str]:
    """Reason a start instant may not be booked right now, or None"""
    today = local_date(now, zone)

    if start < now:
        return PAST
    if target_date == today and not rules.same_day_booking:
        return SAME_DAY_LEAD_TIME
    if rules.min_advance_hours and start < now + timedelta(hours=rules.min_advance_hours):
        return MIN_NOTICE
    if start < now + timedelta(minutes=rules.same_day_lead_time):
        return SAME_DAY_LEAD_TIME
    if target_date > today + timedelta(days=rules.advance_booking_days):
        return TOO_FAR_ADVANCE
    return None


def booking_window_bounds(rules: BookingRules, now: datetime, zone: ZoneInfo):
    """First and last calendar dates a customer may book"""
    today = local_date(now, zone)
    first = today if rules.same_day_booking else today + timedelta(days=1)
    return first, today + timedelta(days=rules.advance_booking_days)
