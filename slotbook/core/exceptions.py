# slotbook/core/exceptions.py
"""
Typed booking errors and their HTTP mapping.

Window errors and conflicts are outcomes the caller recovers from by
re-prompting the user. NotFound and InvalidTransition point at a
programming or data-integrity problem.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class BookingError(Exception):
    """Base class for all scheduling errors"""

    code = "booking_error"
    http_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        data = {"code": self.code, "message": self.message}
        if self.details:
            data["details"] = self.details
        return data


class NotFoundError(BookingError):
    code = "not_found"
    http_status = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} not found", {"entity": entity, "id": str(entity_id)})
        self.entity = entity
        self.entity_id = entity_id


class BookingValidationError(BookingError):
    code = "validation_error"
    http_status = 422  # unprocessable


class BookingWindowError(BookingError):
    """The requested time cannot be booked, independent of other bookings"""

    http_status = 422  # unprocessable


class ClosedError(BookingWindowError):
    code = "closed"


class TooSoonError(BookingWindowError):
    code = "too_soon"


class TooFarAdvanceError(BookingWindowError):
    code = "too_far_advance"


class ConflictError(BookingError):
    code = "conflict"
    http_status = status.HTTP_409_CONFLICT

    def __init__(self, message: str, conflicts: Optional[List[Any]] = None):
        super().__init__(message)
        self.conflicts = list(conflicts or [])

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["conflicts"] = [conflict.to_dict() for conflict in self.conflicts]
        return data


class InvalidTransitionError(BookingError):
    code = "invalid_transition"
    http_status = status.HTTP_409_CONFLICT

    def __init__(self, current: Any, target: Any, message: Optional[str] = None):
        current_value = getattr(current, "value", current)
        target_value = getattr(target, "value", target)
        super().__init__(
            message or f"Cannot change status from {current_value} to {target_value}",
            {"current": current_value, "target": target_value},
        )
        self.current = current
        self.target = target


# Slot / validation reason codes -> error raised by the booking services
REASON_ERRORS = {
    "special_closed": ClosedError,
    "business_closed": ClosedError,
    "no_hours_configured": ClosedError,
    "service_closed": ClosedError,
    "service_day_excluded": ClosedError,
    "outside_hours": ClosedError,
    "nonexistent_time": ClosedError,
    "past": TooSoonError,
    "same_day_lead_time": TooSoonError,
    "min_notice": TooSoonError,
    "too_far_advance": TooFarAdvanceError,
}

REASON_MESSAGES = {
    "special_closed": "The business is closed on this date",
    "business_closed": "The business is closed on this day",
    "no_hours_configured": "No opening hours are configured for this day",
    "service_closed": "This service is not offered on this day",
    "service_day_excluded": "This service is not offered on this day",
    "outside_hours": "The requested time is outside opening hours",
    "nonexistent_time": "This time is skipped by the clock change on this date",
    "past": "This time has already passed",
    "same_day_lead_time": "Not enough notice for a same-day booking",
    "min_notice": "This service requires more advance notice",
    "too_far_advance": "This date is too far in advance",
    "booked": "This slot is already booked",
    "buffer": "This slot is too close to another appointment",
}


def error_for_reason(reason: str) -> BookingWindowError:
    """Build the window error matching a validation reason code"""
    error_class = REASON_ERRORS.get(reason, BookingWindowError)
    return error_class(REASON_MESSAGES.get(reason, "Slot not available"), {"reason": reason})


async def booking_error_handler(request: Request, exc: BookingError):
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    business_id = getattr(request.state, "business_id", None) or "-"
    if isinstance(exc, (NotFoundError, InvalidTransitionError)):
        logger.warning(f"{exc.code}: {exc.message} (business={business_id}, correlation_id={correlation_id})")
    else:
        logger.info(f"{exc.code}: {exc.message} (business={business_id}, correlation_id={correlation_id})")

    return JSONResponse(
        status_code=exc.http_status,
        content={"success": False, "error": exc.to_dict()},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BookingError, booking_error_handler)
