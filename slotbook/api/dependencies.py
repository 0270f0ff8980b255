# ============================================================================
# FILE: slotbook/api/dependencies.py
# Service wiring for the scheduling routes
# ============================================================================
from datetime import datetime, timezone

from fastapi import Depends
from sqlalchemy.orm import Session

from slotbook.config.database import get_db
from slotbook.config.settings import Settings, get_settings
from slotbook.repositories.sqlalchemy_repository import SqlAlchemyAppointmentRepository
from slotbook.services.appointment.booking_service import BookingService
from slotbook.services.appointment.multi_day_service import MultiDayBookingService
from slotbook.services.availability.availability_service import AvailabilityService


def get_now() -> datetime:
    """Current instant. Overridden in tests to pin the clock."""
    return datetime.now(timezone.utc)


def get_repository(db: Session = Depends(get_db)) -> SqlAlchemyAppointmentRepository:
    return SqlAlchemyAppointmentRepository(db)


def get_availability_service(
        repository: SqlAlchemyAppointmentRepository = Depends(get_repository),
        settings: Settings = Depends(get_settings),
) -> AvailabilityService:
    return AvailabilityService(repository, settings)


def get_booking_service(
        repository: SqlAlchemyAppointmentRepository = Depends(get_repository),
        settings: Settings = Depends(get_settings),
) -> BookingService:
    return BookingService(repository, settings)


def get_multi_day_service(
        repository: SqlAlchemyAppointmentRepository = Depends(get_repository),
        settings: Settings = Depends(get_settings),
) -> MultiDayBookingService:
    return MultiDayBookingService(repository, settings)
