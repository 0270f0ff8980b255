# slotbook/models/__init__.py
from .base import Base, UTCDateTime
from .business import Business, BusinessHours, SpecialDate
from .service import Service
from .customer import Customer
from .appointment import Appointment, AppointmentEvent, AppointmentStatus, CancellationSource

__all__ = [
    "Base",
    "UTCDateTime",
    "Business",
    "BusinessHours",
    "SpecialDate",
    "Service",
    "Customer",
    "Appointment",
    "AppointmentEvent",
    "AppointmentStatus",
    "CancellationSource",
]
