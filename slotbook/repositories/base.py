# slotbook/repositories/base.py
"""
Store interface consumed by the booking services.

Every booking-affecting write runs inside ``atomic()`` after
``lock_business()``, so the read of existing appointments, the conflict
check and the insert/update form one unit of work.
"""
from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from slotbook.models import Appointment, AppointmentEvent, AppointmentStatus, Business, Customer, Service


class AppointmentRepository(ABC):

    @abstractmethod
    def atomic(self) -> AbstractContextManager:
        """Unit of work: commit on success, roll back and re-raise on error. Nests."""

    @abstractmethod
    def lock_business(self, business_id: UUID) -> Optional[Business]:
        """Serialise booking writers for one business until the unit of work ends"""

    @abstractmethod
    def find_business(self, business_id: UUID) -> Optional[Business]:
        ...

    @abstractmethod
    def find_service(self, business_id: UUID, service_id: UUID) -> Optional[Service]:
        ...

    @abstractmethod
    def find_customer(self, business_id: UUID, customer_id: UUID) -> Optional[Customer]:
        ...

    @abstractmethod
    def find_or_create_customer(self, business_id: UUID, name: str, email: str,
                                phone: Optional[str] = None) -> Customer:
        ...

    @abstractmethod
    def find_appointment(self, business_id: UUID, appointment_id: UUID) -> Optional[Appointment]:
        ...

    @abstractmethod
    def find_appointments_in_range(self, business_id: UUID, start: datetime, end: datetime,
                                   statuses: Optional[Iterable[AppointmentStatus]] = None) -> List[Appointment]:
        """Appointments whose ``[start_time, end_time)`` overlaps ``[start, end)``"""

    @abstractmethod
    def find_series(self, business_id: UUID, series_id: UUID) -> List[Appointment]:
        """Series members ordered by start time"""

    @abstractmethod
    def create_appointment(self, **fields: Any) -> Appointment:
        ...

    @abstractmethod
    def update_appointment_status(self, appointment: Appointment, status: AppointmentStatus,
                                  **fields: Any) -> Appointment:
        """Set the status (recording ``previous_status``) plus any extra columns"""

    @abstractmethod
    def update_appointment_times(self, appointment: Appointment, start_time: datetime, end_time: datetime,
                                 **fields: Any) -> Appointment:
        ...

    @abstractmethod
    def record_event(self, appointment: Appointment, event_type: str,
                     from_status: Optional[AppointmentStatus] = None,
                     to_status: Optional[AppointmentStatus] = None,
                     details: Optional[Dict[str, Any]] = None) -> AppointmentEvent:
        ...
