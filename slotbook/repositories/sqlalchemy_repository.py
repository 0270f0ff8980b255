# slotbook/repositories/sqlalchemy_repository.py
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from slotbook.models import Appointment, AppointmentEvent, AppointmentStatus, Business, Customer, Service
from slotbook.repositories.base import AppointmentRepository

logger = logging.getLogger(__name__)


class SqlAlchemyAppointmentRepository(AppointmentRepository):
    """Repository over a SQLAlchemy session.

    The session is owned by the caller (``get_db``); this class only
    decides when to commit or roll back.
    """

    def __init__(self, db: Session):
        self.db = db
        self._depth = 0

    @contextmanager
    def atomic(self):
        self._depth += 1
        try:
            yield self
            if self._depth == 1:
                self.db.commit()
        except Exception:
            if self._depth == 1:
                logger.warning("Rolling back booking transaction")
                self.db.rollback()
            raise
        finally:
            self._depth -= 1

    def lock_business(self, business_id: UUID) -> Optional[Business]:
        # Row lock on PostgreSQL; SQLite serialises writers on its own
        return (
            self.db.query(Business)
            .filter(Business.id == business_id)
            .with_for_update()
            .first()
        )

    def find_business(self, business_id: UUID) -> Optional[Business]:
        return self.db.query(Business).filter(Business.id == business_id).first()

    def find_service(self, business_id: UUID, service_id: UUID) -> Optional[Service]:
        return self.db.query(Service).filter(
            Service.id == service_id,
            Service.business_id == business_id,
        ).first()

    def find_customer(self, business_id: UUID, customer_id: UUID) -> Optional[Customer]:
        return self.db.query(Customer).filter(
            Customer.id == customer_id,
            Customer.business_id == business_id,
        ).first()

    def find_or_create_customer(self, business_id: UUID, name: str, email: str,
                                phone: Optional[str] = None) -> Customer:
        email = email.lower()
        customer = self.db.query(Customer).filter(
            Customer.business_id == business_id,
            Customer.email == email,
        ).first()
        if customer:
            return customer

        customer = Customer(business_id=business_id, name=name, email=email, phone=phone)
        self.db.add(customer)
        self.db.flush()
        logger.info(f"Created customer {customer.id} for business {business_id}")
        return customer

    def find_appointment(self, business_id: UUID, appointment_id: UUID) -> Optional[Appointment]:
        return self.db.query(Appointment).filter(
            Appointment.id == appointment_id,
            Appointment.business_id == business_id,
        ).first()

    def find_appointments_in_range(self, business_id: UUID, start: datetime, end: datetime,
                                   statuses: Optional[Iterable[AppointmentStatus]] = None) -> List[Appointment]:
        query = (
            self.db.query(Appointment)
            .options(joinedload(Appointment.service))
            .filter(
                Appointment.business_id == business_id,
                Appointment.start_time < end,
                Appointment.end_time > start,
            )
        )
        if statuses is not None:
            query = query.filter(Appointment.status.in_(list(statuses)))
        return query.order_by(Appointment.start_time.asc()).all()

    def find_series(self, business_id: UUID, series_id: UUID) -> List[Appointment]:
        return (
            self.db.query(Appointment)
            .filter(
                Appointment.business_id == business_id,
                Appointment.series_id == series_id,
            )
            .order_by(Appointment.start_time.asc())
            .all()
        )

    def create_appointment(self, **fields: Any) -> Appointment:
        appointment = Appointment(**fields)
        self.db.add(appointment)
        self.db.flush()
        return appointment

    def update_appointment_status(self, appointment: Appointment, status: AppointmentStatus,
                                  **fields: Any) -> Appointment:
        appointment.previous_status = appointment.status
        appointment.status = status
        for key, value in fields.items():
            setattr(appointment, key, value)
        self.db.flush()
        return appointment

    def update_appointment_times(self, appointment: Appointment, start_time: datetime, end_time: datetime,
                                 **fields: Any) -> Appointment:
        appointment.start_time = start_time
        appointment.end_time = end_time
        for key, value in fields.items():
            setattr(appointment, key, value)
        self.db.flush()
        return appointment

    def record_event(self, appointment: Appointment, event_type: str,
                     from_status: Optional[AppointmentStatus] = None,
                     to_status: Optional[AppointmentStatus] = None,
                     details: Optional[Dict[str, Any]] = None) -> AppointmentEvent:
        event = AppointmentEvent(
            appointment_id=appointment.id,
            event_type=event_type,
            from_status=getattr(from_status, "value", from_status),
            to_status=getattr(to_status, "value", to_status),
            details=details or {},
        )
        self.db.add(event)
        self.db.flush()
        return event
