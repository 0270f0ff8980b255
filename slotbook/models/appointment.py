# slotbook/models/appointment.py
import enum
import uuid

from sqlalchemy import Column, String, Integer, Numeric, Text, ForeignKey, JSON, Enum, Uuid
from sqlalchemy.orm import relationship

from slotbook.models.base import Base, UTCDateTime, utcnow


class AppointmentStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class CancellationSource(str, enum.Enum):
    CUSTOMER = "CUSTOMER"
    BUSINESS = "BUSINESS"


status_enum = Enum(AppointmentStatus, name="appointment_status")


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # References
    business_id = Column(Uuid(as_uuid=True), ForeignKey("businesses.id"), nullable=False, index=True)
    service_id = Column(Uuid(as_uuid=True), ForeignKey("services.id"), nullable=False)
    customer_id = Column(Uuid(as_uuid=True), ForeignKey("customers.id"), nullable=True)

    # Customer snapshot taken at booking time
    customer_name = Column(String(100), nullable=False)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(20), nullable=True)

    # Absolute instants; end_time == start_time + duration at creation.
    # The service buffer is only applied during conflict checks.
    start_time = Column(UTCDateTime, nullable=False, index=True)
    end_time = Column(UTCDateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    timezone = Column(String(50), nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=True)

    # Status tracking
    status = Column(status_enum, nullable=False, default=AppointmentStatus.CONFIRMED)
    previous_status = Column(status_enum, nullable=True)
    booking_source = Column(String(20), default="website")  # website, dashboard, api
    customer_notes = Column(Text, nullable=True)
    business_notes = Column(Text, nullable=True)

    confirmed_at = Column(UTCDateTime, nullable=True)
    completed_at = Column(UTCDateTime, nullable=True)

    cancelled_at = Column(UTCDateTime, nullable=True)
    cancellation_source = Column(Enum(CancellationSource, name="cancellation_source"), nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    rescheduled_from = Column(UTCDateTime, nullable=True)
    rescheduled_at = Column(UTCDateTime, nullable=True)
    reschedule_reason = Column(Text, nullable=True)

    # Reminders
    reminder_sent_at = Column(UTCDateTime, nullable=True)
    reminder_count = Column(Integer, default=0, nullable=False)

    # Multi-day series
    series_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    series_index = Column(Integer, nullable=True)  # 1-based session number
    series_pattern = Column(JSON, nullable=True)

    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    service = relationship("Service")
    customer = relationship("Customer")
    events = relationship(
        "AppointmentEvent",
        back_populates="appointment",
        cascade="all, delete-orphan",
        order_by="AppointmentEvent.id",
    )

    def __repr__(self):
        return f"<Appointment(id={self.id}, status={self.status}, start={self.start_time})>"


class AppointmentEvent(Base):
    """Audit trail row written for every lifecycle change"""
    __tablename__ = "appointment_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    appointment_id = Column(Uuid(as_uuid=True), ForeignKey("appointments.id", ondelete="CASCADE"),
                            nullable=False, index=True)
    event_type = Column(String(30), nullable=False)  # created, confirmed, rescheduled, cancelled, ...
    from_status = Column(String(20), nullable=True)
    to_status = Column(String(20), nullable=True)
    details = Column(JSON, default=dict)
    created_at = Column(UTCDateTime, default=utcnow)

    appointment = relationship("Appointment", back_populates="events")

    def to_dict(self):
        return {
            "event_type": self.event_type,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "details": self.details or {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
