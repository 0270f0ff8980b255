# slotbook/models/service.py
"""
Service Model - what customers book.
Each service belongs to one business and carries its own duration, buffer
and availability restrictions.
"""
from sqlalchemy import Column, String, Numeric, Integer, ForeignKey, Boolean, JSON, Text, Uuid
from sqlalchemy.orm import relationship
import uuid

from slotbook.models.base import Base, UTCDateTime, utcnow

ALL_DAYS = [0, 1, 2, 3, 4, 5, 6]


class Service(Base):
    __tablename__ = "services"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=True)

    # Minutes. The buffer is appended after the service before the next
    # booking may start; it is never part of the stored appointment interval.
    duration = Column(Integer, nullable=False)
    buffer_time = Column(Integer, nullable=True)

    # Availability restrictions
    use_business_hours = Column(Boolean, default=True, nullable=False)
    available_days = Column(JSON, default=lambda: list(ALL_DAYS))  # 0=Sunday
    custom_availability = Column(JSON, nullable=True)  # {"monday": {"open": "09:00", "close": "13:00"}}

    # Booking window overrides; None falls back to the business rules
    max_advance_booking_days = Column(Integer, nullable=True)  # -1 = unlimited
    min_advance_hours = Column(Integer, nullable=True)
    requires_approval = Column(Boolean, default=False, nullable=False)

    is_active = Column(Boolean, default=True, index=True)

    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    business = relationship("Business", back_populates="services")

    def __repr__(self):
        return f"<Service(id={self.id}, name={self.name}, business_id={self.business_id})>"

    def to_dict(self):
        """Convert to dictionary for API responses"""
        return {
            "id": str(self.id),
            "business_id": str(self.business_id),
            "name": self.name,
            "description": self.description,
            "price": float(self.price) if self.price is not None else None,
            "duration": self.duration,
            "buffer_time": self.buffer_time,
            "use_business_hours": self.use_business_hours,
            "available_days": self.available_days,
            "custom_availability": self.custom_availability,
            "max_advance_booking_days": self.max_advance_booking_days,
            "min_advance_hours": self.min_advance_hours,
            "requires_approval": self.requires_approval,
            "is_active": self.is_active,
        }

