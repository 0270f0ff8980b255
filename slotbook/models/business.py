# slotbook/models/business.py
"""
Business model plus the two calendars that describe when it is open:
weekly hours and special-date overrides.
"""
from sqlalchemy import Column, String, Boolean, Date, JSON, Integer, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
import uuid

from slotbook.config.settings import get_settings
from slotbook.models.base import Base, UTCDateTime, utcnow


class Business(Base):
    __tablename__ = "businesses"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    slug = Column(String(100), nullable=True, unique=True)

    # IANA name; immutable for the duration of any computation
    timezone = Column(String(50), nullable=False, default=lambda: get_settings().DEFAULT_TIMEZONE)

    # Loosely typed blob edited by the dashboard. Parsed into BookingRules
    # once at the service boundary, never read key-by-key inside the engine.
    settings = Column(JSON, default=dict)

    business_hours = relationship(
        "BusinessHours",
        back_populates="business",
        cascade="all, delete-orphan",
        order_by="BusinessHours.day_of_week",
    )
    special_dates = relationship(
        "SpecialDate",
        back_populates="business",
        cascade="all, delete-orphan",
        order_by="SpecialDate.date",
    )
    services = relationship("Service", back_populates="business")

    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)
    is_active = Column(Boolean, default=True)

    def __repr__(self):
        return f"<Business(id={self.id}, name={self.name})>"


class BusinessHours(Base):
    __tablename__ = "business_hours"
    __table_args__ = (
        UniqueConstraint("business_id", "day_of_week", name="uq_business_hours_day"),
    )

    id = Column(Integer, primary_key=True)
    business_id = Column(Uuid(as_uuid=True), ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    day_of_week = Column(Integer, nullable=False)  # 0=Sunday, 6=Saturday
    open_time = Column(String(5), nullable=False)  # HH:MM format
    close_time = Column(String(5), nullable=False)  # HH:MM format
    is_closed = Column(Boolean, default=False, nullable=False)

    business = relationship("Business", back_populates="business_hours")

    def __repr__(self):
        return f"<BusinessHours(business_id={self.business_id}, day={self.day_of_week})>"


class SpecialDate(Base):
    """Holiday closures and one-off custom hours"""
    __tablename__ = "special_dates"
    __table_args__ = (
        UniqueConstraint("business_id", "date", name="uq_special_dates_business_date"),
    )

    id = Column(Integer, primary_key=True)
    business_id = Column(Uuid(as_uuid=True), ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    name = Column(String(100), nullable=False, default="Special date")
    is_closed = Column(Boolean, default=True, nullable=False)
    open_time = Column(String(5), nullable=True)
    close_time = Column(String(5), nullable=True)

    # Matches the same month/day every year ("every Dec 25")
    is_recurring = Column(Boolean, default=False, nullable=False)

    business = relationship("Business", back_populates="special_dates")

    def __repr__(self):
        return f"<SpecialDate(business_id={self.business_id}, date={self.date})>"
