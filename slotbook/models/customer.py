# slotbook/models/customer.py
from sqlalchemy import Column, String, Integer, Numeric, ForeignKey, UniqueConstraint, Uuid
import uuid

from slotbook.models.base import Base, UTCDateTime, utcnow


class Customer(Base):
    """A business's customer with booking aggregates"""
    __tablename__ = "customers"
    __table_args__ = (
        UniqueConstraint("business_id", "email", name="uq_customers_business_email"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid(as_uuid=True), ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)

    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=True)

    total_bookings = Column(Integer, default=0, nullable=False)
    completed_bookings = Column(Integer, default=0, nullable=False)
    cancelled_bookings = Column(Integer, default=0, nullable=False)
    no_show_count = Column(Integer, default=0, nullable=False)
    total_spent = Column(Numeric(10, 2), default=0, nullable=False)

    first_booking_at = Column(UTCDateTime, nullable=True)
    last_booking_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, default=utcnow)

    def __repr__(self):
        return f"<Customer(id={self.id}, business_id={self.business_id})>"
