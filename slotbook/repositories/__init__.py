from .base import AppointmentRepository
from .sqlalchemy_repository import SqlAlchemyAppointmentRepository

__all__ = ["AppointmentRepository", "SqlAlchemyAppointmentRepository"]
