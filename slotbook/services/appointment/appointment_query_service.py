# ============================================================================
# slotbook/services/appointment/appointment_query_service.py
# Read-only appointment listing and statistics
# ============================================================================
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from slotbook.models import Appointment, AppointmentStatus, Business
from slotbook.scheduling.time_window import get_zone, localize


def _day_bounds(business: Optional[Business], start_date: Optional[date], end_date: Optional[date]):
    """Instants bounding whole local days in the business timezone"""
    zone = get_zone(business.timezone if business else "UTC")
    start = localize(start_date, 0, zone) if start_date else None
    end = localize(end_date + timedelta(days=1), 0, zone) if end_date else None
    return start, end


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


class AppointmentQueryService:
    """Service layer for appointment listing and reporting."""

    @staticmethod
    def list_appointments(
            db: Session,
            business_id: UUID,
            start_date: Optional[date] = None,
            end_date: Optional[date] = None,
            status: Optional[AppointmentStatus] = None,
            service_id: Optional[UUID] = None,
            customer_email: Optional[str] = None,
            skip: int = 0,
            limit: int = 50
    ) -> Dict[str, Any]:
        """Get paginated list of appointments with filters."""
        business = db.query(Business).filter(Business.id == business_id).first()
        range_start, range_end = _day_bounds(business, start_date, end_date)

        query = db.query(Appointment).options(joinedload(Appointment.service)).filter(
            Appointment.business_id == business_id
        )

        if range_start:
            query = query.filter(Appointment.start_time >= range_start)
        if range_end:
            query = query.filter(Appointment.start_time < range_end)
        if status:
            query = query.filter(Appointment.status == status)
        if service_id:
            query = query.filter(Appointment.service_id == service_id)
        if customer_email:
            query = query.filter(Appointment.customer_email == customer_email.lower())

        query = query.order_by(Appointment.start_time.asc())
        total = query.count()
        appointments = query.offset(skip).limit(limit).all()

        return {
            "business_id": str(business_id),
            "total_appointments": total,
            "page": {
                "skip": skip,
                "limit": limit,
                "total_pages": (total + limit - 1) // limit if total > 0 else 0
            },
            "filters": {
                "start_date": _iso(start_date),
                "end_date": _iso(end_date),
                "status": status.value if status else None,
                "service_id": str(service_id) if service_id else None,
                "customer_email": customer_email
            },
            "appointments": [AppointmentQueryService.serialize_appointment(appt) for appt in appointments]
        }

    @staticmethod
    def get_appointment_by_id(
            db: Session,
            business_id: UUID,
            appointment_id: UUID
    ) -> Optional[Dict[str, Any]]:
        """Get a single appointment by ID. Returns None if not found."""
        appointment = db.query(Appointment).filter(
            Appointment.id == appointment_id,
            Appointment.business_id == business_id
        ).first()

        if not appointment:
            return None

        return AppointmentQueryService.serialize_appointment(appointment, detailed=True)

    @staticmethod
    def get_appointment_stats(
            db: Session,
            business_id: UUID,
            start_date: Optional[date] = None,
            end_date: Optional[date] = None
    ) -> Dict[str, Any]:
        """Calculate appointment statistics for a business."""
        business = db.query(Business).filter(Business.id == business_id).first()
        range_start, range_end = _day_bounds(business, start_date, end_date)

        query = db.query(Appointment).options(joinedload(Appointment.service)).filter(
            Appointment.business_id == business_id
        )
        if range_start:
            query = query.filter(Appointment.start_time >= range_start)
        if range_end:
            query = query.filter(Appointment.start_time < range_end)

        appointments = query.all()
        period = {"start": _iso(start_date), "end": _iso(end_date)}

        if not appointments:
            return {
                "business_id": str(business_id),
                "period": period,
                "total_appointments": 0,
                "by_status": {},
                "by_service": {},
                "by_source": {},
                "revenue": 0.0,
                "unique_customers": 0,
                "avg_duration_minutes": None
            }

        by_status = {}
        for appt in appointments:
            status = AppointmentStatus(appt.status).value
            by_status[status] = by_status.get(status, 0) + 1

        by_service = {}
        for appt in appointments:
            service = appt.service.name if appt.service else "unknown"
            by_service[service] = by_service.get(service, 0) + 1

        by_source = {}
        for appt in appointments:
            source = appt.booking_source or "unknown"
            by_source[source] = by_source.get(source, 0) + 1

        # Only completed appointments count towards revenue
        revenue = sum(
            (Decimal(appt.total_amount or 0) for appt in appointments
             if appt.status == AppointmentStatus.COMPLETED),
            Decimal(0),
        )

        unique_customers = len(set(
            appt.customer_id or appt.customer_email for appt in appointments
            if appt.customer_id or appt.customer_email
        ))

        durations = [appt.duration_minutes for appt in appointments if appt.duration_minutes]
        avg_duration = sum(durations) / len(durations) if durations else None

        return {
            "business_id": str(business_id),
            "period": period,
            "total_appointments": len(appointments),
            "by_status": by_status,
            "by_service": by_service,
            "by_source": by_source,
            "revenue": float(revenue),
            "unique_customers": unique_customers,
            "avg_duration_minutes": round(avg_duration, 2) if avg_duration else None
        }

    @staticmethod
    def serialize_appointment(appointment: Appointment, detailed: bool = False) -> Dict[str, Any]:
        """Convert Appointment model to dictionary."""
        zone = get_zone(appointment.timezone)
        local_start = appointment.start_time.astimezone(zone)
        local_end = appointment.end_time.astimezone(zone)
        status = AppointmentStatus(appointment.status)

        base = {
            "id": str(appointment.id),
            "business_id": str(appointment.business_id),
            "service_id": str(appointment.service_id),
            "customer_id": str(appointment.customer_id) if appointment.customer_id else None,
            "customer_name": appointment.customer_name,
            "customer_email": appointment.customer_email,
            "customer_phone": appointment.customer_phone,
            "date": local_start.date().isoformat(),
            "start_time": local_start.strftime("%H:%M"),
            "end_time": local_end.strftime("%H:%M"),
            "start": appointment.start_time.isoformat(),
            "end": appointment.end_time.isoformat(),
            "duration_minutes": appointment.duration_minutes,
            "timezone": appointment.timezone,
            "status": status.value,
            "booking_source": appointment.booking_source,
            "series_id": str(appointment.series_id) if appointment.series_id else None,
            "series_index": appointment.series_index,
            "created_at": _iso(appointment.created_at),
            "updated_at": _iso(appointment.updated_at)
        }

        if detailed:
            base.update({
                "previous_status": AppointmentStatus(appointment.previous_status).value
                if appointment.previous_status else None,
                "total_amount": float(appointment.total_amount) if appointment.total_amount is not None else None,
                "customer_notes": appointment.customer_notes,
                "business_notes": appointment.business_notes,
                "confirmed_at": _iso(appointment.confirmed_at),
                "completed_at": _iso(appointment.completed_at),
                "cancelled_at": _iso(appointment.cancelled_at),
                "cancellation_source": appointment.cancellation_source.value
                if appointment.cancellation_source else None,
                "cancellation_reason": appointment.cancellation_reason,
                "rescheduled_from": _iso(appointment.rescheduled_from),
                "rescheduled_at": _iso(appointment.rescheduled_at),
                "reschedule_reason": appointment.reschedule_reason,
                "reminder_sent_at": _iso(appointment.reminder_sent_at),
                "reminder_count": appointment.reminder_count,
                "series_pattern": appointment.series_pattern,
                "service": appointment.service.to_dict() if appointment.service else None,
                "history": [event.to_dict() for event in appointment.events]
            })

        return base
