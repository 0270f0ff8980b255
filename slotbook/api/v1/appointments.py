# ============================================================================
# slotbook/api/v1/appointments.py
# Appointment endpoints - thin HTTP layer
# ============================================================================
from datetime import date, datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status as http_status
from sqlalchemy.orm import Session

from slotbook.api.dependencies import (
    get_availability_service,
    get_booking_service,
    get_multi_day_service,
    get_now,
)
from slotbook.config.database import get_db
from slotbook.core.exceptions import NotFoundError
from slotbook.models import AppointmentStatus
from slotbook.schemas.appointment import (
    AppointmentCancel,
    AppointmentCreate,
    AppointmentReschedule,
    ConflictCheckRequest,
    SeriesCancel,
)
from slotbook.schemas.multi_day import MultiDayAppointmentRequest
from slotbook.services.appointment.appointment_query_service import AppointmentQueryService
from slotbook.services.appointment.booking_service import BookingService
from slotbook.services.appointment.multi_day_service import MultiDayBookingService
from slotbook.services.availability.availability_service import AvailabilityService

router = APIRouter(prefix="/businesses/{business_id}/appointments", tags=["appointments"])

serialize = AppointmentQueryService.serialize_appointment


@router.post("/check-conflicts")
async def check_conflicts(
        request: ConflictCheckRequest,
        business_id: UUID = Path(..., description="The business ID"),
        service: AvailabilityService = Depends(get_availability_service),
        now: datetime = Depends(get_now)
):
    """
    Check whether a time can be booked.
    Reports closures, booking-window violations and clashing appointments separately.
    """
    report = service.check_conflicts(
        business_id,
        request.service_id,
        request.date,
        request.start_time,
        now,
        duration=request.duration,
        buffer_time=request.buffer_time,
        exclude_appointment_id=request.exclude_appointment_id,
    )
    return report.to_dict()


@router.post("", status_code=http_status.HTTP_201_CREATED)
async def create_appointment(
        request: AppointmentCreate,
        business_id: UUID = Path(..., description="The business ID"),
        service: BookingService = Depends(get_booking_service),
        now: datetime = Depends(get_now)
):
    appointment = service.create_appointment(business_id, request, now)
    return {"success": True, "appointment": serialize(appointment, detailed=True)}


@router.get("")
async def list_appointments(
        business_id: UUID = Path(..., description="The business ID"),
        start_date: Optional[date] = Query(None, description="Filter appointments on or after this date"),
        end_date: Optional[date] = Query(None, description="Filter appointments on or before this date"),
        status: Optional[AppointmentStatus] = Query(None, description="Filter by status"),
        service_id: Optional[UUID] = Query(None, description="Filter by service"),
        customer_email: Optional[str] = Query(None, description="Filter by customer email"),
        skip: int = Query(0, ge=0, description="Number of records to skip"),
        limit: int = Query(50, ge=1, le=100, description="Number of records to return"),
        db: Session = Depends(get_db)
):
    return AppointmentQueryService.list_appointments(
        db=db,
        business_id=business_id,
        start_date=start_date,
        end_date=end_date,
        status=status,
        service_id=service_id,
        customer_email=customer_email,
        skip=skip,
        limit=limit
    )


@router.get("/stats")
async def get_appointment_stats(
        business_id: UUID = Path(..., description="The business ID"),
        start_date: Optional[date] = Query(None, description="Start of the period"),
        end_date: Optional[date] = Query(None, description="End of the period"),
        db: Session = Depends(get_db)
):
    return AppointmentQueryService.get_appointment_stats(
        db=db,
        business_id=business_id,
        start_date=start_date,
        end_date=end_date
    )


@router.post("/multi-day")
async def create_multi_day_appointment(
        request: MultiDayAppointmentRequest,
        business_id: UUID = Path(..., description="The business ID"),
        service: MultiDayBookingService = Depends(get_multi_day_service),
        now: datetime = Depends(get_now)
):
    """
    Book a series of sessions from a consecutive, weekly or custom pattern.
    Returns per-date failures; nothing is created unless allow_partial is set
    or every session is free.
    """
    result = service.create_multi_day_appointment(business_id, request, now)
    return MultiDayBookingService.serialize_result(result, serialize)


@router.get("/{appointment_id}")
async def get_appointment(
        business_id: UUID = Path(..., description="The business ID"),
        appointment_id: UUID = Path(..., description="The appointment ID"),
        db: Session = Depends(get_db)
):
    result = AppointmentQueryService.get_appointment_by_id(
        db=db,
        business_id=business_id,
        appointment_id=appointment_id
    )

    if not result:
        raise NotFoundError("Appointment", appointment_id)

    return result


@router.post("/{appointment_id}/confirm")
async def confirm_appointment(
        business_id: UUID = Path(..., description="The business ID"),
        appointment_id: UUID = Path(..., description="The appointment ID"),
        service: BookingService = Depends(get_booking_service),
        now: datetime = Depends(get_now)
):
    appointment = service.confirm_appointment(business_id, appointment_id, now)
    return {"success": True, "appointment": serialize(appointment)}


@router.post("/{appointment_id}/cancel")
async def cancel_appointment(
        business_id: UUID = Path(..., description="The business ID"),
        appointment_id: UUID = Path(..., description="The appointment ID"),
        request: Optional[AppointmentCancel] = None,
        service: BookingService = Depends(get_booking_service),
        now: datetime = Depends(get_now)
):
    """Cancel an appointment. Cancelling an already-cancelled appointment succeeds."""
    request = request or AppointmentCancel()
    appointment = service.cancel_appointment(business_id, appointment_id, now, request.source, request.reason)
    return {"success": True, "appointment": serialize(appointment)}


@router.post("/{appointment_id}/reschedule")
async def reschedule_appointment(
        request: AppointmentReschedule,
        business_id: UUID = Path(..., description="The business ID"),
        appointment_id: UUID = Path(..., description="The appointment ID"),
        service: BookingService = Depends(get_booking_service),
        now: datetime = Depends(get_now)
):
    appointment = service.reschedule_appointment(business_id, appointment_id, request, now)
    return {"success": True, "appointment": serialize(appointment, detailed=True)}


@router.post("/{appointment_id}/no-show")
async def mark_no_show(
        business_id: UUID = Path(..., description="The business ID"),
        appointment_id: UUID = Path(..., description="The appointment ID"),
        service: BookingService = Depends(get_booking_service),
        now: datetime = Depends(get_now)
):
    appointment = service.mark_no_show(business_id, appointment_id, now)
    return {"success": True, "appointment": serialize(appointment)}


@router.post("/{appointment_id}/complete")
async def complete_appointment(
        business_id: UUID = Path(..., description="The business ID"),
        appointment_id: UUID = Path(..., description="The appointment ID"),
        service: BookingService = Depends(get_booking_service),
        now: datetime = Depends(get_now)
):
    appointment = service.complete_appointment(business_id, appointment_id, now)
    return {"success": True, "appointment": serialize(appointment)}


@router.get("/{appointment_id}/series")
async def get_appointment_series(
        business_id: UUID = Path(..., description="The business ID"),
        appointment_id: UUID = Path(..., description="Any appointment in the series"),
        service: MultiDayBookingService = Depends(get_multi_day_service)
):
    members = service.get_appointment_series(business_id, appointment_id)
    return {
        "series_id": str(members[0].series_id) if members[0].series_id else None,
        "pattern": members[0].series_pattern,
        "total": len(members),
        "appointments": [serialize(member) for member in members],
    }


@router.post("/{appointment_id}/series/cancel")
async def cancel_appointment_series(
        business_id: UUID = Path(..., description="The business ID"),
        appointment_id: UUID = Path(..., description="Any appointment in the series"),
        request: Optional[SeriesCancel] = None,
        service: MultiDayBookingService = Depends(get_multi_day_service),
        now: datetime = Depends(get_now)
):
    request = request or SeriesCancel()
    cancelled = service.cancel_appointment_series(business_id, appointment_id, now, request.source, request.reason)
    return {"success": True, "cancelled": cancelled}
