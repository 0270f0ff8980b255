# ============================================================================
# slotbook/api/v1/availability.py
# Availability endpoints - thin HTTP layer over AvailabilityService
# ============================================================================
from datetime import date, datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query

from slotbook.api.dependencies import get_availability_service, get_now
from slotbook.scheduling.time_window import parse_time
from slotbook.services.availability.availability_service import AvailabilityService

router = APIRouter(prefix="/businesses/{business_id}/availability", tags=["availability"])


@router.get("")
async def get_day_availability(
        business_id: UUID = Path(..., description="The business ID"),
        service_id: UUID = Query(..., description="Service to book"),
        date: date = Query(..., description="Calendar date (YYYY-MM-DD)"),
        service: AvailabilityService = Depends(get_availability_service),
        now: datetime = Depends(get_now)
):
    """Annotated slots for one service on one date."""
    day = service.get_day_availability(business_id, service_id, date, now)
    return {
        "available": day.available_count > 0,
        "day_info": day.to_dict(include_slots=False),
        "slots": [slot.to_dict() for slot in day.slots],
    }


@router.get("/range")
async def get_availability_range(
        business_id: UUID = Path(..., description="The business ID"),
        service_id: UUID = Query(..., description="Service to book"),
        start_date: date = Query(..., description="First date (inclusive)"),
        end_date: date = Query(..., description="Last date (inclusive)"),
        include_slots: bool = Query(True, description="Include per-slot detail"),
        service: AvailabilityService = Depends(get_availability_service),
        now: datetime = Depends(get_now)
):
    days, summary = service.get_availability_range(business_id, service_id, start_date, end_date, now)
    return {
        "days": [day.to_dict(include_slots=include_slots) for day in days],
        "summary": summary,
    }


@router.get("/next")
async def get_next_available(
        business_id: UUID = Path(..., description="The business ID"),
        service_id: UUID = Query(..., description="Service to book"),
        preferred_time: Optional[str] = Query(None, description="Preferred start time (HH:MM)"),
        days: Optional[int] = Query(None, ge=1, le=366, description="How many days ahead to search"),
        service: AvailabilityService = Depends(get_availability_service),
        now: datetime = Depends(get_now)
):
    """Earliest day with an open slot, picking the slot closest to the preferred time."""
    if preferred_time is not None:
        preferred_time = parse_time(preferred_time)
    found = service.find_next_available(business_id, service_id, now, preferred_time=preferred_time, days=days)
    return {
        "available": found is not None,
        "next_available": found.to_dict() if found else None,
    }


@router.get("/dates")
async def get_next_available_dates(
        business_id: UUID = Path(..., description="The business ID"),
        service_id: UUID = Query(..., description="Service to book"),
        count: int = Query(7, ge=1, le=60, description="Number of dates to return"),
        service: AvailabilityService = Depends(get_availability_service),
        now: datetime = Depends(get_now)
):
    days = service.get_next_available_dates(business_id, service_id, now, count)
    return {"dates": [day.to_dict(include_slots=False) for day in days]}


@router.get("/around")
async def get_slots_around_time(
        business_id: UUID = Path(..., description="The business ID"),
        service_id: UUID = Query(..., description="Service to book"),
        date: date = Query(..., description="Calendar date (YYYY-MM-DD)"),
        around_time: str = Query(..., description="Centre time (HH:MM)"),
        range_minutes: int = Query(60, ge=0, le=720, description="Minutes either side"),
        service: AvailabilityService = Depends(get_availability_service),
        now: datetime = Depends(get_now)
):
    day, slots = service.get_slots_around(business_id, service_id, date, parse_time(around_time), now, range_minutes)
    return {
        "available": any(slot.available for slot in slots),
        "day_info": day.to_dict(include_slots=False),
        "slots": [slot.to_dict() for slot in slots],
    }


@router.get("/peak-hours")
async def get_peak_hours(
        business_id: UUID = Path(..., description="The business ID"),
        start_date: date = Query(..., description="First date (inclusive)"),
        end_date: date = Query(..., description="Last date (inclusive)"),
        service: AvailabilityService = Depends(get_availability_service)
):
    """Booking counts per local hour of day, busiest first."""
    return {"peak_hours": service.get_peak_hours(business_id, start_date, end_date)}
