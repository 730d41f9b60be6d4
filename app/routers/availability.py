"""
Availability API Router

Per-day room calendars and stay availability checks.
"""

from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.room import Room
from ..services.availability_service import AvailabilityService, CalendarDay, summarize
from ..schemas.availability import (
    RoomAvailabilityResponse,
    RoomCheckResponse,
    BulkAvailabilityResponse,
)

router = APIRouter(prefix="/api", tags=["Availability"])


def to_availability_response(room: Room, days: List[CalendarDay]) -> RoomAvailabilityResponse:
    return RoomAvailabilityResponse(
        room_id=room.id,
        room_slug=room.slug,
        room_name=room.name,
        currency=room.currency or "USD",
        start_date=days[0].date,
        end_date=days[-1].date,
        days=days,
        summary=summarize(days)
    )


@router.get("/rooms/{room_id}/availability", response_model=RoomAvailabilityResponse)
async def get_room_availability(
    room_id: str,
    start_date: date = Query(...),
    end_date: date = Query(..., description="Inclusive"),
    db: Session = Depends(get_db)
):
    """Day-by-day calendar of a room for [start_date, end_date]"""
    service = AvailabilityService(db)
    days = service.get_availability(room_id, start_date, end_date, inclusive_end=True)
    return to_availability_response(service.get_room(room_id), days)


@router.get("/rooms/slug/{slug}/availability", response_model=RoomAvailabilityResponse)
async def get_room_availability_by_slug(
    slug: str,
    start_date: Optional[date] = Query(None, description="Defaults to today"),
    end_date: Optional[date] = Query(None, description="Inclusive"),
    months_ahead: Optional[int] = Query(None, ge=1, le=12),
    db: Session = Depends(get_db)
):
    """Customer-facing calendar of an active room"""
    room, days = AvailabilityService(db).get_availability_by_slug(
        slug, start_date, end_date, months_ahead
    )
    return to_availability_response(room, days)


@router.get("/rooms/{room_id}/availability/check", response_model=RoomCheckResponse)
async def check_room_availability(
    room_id: str,
    check_in: date = Query(...),
    check_out: date = Query(...),
    db: Session = Depends(get_db)
):
    """Whether the stay [check_in, check_out) can be booked"""
    return AvailabilityService(db).check_room(room_id, check_in, check_out)


@router.get("/availability/bulk", response_model=BulkAvailabilityResponse)
async def check_bulk_availability(
    check_in: date = Query(...),
    check_out: date = Query(...),
    room_ids: Optional[List[str]] = Query(None),
    db: Session = Depends(get_db)
):
    """Stay check across all active rooms (or the given ones)"""
    checks = AvailabilityService(db).check_bulk(check_in, check_out, room_ids)
    return BulkAvailabilityResponse(
        start_date=check_in,
        end_date=check_out,
        rooms=checks,
        available_room_ids=[c.room_id for c in checks if c.available]
    )
