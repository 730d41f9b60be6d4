"""
Availability Schemas

Pydantic models for per-day calendars and stay checks.
"""

from datetime import date
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel


class BookingSummaryResponse(BaseModel):
    id: str
    confirmation_id: str
    check_in_date: date
    check_out_date: date

    class Config:
        from_attributes = True


class CalendarDayResponse(BaseModel):
    """Schema for a single day of a room calendar"""
    date: date
    available: bool
    blocked: bool
    price: Decimal
    source: str
    booking: Optional[BookingSummaryResponse] = None
    external_booking_id: Optional[str] = None

    class Config:
        from_attributes = True


class AvailabilitySummary(BaseModel):
    total_days: int
    available_days: int
    blocked_days: int


class RoomAvailabilityResponse(BaseModel):
    room_id: str
    room_slug: str
    room_name: str
    currency: str
    start_date: date
    end_date: date
    days: List[CalendarDayResponse]
    summary: AvailabilitySummary


class RoomCheckResponse(BaseModel):
    room_id: str
    start_date: date
    end_date: date
    available: bool
    conflicting_bookings: List[BookingSummaryResponse]
    blocked_days: List[CalendarDayResponse]

    class Config:
        from_attributes = True


class BulkAvailabilityResponse(BaseModel):
    start_date: date
    end_date: date
    rooms: List[RoomCheckResponse]
    available_room_ids: List[str]
