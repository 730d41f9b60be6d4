"""
Availability Service

Builds the day-by-day calendar of a room from three sources:
1. confirmed bookings (highest precedence, source "direct-booking")
2. rows of the availability ledger (manual blocks, external feeds,
   direct rows, price overrides)
3. default: available at the room's base price

Each day gets one DayState; a state only replaces another of lower
precedence. The computation is a pure read into a fresh list.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from enum import IntEnum
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from ..config import settings
from ..models.booking import Booking
from ..models.room import Room, RoomStatus
from ..models.room_availability import RoomAvailability
from ..utils.clock import today
from ..utils.date_range import DateRange
from .conflict_detector import ConflictDetector, blocking_booking_statuses
from .exceptions import InvalidRangeError, NotFoundError
from .pricing_engine import to_money

logger = logging.getLogger(__name__)

DIRECT_BOOKING_SOURCE = "direct-booking"
DEFAULT_SOURCE = "default"


class DayPrecedence(IntEnum):
    DEFAULT = 0
    LEDGER = 1
    BOOKING = 2


@dataclass(frozen=True)
class BookingSummary:
    id: str
    confirmation_id: str
    check_in_date: date
    check_out_date: date


@dataclass(frozen=True)
class DayState:
    """Resolved state of one day, tagged with where it came from"""
    precedence: DayPrecedence
    source: str
    available: bool
    blocked: bool
    price: Decimal
    booking: Optional[BookingSummary] = None
    external_booking_id: Optional[str] = None

    @classmethod
    def default(cls, price: Decimal) -> "DayState":
        return cls(DayPrecedence.DEFAULT, DEFAULT_SOURCE, True, False, price)

    @classmethod
    def from_ledger(cls, row: RoomAvailability, base_price: Decimal) -> "DayState":
        blocked = bool(row.is_blocked)
        available = bool(row.is_available) and not blocked
        price = to_money(row.price_override) if row.price_override is not None else base_price
        return cls(
            DayPrecedence.LEDGER, row.source, available, blocked, price,
            external_booking_id=row.external_booking_id
        )

    @classmethod
    def from_booking(cls, booking: Booking, base_price: Decimal) -> "DayState":
        summary = BookingSummary(
            id=booking.id,
            confirmation_id=booking.confirmation_id,
            check_in_date=booking.check_in_date,
            check_out_date=booking.check_out_date
        )
        return cls(DayPrecedence.BOOKING, DIRECT_BOOKING_SOURCE, False, True, base_price, booking=summary)


@dataclass
class CalendarDay:
    date: date
    available: bool
    blocked: bool
    price: Decimal
    source: str
    booking: Optional[BookingSummary] = None
    external_booking_id: Optional[str] = None


@dataclass
class RoomCheck:
    """Whether a stay range is free, and what is in the way if not"""
    room_id: str
    start_date: date
    end_date: date
    available: bool
    conflicting_bookings: List[BookingSummary] = field(default_factory=list)
    blocked_days: List[CalendarDay] = field(default_factory=list)


class DayStateMap:
    """Per-day map where a state only replaces one of lower precedence"""

    def __init__(self, window: DateRange):
        self.window = window
        self._states: Dict[date, DayState] = {}

    def offer(self, day: date, state: DayState) -> None:
        if not self.window.contains(day):
            return
        current = self._states.get(day)
        if current is None or state.precedence > current.precedence:
            self._states[day] = state

    def resolve(self, default: DayState) -> List[CalendarDay]:
        days = []
        for day in self.window:
            state = self._states.get(day, default)
            days.append(CalendarDay(
                date=day,
                available=state.available,
                blocked=state.blocked,
                price=state.price,
                source=state.source,
                booking=state.booking,
                external_booking_id=state.external_booking_id
            ))
        return days


def summarize(days: Iterable[CalendarDay]) -> Dict[str, int]:
    days = list(days)
    return {
        "total_days": len(days),
        "available_days": sum(1 for d in days if d.available and not d.blocked),
        "blocked_days": sum(1 for d in days if d.blocked),
    }


class AvailabilityService:

    def __init__(self, db: Session):
        self.db = db

    def get_room(self, room_id: str) -> Room:
        room = self.db.query(Room).filter(Room.id == room_id).first()
        if not room:
            raise NotFoundError("Room", room_id)
        return room

    def get_room_by_slug(self, slug: str, active_only: bool = False) -> Room:
        query = self.db.query(Room).filter(Room.slug == slug)
        if active_only:
            query = query.filter(Room.status == RoomStatus.ACTIVE.value)
        room = query.first()
        if not room:
            raise NotFoundError("Room", slug)
        return room

    def _window(self, from_date: date, to_date: date, inclusive_end: bool) -> DateRange:
        end = to_date + timedelta(days=1) if inclusive_end else to_date
        return DateRange.validated(from_date, end, "Availability window")

    def _bookings_in(self, room_id: str, window: DateRange) -> List[Booking]:
        return self.db.query(Booking).filter(
            Booking.room_id == room_id,
            Booking.status.in_(blocking_booking_statuses()),
            Booking.check_in_date < window.end,
            Booking.check_out_date > window.start
        ).order_by(Booking.check_in_date, Booking.id).all()

    def _ledger_rows_in(self, room_id: str, window: DateRange) -> List[RoomAvailability]:
        return self.db.query(RoomAvailability).filter(
            RoomAvailability.room_id == room_id,
            RoomAvailability.date >= window.start,
            RoomAvailability.date < window.end
        ).order_by(RoomAvailability.date).all()

    def build_calendar(self, room: Room, window: DateRange) -> List[CalendarDay]:
        base_price = to_money(room.base_price)
        states = DayStateMap(window)

        for row in self._ledger_rows_in(room.id, window):
            states.offer(row.date, DayState.from_ledger(row, base_price))

        for booking in self._bookings_in(room.id, window):
            booked = DayState.from_booking(booking, base_price)
            for day in DateRange(booking.check_in_date, booking.check_out_date).intersection(window):
                states.offer(day, booked)

        return states.resolve(DayState.default(base_price))

    def get_availability(
        self,
        room_id: str,
        from_date: date,
        to_date: date,
        inclusive_end: bool = False
    ) -> List[CalendarDay]:
        """
        One CalendarDay per day of [from_date, to_date).

        With inclusive_end=True the window is [from_date, to_date].
        """
        window = self._window(from_date, to_date, inclusive_end)
        room = self.get_room(room_id)
        return self.build_calendar(room, window)

    def get_availability_by_slug(
        self,
        slug: str,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
        months_ahead: Optional[int] = None
    ) -> tuple:
        """
        Customer-facing calendar of an active room.

        Defaults to today through today + N months, both ends inclusive.
        Returns (room, days).
        """
        room = self.get_room_by_slug(slug, active_only=True)
        start = from_date or today()
        if to_date is None:
            months = months_ahead or settings.availability_default_months
            to_date = add_months(start, months)
        window = self._window(start, to_date, inclusive_end=True)
        return room, self.build_calendar(room, window)

    def check_room(self, room_id: str, start_date: date, end_date: date) -> RoomCheck:
        """Is [start_date, end_date) free on an active room"""
        stay = DateRange.validated(start_date, end_date, "Stay")
        room = self.get_room(room_id)
        if not room.is_active:
            raise NotFoundError("Active room", room_id)

        bookings = ConflictDetector(self.db).booking_conflicts(room_id, stay)
        blocked = [
            day for day in self.build_calendar(room, stay)
            if day.blocked and day.source != DIRECT_BOOKING_SOURCE
        ]
        summaries = [
            BookingSummary(b.id, b.confirmation_id, b.check_in_date, b.check_out_date)
            for b in bookings
        ]
        return RoomCheck(
            room_id=room_id,
            start_date=start_date,
            end_date=end_date,
            available=not bookings and not blocked,
            conflicting_bookings=summaries,
            blocked_days=blocked
        )

    def check_bulk(
        self,
        start_date: date,
        end_date: date,
        room_ids: Optional[List[str]] = None
    ) -> List[RoomCheck]:
        """check_room over every active room (or the given ones)"""
        DateRange.validated(start_date, end_date, "Stay")
        query = self.db.query(Room).filter(Room.status == RoomStatus.ACTIVE.value)
        if room_ids:
            query = query.filter(Room.id.in_(room_ids))
        return [
            self.check_room(room.id, start_date, end_date)
            for room in query.order_by(Room.slug).all()
        ]


def add_months(start: date, months: int) -> date:
    """Same day N months later, clamped to the month's last day"""
    if months < 0:
        raise InvalidRangeError("months must not be negative")
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = start.day
    while True:
        try:
            return date(year, month, day)
        except ValueError:
            day -= 1
