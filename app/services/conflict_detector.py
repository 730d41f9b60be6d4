"""
Conflict Detector

Finds existing date ranges that overlap a candidate [start, end) range.
Used to reject overlapping blocked periods and pricing rules, and to
detect booking collisions.
"""

from typing import Iterable, List, Optional, TypeVar

from sqlalchemy.orm import Session

from ..config import settings
from ..models.blocked_period import RoomBlockedPeriod
from ..models.booking import Booking, BookingStatus
from ..models.pricing import RoomPricingRule
from ..utils.date_range import DateRange

T = TypeVar('T')


def record_range(record) -> DateRange:
    """DateRange of anything with start_date/end_date or check_in_date/check_out_date"""
    if hasattr(record, "check_in_date"):
        return DateRange(record.check_in_date, record.check_out_date)
    return DateRange(record.start_date, record.end_date)


def find_conflicts(
    candidate: DateRange,
    existing: Iterable[T],
    exclude_id: Optional[str] = None
) -> List[T]:
    """All records overlapping candidate, ordered by start date"""
    conflicts = [
        record for record in existing
        if record.id != exclude_id and record_range(record).overlaps(candidate)
    ]
    return sorted(conflicts, key=lambda r: (record_range(r).start, r.id))


def first_conflict(
    candidate: DateRange,
    existing: Iterable[T],
    exclude_id: Optional[str] = None
) -> Optional[T]:
    conflicts = find_conflicts(candidate, existing, exclude_id)
    return conflicts[0] if conflicts else None


def blocking_booking_statuses() -> List[str]:
    """Booking statuses that hold dates"""
    statuses = [BookingStatus.CONFIRMED.value]
    if settings.pending_bookings_hold_dates:
        statuses.append(BookingStatus.PENDING.value)
    return statuses


class ConflictDetector:
    """
    Storage-backed overlap queries.

    The SQL filter narrows candidates with the same half-open rule
    (start < other.end AND other.start < end); find_conflicts makes the
    final decision so both paths agree.
    """

    def __init__(self, db: Session):
        self.db = db

    def blocked_period_conflicts(
        self,
        room_id: str,
        date_range: DateRange,
        exclude_id: Optional[str] = None
    ) -> List[RoomBlockedPeriod]:
        candidates = self.db.query(RoomBlockedPeriod).filter(
            RoomBlockedPeriod.room_id == room_id,
            RoomBlockedPeriod.start_date < date_range.end,
            RoomBlockedPeriod.end_date > date_range.start
        ).all()
        return find_conflicts(date_range, candidates, exclude_id)

    def pricing_rule_conflicts(
        self,
        room_id: str,
        date_range: DateRange,
        exclude_id: Optional[str] = None
    ) -> List[RoomPricingRule]:
        """Only active rules take part in the non-overlap invariant"""
        candidates = self.db.query(RoomPricingRule).filter(
            RoomPricingRule.room_id == room_id,
            RoomPricingRule.is_active.is_(True),
            RoomPricingRule.start_date < date_range.end,
            RoomPricingRule.end_date > date_range.start
        ).all()
        return find_conflicts(date_range, candidates, exclude_id)

    def booking_conflicts(
        self,
        room_id: str,
        date_range: DateRange,
        exclude_id: Optional[str] = None
    ) -> List[Booking]:
        candidates = self.db.query(Booking).filter(
            Booking.room_id == room_id,
            Booking.status.in_(blocking_booking_statuses()),
            Booking.check_in_date < date_range.end,
            Booking.check_out_date > date_range.start
        ).all()
        return find_conflicts(date_range, candidates, exclude_id)
