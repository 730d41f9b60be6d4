"""
Inventory Service

Writes the per-day availability ledger (room_availability).
One row per (room, date): every write is an upsert on that pair.

Source rules:
- direct rows (our confirmed bookings) and manual rows (blocked periods)
  are never overwritten by external feeds
- direct and manual rows take over external rows; the external claim is
  kept in the row's underlying slot
- an external feed never displaces another feed; its claim goes into the
  underlying slot of the row already holding the day
- when a direct or manual row goes away the day falls back to a blocked
  period still covering it, else to the underlying external claim

No method here commits; callers own the transaction.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..models.blocked_period import RoomBlockedPeriod
from ..models.room_availability import AvailabilitySource, OWN_SOURCES, RoomAvailability
from ..utils.clock import utcnow
from ..utils.date_range import DateRange

logger = logging.getLogger(__name__)


@dataclass
class LedgerRow:
    """A ledger row built ahead of a swap"""
    date: date
    external_booking_id: Optional[str] = None


class InventoryService:
    """
    Service for managing the room availability ledger.

    Key responsibilities:
    - Mark dates booked/released for direct bookings
    - Expand manual blocked periods into ledger rows
    - Replace one platform's rows for a room (calendar resync)
    """

    def __init__(self, db: Session):
        self.db = db

    def _existing_rows(self, room_id: str, days: List[date]) -> Dict[date, RoomAvailability]:
        if not days:
            return {}
        rows = self.db.query(RoomAvailability).filter(
            RoomAvailability.room_id == room_id,
            RoomAvailability.date.in_(days)
        ).all()
        return {row.date: row for row in rows}

    def _covering_periods(
        self,
        room_id: str,
        days: List[date],
        exclude_id: Optional[str] = None
    ) -> List[RoomBlockedPeriod]:
        """Blocked periods of the room touching any of days"""
        if not days:
            return []
        query = self.db.query(RoomBlockedPeriod).filter(
            RoomBlockedPeriod.room_id == room_id,
            RoomBlockedPeriod.start_date <= max(days),
            RoomBlockedPeriod.end_date > min(days)
        )
        if exclude_id:
            query = query.filter(RoomBlockedPeriod.id != exclude_id)
        return query.all()

    @staticmethod
    def _hold_external_claim(entry: RoomAvailability) -> None:
        """Move an external row's claim into its underlying slot before an own source takes the day"""
        if entry.source in OWN_SOURCES or entry.underlying_source is not None:
            return
        entry.underlying_source = entry.source
        entry.underlying_booking_id = entry.external_booking_id

    def _fall_back(self, entry: RoomAvailability, periods: List[RoomBlockedPeriod]) -> bool:
        """
        Hand a day whose current claim is going away to the next claim on it.
        Returns False when nothing else claims the day and the row should be deleted.
        """
        covering = next(
            (p for p in periods if p.start_date <= entry.date < p.end_date),
            None
        )
        if covering is not None:
            entry.source = AvailabilitySource.MANUAL.value
            entry.external_booking_id = None
            entry.blocked_period_id = covering.id
        elif entry.underlying_source is not None:
            entry.source = entry.underlying_source
            entry.external_booking_id = entry.underlying_booking_id
            entry.blocked_period_id = None
            entry.underlying_source = None
            entry.underlying_booking_id = None
        else:
            return False

        entry.is_available = False
        entry.is_blocked = True
        entry.updated_at = utcnow()
        return True

    def _vacate(self, room_id: str, rows: List[RoomAvailability], exclude_period_id: Optional[str] = None) -> int:
        """Fall back or delete each row. Returns how many days stay blocked."""
        periods = self._covering_periods(room_id, [row.date for row in rows], exclude_period_id)
        kept = 0
        for entry in rows:
            if self._fall_back(entry, periods):
                kept += 1
            else:
                self.db.delete(entry)
        return kept

    def upsert_day(self, room_id: str, day: date, **fields) -> RoomAvailability:
        """Get or create the row for (room, day) and apply fields"""
        entry = self.db.query(RoomAvailability).filter(
            RoomAvailability.room_id == room_id,
            RoomAvailability.date == day
        ).first()

        if not entry:
            entry = RoomAvailability(room_id=room_id, date=day)
            self.db.add(entry)

        for key, value in fields.items():
            setattr(entry, key, value)
        entry.updated_at = utcnow()
        return entry

    def mark_dates_booked(self, room_id: str, booking_id: str, stay: DateRange) -> int:
        """
        Write direct rows for a confirmed booking.
        Returns count of dates marked.
        """
        existing = self._existing_rows(room_id, stay.days())
        count = 0
        for day in stay:
            entry = existing.get(day)
            if entry is None:
                entry = RoomAvailability(room_id=room_id, date=day)
                self.db.add(entry)
            else:
                self._hold_external_claim(entry)
            entry.is_available = False
            entry.is_blocked = True
            entry.source = AvailabilitySource.DIRECT.value
            entry.external_booking_id = booking_id
            entry.blocked_period_id = None
            entry.updated_at = utcnow()
            count += 1

        logger.info(f"Marked {count} dates booked for room {room_id}, booking {booking_id}")
        return count

    def release_booking_dates(self, room_id: str, booking_id: str) -> int:
        """
        Give up the direct rows of a cancelled booking.
        Days still covered by a blocked period or an external feed stay blocked.
        Returns count of dates released.
        """
        rows = self.db.query(RoomAvailability).filter(
            RoomAvailability.room_id == room_id,
            RoomAvailability.source == AvailabilitySource.DIRECT.value,
            RoomAvailability.external_booking_id == booking_id
        ).all()
        kept = self._vacate(room_id, rows)

        logger.info(
            f"Released {len(rows)} dates for room {room_id}, booking {booking_id} "
            f"({kept} still blocked)"
        )
        return len(rows)

    def block_period_days(self, period: RoomBlockedPeriod) -> int:
        """
        Expand a blocked period into manual rows.
        Direct booking rows are left alone. Returns count of dates blocked.
        """
        period_range = DateRange(period.start_date, period.end_date)
        existing = self._existing_rows(period.room_id, period_range.days())
        count = 0

        for day in period_range:
            entry = existing.get(day)
            if entry is not None and entry.source == AvailabilitySource.DIRECT.value:
                continue
            if entry is None:
                entry = RoomAvailability(room_id=period.room_id, date=day)
                self.db.add(entry)
            else:
                self._hold_external_claim(entry)
            entry.is_available = False
            entry.is_blocked = True
            entry.source = AvailabilitySource.MANUAL.value
            entry.external_booking_id = None
            entry.blocked_period_id = period.id
            entry.updated_at = utcnow()
            count += 1

        logger.info(
            f"Blocked {count} dates for room {period.room_id}, reason: {period.reason}"
        )
        return count

    def unblock_period_days(self, room_id: str, period_id: str) -> int:
        """
        Give up the manual rows written for a blocked period.
        Days another period or an external feed still claims stay blocked.
        """
        rows = self.db.query(RoomAvailability).filter(
            RoomAvailability.room_id == room_id,
            RoomAvailability.source == AvailabilitySource.MANUAL.value,
            RoomAvailability.blocked_period_id == period_id
        ).all()
        kept = self._vacate(room_id, rows, exclude_period_id=period_id)

        logger.info(f"Unblocked {len(rows)} dates for room {room_id} ({kept} still blocked)")
        return len(rows)

    def replace_platform_days(self, room_id: str, platform: str, rows: List[LedgerRow]) -> int:
        """
        Swap one platform's ledger rows for a freshly built set.

        Drops every claim of the platform, both its own rows and the claims
        held under other rows, then writes the new set. An old platform row
        with another feed's claim underneath hands the day to that feed
        instead of being deleted. A day already held by
        another source keeps its row and records the platform's claim
        underneath when that slot is free. Returns the number of rows written.
        """
        held = self.db.query(RoomAvailability).filter(
            RoomAvailability.room_id == room_id,
            or_(
                RoomAvailability.source == platform,
                RoomAvailability.underlying_source == platform
            )
        ).all()
        for entry in held:
            if entry.underlying_source == platform:
                entry.underlying_source = None
                entry.underlying_booking_id = None
            if entry.source == platform and not self._fall_back(entry, []):
                self.db.delete(entry)
        self.db.flush()

        existing = self._existing_rows(room_id, [row.date for row in rows])
        written = 0
        for row in rows:
            entry = existing.get(row.date)
            if entry is not None:
                if entry.underlying_source is None:
                    entry.underlying_source = platform
                    entry.underlying_booking_id = row.external_booking_id
                continue
            entry = RoomAvailability(room_id=room_id, date=row.date)
            self.db.add(entry)
            existing[row.date] = entry
            entry.is_available = False
            entry.is_blocked = True
            entry.source = platform
            entry.external_booking_id = row.external_booking_id
            entry.updated_at = utcnow()
            written += 1

        return written

    def get_platform_days(self, room_id: str, source: str) -> List[RoomAvailability]:
        """Blocked rows of one source, sorted by date"""
        return self.db.query(RoomAvailability).filter(
            RoomAvailability.room_id == room_id,
            RoomAvailability.source == source,
            RoomAvailability.is_blocked.is_(True)
        ).order_by(RoomAvailability.date, RoomAvailability.id).all()
