"""
Blocked Period Service

CRUD for manual blocked periods. Create and update run the overlap
check and the write (period row plus its manual ledger rows) as one
transaction under the per-room lock, so two concurrent overlapping
creates cannot both succeed.
"""

from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from ..models.blocked_period import RoomBlockedPeriod
from ..utils.date_range import DateRange
from ..utils.db_helpers import commit_or_raise, room_lock
from ..utils.logging_config import get_logger
from .conflict_detector import ConflictDetector
from .exceptions import ConflictError, InvalidRangeError, NotFoundError
from .inventory_service import InventoryService

logger = get_logger(__name__)


class BlockedPeriodService:

    def __init__(self, db: Session):
        self.db = db
        self.detector = ConflictDetector(db)
        self.inventory = InventoryService(db)

    def _periods_query(self, room_id: Optional[str], window: Optional[DateRange]):
        query = self.db.query(RoomBlockedPeriod)
        if room_id:
            query = query.filter(RoomBlockedPeriod.room_id == room_id)
        if window is not None:
            query = query.filter(
                RoomBlockedPeriod.start_date < window.end,
                RoomBlockedPeriod.end_date > window.start
            )
        return query

    def list_periods(
        self,
        room_id: Optional[str] = None,
        window: Optional[DateRange] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[RoomBlockedPeriod]:
        """Periods ordered by start date, optionally restricted to those overlapping window"""
        return self._periods_query(room_id, window).order_by(
            RoomBlockedPeriod.start_date, RoomBlockedPeriod.id
        ).offset(offset).limit(limit).all()

    def count_periods(self, room_id: Optional[str] = None, window: Optional[DateRange] = None) -> int:
        return self._periods_query(room_id, window).count()

    def get_period(self, period_id: str) -> RoomBlockedPeriod:
        period = self.db.query(RoomBlockedPeriod).filter(RoomBlockedPeriod.id == period_id).first()
        if not period:
            raise NotFoundError("Blocked period", period_id)
        return period

    def _check_conflicts(self, room_id: str, period_range: DateRange, exclude_id: Optional[str] = None):
        conflicts = self.detector.blocked_period_conflicts(room_id, period_range, exclude_id)
        if conflicts:
            existing = conflicts[0]
            logger.conflict_rejected(
                "Blocked period", room_id, existing.id,
                f"{existing.start_date.isoformat()}..{existing.end_date.isoformat()}"
            )
            raise ConflictError(
                "Blocked period", room_id, existing.id, existing.reason,
                existing.start_date, existing.end_date
            )

    def create_period(
        self,
        room_id: str,
        start_date: date,
        end_date: date,
        reason: str,
        notes: Optional[str] = None
    ) -> RoomBlockedPeriod:
        """
        Block [start_date, end_date) on a room.

        Raises:
            InvalidRangeError: end not after start, or empty reason
            NotFoundError: unknown room
            ConflictError: overlaps an existing blocked period of the room
        """
        period_range = DateRange.validated(start_date, end_date, "Blocked period")
        if not reason or not reason.strip():
            raise InvalidRangeError("Blocked period reason is required")

        with room_lock(self.db, room_id):
            self._check_conflicts(room_id, period_range)

            period = RoomBlockedPeriod(
                room_id=room_id,
                start_date=start_date,
                end_date=end_date,
                reason=reason.strip(),
                notes=notes or None
            )
            self.db.add(period)
            self.db.flush()
            self.inventory.block_period_days(period)
            commit_or_raise(self.db, "blocked period create")

        self.db.refresh(period)
        logger.info(f"Created blocked period {period.id} on room {room_id} ({period_range})")
        return period

    def update_period(
        self,
        period_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
        clear_notes: bool = False
    ) -> RoomBlockedPeriod:
        """
        Update a period; only provided fields change.
        A date change is re-checked against the room's other periods.
        """
        period = self.get_period(period_id)
        room_id = period.room_id

        with room_lock(self.db, room_id):
            # Re-read under the lock
            self.db.refresh(period)
            new_start = start_date or period.start_date
            new_end = end_date or period.end_date
            period_range = DateRange.validated(new_start, new_end, "Blocked period")
            dates_changed = (new_start, new_end) != (period.start_date, period.end_date)

            if dates_changed:
                self._check_conflicts(room_id, period_range, exclude_id=period.id)

            period.start_date = new_start
            period.end_date = new_end
            if reason is not None:
                if not reason.strip():
                    raise InvalidRangeError("Blocked period reason is required")
                period.reason = reason.strip()
            if clear_notes:
                period.notes = None
            elif notes is not None:
                period.notes = notes

            if dates_changed:
                self.inventory.unblock_period_days(room_id, period.id)
                self.db.flush()
                self.inventory.block_period_days(period)

            commit_or_raise(self.db, "blocked period update")

        self.db.refresh(period)
        return period

    def delete_period(self, period_id: str) -> str:
        period = self.get_period(period_id)
        room_id = period.room_id

        with room_lock(self.db, room_id):
            self.inventory.unblock_period_days(room_id, period.id)
            self.db.delete(period)
            commit_or_raise(self.db, "blocked period delete")

        logger.info(f"Deleted blocked period {period_id} on room {room_id}")
        return period_id
