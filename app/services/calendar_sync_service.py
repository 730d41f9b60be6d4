"""
Calendar Sync Service

Pulls external iCal feeds (Airbnb, Expedia, Booking.com) into the
availability ledger.

Flow for one (room, platform):
1. Fetch the feed URL (httpx, timeout + user agent)
2. Parse events and expand them into blocked days
3. Swap the platform's ledger rows for the new set and stamp
   last_synced_at, all in one transaction under the room lock
4. Append a CalendarSyncLog entry (success or error)

A failed run leaves the previous rows untouched. "Sync all" runs jobs
on a thread pool, one database session per job.
"""

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import settings
from ..database import SessionLocal
from ..models.calendar_feed import SYNC_PLATFORMS, RoomCalendarFeed
from ..models.room import Room, RoomStatus
from ..models.sync_log import CalendarSyncLog, SyncStatus
from ..utils.clock import utcnow
from ..utils.db_helpers import commit_or_raise, room_lock
from ..utils.logging_config import get_logger, sync_context
from .exceptions import (
    CalendarError,
    InvalidRangeError,
    NotFoundError,
    PersistenceFailureError,
    UpstreamFetchFailedError,
    UpstreamFormatInvalidError,
)
from .ical_service import BEGIN_CALENDAR, count_events, expand_events, parse_ical
from .inventory_service import InventoryService, LedgerRow

logger = get_logger(__name__)


class CalendarFetcher:
    """GET a calendar document; every failure becomes UpstreamFetchFailedError"""

    def __init__(self, timeout: Optional[float] = None, user_agent: Optional[str] = None):
        self.timeout = timeout or settings.ical_fetch_timeout_seconds
        self.user_agent = user_agent or settings.ical_user_agent

    def fetch(self, url: str) -> str:
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "text/calendar, text/plain, */*",
        }
        try:
            with httpx.Client(timeout=self.timeout, follow_redirects=True) as client:
                response = client.get(url, headers=headers)
        except httpx.HTTPError as e:
            raise UpstreamFetchFailedError(f"Failed to fetch calendar: {e}") from e

        if not response.is_success:
            raise UpstreamFetchFailedError(
                f"Failed to fetch calendar: HTTP {response.status_code} {response.reason_phrase}"
            )
        return response.text


@dataclass
class SyncResult:
    room_id: str
    platform: str
    success: bool
    events_processed: int = 0
    error_message: Optional[str] = None
    duration_ms: int = 0

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class BulkSyncResult:
    results: List[SyncResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded

    def to_dict(self) -> Dict:
        return {
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "results": [r.to_dict() for r in self.results],
        }


@dataclass
class FeedValidation:
    url: str
    valid: bool
    event_count: int = 0
    error: Optional[str] = None


class CalendarSyncService:
    """
    Orchestrates inbound calendar syncs.

    session_factory opens a fresh Session per sync so jobs can run on
    worker threads. fetcher and clock are injectable for tests.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        fetcher: Optional[CalendarFetcher] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.session_factory = session_factory
        self.fetcher = fetcher or CalendarFetcher()
        self.clock = clock or utcnow

    # ------------------------------------------------------------------
    # Single sync
    # ------------------------------------------------------------------

    def sync_room_calendar(self, room_id: str, platform: str) -> SyncResult:
        """
        Sync one platform feed of one room.

        Raises NotFoundError for an unknown room. Everything else (no
        feed configured, fetch failure, bad document, storage error) is
        returned as a failed SyncResult and recorded in the sync log.
        """
        with sync_context(room_id, platform):
            return self._sync_and_log(room_id, platform)

    def _sync_and_log(self, room_id: str, platform: str) -> SyncResult:
        started = time.monotonic()
        db = self.session_factory()
        try:
            try:
                room = self._find_room(db, room_id)
            except PersistenceFailureError as e:
                db.rollback()
                return self._finish(db, room_id, platform, started, 0, e.detail)
            if not room:
                raise NotFoundError("Room", room_id)

            events_processed = 0
            error_message = None
            try:
                events_processed = self._run_sync(db, room_id, platform)
            except CalendarError as e:
                db.rollback()
                error_message = e.detail
            except Exception as e:
                db.rollback()
                logger.exception(f"Unexpected error syncing {platform} for room {room_id}")
                error_message = f"Unexpected error: {e}"

            return self._finish(db, room_id, platform, started, events_processed, error_message)
        finally:
            db.close()

    def _find_room(self, db: Session, room_id: str) -> Optional[Room]:
        try:
            return db.query(Room).filter(Room.id == room_id).first()
        except SQLAlchemyError as e:
            logger.error(f"Room lookup failed for {room_id}: {e}")
            raise PersistenceFailureError("Database room lookup failed") from e

    def _finish(
        self,
        db: Session,
        room_id: str,
        platform: str,
        started: float,
        events_processed: int,
        error_message: Optional[str]
    ) -> SyncResult:
        """Build the result of a run, record it in the sync log and the application log"""
        result = SyncResult(
            room_id=room_id,
            platform=platform,
            success=error_message is None,
            events_processed=events_processed,
            error_message=error_message,
            duration_ms=int((time.monotonic() - started) * 1000)
        )
        self._write_log(db, result)
        logger.sync_finished(
            room_id, platform, result.success, result.events_processed,
            result.duration_ms, result.error_message
        )
        return result

    def _run_sync(self, db: Session, room_id: str, platform: str) -> int:
        """Fetch, parse and swap. Returns the number of events accepted."""
        if platform not in SYNC_PLATFORMS:
            raise InvalidRangeError(f"Unknown sync platform: {platform}")

        feed = db.query(RoomCalendarFeed).filter(
            RoomCalendarFeed.room_id == room_id,
            RoomCalendarFeed.platform == platform,
            RoomCalendarFeed.is_active.is_(True)
        ).first()
        if not feed or not feed.ical_url:
            raise NotFoundError("Calendar feed", f"{room_id}/{platform}")
        url = feed.ical_url

        # Release the read transaction while the fetch is in flight
        db.rollback()

        logger.info(f"Syncing {platform} calendar for room {room_id}")
        text = self.fetcher.fetch(url)
        events = parse_ical(text)
        rows = [LedgerRow(date=day, external_booking_id=uid) for day, uid in expand_events(events).items()]

        with room_lock(db, room_id):
            written = InventoryService(db).replace_platform_days(room_id, platform, rows)
            feed = db.query(RoomCalendarFeed).filter(
                RoomCalendarFeed.room_id == room_id,
                RoomCalendarFeed.platform == platform
            ).first()
            if feed is None:
                raise NotFoundError("Calendar feed", f"{room_id}/{platform}")
            feed.last_synced_at = self.clock()
            commit_or_raise(db, f"{platform} calendar swap")

        logger.debug(f"{platform} sync for room {room_id}: {len(events)} events, {written} days")
        return len(events)

    def _write_log(self, db: Session, result: SyncResult) -> None:
        entry = CalendarSyncLog(
            room_id=result.room_id,
            platform=result.platform,
            status=SyncStatus.SUCCESS.value if result.success else SyncStatus.ERROR.value,
            events_processed=result.events_processed,
            error_message=result.error_message,
            duration_ms=result.duration_ms,
            created_at=self.clock()
        )
        db.add(entry)
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to write sync log for room {result.room_id} ({result.platform}): {e}")

    # ------------------------------------------------------------------
    # Bulk sync
    # ------------------------------------------------------------------

    def _active_feeds(self, room_ids: Optional[List[str]] = None) -> List[tuple]:
        db = self.session_factory()
        try:
            query = db.query(RoomCalendarFeed.room_id, RoomCalendarFeed.platform).join(
                Room, Room.id == RoomCalendarFeed.room_id
            ).filter(
                Room.status == RoomStatus.ACTIVE.value,
                RoomCalendarFeed.is_active.is_(True)
            )
            if room_ids:
                query = query.filter(RoomCalendarFeed.room_id.in_(room_ids))
            return [
                (room_id, platform)
                for room_id, platform in query.order_by(Room.slug, RoomCalendarFeed.platform).all()
            ]
        finally:
            db.close()

    def _sync_job(self, room_id: str, platform: str) -> SyncResult:
        try:
            return self.sync_room_calendar(room_id, platform)
        except CalendarError as e:
            # Room removed after the job list was built
            return SyncResult(room_id=room_id, platform=platform, success=False, error_message=e.detail)
        except Exception as e:
            logger.exception(f"Sync job for room {room_id} ({platform}) crashed")
            return SyncResult(
                room_id=room_id, platform=platform, success=False, error_message=f"Unexpected error: {e}"
            )

    def sync_all_calendars(
        self,
        room_ids: Optional[List[str]] = None,
        max_workers: Optional[int] = None
    ) -> BulkSyncResult:
        """
        Sync every active feed of every active room.

        One failing feed does not affect the others. Results come back
        in (room slug, platform) order.
        """
        jobs = self._active_feeds(room_ids)
        if not jobs:
            logger.info("No active calendar feeds to sync")
            return BulkSyncResult()

        workers = max(1, min(max_workers or settings.sync_max_workers, len(jobs)))
        logger.info(f"Syncing {len(jobs)} calendar feeds with {workers} workers")

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="calendar-sync") as pool:
            results = list(pool.map(lambda job: self._sync_job(*job), jobs))

        bulk = BulkSyncResult(results=results)
        logger.info(f"Calendar sync finished: {bulk.succeeded} succeeded, {bulk.failed} failed")
        return bulk

    # ------------------------------------------------------------------
    # Feed validation and logs
    # ------------------------------------------------------------------

    def validate_feed_url(self, url: str) -> FeedValidation:
        """Fetch a URL and check it serves a calendar; nothing is stored"""
        try:
            text = self.fetcher.fetch(url)
            if BEGIN_CALENDAR not in text.upper():
                raise UpstreamFormatInvalidError("Invalid iCal format: missing BEGIN:VCALENDAR")
        except CalendarError as e:
            return FeedValidation(url=url, valid=False, error=e.detail)
        return FeedValidation(url=url, valid=True, event_count=count_events(text))

    def get_sync_logs(
        self,
        room_id: Optional[str] = None,
        platform: Optional[str] = None,
        limit: int = 20
    ) -> List[CalendarSyncLog]:
        db = self.session_factory()
        try:
            query = db.query(CalendarSyncLog)
            if room_id:
                query = query.filter(CalendarSyncLog.room_id == room_id)
            if platform:
                query = query.filter(CalendarSyncLog.platform == platform)
            logs = query.order_by(
                CalendarSyncLog.created_at.desc(), CalendarSyncLog.id
            ).limit(limit).all()
            db.expunge_all()
            return logs
        finally:
            db.close()

    def prune_sync_logs(self, older_than_days: Optional[int] = None) -> int:
        """Delete log entries older than the retention window"""
        days = older_than_days if older_than_days is not None else settings.sync_log_retention_days
        cutoff = self.clock() - timedelta(days=days)
        db = self.session_factory()
        try:
            count = db.query(CalendarSyncLog).filter(
                CalendarSyncLog.created_at < cutoff
            ).delete(synchronize_session=False)
            commit_or_raise(db, "sync log cleanup")
            logger.info(f"Pruned {count} sync log entries older than {days} days")
            return count
        finally:
            db.close()


def get_calendar_sync_service() -> CalendarSyncService:
    """Dependency for API routes"""
    return CalendarSyncService()


class CalendarFeedService:
    """Per-room inbound feed configuration"""

    def __init__(self, db: Session):
        self.db = db

    def list_feeds(self, room_id: str) -> List[RoomCalendarFeed]:
        return self.db.query(RoomCalendarFeed).filter(
            RoomCalendarFeed.room_id == room_id
        ).order_by(RoomCalendarFeed.platform).all()

    def set_feed(self, room_id: str, platform: str, ical_url: str, is_active: bool = True) -> RoomCalendarFeed:
        """Create or replace the feed URL of (room, platform)"""
        if platform not in SYNC_PLATFORMS:
            raise InvalidRangeError(f"Unknown sync platform: {platform}")
        if not ical_url or not ical_url.strip().lower().startswith(("http://", "https://")):
            raise InvalidRangeError("ical_url must be an http(s) URL")

        with room_lock(self.db, room_id):
            feed = self.db.query(RoomCalendarFeed).filter(
                RoomCalendarFeed.room_id == room_id,
                RoomCalendarFeed.platform == platform
            ).first()
            if feed is None:
                feed = RoomCalendarFeed(room_id=room_id, platform=platform)
                self.db.add(feed)
            elif feed.ical_url != ical_url.strip():
                feed.last_synced_at = None
            feed.ical_url = ical_url.strip()
            feed.is_active = is_active
            commit_or_raise(self.db, "calendar feed update")

        self.db.refresh(feed)
        logger.info(f"Set {platform} feed for room {room_id}")
        return feed

    def delete_feed(self, room_id: str, platform: str) -> None:
        """Remove a feed together with the ledger rows it produced"""
        with room_lock(self.db, room_id):
            feed = self.db.query(RoomCalendarFeed).filter(
                RoomCalendarFeed.room_id == room_id,
                RoomCalendarFeed.platform == platform
            ).first()
            if feed is None:
                raise NotFoundError("Calendar feed", f"{room_id}/{platform}")
            InventoryService(self.db).replace_platform_days(room_id, platform, [])
            self.db.delete(feed)
            commit_or_raise(self.db, "calendar feed delete")

        logger.info(f"Deleted {platform} feed for room {room_id}")
