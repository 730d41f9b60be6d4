"""
Calendar API Router

- iCal export of a room's own bookings (consumed by Airbnb, Expedia, ...)
- Inbound feed configuration per platform
- Manual sync triggers, sync logs and feed URL validation
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ..database import get_db
from ..services.calendar_sync_service import (
    CalendarFeedService,
    CalendarSyncService,
    get_calendar_sync_service,
)
from ..services.ical_service import CalendarExportService
from ..services.sync_scheduler import get_scheduler_status
from ..schemas.calendar import (
    BulkSyncRequest,
    BulkSyncResponse,
    CalendarFeedResponse,
    CalendarFeedUpdate,
    FeedValidationRequest,
    FeedValidationResponse,
    SyncLogResponse,
    SyncResultResponse,
)

router = APIRouter(prefix="/api", tags=["Calendar"])


def ical_response(content: str, name: str) -> Response:
    return Response(
        content=content,
        media_type="text/calendar; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="room-{name}.ics"',
            "Cache-Control": "public, max-age=300",
        }
    )


# ==================
# Export
# ==================

@router.get("/rooms/{room_id}/calendar.ics")
async def export_room_calendar(room_id: str, db: Session = Depends(get_db)):
    return ical_response(CalendarExportService(db).export_calendar(room_id), room_id)


@router.get("/rooms/slug/{slug}/calendar.ics")
async def export_room_calendar_by_slug(slug: str, db: Session = Depends(get_db)):
    return ical_response(CalendarExportService(db).export_calendar_by_slug(slug), slug)


# ==================
# Feed configuration
# ==================
# set and delete take the per-room lock, so they run in the threadpool

@router.get("/rooms/{room_id}/feeds", response_model=List[CalendarFeedResponse])
async def list_calendar_feeds(room_id: str, db: Session = Depends(get_db)):
    return CalendarFeedService(db).list_feeds(room_id)


@router.put("/rooms/{room_id}/feeds/{platform}", response_model=CalendarFeedResponse)
def set_calendar_feed(
    room_id: str,
    platform: str,
    feed_data: CalendarFeedUpdate,
    db: Session = Depends(get_db)
):
    return CalendarFeedService(db).set_feed(room_id, platform, feed_data.ical_url, feed_data.is_active)


@router.delete("/rooms/{room_id}/feeds/{platform}")
def delete_calendar_feed(room_id: str, platform: str, db: Session = Depends(get_db)):
    CalendarFeedService(db).delete_feed(room_id, platform)
    return {"room_id": room_id, "platform": platform, "deleted": True}


# ==================
# Sync
# ==================
# Sync and validation fetch over HTTP, so these run in the threadpool

@router.post("/rooms/{room_id}/sync/{platform}", response_model=SyncResultResponse)
def sync_room_calendar(
    room_id: str,
    platform: str,
    service: CalendarSyncService = Depends(get_calendar_sync_service)
):
    """Sync one platform feed now. A failed sync still answers 200 with success=false."""
    return service.sync_room_calendar(room_id, platform)


@router.post("/calendar/sync-all", response_model=BulkSyncResponse)
def sync_all_calendars(
    request: Optional[BulkSyncRequest] = None,
    service: CalendarSyncService = Depends(get_calendar_sync_service)
):
    room_ids = request.room_ids if request else None
    return service.sync_all_calendars(room_ids=room_ids).to_dict()


@router.get("/calendar/sync-logs", response_model=List[SyncLogResponse])
def get_sync_logs(
    room_id: Optional[str] = Query(None),
    platform: Optional[str] = Query(None),
    limit: int = Query(20, ge=1, le=200),
    service: CalendarSyncService = Depends(get_calendar_sync_service)
):
    return service.get_sync_logs(room_id=room_id, platform=platform, limit=limit)


@router.post("/calendar/validate-feed", response_model=FeedValidationResponse)
def validate_feed(
    request: FeedValidationRequest,
    service: CalendarSyncService = Depends(get_calendar_sync_service)
):
    """Fetch a feed URL and report whether it is a calendar and how many events it has"""
    return service.validate_feed_url(request.url)


@router.get("/calendar/scheduler")
async def calendar_scheduler_status():
    return get_scheduler_status()
