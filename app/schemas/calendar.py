"""
Calendar Sync Schemas

Feed configuration, sync results, sync logs and feed validation.
"""

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field


class CalendarFeedUpdate(BaseModel):
    ical_url: str = Field(..., min_length=1, description="Public iCal export URL of the platform")
    is_active: bool = True


class CalendarFeedResponse(BaseModel):
    id: str
    room_id: str
    platform: str
    ical_url: str
    is_active: bool
    last_synced_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SyncResultResponse(BaseModel):
    room_id: str
    platform: str
    success: bool
    events_processed: int
    error_message: Optional[str] = None
    duration_ms: int

    class Config:
        from_attributes = True


class BulkSyncRequest(BaseModel):
    room_ids: Optional[List[str]] = None


class BulkSyncResponse(BaseModel):
    total: int
    succeeded: int
    failed: int
    results: List[SyncResultResponse]


class SyncLogResponse(BaseModel):
    id: str
    room_id: str
    platform: str
    status: str
    events_processed: int
    error_message: Optional[str] = None
    duration_ms: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class FeedValidationRequest(BaseModel):
    url: str = Field(..., min_length=1)


class FeedValidationResponse(BaseModel):
    url: str
    valid: bool
    event_count: int
    error: Optional[str] = None

    class Config:
        from_attributes = True
