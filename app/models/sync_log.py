"""
Calendar Sync Log Model

Append-only audit trail of inbound calendar sync runs.
Never read by the availability logic.
"""

import uuid
import enum
from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey, Index
from ..database import Base
from ..utils.clock import utcnow


class SyncStatus(str, enum.Enum):
    SUCCESS = "success"
    ERROR = "error"


class CalendarSyncLog(Base):
    __tablename__ = "calendar_sync_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    room_id = Column(String(36), ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False)
    platform = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False)
    events_processed = Column(Integer, default=0)
    error_message = Column(Text, nullable=True)
    duration_ms = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_sync_log_room_platform", "room_id", "platform"),
        Index("ix_sync_log_created", "created_at"),
    )

    def __repr__(self):
        return f"<CalendarSyncLog {self.room_id} {self.platform} {self.status}>"
