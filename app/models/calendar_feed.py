"""
Room Calendar Feed Model

One inbound iCal URL per (room, platform), with the timestamp of the
last successful sync for that platform.
"""

import uuid
import enum
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from ..database import Base
from ..utils.clock import utcnow


class SyncPlatform(str, enum.Enum):
    AIRBNB = "airbnb"
    EXPEDIA = "expedia"
    BOOKING = "booking"


SYNC_PLATFORMS = [p.value for p in SyncPlatform]


class RoomCalendarFeed(Base):
    __tablename__ = "room_calendar_feeds"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    room_id = Column(String(36), ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False)
    platform = Column(String(20), nullable=False)
    ical_url = Column(Text, nullable=False)
    is_active = Column(Boolean, default=True)

    # Only stamped by a successful sync
    last_synced_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    room = relationship("Room", back_populates="calendar_feeds")

    __table_args__ = (
        UniqueConstraint('room_id', 'platform', name='uq_calendar_feed_room_platform'),
    )

    def __repr__(self):
        return f"<RoomCalendarFeed {self.room_id} {self.platform}>"
