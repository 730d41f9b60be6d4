"""
Room Availability Model

Daily availability ledger per room.
One row per (room, date); writes are upserts keyed on that pair.
Rows come from direct bookings, manual blocked periods and external
calendar feeds, tagged by source.
"""

import uuid
import enum
from sqlalchemy import Column, String, Date, DateTime, Boolean, Numeric, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from ..database import Base
from ..utils.clock import utcnow


class AvailabilitySource(str, enum.Enum):
    DIRECT = "direct"      # Our own confirmed bookings
    MANUAL = "manual"      # Expanded from a RoomBlockedPeriod
    AIRBNB = "airbnb"
    EXPEDIA = "expedia"
    BOOKING = "booking"


# Sources written by this system; external syncs never overwrite them
OWN_SOURCES = {AvailabilitySource.DIRECT.value, AvailabilitySource.MANUAL.value}


class RoomAvailability(Base):
    __tablename__ = "room_availability"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    room_id = Column(String(36), ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)

    # Availability state
    is_available = Column(Boolean, default=True)
    is_blocked = Column(Boolean, default=False)

    # Source tracking
    source = Column(String(20), default=AvailabilitySource.DIRECT.value, nullable=False)
    external_booking_id = Column(String(255), nullable=True)  # iCal UID or our booking id
    blocked_period_id = Column(
        String(36), ForeignKey("room_blocked_periods.id", ondelete="CASCADE"), nullable=True
    )

    # External claim held under a direct or manual row, restored when that row goes
    underlying_source = Column(String(20), nullable=True)
    underlying_booking_id = Column(String(255), nullable=True)

    # Seasonal price for this single date
    price_override = Column(Numeric(10, 2), nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    room = relationship("Room")

    __table_args__ = (
        UniqueConstraint('room_id', 'date', name='uq_room_availability_room_date'),
        Index('ix_room_availability_room_source', 'room_id', 'source'),
        Index('ix_room_availability_date', 'date'),
    )

    def __repr__(self):
        status = "available" if self.is_available else "blocked"
        return f"<RoomAvailability {self.room_id} {self.date} {self.source} {status}>"
