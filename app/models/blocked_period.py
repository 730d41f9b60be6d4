import uuid
from sqlalchemy import Column, String, Date, Text, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from ..database import Base
from ..utils.clock import utcnow


class RoomBlockedPeriod(Base):
    """
    Manually blocked dates (maintenance, owner use, ...).

    [start_date, end_date) half-open. Periods of one room never overlap.
    Each period is expanded into "manual" rows of the availability ledger.
    """
    __tablename__ = "room_blocked_periods"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    room_id = Column(String(36), ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    reason = Column(String(100), nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    room = relationship("Room", back_populates="blocked_periods")

    __table_args__ = (
        Index("ix_blocked_period_room_start", "room_id", "start_date"),
    )

    @property
    def label(self) -> str:
        return self.reason

    def __repr__(self):
        return f"<RoomBlockedPeriod {self.room_id} {self.start_date}..{self.end_date}>"
