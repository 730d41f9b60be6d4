"""
Room Model

A rentable unit. The core treats a room as a read-only snapshot
(base price, status, fee/tax rates) for the duration of one computation.
"""

import uuid
import enum
from sqlalchemy import Column, String, Text, Numeric, DateTime
from sqlalchemy.orm import relationship
from ..database import Base
from ..utils.clock import utcnow


class RoomStatus(str, enum.Enum):
    ACTIVE = "active"        # Available for booking
    INACTIVE = "inactive"    # Temporarily unavailable (maintenance, etc.)
    ARCHIVED = "archived"    # Permanently deactivated, kept for history


class Room(Base):
    __tablename__ = "rooms"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False)
    slug = Column(String(100), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)

    # Pricing
    base_price = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), default="USD")
    service_fee_rate = Column(Numeric(5, 4), default=0)  # 0.10 = 10%
    tax_rate = Column(Numeric(5, 4), default=0)

    status = Column(String(20), default=RoomStatus.ACTIVE.value, nullable=False)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    bookings = relationship("Booking", back_populates="room", cascade="all, delete-orphan")
    calendar_feeds = relationship("RoomCalendarFeed", back_populates="room", cascade="all, delete-orphan")
    blocked_periods = relationship("RoomBlockedPeriod", back_populates="room", cascade="all, delete-orphan")
    pricing_rules = relationship("RoomPricingRule", back_populates="room", cascade="all, delete-orphan")

    @property
    def is_active(self) -> bool:
        return self.status == RoomStatus.ACTIVE.value

    def __repr__(self):
        return f"<Room {self.slug} base={self.base_price}>"
