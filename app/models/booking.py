import uuid
from sqlalchemy import Column, String, Date, Numeric, Integer, ForeignKey, DateTime, Index
from sqlalchemy.orm import relationship
from ..database import Base
from ..utils.clock import utcnow
import enum


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Booking(Base):
    """
    A reservation created by the booking flow.

    check_in_date/check_out_date form a half-open stay: the checkout day
    is free for the next guest. Only confirmed bookings block dates.
    """
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    confirmation_id = Column(String(32), nullable=False, unique=True)
    room_id = Column(String(36), ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False)

    check_in_date = Column(Date, nullable=False)
    check_out_date = Column(Date, nullable=False)
    number_of_guests = Column(Integer, default=1)

    guest_name = Column(String(100), nullable=False)
    guest_email = Column(String(255), nullable=True)

    total_amount = Column(Numeric(10, 2), default=0)
    status = Column(String(20), default=BookingStatus.PENDING.value, nullable=False)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    confirmed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    room = relationship("Room", back_populates="bookings")

    __table_args__ = (
        Index("ix_booking_room_status", "room_id", "status"),
        Index("ix_booking_check_in", "check_in_date"),
    )

    def __repr__(self):
        return f"<Booking {self.confirmation_id} {self.check_in_date}..{self.check_out_date}>"
