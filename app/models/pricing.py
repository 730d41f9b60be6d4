"""
Pricing Rule Model

Date-scoped adjustments to a room's base nightly price:
- surcharge_rate: base * value extra per night (value is a fraction, 0.15 = +15%)
- fixed_amount: value extra per night
- absolute_price: night priced at value instead of base

[start_date, end_date) half-open. Active rules of one room never overlap,
so at most one rule touches any night.
"""

import uuid
import enum
from typing import Optional, Set
from sqlalchemy import Column, String, Numeric, Boolean, Date, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from ..database import Base
from ..utils.clock import utcnow


class PricingRuleType(str, enum.Enum):
    SURCHARGE_RATE = "surcharge_rate"
    FIXED_AMOUNT = "fixed_amount"
    ABSOLUTE_PRICE = "absolute_price"


class RoomPricingRule(Base):
    __tablename__ = "room_pricing_rules"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    room_id = Column(String(36), ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(100), nullable=False)
    rule_type = Column(String(20), nullable=False)
    value = Column(Numeric(10, 4), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Optional weekday filter (comma-separated, 0=Mon ... 6=Sun)
    days_of_week = Column(String(20), nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    room = relationship("Room", back_populates="pricing_rules")

    __table_args__ = (
        Index("ix_pricing_rule_room_active", "room_id", "is_active"),
    )

    @property
    def label(self) -> str:
        return self.name

    def get_days_of_week(self) -> Optional[Set[int]]:
        """Parse days_of_week string to set of integers, None means every day"""
        if not self.days_of_week:
            return None
        return set(int(d.strip()) for d in self.days_of_week.split(",") if d.strip().isdigit())

    def __repr__(self):
        return f"<RoomPricingRule {self.name} {self.rule_type}={self.value}>"
