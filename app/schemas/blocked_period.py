"""
Blocked Period Schemas
"""

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field


class BlockedPeriodCreate(BaseModel):
    start_date: date
    end_date: date = Field(..., description="Exclusive")
    reason: str = Field(..., min_length=1, max_length=100)
    notes: Optional[str] = None


class BlockedPeriodUpdate(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    reason: Optional[str] = Field(None, min_length=1, max_length=100)
    notes: Optional[str] = None


class BlockedPeriodResponse(BaseModel):
    id: str
    room_id: str
    start_date: date
    end_date: date
    reason: str
    notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
