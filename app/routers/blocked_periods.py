"""
Blocked Periods API Router

Manual blocks on a room's calendar (maintenance, owner stays, ...).
Writes take the per-room lock, so they are plain def and run in the threadpool.
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..services.blocked_period_service import BlockedPeriodService
from ..utils.date_range import DateRange
from ..schemas.blocked_period import (
    BlockedPeriodCreate,
    BlockedPeriodUpdate,
    BlockedPeriodResponse,
)
from ..schemas.pagination import PaginatedResponse

router = APIRouter(prefix="/api", tags=["Blocked Periods"])


@router.get("/rooms/{room_id}/blocked-periods", response_model=PaginatedResponse[BlockedPeriodResponse])
async def list_blocked_periods(
    room_id: str,
    start_date: Optional[date] = Query(None, description="Only periods overlapping [start_date, end_date)"),
    end_date: Optional[date] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db)
):
    window = None
    if start_date and end_date:
        window = DateRange.validated(start_date, end_date, "Filter window")

    service = BlockedPeriodService(db)
    items = service.list_periods(room_id, window, limit=page_size, offset=(page - 1) * page_size)
    total = service.count_periods(room_id, window)
    return PaginatedResponse[BlockedPeriodResponse].create(
        items=[BlockedPeriodResponse.model_validate(p) for p in items],
        total=total,
        page=page,
        page_size=page_size
    )


@router.post("/rooms/{room_id}/blocked-periods", response_model=BlockedPeriodResponse, status_code=201)
def create_blocked_period(
    room_id: str,
    period_data: BlockedPeriodCreate,
    db: Session = Depends(get_db)
):
    """Block [start_date, end_date); 409 if it overlaps another blocked period"""
    return BlockedPeriodService(db).create_period(
        room_id,
        period_data.start_date,
        period_data.end_date,
        period_data.reason,
        period_data.notes
    )


@router.get("/blocked-periods/{period_id}", response_model=BlockedPeriodResponse)
async def get_blocked_period(period_id: str, db: Session = Depends(get_db)):
    return BlockedPeriodService(db).get_period(period_id)


@router.put("/blocked-periods/{period_id}", response_model=BlockedPeriodResponse)
def update_blocked_period(
    period_id: str,
    period_data: BlockedPeriodUpdate,
    db: Session = Depends(get_db)
):
    update_data = period_data.model_dump(exclude_unset=True)
    return BlockedPeriodService(db).update_period(
        period_id,
        start_date=update_data.get("start_date"),
        end_date=update_data.get("end_date"),
        reason=update_data.get("reason"),
        notes=update_data.get("notes"),
        clear_notes="notes" in update_data and update_data["notes"] is None
    )


@router.delete("/blocked-periods/{period_id}")
def delete_blocked_period(period_id: str, db: Session = Depends(get_db)):
    deleted_id = BlockedPeriodService(db).delete_period(period_id)
    return {"id": deleted_id, "deleted": True}
