"""
Pricing API Router

Endpoints for managing room pricing rules and computing stay prices.
Rule writes take the per-room lock, so they are plain def and run in the threadpool.
"""

from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..services.pricing_engine import get_pricing_engine
from ..services.pricing_rule_service import PricingRuleService
from ..utils.date_range import DateRange
from ..schemas.pricing import (
    PricingRuleCreate,
    PricingRuleUpdate,
    PricingRuleResponse,
    PriceCalculationRequest,
    PriceQuoteResponse,
)

router = APIRouter(prefix="/api", tags=["Pricing"])


# ==================
# Pricing Rule CRUD
# ==================

@router.get("/rooms/{room_id}/pricing-rules", response_model=List[PricingRuleResponse])
async def list_pricing_rules(
    room_id: str,
    is_active: Optional[bool] = Query(None),
    start_date: Optional[date] = Query(None, description="Only rules overlapping [start_date, end_date)"),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(get_db)
):
    window = None
    if start_date and end_date:
        window = DateRange.validated(start_date, end_date, "Filter window")
    return PricingRuleService(db).list_rules(room_id, is_active=is_active, window=window)


@router.post("/rooms/{room_id}/pricing-rules", response_model=PricingRuleResponse, status_code=201)
def create_pricing_rule(
    room_id: str,
    rule_data: PricingRuleCreate,
    db: Session = Depends(get_db)
):
    """Create a rule; 409 if it overlaps another active rule of the room"""
    return PricingRuleService(db).create_rule(room_id, **rule_data.model_dump())


@router.get("/pricing-rules/{rule_id}", response_model=PricingRuleResponse)
async def get_pricing_rule(rule_id: str, db: Session = Depends(get_db)):
    return PricingRuleService(db).get_rule(rule_id)


@router.put("/pricing-rules/{rule_id}", response_model=PricingRuleResponse)
def update_pricing_rule(
    rule_id: str,
    rule_data: PricingRuleUpdate,
    db: Session = Depends(get_db)
):
    update_data = rule_data.model_dump(exclude_unset=True)
    return PricingRuleService(db).update_rule(rule_id, **update_data)


@router.delete("/pricing-rules/{rule_id}")
def delete_pricing_rule(rule_id: str, db: Session = Depends(get_db)):
    deleted_id = PricingRuleService(db).delete_rule(rule_id)
    return {"id": deleted_id, "deleted": True}


# ==================
# Price Calculation
# ==================

@router.post("/pricing/calculate", response_model=PriceQuoteResponse)
async def calculate_price(
    request: PriceCalculationRequest,
    db: Session = Depends(get_db)
):
    """
    Price a stay [check_in, check_out).

    total is the sum of the nightly prices; service fee and tax are
    computed on that total.
    """
    engine = get_pricing_engine(db)
    return engine.calculate_price(
        request.room_id,
        request.check_in,
        request.check_out,
        request.guest_count
    )
