"""
Pricing Schemas

Pydantic models for pricing rule and price quote requests/responses.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator


class PricingRuleBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    rule_type: str = Field(..., description="surcharge_rate | fixed_amount | absolute_price")
    value: Decimal
    start_date: date
    end_date: date = Field(..., description="Exclusive")
    is_active: bool = True
    days_of_week: Optional[List[int]] = Field(
        default=None, description="Weekdays the rule applies to (0=Mon, 6=Sun); empty means every day"
    )

    @field_validator('days_of_week')
    @classmethod
    def validate_days_of_week(cls, v):
        if v:
            for d in v:
                if d not in range(7):
                    raise ValueError("days_of_week values must be 0-6")
        return v


class PricingRuleCreate(PricingRuleBase):
    pass


class PricingRuleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    rule_type: Optional[str] = None
    value: Optional[Decimal] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: Optional[bool] = None
    days_of_week: Optional[List[int]] = None


class PricingRuleResponse(BaseModel):
    id: str
    room_id: str
    name: str
    rule_type: str
    value: Decimal
    start_date: date
    end_date: date
    is_active: bool
    days_of_week: Optional[List[int]] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    @field_validator('days_of_week', mode='before')
    @classmethod
    def split_days_of_week(cls, v):
        # Stored as "4,5"
        if isinstance(v, str):
            return [int(d) for d in v.split(",") if d.strip()]
        return v

    class Config:
        from_attributes = True


class PriceCalculationRequest(BaseModel):
    room_id: str
    check_in: date
    check_out: date
    guest_count: int = Field(default=1, ge=1)


class NightPriceResponse(BaseModel):
    date: date
    base_price: Decimal
    price: Decimal
    rule_id: Optional[str] = None


class AppliedRuleResponse(BaseModel):
    id: str
    name: str
    rule_type: str
    value: Decimal
    nights: int
    applied_amount: Decimal


class PriceQuoteResponse(BaseModel):
    room_id: str
    check_in: date
    check_out: date
    guest_count: int
    number_of_nights: int
    base_price: Decimal
    total: Decimal
    service_fee: Decimal
    tax: Decimal
    grand_total: Decimal
    currency: str
    nights: List[NightPriceResponse]
    applied_rules: List[AppliedRuleResponse]

    class Config:
        from_attributes = True
