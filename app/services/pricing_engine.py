"""
Pricing Engine Service

Computes the price of a stay from:
- The room's base nightly price
- Zero or more date-scoped pricing rules (surcharge_rate, fixed_amount,
  absolute_price)

Active rules of a room never overlap, so at most one rule touches any
night and rule contributions are independent and additive.

Pricing Formula, per rule:
1. affected = stay nights within [rule.start, rule.end) (and on the rule's weekdays)
2. surcharge_rate: + base * value per affected night
3. fixed_amount:   + value per affected night
4. absolute_price: + (value - base) per affected night (may be negative)

A rule's contribution is rounded once, half up to cents, over all its
nights. Each night shows the per-night amount rounded on its own, and the
last affected night absorbs the difference, so the breakdown always sums
to the total.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..models.pricing import PricingRuleType, RoomPricingRule
from ..models.room import Room
from ..utils.date_range import DateRange
from .exceptions import InvalidRangeError, NotFoundError

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass
class NightPrice:
    """Resolved price for one night of a stay"""
    date: date
    base_price: Decimal
    price: Decimal
    rule_id: Optional[str] = None


@dataclass
class AppliedRule:
    """A rule that touched at least one night, with its net contribution"""
    id: str
    name: str
    rule_type: str
    value: Decimal
    nights: int
    applied_amount: Decimal


@dataclass
class PriceQuote:
    """Price of a stay. total is the sum of the nightly prices."""
    room_id: str
    check_in: date
    check_out: date
    guest_count: int
    number_of_nights: int
    base_price: Decimal
    total: Decimal
    nights: List[NightPrice]
    applied_rules: List[AppliedRule]
    service_fee: Decimal = Decimal("0.00")
    tax: Decimal = Decimal("0.00")
    grand_total: Decimal = Decimal("0.00")
    currency: str = "USD"


def affected_nights(rule: RoomPricingRule, nights: Iterable[date]) -> List[date]:
    """Stay nights falling inside the rule's half-open range and weekday filter"""
    rule_range = DateRange(rule.start_date, rule.end_date)
    weekdays = rule.get_days_of_week()
    return [
        night for night in nights
        if rule_range.contains(night) and (weekdays is None or night.weekday() in weekdays)
    ]


def night_adjustment(rule_type: str, value: Decimal, base_price: Decimal) -> Decimal:
    """Per-night change a rule makes to the base price"""
    if rule_type == PricingRuleType.SURCHARGE_RATE.value:
        return base_price * value
    if rule_type == PricingRuleType.FIXED_AMOUNT.value:
        return value
    if rule_type == PricingRuleType.ABSOLUTE_PRICE.value:
        return value - base_price
    raise ValueError(f"Unknown pricing rule type: {rule_type}")


def evaluate_rules(
    base_price: Decimal,
    stay: DateRange,
    rules: Iterable[RoomPricingRule]
) -> Tuple[Decimal, List[NightPrice], List[AppliedRule]]:
    """
    Price every night of a stay.

    Returns (total, per-night breakdown, applied rules). Inactive rules
    are skipped; rules touching no night do not appear in applied rules.
    """
    base_price = to_money(base_price)
    nights = stay.days()
    adjustments: Dict[date, Decimal] = {night: Decimal("0") for night in nights}
    rule_by_night: Dict[date, str] = {}
    applied: List[AppliedRule] = []

    for rule in sorted(rules, key=lambda r: (r.start_date, r.id)):
        if not rule.is_active:
            continue

        touched = affected_nights(rule, nights)
        if not touched:
            continue

        value = Decimal(str(rule.value))
        raw = night_adjustment(rule.rule_type, value, base_price)
        applied_amount = to_money(raw * len(touched))
        per_night = to_money(raw)
        for night in touched:
            adjustments[night] += per_night
            rule_by_night[night] = rule.id
        # Last night takes the rounding remainder so nights add up to applied_amount
        adjustments[touched[-1]] += applied_amount - per_night * len(touched)

        applied.append(AppliedRule(
            id=rule.id,
            name=rule.name,
            rule_type=rule.rule_type,
            value=value,
            nights=len(touched),
            applied_amount=applied_amount
        ))

    breakdown = [
        NightPrice(
            date=night,
            base_price=base_price,
            price=base_price + adjustments[night],
            rule_id=rule_by_night.get(night)
        )
        for night in nights
    ]
    total = sum((n.price for n in breakdown), Decimal("0.00"))
    return total, breakdown, applied


class PricingEngine:
    """
    Core pricing engine for computing stay prices.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_room(self, room_id: str) -> Room:
        room = self.db.query(Room).filter(Room.id == room_id).first()
        if not room:
            raise NotFoundError("Room", room_id)
        return room

    def get_active_rules(self, room_id: str, stay: DateRange) -> List[RoomPricingRule]:
        """Active rules of the room that can touch the stay"""
        return self.db.query(RoomPricingRule).filter(
            RoomPricingRule.room_id == room_id,
            RoomPricingRule.is_active.is_(True),
            RoomPricingRule.start_date < stay.end,
            RoomPricingRule.end_date > stay.start
        ).order_by(RoomPricingRule.start_date).all()

    def calculate_price(
        self,
        room_id: str,
        check_in: date,
        check_out: date,
        guest_count: int = 1
    ) -> PriceQuote:
        """
        Compute the price of a stay [check_in, check_out).

        Raises:
            InvalidRangeError: check_out is not after check_in, or guest_count < 1
            NotFoundError: unknown room
        """
        stay = DateRange.validated(check_in, check_out, "Stay")
        if guest_count is None or guest_count < 1:
            raise InvalidRangeError("guest_count must be at least 1")

        room = self.get_room(room_id)
        rules = self.get_active_rules(room_id, stay)
        total, nights, applied = evaluate_rules(room.base_price, stay, rules)

        # Fees and occupancy tax are charged on the room total only
        service_fee = to_money(total * Decimal(str(room.service_fee_rate or 0)))
        tax = to_money(total * Decimal(str(room.tax_rate or 0)))

        logger.debug(
            f"Priced {stay.nights} nights for room {room_id}: total={total}, "
            f"rules={[r.id for r in applied]}"
        )

        return PriceQuote(
            room_id=room_id,
            check_in=check_in,
            check_out=check_out,
            guest_count=guest_count,
            number_of_nights=stay.nights,
            base_price=to_money(room.base_price),
            total=total,
            nights=nights,
            applied_rules=applied,
            service_fee=service_fee,
            tax=tax,
            grand_total=total + service_fee + tax,
            currency=room.currency or "USD"
        )


def get_pricing_engine(db: Session) -> PricingEngine:
    """Factory function to get a pricing engine instance"""
    return PricingEngine(db)
