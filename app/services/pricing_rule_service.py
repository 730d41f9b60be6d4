"""
Pricing Rule Service

CRUD for a room's pricing rules. Active rules of one room must not
overlap in date range; create/update check that under the per-room lock
and reject with a ConflictError naming the colliding rule.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from ..models.pricing import PricingRuleType, RoomPricingRule
from ..utils.date_range import DateRange
from ..utils.db_helpers import commit_or_raise, room_lock
from ..utils.logging_config import get_logger
from .conflict_detector import ConflictDetector
from .exceptions import ConflictError, InvalidRangeError, NotFoundError

logger = get_logger(__name__)

RULE_TYPES = {t.value for t in PricingRuleType}


def format_days_of_week(days: Optional[Iterable[int]]) -> Optional[str]:
    """[5, 4, 4] -> "4,5"; empty or None means every day"""
    if not days:
        return None
    unique = sorted(set(days))
    for d in unique:
        if d not in range(7):
            raise InvalidRangeError("days_of_week values must be 0-6")
    return ",".join(str(d) for d in unique)


def validate_rule_value(rule_type: str, value) -> Decimal:
    if rule_type not in RULE_TYPES:
        raise InvalidRangeError(f"Unknown rule type: {rule_type}")
    value = Decimal(str(value))
    if rule_type == PricingRuleType.ABSOLUTE_PRICE.value and value < 0:
        raise InvalidRangeError("absolute_price value cannot be negative")
    if rule_type == PricingRuleType.SURCHARGE_RATE.value and value <= -1:
        raise InvalidRangeError("surcharge_rate value must be greater than -1")
    return value


class PricingRuleService:

    def __init__(self, db: Session):
        self.db = db
        self.detector = ConflictDetector(db)

    def list_rules(
        self,
        room_id: str,
        is_active: Optional[bool] = None,
        window: Optional[DateRange] = None
    ) -> List[RoomPricingRule]:
        query = self.db.query(RoomPricingRule).filter(RoomPricingRule.room_id == room_id)
        if is_active is not None:
            query = query.filter(RoomPricingRule.is_active.is_(is_active))
        if window is not None:
            query = query.filter(
                RoomPricingRule.start_date < window.end,
                RoomPricingRule.end_date > window.start
            )
        return query.order_by(RoomPricingRule.start_date, RoomPricingRule.id).all()

    def get_rule(self, rule_id: str) -> RoomPricingRule:
        rule = self.db.query(RoomPricingRule).filter(RoomPricingRule.id == rule_id).first()
        if not rule:
            raise NotFoundError("Pricing rule", rule_id)
        return rule

    def _check_conflicts(self, room_id: str, rule_range: DateRange, exclude_id: Optional[str] = None):
        conflicts = self.detector.pricing_rule_conflicts(room_id, rule_range, exclude_id)
        if conflicts:
            existing = conflicts[0]
            logger.conflict_rejected(
                "Pricing rule", room_id, existing.id,
                f"{existing.start_date.isoformat()}..{existing.end_date.isoformat()}"
            )
            raise ConflictError(
                "Pricing rule", room_id, existing.id, existing.name,
                existing.start_date, existing.end_date
            )

    def create_rule(
        self,
        room_id: str,
        name: str,
        rule_type: str,
        value,
        start_date: date,
        end_date: date,
        is_active: bool = True,
        days_of_week: Optional[Iterable[int]] = None
    ) -> RoomPricingRule:
        """
        Create a rule over [start_date, end_date).

        Zero-width ranges are rejected: a rule must cover at least one night.
        """
        rule_range = DateRange.validated(start_date, end_date, "Pricing rule")
        value = validate_rule_value(rule_type, value)
        if not name or not name.strip():
            raise InvalidRangeError("Pricing rule name is required")
        weekdays = format_days_of_week(days_of_week)

        with room_lock(self.db, room_id):
            if is_active:
                self._check_conflicts(room_id, rule_range)

            rule = RoomPricingRule(
                room_id=room_id,
                name=name.strip(),
                rule_type=rule_type,
                value=value,
                start_date=start_date,
                end_date=end_date,
                is_active=is_active,
                days_of_week=weekdays
            )
            self.db.add(rule)
            commit_or_raise(self.db, "pricing rule create")

        self.db.refresh(rule)
        logger.info(f"Created pricing rule {rule.id} ({rule_type}={value}) on room {room_id} ({rule_range})")
        return rule

    def update_rule(self, rule_id: str, **changes) -> RoomPricingRule:
        """
        Update a rule; keys not present in changes are kept.

        Accepted keys: name, rule_type, value, start_date, end_date,
        is_active, days_of_week. The resulting rule is re-checked when it
        is (or becomes) active.
        """
        rule = self.get_rule(rule_id)
        room_id = rule.room_id

        with room_lock(self.db, room_id):
            self.db.refresh(rule)
            start_date = changes.get("start_date") or rule.start_date
            end_date = changes.get("end_date") or rule.end_date
            rule_range = DateRange.validated(start_date, end_date, "Pricing rule")
            rule_type = changes.get("rule_type") or rule.rule_type
            value = changes["value"] if changes.get("value") is not None else rule.value
            value = validate_rule_value(rule_type, value)
            is_active = changes["is_active"] if changes.get("is_active") is not None else rule.is_active

            if is_active:
                self._check_conflicts(room_id, rule_range, exclude_id=rule.id)

            if changes.get("name") is not None:
                if not changes["name"].strip():
                    raise InvalidRangeError("Pricing rule name is required")
                rule.name = changes["name"].strip()
            if "days_of_week" in changes:
                rule.days_of_week = format_days_of_week(changes["days_of_week"])
            rule.rule_type = rule_type
            rule.value = value
            rule.start_date = start_date
            rule.end_date = end_date
            rule.is_active = is_active

            commit_or_raise(self.db, "pricing rule update")

        self.db.refresh(rule)
        return rule

    def delete_rule(self, rule_id: str) -> str:
        rule = self.get_rule(rule_id)
        room_id = rule.room_id

        with room_lock(self.db, room_id):
            self.db.delete(rule)
            commit_or_raise(self.db, "pricing rule delete")

        logger.info(f"Deleted pricing rule {rule_id} on room {room_id}")
        return rule_id
