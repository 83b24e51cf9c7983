"""
Pricing Rule Resolver

Selects the one dynamic pricing rule that applies to a resource on a date for a
plan, and reduces it to an effective multiplier so the price calculator can
apply a single uniform operation whatever the rule type.

Selection:
1. keep active rules whose scope covers the resource, whose condition
   (day-of-week set and/or inclusive date range) holds on the date, whose
   booking window (min/max days booked in advance) holds, and which define a
   value for the plan
2. keep only the most specific scope present (resource > category > property)
3. highest priority wins; ties go to the most recently created rule

No matching rule means multiplier 1.
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import InvalidInputError, PricingError
from .records import (
    AdjustmentType,
    BookableResource,
    DateRange,
    PricingRule,
    RuleResolution,
    RuleScope,
    SCOPE_PRECEDENCE,
    day_of_week,
)

logger = logging.getLogger(__name__)

ONE = Decimal("1")
HUNDRED = Decimal("100")


# ==================
# Adjustment types
# ==================

def _multiplier(base_price: Decimal, value: Decimal) -> Decimal:
    return base_price * value


def _percentage(base_price: Decimal, value: Decimal) -> Decimal:
    return base_price * (ONE + value / HUNDRED)


def _fixed_amount(base_price: Decimal, value: Decimal) -> Decimal:
    return base_price + value


ADJUSTERS: Dict[str, Callable[[Decimal, Decimal], Decimal]] = {
    AdjustmentType.MULTIPLIER.value: _multiplier,
    AdjustmentType.PERCENTAGE.value: _percentage,
    AdjustmentType.FIXED_AMOUNT.value: _fixed_amount,
}


def adjusted_price(adjustment_type: str, value: Decimal, base_price: Decimal) -> Decimal:
    adjuster = ADJUSTERS.get(adjustment_type)
    if adjuster is None:
        raise PricingError(f"Unknown adjustment type: {adjustment_type!r}")
    return adjuster(base_price, value)


def effective_multiplier(adjustment_type: str, value: Decimal, base_price: Decimal) -> Decimal:
    """
    Express any adjustment as adjusted_price / base_price.

    A zero base price has no meaningful ratio; the multiplier is then 1 and the
    missing price is flagged further up.
    """
    if base_price is None or base_price <= 0:
        if adjustment_type not in ADJUSTERS:
            raise PricingError(f"Unknown adjustment type: {adjustment_type!r}")
        return ONE

    price = adjusted_price(adjustment_type, Decimal(value), base_price)
    if price < 0:
        raise PricingError(
            f"{adjustment_type} adjustment of {value} drives the price below zero"
        )
    return price / base_price


# ==================
# Matching
# ==================

def rule_matches_date(rule: PricingRule, day: date) -> bool:
    """Both conditions must hold when both are set; no condition matches every date"""
    if rule.days_of_week is not None and day_of_week(day) not in rule.days_of_week:
        return False
    if rule.start_date is not None and day < rule.start_date:
        return False
    if rule.end_date is not None and day > rule.end_date:
        return False
    return True


def rule_matches_advance(rule: PricingRule, advance_days: Optional[int]) -> bool:
    """
    Booking-window condition, counted in days from booking to arrival.

    A rule with a window never matches when the booking date is unknown.
    """
    if rule.min_advance_days is None and rule.max_advance_days is None:
        return True
    if advance_days is None:
        return False
    if rule.min_advance_days is not None and advance_days < rule.min_advance_days:
        return False
    if rule.max_advance_days is not None and advance_days > rule.max_advance_days:
        return False
    return True


def rule_covers_resource(rule: PricingRule, resource: BookableResource) -> bool:
    if rule.scope == RuleScope.RESOURCE.value:
        return rule.scope_id == resource.id
    if rule.scope == RuleScope.CATEGORY.value:
        category = resource.category_id or resource.ref.room_category_code
        return category is not None and rule.scope_id == category
    if rule.scope == RuleScope.PROPERTY.value:
        return rule.scope_id == resource.ref.property_id
    return False


def applicable_rules(
    rules: Iterable[PricingRule],
    resource: BookableResource,
    day: date,
    plan_code: str,
    advance_days: Optional[int] = None
) -> List[PricingRule]:
    """Matching rules of the most specific scope present"""
    matching = [
        rule for rule in rules
        if rule.is_active
        and rule_covers_resource(rule, resource)
        and rule_matches_date(rule, day)
        and rule_matches_advance(rule, advance_days)
        and rule.value_for(plan_code) is not None
    ]
    for scope in SCOPE_PRECEDENCE:
        scoped = [rule for rule in matching if rule.scope == scope]
        if scoped:
            return scoped
    return []


def _precedence_key(rule: PricingRule) -> Tuple[int, datetime, str]:
    return (rule.priority, rule.created_at or datetime.min, rule.id)


def advance_days_between(booked_on: Optional[date], arrival: date) -> Optional[int]:
    if booked_on is None:
        return None
    return (arrival - booked_on).days


def resolve(
    resource: BookableResource,
    day: date,
    plan_code: str,
    rules: Sequence[PricingRule],
    base_price: Optional[Decimal] = None,
    advance_days: Optional[int] = None
) -> RuleResolution:
    """
    Pick the winning rule for one date and turn it into a multiplier.

    rules are handed in by the caller; nothing is read from shared state.
    base_price is the pre-adjustment price the multiplier is relative to
    (needed for fixed_amount rules); defaults to the resource base price.
    advance_days is how far ahead of arrival the booking is made; None when
    the booking date is unknown.
    """
    if not isinstance(day, date):
        raise InvalidInputError("Pricing date must be a calendar date")

    candidates = applicable_rules(rules, resource, day, plan_code, advance_days)
    if not candidates:
        return RuleResolution(multiplier=ONE)

    ordered = sorted(candidates, key=_precedence_key, reverse=True)
    winner = ordered[0]
    tied = [rule for rule in ordered if rule.priority == winner.priority]

    if len(tied) > 1:
        logger.info(
            f"Pricing rule tie on {day.isoformat()} for resource {resource.id}: "
            f"priority {winner.priority} shared by {[r.id for r in tied]}, "
            f"most recent rule {winner.id} applied"
        )

    if base_price is None:
        base_price = resource.base_price

    multiplier = effective_multiplier(
        winner.adjustment_type,
        winner.value_for(plan_code),
        base_price
    )

    return RuleResolution(
        multiplier=multiplier,
        applied_rule_id=winner.id,
        rule_type=winner.rule_type,
        candidates=len(candidates),
        tie_broken=len(tied) > 1
    )


def resolve_stay(
    resource: BookableResource,
    stay: DateRange,
    plan_code: str,
    rules: Sequence[PricingRule],
    base_price: Optional[Decimal] = None,
    booked_on: Optional[date] = None
) -> Tuple[RuleResolution, ...]:
    """One resolution per night; the booking window is measured to check-in"""
    advance_days = advance_days_between(booked_on, stay.start)
    return tuple(
        resolve(resource, night, plan_code, rules, base_price, advance_days)
        for night in stay.each_night()
    )


def combined_multiplier(resolutions: Sequence[RuleResolution]) -> Decimal:
    """
    Single multiplier equivalent to applying each night's multiplier to that night.

    Every night carries the same pre-adjustment amount, so the mean of the
    nightly multipliers reproduces the per-night sum exactly.
    """
    if not resolutions:
        return ONE
    return sum((r.multiplier for r in resolutions), Decimal("0")) / len(resolutions)
