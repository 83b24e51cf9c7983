"""
Repositories

Read the raw rows the engine needs and hand them over as engine records.
Any database failure is raised as RepositoryError so callers can tell "could
not determine availability" apart from "unavailable".
"""

import logging
from contextlib import contextmanager
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Mapping, Optional, Tuple, Union

from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import MaintenanceWindowRow, PricingRuleRow, ReservationRow, Resource, StayRuleRow
from .errors import InvalidInputError, MissingConfigurationError, RepositoryError, ResourceNotFoundError
from .records import (
    TERMINAL_STATUSES,
    BookableResource,
    DateRange,
    MaintenanceWindow,
    PricingRule,
    Reservation,
    ResourceRef,
    RuleScope,
    StayRule,
    TimeSlot,
)

logger = logging.getLogger(__name__)


@contextmanager
def reading(what: str):
    """Translate storage failures into RepositoryError"""
    try:
        yield
    except SQLAlchemyError as e:
        logger.error(f"Failed to read {what}: {e}")
        raise RepositoryError(f"Could not read {what}") from e


# ==================
# Row -> record conversion
# ==================

def _money(value, what: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise MissingConfigurationError(f"{what} is not a valid amount: {value!r}") from e


def _price(value, what: str, faults: List[str]) -> Optional[Decimal]:
    """Lenient _money for price configuration: a bad value is recorded, not raised"""
    if value is None:
        return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        amount = None
    if amount is None or not amount.is_finite():
        faults.append(f"{what} is not a valid amount: {value!r}")
        return None
    return amount


def _plan_rates(raw: Mapping, faults: List[str]) -> Dict[Tuple[str, str], Decimal]:
    rates = {}
    for key, price in (raw or {}).items():
        plan_code, _, occupancy_code = str(key).partition(":")
        if not plan_code or not occupancy_code:
            faults.append(f"malformed plan rate key {key!r} (expected PLAN:OCCUPANCY)")
            continue
        rate = _price(price, f"plan rate {key}", faults)
        if rate is not None:
            rates[(plan_code, occupancy_code)] = rate
    return rates


def maintenance_to_record(row: MaintenanceWindowRow) -> MaintenanceWindow:
    return MaintenanceWindow(
        resource_id=row.resource_id,
        start_date=row.start_date,
        end_date=row.end_date,
        is_active=bool(row.is_active),
        reason=row.reason,
    )


def resource_to_record(row: Resource) -> BookableResource:
    """
    Malformed prices do not stop the conversion: they land in pricing_faults so
    availability still answers and only quotes fail.
    """
    try:
        ref = ResourceRef(
            property_id=row.property_id,
            room_category_code=row.room_category_code,
            plan_code=row.plan_code,
            occupancy_code=row.occupancy_code,
            venue_id=row.venue_id,
        )
    except InvalidInputError as e:
        raise MissingConfigurationError(f"Resource {row.id} is misconfigured: {e}") from e

    faults: List[str] = []
    base_price = _price(row.base_price, "base_price", faults)
    plan_rates = _plan_rates(row.plan_rates, faults)
    meal_prices = {
        meal: _price(price, f"meal price {meal}", faults)
        for meal, price in (row.meal_prices or {}).items()
    }
    extra_guest_charge = _price(row.extra_guest_charge or 0, "extra_guest_charge", faults)
    tax_rate = _price(row.tax_rate, "tax_rate", faults)
    service_fee_rate = _price(row.service_fee_rate, "service_fee_rate", faults)

    return BookableResource(
        id=row.id,
        ref=ref,
        name=row.name or "",
        base_price=base_price,
        is_active=bool(row.is_active),
        capacities={style: int(value) for style, value in (row.capacities or {}).items()},
        inventory=row.inventory if row.inventory is not None else 1,
        plan_rates=plan_rates,
        meal_prices=meal_prices,
        extra_guest_charge=extra_guest_charge if extra_guest_charge is not None else Decimal("0"),
        tax_rate=tax_rate,
        service_fee_rate=service_fee_rate,
        window_open=row.window_open,
        window_close=row.window_close,
        category_id=row.category_id,
        maintenance_windows=tuple(maintenance_to_record(w) for w in row.maintenance_windows),
        pricing_faults=tuple(faults),
    )


def reservation_to_record(row: ReservationRow) -> Reservation:
    return Reservation(
        id=row.id,
        resource_id=row.resource_id,
        status=row.status,
        guest_count=row.guest_count,
        rooms=row.rooms or 1,
        date_from=row.date_from,
        date_to=row.date_to,
        event_date=row.event_date,
        start_time=row.start_time,
        end_time=row.end_time,
        label=row.guest_name,
        created_at=row.created_at,
    )


def pricing_rule_to_record(row: PricingRuleRow) -> PricingRule:
    days = row.days_of_week
    return PricingRule(
        id=row.id,
        scope=row.scope,
        scope_id=row.scope_id,
        rule_type=row.rule_type,
        adjustment_type=row.adjustment_type,
        adjustment_values={
            plan: _money(value, f"rule {row.id} value for {plan}")
            for plan, value in (row.adjustment_values or {}).items()
        },
        priority=row.priority or 0,
        is_active=bool(row.is_active),
        days_of_week=frozenset(int(d) for d in days) if days else None,
        start_date=row.start_date,
        end_date=row.end_date,
        min_advance_days=row.min_advance_days,
        max_advance_days=row.max_advance_days,
        name=row.name or "",
        created_at=row.created_at,
    )


def stay_rule_to_record(row: StayRuleRow) -> StayRule:
    return StayRule(
        id=row.id,
        min_stay=row.min_stay or 1,
        max_stay=row.max_stay,
        start_date=row.start_date,
        end_date=row.end_date,
        priority=row.priority or 0,
        is_active=bool(row.is_active),
    )


# ==================
# Repositories
# ==================

class ResourceRepository:
    """Capacity, prices and maintenance windows of bookable resources"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_ref(self, ref: ResourceRef) -> BookableResource:
        with reading(f"resource {ref.key}"):
            row = self.db.query(Resource).filter(Resource.resource_key == ref.key).first()
            if row is None:
                raise ResourceNotFoundError(f"No bookable resource for {ref.key}")
            return resource_to_record(row)


class ReservationRepository:
    """Non-terminal reservations of a resource around a date window"""

    def __init__(self, db: Session):
        self.db = db

    def list_active(self, resource_id: str, window: Union[DateRange, TimeSlot]) -> List[Reservation]:
        """
        Stays overlapping the range, or every booking on the slot's date
        (the whole day is needed for free-slot suggestions).
        """
        query = self.db.query(ReservationRow).filter(
            ReservationRow.resource_id == resource_id,
            ReservationRow.status.notin_(sorted(TERMINAL_STATUSES)),
        )
        if isinstance(window, DateRange):
            query = query.filter(
                ReservationRow.date_from < window.end,
                ReservationRow.date_to > window.start,
            )
        else:
            query = query.filter(ReservationRow.event_date == window.event_date)

        with reading(f"reservations of {resource_id}"):
            rows = query.all()
        return [reservation_to_record(row) for row in rows]


class PricingRuleRepository:
    """Active rules scoped to a resource, its category or its property"""

    def __init__(self, db: Session):
        self.db = db

    def list_for(self, resource: BookableResource) -> List[PricingRule]:
        scopes = [
            and_(PricingRuleRow.scope == RuleScope.RESOURCE.value, PricingRuleRow.scope_id == resource.id),
            and_(PricingRuleRow.scope == RuleScope.PROPERTY.value, PricingRuleRow.scope_id == resource.ref.property_id),
        ]
        category = resource.category_id or resource.ref.room_category_code
        if category:
            scopes.append(
                and_(PricingRuleRow.scope == RuleScope.CATEGORY.value, PricingRuleRow.scope_id == category)
            )

        with reading(f"pricing rules of {resource.id}"):
            rows = (
                self.db.query(PricingRuleRow)
                .filter(PricingRuleRow.is_active == True)  # noqa: E712
                .filter(or_(*scopes))
                .all()
            )
        return [pricing_rule_to_record(row) for row in rows]

    def list_or_fault(self, resource: BookableResource) -> Tuple[List[PricingRule], Optional[str]]:
        """
        Rules for a check-and-quote or a commit, where a malformed rule must
        not hide the availability verdict: the fault is returned instead of raised.
        """
        try:
            return self.list_for(resource), None
        except MissingConfigurationError as e:
            logger.error(f"Pricing rules of {resource.id} are misconfigured: {e}")
            return [], str(e)


class StayRuleRepository:
    """Property-wide and resource-specific min/max stay rules"""

    def __init__(self, db: Session):
        self.db = db

    def list_for(self, resource: BookableResource) -> List[StayRule]:
        with reading(f"stay rules of {resource.id}"):
            rows = (
                self.db.query(StayRuleRow)
                .filter(
                    StayRuleRow.property_id == resource.ref.property_id,
                    StayRuleRow.is_active == True,  # noqa: E712
                    or_(StayRuleRow.resource_id.is_(None), StayRuleRow.resource_id == resource.id),
                )
                .all()
            )
        return [stay_rule_to_record(row) for row in rows]
