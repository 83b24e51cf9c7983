"""
Availability & Pricing Facade

Answers "is X available for Y, and what would it cost?" for room stays and
venue slots.

The module-level functions are the pure engine: they take a resource snapshot,
its reservations and its rules as arguments and never touch storage.
AvailabilityService wraps them for request handlers: it loads the snapshot
through the repositories, then logs and counts each evaluation.

Availability is provisional. Only ReservationService.commit makes it final.
"""

import time as _time
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from sqlalchemy.orm import Session

from ..utils.logging_config import get_logger, set_resource_context
from ..utils import metrics
from .capacity_evaluator import (
    check_capacity,
    check_maintenance,
    check_stay_length,
    maintenance_days,
    remaining_inventory,
)
from .conflict_checker import find_conflicts, suggest_free_slots
from .errors import EngineError, InvalidInputError, MissingConfigurationError
from .price_calculator import compute_breakdown
from .pricing_rules import advance_days_between, combined_multiplier, resolve, resolve_stay
from .records import (
    ANY_PLAN,
    OCCUPANCY_GUESTS,
    PER_ROOM_LAYOUT,
    AvailabilityQuote,
    AvailabilityResult,
    BookableResource,
    DateRange,
    EngineConfig,
    PlanSelection,
    PriceComponents,
    PricingRule,
    Quote,
    QuoteLine,
    Reservation,
    ResourceKind,
    ResourceRef,
    StayRule,
    TimeSlot,
    sum_money,
)
from .repositories import (
    PricingRuleRepository,
    ReservationRepository,
    ResourceRepository,
    StayRuleRepository,
)

logger = get_logger(__name__)

Window = Union[DateRange, TimeSlot]

ZERO = Decimal("0")
HUNDRED = Decimal("100")

MISSING_BASE_PRICE = "missing_base_price"


# ==================
# Input validation
# ==================

def _validate_window(resource: BookableResource, window: Window) -> None:
    if resource.kind == ResourceKind.VENUE and not isinstance(window, TimeSlot):
        raise InvalidInputError("Venue availability is checked for an event date and time slot")
    if resource.kind == ResourceKind.ROOM and not isinstance(window, DateRange):
        raise InvalidInputError("Room availability is checked for a check-in/check-out date range")


def _validate_count(value: Optional[int], name: str) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidInputError(f"{name} must be a positive integer")


def _validate_discount(discount_percent) -> Decimal:
    try:
        value = Decimal(str(discount_percent))
    except ArithmeticError as exc:
        raise InvalidInputError("discount_percent must be numeric") from exc
    if value < 0 or value > HUNDRED:
        raise InvalidInputError("discount_percent must be between 0 and 100")
    return value


def _meal_addons(resource: BookableResource, meals: Iterable[str]) -> Dict[str, Decimal]:
    addons = {}
    for meal in meals:
        if meal not in resource.meal_prices:
            raise InvalidInputError(f"Meal '{meal}' is not offered by {resource.name or resource.id}")
        addons[meal] = resource.meal_prices[meal]
    return addons


def _validate_pricing_configuration(resource: BookableResource) -> None:
    """
    Resource prices a quote can be built from.

    Raises MissingConfigurationError, never InvalidInputError: the caller's
    request is fine, the resource is not.
    """
    problems = list(resource.pricing_faults)
    amounts = [
        ("base_price", resource.base_price),
        ("extra_guest_charge", resource.extra_guest_charge),
        ("tax_rate", resource.tax_rate),
        ("service_fee_rate", resource.service_fee_rate),
    ]
    amounts += [(f"meal price {meal}", price) for meal, price in resource.meal_prices.items()]
    amounts += [(f"plan rate {plan}:{occupancy}", rate) for (plan, occupancy), rate in resource.plan_rates.items()]
    for name, value in amounts:
        if value is not None and value < 0:
            problems.append(f"{name} cannot be negative")
    if problems:
        raise MissingConfigurationError(
            f"Pricing of {resource.name or resource.id} is misconfigured: {'; '.join(problems)}"
        )


def _room_selections(
    resource: BookableResource,
    guests: int,
    rooms: int,
    plan_selections: Optional[Sequence[PlanSelection]]
) -> Tuple[PlanSelection, ...]:
    """
    Plan/occupancy mix of a room quote.

    Without explicit selections the resource's own plan and occupancy apply to
    every room. Several selections must each carry their guests and add up to
    the requested rooms and guests.
    """
    if not plan_selections:
        return (PlanSelection(
            plan_code=resource.ref.plan_code,
            occupancy_code=resource.ref.occupancy_code,
            rooms=rooms,
            guests=guests,
        ),)

    selections = tuple(plan_selections)
    if len(selections) == 1:
        only = selections[0]
        if only.rooms != rooms:
            raise InvalidInputError("Plan selection rooms must match the requested rooms")
        if only.guests is not None and only.guests != guests:
            raise InvalidInputError("Plan selection guests must match the requested guests")
        return (PlanSelection(only.plan_code, only.occupancy_code, only.rooms, guests),)

    if any(selection.guests is None for selection in selections):
        raise InvalidInputError("Every plan selection needs a guest count when several are given")
    if sum(selection.rooms for selection in selections) != rooms:
        raise InvalidInputError("Plan selection rooms must add up to the requested rooms")
    if sum(selection.guests for selection in selections) != guests:
        raise InvalidInputError("Plan selection guests must add up to the requested guests")
    return selections


# ==================
# Availability
# ==================

def _for_resource(resource: BookableResource, reservations: Iterable[Reservation]) -> List[Reservation]:
    return [r for r in reservations if r.resource_id == resource.id]


def evaluate_stay(
    resource: BookableResource,
    stay: DateRange,
    existing_reservations: Sequence[Reservation],
    guest_count: Optional[int] = None,
    rooms: int = 1,
    layout_style: Optional[str] = None,
    exclude_reservation_id: Optional[str] = None,
    stay_rules: Sequence[StayRule] = (),
    config: EngineConfig = EngineConfig()
) -> AvailabilityResult:
    """Availability of `rooms` rooms of a category/plan/occupancy for a stay"""
    reasons: List[str] = []
    if not resource.is_active:
        reasons.append("Room category is not currently bookable")

    conflicts = find_conflicts(stay, existing_reservations, exclude_reservation_id)
    remaining = remaining_inventory(resource, stay, conflicts)
    if remaining < rooms:
        if remaining == 0:
            reasons.append(f"No rooms left for the selected dates ({len(conflicts)} overlapping reservations)")
        else:
            reasons.append(f"Only {remaining} of {rooms} requested rooms left for the selected dates")

    capacity_info = None
    if guest_count is not None:
        layout = layout_style or PER_ROOM_LAYOUT
        capacity_info = check_capacity(resource, layout, guest_count, units=rooms)
        if not capacity_info.has_capacity:
            reasons.append(
                f"{guest_count} guests exceed the capacity of {capacity_info.available_capacity} "
                f"for {rooms} room(s)"
            )

    blocked = maintenance_days(resource, stay.each_night())
    if blocked:
        days = ", ".join(day.isoformat() for day in blocked)
        reasons.append(f"Under maintenance on {days}")

    reasons.extend(check_stay_length(stay, stay_rules, config.max_stay_nights))

    return AvailabilityResult(
        is_available=not reasons,
        conflicting_reservations=tuple(conflicts),
        capacity_info=capacity_info,
        reasons_unavailable=tuple(reasons),
        under_maintenance=bool(blocked),
        remaining_inventory=remaining,
    )


def evaluate_slot(
    resource: BookableResource,
    slot: TimeSlot,
    existing_reservations: Sequence[Reservation],
    guest_count: Optional[int] = None,
    layout_style: Optional[str] = None,
    exclude_reservation_id: Optional[str] = None,
    config: EngineConfig = EngineConfig()
) -> AvailabilityResult:
    """Availability of a venue for a time slot on one date"""
    reasons: List[str] = []
    if not resource.is_active:
        reasons.append("Venue is not currently bookable")

    conflicts = find_conflicts(slot, existing_reservations, exclude_reservation_id)
    if conflicts:
        reasons.append(f"Time slot conflicts with {len(conflicts)} existing booking(s)")

    capacity_info = None
    if guest_count is not None:
        capacity_info = check_capacity(resource, layout_style, guest_count)
        if not capacity_info.has_capacity:
            reasons.append(
                f"{guest_count} guests exceed the {layout_style} capacity of "
                f"{capacity_info.available_capacity}"
            )

    under_maintenance = check_maintenance(resource, slot.event_date)
    if under_maintenance:
        reasons.append(f"Venue is under maintenance on {slot.event_date.isoformat()}")

    suggestions = ()
    if conflicts and not under_maintenance:
        same_day = [r for r in existing_reservations if r.event_date == slot.event_date]
        suggestions = tuple(suggest_free_slots(
            same_day,
            resource.window_open or config.window_open,
            resource.window_close or config.window_close,
            min_gap_minutes=config.min_gap_minutes,
            exclude_id=exclude_reservation_id,
        ))

    return AvailabilityResult(
        is_available=not reasons,
        conflicting_reservations=tuple(conflicts),
        capacity_info=capacity_info,
        suggested_slots=suggestions,
        reasons_unavailable=tuple(reasons),
        under_maintenance=under_maintenance,
    )


def check_availability(
    resource: BookableResource,
    window: Window,
    existing_reservations: Sequence[Reservation],
    guest_count: Optional[int] = None,
    layout_style: Optional[str] = None,
    exclude_reservation_id: Optional[str] = None,
    rooms: int = 1,
    stay_rules: Sequence[StayRule] = (),
    config: EngineConfig = EngineConfig()
) -> AvailabilityResult:
    """
    Combined verdict: no conflict, enough capacity, not under maintenance
    (and, for stays, enough rooms and an allowed stay length).

    Every failing clause contributes a reason, in that order.
    """
    _validate_window(resource, window)
    _validate_count(guest_count, "guest_count")
    _validate_count(rooms, "rooms")

    reservations = _for_resource(resource, existing_reservations)

    if isinstance(window, TimeSlot):
        if guest_count is not None and not layout_style:
            raise InvalidInputError("layout_style is required when checking venue capacity")
        return evaluate_slot(
            resource, window, reservations, guest_count, layout_style,
            exclude_reservation_id, config
        )

    return evaluate_stay(
        resource, window, reservations, guest_count, rooms, layout_style,
        exclude_reservation_id, stay_rules, config
    )


# ==================
# Pricing
# ==================

def _quote_from_lines(resource: BookableResource, lines: Sequence[QuoteLine]) -> Quote:
    breakdowns = [line.breakdown for line in lines]
    flags: Tuple[str, ...] = ()
    for breakdown in breakdowns:
        flags += tuple(flag for flag in breakdown.flags if flag not in flags)

    return Quote(
        resource_id=resource.id,
        lines=tuple(lines),
        subtotal=sum_money([b.subtotal for b in breakdowns]),
        dynamic_adjustment=sum_money([b.dynamic_adjustment for b in breakdowns]),
        discount=sum_money([b.discount for b in breakdowns]),
        taxes=sum_money([b.taxes for b in breakdowns]),
        service_fee=sum_money([b.service_fee for b in breakdowns]),
        total=sum_money([b.total for b in breakdowns]),
        flags=flags,
    )


def quote_stay(
    resource: BookableResource,
    stay: DateRange,
    guests: int,
    rooms: int = 1,
    plan_selections: Optional[Sequence[PlanSelection]] = None,
    meals: Sequence[str] = (),
    rules: Sequence[PricingRule] = (),
    discount_percent=ZERO,
    config: EngineConfig = EngineConfig(),
    booked_on: Optional[date] = None
) -> Quote:
    """
    Price a room stay, one line per plan/occupancy selection.

    Rules are resolved per night; each line's dynamic multiplier is the
    nightly multipliers combined. booked_on feeds booking-window rules.
    """
    if guests is None:
        raise InvalidInputError("guests is required to quote a price")
    _validate_count(guests, "guests")
    _validate_count(rooms, "rooms")
    discount = _validate_discount(discount_percent)
    selections = _room_selections(resource, guests, rooms, plan_selections)
    addons = _meal_addons(resource, meals)
    _validate_pricing_configuration(resource)

    lines = []
    for selection in selections:
        flags = []
        base_price = resource.nightly_rate(selection.plan_code, selection.occupancy_code)
        if base_price is None:
            logger.warning(
                f"No rate for {selection.plan_code}/{selection.occupancy_code} on {resource.id}; "
                f"quoting zero"
            )
            base_price = ZERO
            flags.append(MISSING_BASE_PRICE)

        resolutions = resolve_stay(resource, stay, selection.plan_code, rules, base_price, booked_on)
        for night, resolution in zip(stay.each_night(), resolutions):
            logger.rule_resolved(resource.id, night.isoformat(), resolution.applied_rule_id, resolution.multiplier)

        components = PriceComponents(
            base_price=base_price,
            nights=stay.nights,
            rooms=selection.rooms,
            guests=selection.guests,
            extra_guest_charge=resource.extra_guest_charge,
            free_guest_limit=OCCUPANCY_GUESTS[selection.occupancy_code] * selection.rooms,
            meal_addons=addons,
            dynamic_multiplier=combined_multiplier(resolutions),
            discount_percent=discount,
            tax_rate=resource.tax_rate,
            service_fee_rate=resource.service_fee_rate,
        )
        breakdown = compute_breakdown(
            components, config.default_tax_rate, config.default_service_fee_rate
        ).with_flags(*flags)
        lines.append(QuoteLine(
            plan_code=selection.plan_code,
            occupancy_code=selection.occupancy_code,
            breakdown=breakdown,
            nightly_resolutions=resolutions,
        ))

    return _quote_from_lines(resource, lines)


def quote_slot(
    resource: BookableResource,
    slot: TimeSlot,
    guests: int,
    meals: Sequence[str] = (),
    rules: Sequence[PricingRule] = (),
    discount_percent=ZERO,
    config: EngineConfig = EngineConfig(),
    booked_on: Optional[date] = None
) -> Quote:
    """
    Price a venue slot: hourly rate times billable hours, catering per guest.

    The event date is resolved once against rules valued for every plan ("*").
    """
    if guests is None:
        raise InvalidInputError("guests is required to quote a price")
    _validate_count(guests, "guests")
    discount = _validate_discount(discount_percent)
    addons = _meal_addons(resource, meals)
    _validate_pricing_configuration(resource)

    flags = []
    hourly_rate = resource.base_price
    if hourly_rate is None:
        logger.warning(f"Venue {resource.id} has no hourly rate; quoting zero")
        hourly_rate = ZERO
        flags.append(MISSING_BASE_PRICE)
    base_price = hourly_rate * slot.billable_hours

    resolution = resolve(
        resource, slot.event_date, ANY_PLAN, rules, base_price,
        advance_days_between(booked_on, slot.event_date)
    )
    logger.rule_resolved(
        resource.id, slot.event_date.isoformat(), resolution.applied_rule_id, resolution.multiplier
    )

    components = PriceComponents(
        base_price=base_price,
        nights=1,
        rooms=1,
        guests=guests,
        extra_guest_charge=resource.extra_guest_charge,
        free_guest_limit=guests,
        meal_addons=addons,
        dynamic_multiplier=resolution.multiplier,
        discount_percent=discount,
        tax_rate=resource.tax_rate,
        service_fee_rate=resource.service_fee_rate,
    )
    breakdown = compute_breakdown(
        components, config.default_tax_rate, config.default_service_fee_rate
    ).with_flags(*flags)

    return _quote_from_lines(resource, [QuoteLine(
        plan_code=None,
        occupancy_code=None,
        breakdown=breakdown,
        nightly_resolutions=(resolution,),
    )])


def quote_price(
    resource: BookableResource,
    window: Window,
    guests: int,
    rooms: int = 1,
    plan_selections: Optional[Sequence[PlanSelection]] = None,
    meals: Sequence[str] = (),
    rules: Sequence[PricingRule] = (),
    discount_percent=ZERO,
    config: EngineConfig = EngineConfig(),
    booked_on: Optional[date] = None
) -> Quote:
    """Price a stay or a slot, whichever the resource takes"""
    _validate_window(resource, window)
    if isinstance(window, TimeSlot):
        if plan_selections:
            raise InvalidInputError("Venue quotes do not take plan selections")
        return quote_slot(resource, window, guests, meals, rules, discount_percent, config, booked_on)
    return quote_stay(
        resource, window, guests, rooms, plan_selections, meals, rules, discount_percent,
        config, booked_on
    )


def check_availability_and_quote(
    resource: BookableResource,
    window: Window,
    existing_reservations: Sequence[Reservation],
    guest_count: int,
    rules: Sequence[PricingRule] = (),
    layout_style: Optional[str] = None,
    rooms: int = 1,
    plan_selections: Optional[Sequence[PlanSelection]] = None,
    meals: Sequence[str] = (),
    discount_percent=ZERO,
    exclude_reservation_id: Optional[str] = None,
    stay_rules: Sequence[StayRule] = (),
    config: EngineConfig = EngineConfig(),
    booked_on: Optional[date] = None,
    pricing_fault: Optional[str] = None
) -> AvailabilityQuote:
    """
    Availability verdict plus, when available, its price.

    Inputs are validated before anything is evaluated. An unavailable request
    is never priced. A pricing fault leaves the verdict intact: quote is None
    and pricing_error says why. pricing_fault carries a fault found while
    loading the rules, e.g. a stored rule with a malformed value.
    """
    _validate_window(resource, window)
    if guest_count is None:
        raise InvalidInputError("guest_count is required to quote a price")
    _validate_count(guest_count, "guest_count")
    _validate_count(rooms, "rooms")
    _validate_discount(discount_percent)
    _meal_addons(resource, meals)
    if isinstance(window, DateRange):
        _room_selections(resource, guest_count, rooms, plan_selections)
    elif plan_selections:
        raise InvalidInputError("Venue quotes do not take plan selections")

    availability = check_availability(
        resource, window, existing_reservations,
        guest_count=guest_count,
        layout_style=layout_style,
        exclude_reservation_id=exclude_reservation_id,
        rooms=rooms,
        stay_rules=stay_rules,
        config=config,
    )
    if not availability.is_available:
        return AvailabilityQuote(availability=availability)
    if pricing_fault:
        logger.warning(f"Pricing skipped for available resource {resource.id}: {pricing_fault}")
        return AvailabilityQuote(availability=availability, pricing_error=pricing_fault)

    # request inputs passed validation above; what fails from here is pricing
    try:
        quote = quote_price(
            resource, window, guest_count, rooms, plan_selections, meals, rules,
            discount_percent, config, booked_on
        )
    except EngineError as exc:
        logger.warning(f"Pricing failed for available resource {resource.id}: {exc}")
        return AvailabilityQuote(availability=availability, pricing_error=str(exc))

    return AvailabilityQuote(availability=availability, quote=quote)


# ==================
# Storage-backed facade
# ==================

class AvailabilityService:
    """
    Loads snapshots through the repositories and runs the engine on them.

    Repository failures surface as RepositoryError; they are never turned
    into an "unavailable" verdict.
    """

    def __init__(self, db: Session, config: EngineConfig = None):
        self.db = db
        self.config = config or EngineConfig()
        self.resources = ResourceRepository(db)
        self.reservations = ReservationRepository(db)
        self.pricing_rules = PricingRuleRepository(db)
        self.stay_rules = StayRuleRepository(db)

    def _load(self, ref: ResourceRef) -> BookableResource:
        resource = self.resources.get_by_ref(ref)
        set_resource_context(resource.id)
        return resource

    def _snapshot(self, resource: BookableResource, window: Window) -> Tuple[List[Reservation], List[StayRule]]:
        reservations = self.reservations.list_active(resource.id, window)
        stay_rules = []
        if isinstance(window, DateRange):
            stay_rules = self.stay_rules.list_for(resource)
        return reservations, stay_rules

    def check(
        self,
        ref: ResourceRef,
        window: Window,
        guest_count: Optional[int] = None,
        layout_style: Optional[str] = None,
        rooms: int = 1,
        exclude_reservation_id: Optional[str] = None
    ) -> Tuple[BookableResource, AvailabilityResult]:
        resource = self._load(ref)
        reservations, stay_rules = self._snapshot(resource, window)

        started = _time.perf_counter()
        with metrics.engine_duration_seconds.time(operation="check"):
            result = check_availability(
                resource, window, reservations,
                guest_count=guest_count,
                layout_style=layout_style,
                exclude_reservation_id=exclude_reservation_id,
                rooms=rooms,
                stay_rules=stay_rules,
                config=self.config,
            )

        metrics.record_availability_check(resource.kind.value, result.is_available)
        logger.availability_checked(
            resource.id, result.is_available, result.reasons_unavailable,
            duration_ms=(_time.perf_counter() - started) * 1000
        )
        return resource, result

    def quote(
        self,
        ref: ResourceRef,
        window: Window,
        guests: int,
        rooms: int = 1,
        plan_selections: Optional[Sequence[PlanSelection]] = None,
        meals: Sequence[str] = (),
        discount_percent=ZERO,
        booked_on: Optional[date] = None
    ) -> Quote:
        resource = self._load(ref)
        rules = self.pricing_rules.list_for(resource)
        booked_on = booked_on or date.today()

        started = _time.perf_counter()
        with metrics.engine_duration_seconds.time(operation="quote"):
            quote = quote_price(
                resource, window, guests, rooms, plan_selections, meals, rules,
                discount_percent, self.config, booked_on
            )

        metrics.record_quote(resource.kind.value)
        logger.quote_computed(
            resource.id, quote.total, quote.flags,
            duration_ms=(_time.perf_counter() - started) * 1000
        )
        return quote

    def check_and_quote(
        self,
        ref: ResourceRef,
        window: Window,
        guest_count: int,
        layout_style: Optional[str] = None,
        rooms: int = 1,
        plan_selections: Optional[Sequence[PlanSelection]] = None,
        meals: Sequence[str] = (),
        discount_percent=ZERO,
        exclude_reservation_id: Optional[str] = None,
        booked_on: Optional[date] = None
    ) -> Tuple[BookableResource, AvailabilityQuote]:
        resource = self._load(ref)
        reservations, stay_rules = self._snapshot(resource, window)
        rules, rule_fault = self.pricing_rules.list_or_fault(resource)

        started = _time.perf_counter()
        with metrics.engine_duration_seconds.time(operation="check_and_quote"):
            outcome = check_availability_and_quote(
                resource, window, reservations, guest_count,
                rules=rules,
                layout_style=layout_style,
                rooms=rooms,
                plan_selections=plan_selections,
                meals=meals,
                discount_percent=discount_percent,
                exclude_reservation_id=exclude_reservation_id,
                stay_rules=stay_rules,
                config=self.config,
                booked_on=booked_on or date.today(),
                pricing_fault=rule_fault,
            )
        duration_ms = (_time.perf_counter() - started) * 1000

        kind = resource.kind.value
        availability = outcome.availability
        metrics.record_availability_check(kind, availability.is_available)
        logger.availability_checked(
            resource.id, availability.is_available, availability.reasons_unavailable,
            duration_ms=duration_ms
        )
        if outcome.quote is not None:
            metrics.record_quote(kind)
            logger.quote_computed(resource.id, outcome.quote.total, outcome.quote.flags)
        elif outcome.pricing_error:
            metrics.record_pricing_fault(kind)
        return resource, outcome
