"""
Capacity & Constraint Evaluator

Static limits a request must satisfy regardless of other bookings:
- guest capacity per layout style (venues) or per room (room inventory)
- maintenance blackout windows
- remaining room inventory on every night of a stay
- minimum / maximum stay length rules

Unknown capacity is never assumed sufficient: a missing layout counts as 0.
"""

import logging
from datetime import date
from typing import Iterable, List, Optional, Sequence

from .errors import InvalidInputError
from .records import (
    BookableResource,
    CapacityInfo,
    DateRange,
    Reservation,
    StayRule,
)

logger = logging.getLogger(__name__)


def check_capacity(
    resource: BookableResource,
    layout_style: str,
    guest_count: int,
    units: int = 1
) -> CapacityInfo:
    """
    Compare requested guests with the capacity configured for a layout.

    units multiplies the layout capacity (rooms requested for per-room limits).
    """
    if guest_count is None or guest_count <= 0:
        raise InvalidInputError("guest_count must be a positive integer")
    if units <= 0:
        raise InvalidInputError("units must be a positive integer")

    per_unit = resource.capacities.get(layout_style)
    if per_unit is None:
        logger.info(f"Resource {resource.id} has no capacity configured for layout '{layout_style}'")
        per_unit = 0

    available = max(0, int(per_unit)) * units
    return CapacityInfo(
        has_capacity=available >= guest_count,
        available_capacity=available,
        required_capacity=guest_count,
        layout_style=layout_style
    )


def check_maintenance(resource: BookableResource, day: date) -> bool:
    """True if day falls inside any active maintenance window (inclusive)"""
    return any(
        window.covers(day)
        for window in resource.maintenance_windows
        if window.resource_id == resource.id
    )


def maintenance_days(resource: BookableResource, days: Iterable[date]) -> List[date]:
    """The subset of days blocked by maintenance, in order"""
    return [day for day in days if check_maintenance(resource, day)]


def remaining_inventory(
    resource: BookableResource,
    stay: DateRange,
    overlapping: Sequence[Reservation]
) -> int:
    """
    Rooms still free on the busiest night of the stay.

    overlapping must already be restricted to active reservations that
    collide with the stay (see conflict_checker.find_conflicts).
    """
    lowest = resource.inventory
    for night in stay.each_night():
        booked = sum(
            r.rooms for r in overlapping
            if r.date_from is not None and r.date_to is not None
            and r.date_from <= night < r.date_to
        )
        lowest = min(lowest, resource.inventory - booked)
    return max(0, lowest)


def resolve_stay_rule(stay_rules: Iterable[StayRule], stay: DateRange) -> Optional[StayRule]:
    """Highest-priority active rule whose period touches the stay"""
    matching = []
    for rule in stay_rules:
        if not rule.is_active:
            continue
        if rule.start_date is not None and rule.start_date >= stay.end:
            continue
        if rule.end_date is not None and rule.end_date < stay.start:
            continue
        matching.append(rule)

    if not matching:
        return None
    matching.sort(key=lambda r: (r.priority, r.id), reverse=True)
    return matching[0]


def check_stay_length(
    stay: DateRange,
    stay_rules: Iterable[StayRule] = (),
    max_stay_nights: int = 365
) -> List[str]:
    """Return a reason per violated stay-length requirement (empty when fine)"""
    rule = resolve_stay_rule(stay_rules, stay)
    min_stay = rule.min_stay if rule else 1
    max_stay = max_stay_nights
    if rule and rule.max_stay is not None:
        max_stay = rule.max_stay

    reasons = []
    if stay.nights < min_stay:
        reasons.append(f"Minimum stay of {min_stay} nights required for these dates")
    if stay.nights > max_stay:
        reasons.append(f"Maximum stay of {max_stay} nights exceeded")
    return reasons
