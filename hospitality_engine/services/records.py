"""
Engine Records

Plain, immutable records the availability & pricing engine reads and returns.
They carry no database or HTTP concerns so the engine can be exercised with
hand-built data and sit behind any transport.

Money is always Decimal at full precision; rounding happens only when a
result is presented (see ItemizedTotal.rounded).
"""

import enum
from dataclasses import dataclass, field, fields, replace
from datetime import date, datetime, time, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, FrozenSet, Iterator, List, Mapping, Optional, Tuple

from .errors import InvalidInputError


class ResourceKind(str, enum.Enum):
    ROOM = "room"
    VENUE = "venue"


class ReservationStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# Reservations in these states never block inventory
TERMINAL_STATUSES = frozenset({ReservationStatus.CANCELLED.value, ReservationStatus.COMPLETED.value})


class PlanCode(str, enum.Enum):
    """Meal-inclusion tier of a room rate"""
    EP = "EP"    # Room only
    CP = "CP"    # Room + breakfast
    MAP = "MAP"  # Room + breakfast + one main meal
    AP = "AP"    # All meals


class OccupancyCode(str, enum.Enum):
    SINGLE = "SINGLE"
    DOUBLE = "DOUBLE"
    TRIPLE = "TRIPLE"
    QUAD = "QUAD"


# Guests included in the rate, per room
OCCUPANCY_GUESTS: Dict[str, int] = {
    OccupancyCode.SINGLE.value: 1,
    OccupancyCode.DOUBLE.value: 2,
    OccupancyCode.TRIPLE.value: 3,
    OccupancyCode.QUAD.value: 4,
}


class RuleType(str, enum.Enum):
    WEEKEND = "weekend"
    SEASONAL = "seasonal"
    LAST_MINUTE = "last_minute"
    PEAK_PERIOD = "peak_period"
    CUSTOM = "custom"


class AdjustmentType(str, enum.Enum):
    MULTIPLIER = "multiplier"
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"


class RuleScope(str, enum.Enum):
    RESOURCE = "resource"
    CATEGORY = "category"
    PROPERTY = "property"


# Resource-specific rules override category rules, which override property-wide ones
SCOPE_PRECEDENCE: Tuple[str, ...] = (
    RuleScope.RESOURCE.value,
    RuleScope.CATEGORY.value,
    RuleScope.PROPERTY.value,
)

# Capacity key used for per-room guest limits on room resources
PER_ROOM_LAYOUT = "per_room"

# Adjustment value key that applies to every plan (and to venues, which have none)
ANY_PLAN = "*"


def validate_plan_code(plan_code: str) -> str:
    if plan_code not in PlanCode.__members__:
        raise InvalidInputError(f"Unknown plan code: {plan_code!r}")
    return plan_code


def validate_occupancy_code(occupancy_code: str) -> str:
    if occupancy_code not in OCCUPANCY_GUESTS:
        raise InvalidInputError(f"Unknown occupancy code: {occupancy_code!r}")
    return occupancy_code


def day_of_week(value: date) -> int:
    """Day number as stored on rules: 0=Sunday ... 6=Saturday"""
    return (value.weekday() + 1) % 7


def minutes_of(value: time) -> int:
    return value.hour * 60 + value.minute


def time_from_minutes(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


# ==================
# Identity
# ==================

@dataclass(frozen=True)
class ResourceRef:
    """
    Identifies what is being reserved.

    Room inventory: property_id + room_category_code + plan_code + occupancy_code.
    Event venue: property_id + venue_id.
    """
    property_id: str
    room_category_code: Optional[str] = None
    plan_code: Optional[str] = None
    occupancy_code: Optional[str] = None
    venue_id: Optional[str] = None

    def __post_init__(self):
        if not self.property_id:
            raise InvalidInputError("property_id is required")
        if self.venue_id:
            if self.room_category_code or self.plan_code or self.occupancy_code:
                raise InvalidInputError("A venue reference cannot carry room category, plan or occupancy codes")
            return
        if not (self.room_category_code and self.plan_code and self.occupancy_code):
            raise InvalidInputError(
                "A room reference needs room_category_code, plan_code and occupancy_code"
            )
        validate_plan_code(self.plan_code)
        validate_occupancy_code(self.occupancy_code)

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.VENUE if self.venue_id else ResourceKind.ROOM

    @property
    def key(self) -> str:
        if self.venue_id:
            return f"{self.property_id}:venue:{self.venue_id}"
        return f"{self.property_id}:{self.room_category_code}:{self.plan_code}:{self.occupancy_code}"


# ==================
# Inputs
# ==================

@dataclass(frozen=True)
class DateRange:
    """Half-open [start, end) stay; end is the checkout date"""
    start: date
    end: date

    def __post_init__(self):
        if not isinstance(self.start, date) or not isinstance(self.end, date):
            raise InvalidInputError("Stay dates must be calendar dates")
        if self.end <= self.start:
            raise InvalidInputError("Checkout date must be after check-in date")

    @property
    def nights(self) -> int:
        return (self.end - self.start).days

    def each_night(self) -> Iterator[date]:
        current = self.start
        while current < self.end:
            yield current
            current += timedelta(days=1)


@dataclass(frozen=True)
class TimeSlot:
    """Half-open [start, end) time-of-day slot on one event date"""
    event_date: date
    start: time
    end: time

    def __post_init__(self):
        if not isinstance(self.event_date, date):
            raise InvalidInputError("Event date must be a calendar date")
        if not isinstance(self.start, time) or not isinstance(self.end, time):
            raise InvalidInputError("Slot start and end must be times of day")
        if self.end <= self.start:
            raise InvalidInputError("Slot end time must be after start time")

    @property
    def duration_minutes(self) -> int:
        return minutes_of(self.end) - minutes_of(self.start)

    @property
    def billable_hours(self) -> int:
        """Slot length rounded up to whole hours"""
        return -(-self.duration_minutes // 60)


@dataclass(frozen=True)
class PlanSelection:
    plan_code: str
    occupancy_code: str
    rooms: int = 1
    guests: Optional[int] = None

    def __post_init__(self):
        validate_plan_code(self.plan_code)
        validate_occupancy_code(self.occupancy_code)
        if self.rooms <= 0:
            raise InvalidInputError("rooms must be positive")
        if self.guests is not None and self.guests <= 0:
            raise InvalidInputError("guests must be positive")

    @property
    def free_guests_per_room(self) -> int:
        return OCCUPANCY_GUESTS[self.occupancy_code]


# ==================
# Snapshots handed to the engine
# ==================

@dataclass(frozen=True)
class MaintenanceWindow:
    resource_id: str
    start_date: date
    end_date: date  # inclusive
    is_active: bool = True
    reason: Optional[str] = None

    def covers(self, value: date) -> bool:
        return self.is_active and self.start_date <= value <= self.end_date


@dataclass(frozen=True)
class BookableResource:
    id: str
    ref: ResourceRef
    name: str = ""
    base_price: Optional[Decimal] = None  # nightly rate for rooms, hourly rate for venues
    is_active: bool = True
    capacities: Mapping[str, int] = field(default_factory=dict)
    inventory: int = 1
    plan_rates: Mapping[Tuple[str, str], Decimal] = field(default_factory=dict)
    meal_prices: Mapping[str, Optional[Decimal]] = field(default_factory=dict)  # None: malformed price
    extra_guest_charge: Decimal = Decimal("0")
    tax_rate: Optional[Decimal] = None
    service_fee_rate: Optional[Decimal] = None
    window_open: Optional[time] = None
    window_close: Optional[time] = None
    category_id: Optional[str] = None
    maintenance_windows: Tuple[MaintenanceWindow, ...] = ()
    # malformed price configuration found while loading; blocks quotes only
    pricing_faults: Tuple[str, ...] = ()

    @property
    def kind(self) -> ResourceKind:
        return self.ref.kind

    def nightly_rate(self, plan_code: str, occupancy_code: str) -> Optional[Decimal]:
        """Matrix price for a plan/occupancy pair, falling back to base price"""
        rate = self.plan_rates.get((plan_code, occupancy_code))
        if rate is not None:
            return rate
        return self.base_price


@dataclass(frozen=True)
class Reservation:
    id: str
    resource_id: str
    status: str = ReservationStatus.CONFIRMED.value
    guest_count: int = 1
    rooms: int = 1
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    event_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    label: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status not in TERMINAL_STATUSES

    @property
    def is_venue_slot(self) -> bool:
        return self.event_date is not None


@dataclass(frozen=True)
class PricingRule:
    id: str
    scope: str
    scope_id: str
    rule_type: str
    adjustment_type: str
    adjustment_values: Mapping[str, Decimal]  # plan code -> value
    priority: int = 0
    is_active: bool = True
    days_of_week: Optional[FrozenSet[int]] = None  # 0=Sunday
    start_date: Optional[date] = None
    end_date: Optional[date] = None  # inclusive
    min_advance_days: Optional[int] = None
    max_advance_days: Optional[int] = None
    name: str = ""
    created_at: Optional[datetime] = None

    def value_for(self, plan_code: str) -> Optional[Decimal]:
        value = self.adjustment_values.get(plan_code)
        if value is None:
            value = self.adjustment_values.get(ANY_PLAN)
        return value


@dataclass(frozen=True)
class StayRule:
    id: str
    min_stay: int = 1
    max_stay: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None  # inclusive
    priority: int = 0
    is_active: bool = True


@dataclass(frozen=True)
class EngineConfig:
    default_tax_rate: Decimal = Decimal("0.12")
    default_service_fee_rate: Decimal = Decimal("0.05")
    window_open: time = time(8, 0)
    window_close: time = time(22, 0)
    min_gap_minutes: int = 120
    max_stay_nights: int = 365
    currency_quantum: Decimal = Decimal("1")

    @classmethod
    def from_settings(cls, settings) -> "EngineConfig":
        return cls(
            default_tax_rate=settings.default_tax_rate,
            default_service_fee_rate=settings.default_service_fee_rate,
            window_open=settings.venue_window_open,
            window_close=settings.venue_window_close,
            min_gap_minutes=settings.min_suggested_gap_minutes,
            max_stay_nights=settings.max_stay_nights,
            currency_quantum=settings.currency_quantum,
        )


# ==================
# Results
# ==================

@dataclass(frozen=True)
class CapacityInfo:
    has_capacity: bool
    available_capacity: int
    required_capacity: int
    layout_style: Optional[str] = None


@dataclass(frozen=True)
class SuggestedSlot:
    start: time
    end: time
    duration_minutes: int


@dataclass(frozen=True)
class RuleResolution:
    multiplier: Decimal
    applied_rule_id: Optional[str] = None
    rule_type: Optional[str] = None
    candidates: int = 0
    tie_broken: bool = False


@dataclass(frozen=True)
class PriceComponents:
    base_price: Decimal
    nights: int
    rooms: int
    guests: int
    extra_guest_charge: Decimal = Decimal("0")
    free_guest_limit: int = 0
    meal_addons: Mapping[str, Decimal] = field(default_factory=dict)
    dynamic_multiplier: Decimal = Decimal("1")
    discount_percent: Decimal = Decimal("0")
    tax_rate: Optional[Decimal] = None
    service_fee_rate: Optional[Decimal] = None
    explicit_taxes: Optional[Decimal] = None
    explicit_service_fee: Optional[Decimal] = None


# Fields of ItemizedTotal that hold currency amounts
MONEY_FIELDS = (
    "base_price", "extra_guest_charge", "room_subtotal", "extra_guest_total", "meal_total",
    "subtotal", "dynamic_adjustment", "subtotal_after_dynamic", "discount", "taxes",
    "service_fee", "total",
)


@dataclass(frozen=True)
class ItemizedTotal:
    base_price: Decimal
    nights: int
    rooms: int
    guests: int
    room_subtotal: Decimal
    extra_guests: int
    extra_guest_charge: Decimal
    extra_guest_total: Decimal
    meal_lines: Tuple[Tuple[str, Decimal], ...]
    meal_total: Decimal
    subtotal: Decimal
    dynamic_multiplier: Decimal
    dynamic_adjustment: Decimal
    subtotal_after_dynamic: Decimal
    discount_percent: Decimal
    discount: Decimal
    tax_rate: Decimal
    taxes: Decimal
    service_fee_rate: Decimal
    service_fee: Decimal
    total: Decimal
    flags: Tuple[str, ...] = ()

    def rounded(self, quantum: Decimal = Decimal("1")) -> "ItemizedTotal":
        """Copy with every money amount quantized for display"""
        changes = {
            name: getattr(self, name).quantize(quantum, rounding=ROUND_HALF_UP)
            for name in MONEY_FIELDS
        }
        changes["meal_lines"] = tuple(
            (meal, amount.quantize(quantum, rounding=ROUND_HALF_UP))
            for meal, amount in self.meal_lines
        )
        return replace(self, **changes)

    def with_flags(self, *flags: str) -> "ItemizedTotal":
        merged = tuple(dict.fromkeys(self.flags + tuple(flags)))
        return replace(self, flags=merged)

    def to_dict(self) -> dict:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["meal_lines"] = dict(self.meal_lines)
        data["flags"] = list(self.flags)
        return data


@dataclass(frozen=True)
class QuoteLine:
    plan_code: Optional[str]
    occupancy_code: Optional[str]
    breakdown: ItemizedTotal
    nightly_resolutions: Tuple[RuleResolution, ...] = ()


@dataclass(frozen=True)
class Quote:
    resource_id: str
    lines: Tuple[QuoteLine, ...]
    subtotal: Decimal
    dynamic_adjustment: Decimal
    discount: Decimal
    taxes: Decimal
    service_fee: Decimal
    total: Decimal
    flags: Tuple[str, ...] = ()

    def rounded(self, quantum: Decimal = Decimal("1")) -> "Quote":
        def q(value: Decimal) -> Decimal:
            return value.quantize(quantum, rounding=ROUND_HALF_UP)

        return replace(
            self,
            lines=tuple(replace(line, breakdown=line.breakdown.rounded(quantum)) for line in self.lines),
            subtotal=q(self.subtotal),
            dynamic_adjustment=q(self.dynamic_adjustment),
            discount=q(self.discount),
            taxes=q(self.taxes),
            service_fee=q(self.service_fee),
            total=q(self.total),
        )


@dataclass(frozen=True)
class AvailabilityResult:
    is_available: bool
    conflicting_reservations: Tuple[Reservation, ...] = ()
    capacity_info: Optional[CapacityInfo] = None
    suggested_slots: Tuple[SuggestedSlot, ...] = ()
    reasons_unavailable: Tuple[str, ...] = ()
    under_maintenance: bool = False
    remaining_inventory: Optional[int] = None


@dataclass(frozen=True)
class AvailabilityQuote:
    availability: AvailabilityResult
    quote: Optional[Quote] = None
    pricing_error: Optional[str] = None


def sum_money(values: List[Decimal]) -> Decimal:
    return sum(values, Decimal("0"))
