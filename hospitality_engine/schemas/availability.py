"""
Availability & Quote Schemas

Request/response models for the availability endpoints. Requests turn into
engine records; results come back with times as HH:MM and money rounded to
the configured currency step.
"""

from datetime import date, time
from decimal import Decimal
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_serializer, model_validator

from ..services.errors import InvalidInputError
from ..services.records import (
    AvailabilityResult,
    CapacityInfo,
    DateRange,
    ItemizedTotal,
    PlanSelection,
    Quote,
    Reservation,
    ResourceRef,
    TimeSlot,
)


def hhmm(value: Optional[time]) -> Optional[str]:
    return value.strftime("%H:%M") if value is not None else None


# ================================
# REQUESTS
# ================================

class ResourceRefIn(BaseModel):
    """Room inventory (category + plan + occupancy) or a venue of a property"""
    property_id: str = Field(..., min_length=1, max_length=36)
    room_category_code: Optional[str] = Field(None, max_length=50)
    plan_code: Optional[str] = Field(None, max_length=10)
    occupancy_code: Optional[str] = Field(None, max_length=10)
    venue_id: Optional[str] = Field(None, max_length=36)

    @model_validator(mode='after')
    def validate_reference(self):
        try:
            self.to_record()
        except InvalidInputError as e:
            raise ValueError(str(e)) from e
        return self

    def to_record(self) -> ResourceRef:
        return ResourceRef(
            property_id=self.property_id,
            room_category_code=self.room_category_code,
            plan_code=self.plan_code,
            occupancy_code=self.occupancy_code,
            venue_id=self.venue_id,
        )


class PlanSelectionIn(BaseModel):
    plan_code: str
    occupancy_code: str
    rooms: int = Field(default=1, ge=1)
    guests: Optional[int] = Field(None, ge=1)

    def to_record(self) -> PlanSelection:
        return PlanSelection(self.plan_code, self.occupancy_code, self.rooms, self.guests)


class WindowIn(BaseModel):
    """
    Either a stay (date_from + date_to, checkout exclusive) or a venue slot
    (event_date + start_time + end_time).
    """
    resource: ResourceRefIn
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    event_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    @model_validator(mode='after')
    def validate_window(self):
        stay = (self.date_from, self.date_to)
        slot = (self.event_date, self.start_time, self.end_time)
        has_stay = any(v is not None for v in stay)
        has_slot = any(v is not None for v in slot)

        if has_stay and has_slot:
            raise ValueError("Give either date_from/date_to or event_date/start_time/end_time, not both")
        if has_stay and None in stay:
            raise ValueError("date_from and date_to are both required for a stay")
        if has_slot and None in slot:
            raise ValueError("event_date, start_time and end_time are all required for a slot")
        if not has_stay and not has_slot:
            raise ValueError("A stay or an event slot is required")

        try:
            self.window()
        except InvalidInputError as e:
            raise ValueError(str(e)) from e
        return self

    def window(self) -> Union[DateRange, TimeSlot]:
        if self.event_date is not None:
            return TimeSlot(self.event_date, self.start_time, self.end_time)
        return DateRange(self.date_from, self.date_to)


class AvailabilityCheckRequest(WindowIn):
    guest_count: Optional[int] = Field(None, ge=1)
    layout_style: Optional[str] = Field(None, max_length=50)
    rooms: int = Field(default=1, ge=1)
    exclude_reservation_id: Optional[str] = None


class QuoteRequest(WindowIn):
    guests: int = Field(..., ge=1)
    rooms: int = Field(default=1, ge=1)
    plan_selections: Optional[List[PlanSelectionIn]] = None
    meals: List[str] = Field(default_factory=list)
    discount_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)

    def selections(self) -> Optional[List[PlanSelection]]:
        if not self.plan_selections:
            return None
        return [s.to_record() for s in self.plan_selections]


class CheckAndQuoteRequest(WindowIn):
    guest_count: int = Field(..., ge=1)
    layout_style: Optional[str] = Field(None, max_length=50)
    rooms: int = Field(default=1, ge=1)
    plan_selections: Optional[List[PlanSelectionIn]] = None
    meals: List[str] = Field(default_factory=list)
    discount_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    exclude_reservation_id: Optional[str] = None

    def selections(self) -> Optional[List[PlanSelection]]:
        if not self.plan_selections:
            return None
        return [s.to_record() for s in self.plan_selections]


# ================================
# RESPONSES
# ================================

class ConflictOut(BaseModel):
    id: str
    status: str
    guest_count: int
    rooms: int
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    event_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    @field_serializer('start_time', 'end_time')
    def serialize_time(self, value: Optional[time]):
        return hhmm(value)

    @classmethod
    def from_record(cls, reservation: Reservation) -> "ConflictOut":
        return cls(
            id=reservation.id,
            status=reservation.status,
            guest_count=reservation.guest_count,
            rooms=reservation.rooms,
            date_from=reservation.date_from,
            date_to=reservation.date_to,
            event_date=reservation.event_date,
            start_time=reservation.start_time,
            end_time=reservation.end_time,
        )


class CapacityOut(BaseModel):
    has_capacity: bool
    available_capacity: int
    required_capacity: int
    layout_style: Optional[str] = None

    @classmethod
    def from_record(cls, info: Optional[CapacityInfo]) -> Optional["CapacityOut"]:
        if info is None:
            return None
        return cls(
            has_capacity=info.has_capacity,
            available_capacity=info.available_capacity,
            required_capacity=info.required_capacity,
            layout_style=info.layout_style,
        )


class SuggestedSlotOut(BaseModel):
    start: time
    end: time
    duration_minutes: int

    @field_serializer('start', 'end')
    def serialize_time(self, value: time):
        return hhmm(value)


class AvailabilityResponse(BaseModel):
    resource_id: str
    is_available: bool
    conflicting_reservations: List[ConflictOut]
    capacity_info: Optional[CapacityOut] = None
    suggested_slots: List[SuggestedSlotOut]
    reasons_unavailable: List[str]
    under_maintenance: bool
    remaining_inventory: Optional[int] = None

    @classmethod
    def from_result(cls, resource_id: str, result: AvailabilityResult) -> "AvailabilityResponse":
        return cls(
            resource_id=resource_id,
            is_available=result.is_available,
            conflicting_reservations=[ConflictOut.from_record(r) for r in result.conflicting_reservations],
            capacity_info=CapacityOut.from_record(result.capacity_info),
            suggested_slots=[
                SuggestedSlotOut(start=s.start, end=s.end, duration_minutes=s.duration_minutes)
                for s in result.suggested_slots
            ],
            reasons_unavailable=list(result.reasons_unavailable),
            under_maintenance=result.under_maintenance,
            remaining_inventory=result.remaining_inventory,
        )


class BreakdownOut(BaseModel):
    """Every line item of one priced selection"""
    base_price: Decimal
    nights: int
    rooms: int
    guests: int
    room_subtotal: Decimal
    extra_guests: int
    extra_guest_charge: Decimal
    extra_guest_total: Decimal
    meals: Dict[str, Decimal]
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
    flags: List[str]

    @classmethod
    def from_record(cls, breakdown: ItemizedTotal) -> "BreakdownOut":
        data = breakdown.to_dict()
        data["meals"] = data.pop("meal_lines")
        return cls(**data)


class QuoteLineOut(BaseModel):
    plan_code: Optional[str] = None
    occupancy_code: Optional[str] = None
    breakdown: BreakdownOut
    applied_rule_ids: List[Optional[str]]


class QuoteResponse(BaseModel):
    resource_id: str
    currency: str
    lines: List[QuoteLineOut]
    subtotal: Decimal
    dynamic_adjustment: Decimal
    discount: Decimal
    taxes: Decimal
    service_fee: Decimal
    total: Decimal
    flags: List[str]

    @classmethod
    def from_quote(cls, quote: Quote, currency: str, quantum: Decimal) -> "QuoteResponse":
        shown = quote.rounded(quantum)
        return cls(
            resource_id=shown.resource_id,
            currency=currency,
            lines=[
                QuoteLineOut(
                    plan_code=line.plan_code,
                    occupancy_code=line.occupancy_code,
                    breakdown=BreakdownOut.from_record(line.breakdown),
                    applied_rule_ids=[r.applied_rule_id for r in line.nightly_resolutions],
                )
                for line in shown.lines
            ],
            subtotal=shown.subtotal,
            dynamic_adjustment=shown.dynamic_adjustment,
            discount=shown.discount,
            taxes=shown.taxes,
            service_fee=shown.service_fee,
            total=shown.total,
            flags=list(shown.flags),
        )


class CheckAndQuoteResponse(BaseModel):
    availability: AvailabilityResponse
    quote: Optional[QuoteResponse] = None
    pricing_error: Optional[str] = None
