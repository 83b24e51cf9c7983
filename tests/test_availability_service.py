"""
Tests for the availability & pricing facade on hand-built snapshots

Covers:
- Venue slot verdicts, conflict ordering and free-slot suggestions
- Room stay verdicts: inventory, capacity, maintenance and stay length
- Quotes for stays (single and mixed plan selections) and venue slots
- Combined check-and-quote, including pricing faults
"""

from datetime import date, time, timedelta
from decimal import Decimal

import pytest

from hospitality_engine.services.availability_service import (
    MISSING_BASE_PRICE,
    check_availability,
    check_availability_and_quote,
    quote_price,
)
from hospitality_engine.services.errors import InvalidInputError, MissingConfigurationError
from hospitality_engine.services.records import (
    DateRange,
    MaintenanceWindow,
    PlanSelection,
    StayRule,
    TimeSlot,
)

from conftest import EVENT_DAY, make_room, make_rule, make_slot_booking, make_stay_booking, make_venue


def venue_day():
    return [
        make_slot_booking("morning", time(9, 0), time(11, 0)),
        make_slot_booking("afternoon", time(14, 0), time(16, 0)),
    ]


class TestVenueAvailability:
    def test_conflicting_slot_gets_suggestions(self):
        slot = TimeSlot(EVENT_DAY, time(10, 0), time(15, 0))
        result = check_availability(make_venue(), slot, venue_day(), guest_count=50, layout_style="seated")

        assert result.is_available is False
        assert [r.id for r in result.conflicting_reservations] == ["morning", "afternoon"]
        assert result.reasons_unavailable == ("Time slot conflicts with 2 existing booking(s)",)
        assert [(s.start, s.end, s.duration_minutes) for s in result.suggested_slots] == [
            (time(11, 0), time(14, 0), 180),
            (time(16, 0), time(22, 0), 360),
        ]

    def test_free_slot_between_bookings(self):
        slot = TimeSlot(EVENT_DAY, time(12, 0), time(13, 30))
        result = check_availability(make_venue(), slot, venue_day(), guest_count=50, layout_style="seated")

        assert result.is_available is True
        assert result.conflicting_reservations == ()
        assert result.suggested_slots == ()
        assert result.capacity_info.available_capacity == 100

    def test_back_to_back_slot_is_available(self):
        slot = TimeSlot(EVENT_DAY, time(11, 0), time(14, 0))
        assert check_availability(make_venue(), slot, venue_day()).is_available is True

    def test_every_failing_clause_gives_a_reason(self):
        venue = make_venue(maintenance_windows=(
            MaintenanceWindow(resource_id="venue-hall", start_date=EVENT_DAY, end_date=EVENT_DAY),
        ))
        slot = TimeSlot(EVENT_DAY, time(10, 0), time(12, 0))
        result = check_availability(venue, slot, venue_day(), guest_count=500, layout_style="seated")

        assert result.is_available is False
        assert result.under_maintenance is True
        assert len(result.reasons_unavailable) == 3
        assert "conflicts" in result.reasons_unavailable[0]
        assert "capacity" in result.reasons_unavailable[1]
        assert "maintenance" in result.reasons_unavailable[2]
        assert result.suggested_slots == ()

    def test_unconfigured_layout_is_unavailable(self):
        slot = TimeSlot(EVENT_DAY, time(12, 0), time(13, 0))
        result = check_availability(make_venue(), slot, [], guest_count=10, layout_style="theatre")
        assert result.is_available is False
        assert result.capacity_info.has_capacity is False

    def test_guests_without_layout_are_rejected(self):
        slot = TimeSlot(EVENT_DAY, time(12, 0), time(13, 0))
        with pytest.raises(InvalidInputError):
            check_availability(make_venue(), slot, [], guest_count=10)

    def test_other_resources_bookings_are_ignored(self):
        existing = [make_slot_booking("elsewhere", time(9, 0), time(18, 0), resource_id="other-hall")]
        slot = TimeSlot(EVENT_DAY, time(10, 0), time(12, 0))
        assert check_availability(make_venue(), slot, existing).is_available is True

    def test_stay_window_is_rejected_for_venues(self):
        stay = DateRange(date(2026, 6, 15), date(2026, 6, 16))
        with pytest.raises(InvalidInputError):
            check_availability(make_venue(), stay, [])


class TestRoomAvailability:
    def test_busiest_night_exhausts_inventory(self):
        room = make_room(inventory=3)
        existing = [
            make_stay_booking("a", date(2026, 1, 5), date(2026, 1, 7), rooms=1),
            make_stay_booking("b", date(2026, 1, 6), date(2026, 1, 8), rooms=2),
        ]
        result = check_availability(room, DateRange(date(2026, 1, 5), date(2026, 1, 8)), existing)

        assert result.is_available is False
        assert result.remaining_inventory == 0
        assert [r.id for r in result.conflicting_reservations] == ["a", "b"]

    def test_rooms_left_despite_overlap(self):
        room = make_room(inventory=3)
        existing = [make_stay_booking("a", date(2026, 1, 5), date(2026, 1, 7))]
        result = check_availability(room, DateRange(date(2026, 1, 6), date(2026, 1, 8)), existing, rooms=2)

        assert result.is_available is True
        assert result.remaining_inventory == 2

    def test_checkout_day_can_be_rebooked(self):
        existing = [make_stay_booking("a", date(2026, 1, 5), date(2026, 1, 10))]
        result = check_availability(make_room(), DateRange(date(2026, 1, 10), date(2026, 1, 12)), existing)
        assert result.is_available is True

    def test_excluded_reservation_does_not_block_its_own_edit(self):
        existing = [make_stay_booking("mine", date(2026, 1, 5), date(2026, 1, 10))]
        stay = DateRange(date(2026, 1, 6), date(2026, 1, 9))
        assert check_availability(make_room(), stay, existing).is_available is False
        assert check_availability(make_room(), stay, existing, exclude_reservation_id="mine").is_available

    def test_per_room_capacity(self):
        stay = DateRange(date(2026, 1, 5), date(2026, 1, 6))
        result = check_availability(make_room(), stay, [], guest_count=4)
        assert result.is_available is False
        assert result.capacity_info.available_capacity == 3

    def test_maintenance_night(self):
        room = make_room(maintenance_windows=(
            MaintenanceWindow(resource_id="room-dlx-cp-double", start_date=date(2026, 1, 6), end_date=date(2026, 1, 6)),
        ))
        result = check_availability(room, DateRange(date(2026, 1, 5), date(2026, 1, 8)), [])
        assert result.under_maintenance is True
        assert result.reasons_unavailable == ("Under maintenance on 2026-01-06",)

    def test_minimum_stay_rule(self):
        rules = [StayRule(id="festive", min_stay=3)]
        result = check_availability(
            make_room(), DateRange(date(2026, 12, 24), date(2026, 12, 25)), [], stay_rules=rules
        )
        assert result.is_available is False
        assert result.reasons_unavailable == ("Minimum stay of 3 nights required for these dates",)

    def test_inactive_room_is_unavailable(self):
        result = check_availability(make_room(is_active=False), DateRange(date(2026, 1, 5), date(2026, 1, 6)), [])
        assert result.is_available is False

    def test_slot_window_is_rejected_for_rooms(self):
        with pytest.raises(InvalidInputError):
            check_availability(make_room(), TimeSlot(EVENT_DAY, time(10, 0), time(12, 0)), [])

    def test_non_positive_guest_count_is_rejected(self):
        with pytest.raises(InvalidInputError):
            check_availability(make_room(), DateRange(date(2026, 1, 5), date(2026, 1, 6)), [], guest_count=0)


class TestQuotes:
    def test_room_worked_example(self):
        stay = DateRange(date(2026, 1, 5), date(2026, 1, 7))
        quote = quote_price(
            make_room(), stay, guests=3,
            rules=[make_rule("uplift")],
            discount_percent=Decimal("10"),
        )

        assert len(quote.lines) == 1
        line = quote.lines[0]
        assert line.plan_code == "CP"
        assert line.occupancy_code == "DOUBLE"
        assert [r.applied_rule_id for r in line.nightly_resolutions] == ["uplift", "uplift"]
        assert line.breakdown.extra_guest_total == Decimal("1000")
        assert quote.total == Decimal("6318")

    def test_mixed_plan_selections(self):
        room = make_room(plan_rates={
            ("CP", "DOUBLE"): Decimal("3000"),
            ("CP", "TRIPLE"): Decimal("3500"),
        })
        selections = [
            PlanSelection("CP", "DOUBLE", rooms=1, guests=2),
            PlanSelection("CP", "TRIPLE", rooms=1, guests=3),
        ]
        quote = quote_price(
            room, DateRange(date(2026, 1, 5), date(2026, 1, 6)),
            guests=5, rooms=2, plan_selections=selections,
        )

        assert [line.breakdown.total for line in quote.lines] == [Decimal("3510"), Decimal("4095")]
        assert quote.total == Decimal("7605")
        assert quote.taxes == Decimal("780")

    def test_selections_must_add_up(self):
        selections = [
            PlanSelection("CP", "DOUBLE", rooms=1, guests=2),
            PlanSelection("CP", "TRIPLE", rooms=1, guests=2),
        ]
        with pytest.raises(InvalidInputError):
            quote_price(
                make_room(), DateRange(date(2026, 1, 5), date(2026, 1, 6)),
                guests=5, rooms=2, plan_selections=selections,
            )

    def test_missing_base_price_is_zero_and_flagged(self):
        quote = quote_price(make_room(base_price=None), DateRange(date(2026, 1, 5), date(2026, 1, 6)), guests=2)
        assert quote.total == Decimal("0")
        assert MISSING_BASE_PRICE in quote.flags

    def test_unknown_meal_is_rejected(self):
        with pytest.raises(InvalidInputError):
            quote_price(make_room(), DateRange(date(2026, 1, 5), date(2026, 1, 6)), guests=2, meals=["dinner"])

    def test_venue_slot_bills_started_hours(self):
        slot = TimeSlot(EVENT_DAY, time(10, 0), time(12, 30))
        quote = quote_price(make_venue(), slot, guests=50, meals=["lunch"])

        breakdown = quote.lines[0].breakdown
        assert breakdown.base_price == Decimal("3000")
        assert breakdown.meal_total == Decimal("10000")
        assert breakdown.extra_guests == 0
        assert quote.taxes == Decimal("1560")
        assert quote.service_fee == Decimal("650")
        assert quote.total == Decimal("15210")

    def test_venue_quote_rejects_plan_selections(self):
        slot = TimeSlot(EVENT_DAY, time(10, 0), time(12, 0))
        with pytest.raises(InvalidInputError):
            quote_price(make_venue(), slot, guests=10, plan_selections=[PlanSelection("CP", "DOUBLE")])

    def test_negative_resource_price_is_a_configuration_fault(self):
        with pytest.raises(MissingConfigurationError) as exc_info:
            quote_price(
                make_room(extra_guest_charge=Decimal("-500")),
                DateRange(date(2026, 1, 5), date(2026, 1, 6)), guests=2
            )
        assert "extra_guest_charge cannot be negative" in str(exc_info.value)

    def test_recorded_pricing_fault_blocks_the_quote(self):
        room = make_room(pricing_faults=("malformed plan rate key 'CPDOUBLE' (expected PLAN:OCCUPANCY)",))
        with pytest.raises(MissingConfigurationError):
            quote_price(room, DateRange(date(2026, 1, 5), date(2026, 1, 6)), guests=2)

    def test_last_minute_rule_uses_booking_date(self):
        slot = TimeSlot(EVENT_DAY, time(10, 0), time(12, 0))
        rule = make_rule(
            "last-minute", rule_type="last_minute", max_advance_days=2, values={"*": Decimal("0.8")}
        )

        late = quote_price(make_venue(), slot, guests=10, rules=[rule], booked_on=EVENT_DAY - timedelta(days=1))
        early = quote_price(make_venue(), slot, guests=10, rules=[rule], booked_on=EVENT_DAY - timedelta(days=60))

        assert late.lines[0].nightly_resolutions[0].applied_rule_id == "last-minute"
        assert early.lines[0].nightly_resolutions[0].applied_rule_id is None
        assert late.subtotal == early.subtotal
        assert late.total < early.total


class TestCheckAvailabilityAndQuote:
    def test_available_slot_is_priced(self):
        slot = TimeSlot(EVENT_DAY, time(12, 0), time(13, 30))
        outcome = check_availability_and_quote(
            make_venue(), slot, venue_day(), 50, layout_style="seated", meals=["lunch"]
        )

        assert outcome.availability.is_available is True
        assert outcome.quote.total == Decimal("14040")
        assert outcome.pricing_error is None

    def test_unavailable_slot_is_not_priced(self):
        slot = TimeSlot(EVENT_DAY, time(10, 0), time(15, 0))
        outcome = check_availability_and_quote(make_venue(), slot, venue_day(), 50, layout_style="seated")

        assert outcome.availability.is_available is False
        assert outcome.quote is None

    def test_pricing_fault_keeps_the_verdict(self):
        stay = DateRange(date(2026, 1, 5), date(2026, 1, 6))
        outcome = check_availability_and_quote(
            make_room(), stay, [], 2, rules=[make_rule("broken", adjustment_type="exponential")]
        )

        assert outcome.availability.is_available is True
        assert outcome.quote is None
        assert "exponential" in outcome.pricing_error

    def test_negative_tax_rate_keeps_the_verdict(self):
        stay = DateRange(date(2026, 1, 5), date(2026, 1, 6))
        outcome = check_availability_and_quote(make_room(tax_rate=Decimal("-0.1")), stay, [], 2)

        assert outcome.availability.is_available is True
        assert outcome.quote is None
        assert "tax_rate cannot be negative" in outcome.pricing_error

    def test_negative_meal_price_keeps_the_verdict(self):
        slot = TimeSlot(EVENT_DAY, time(12, 0), time(13, 0))
        venue = make_venue(meal_prices={"lunch": Decimal("-200")})
        outcome = check_availability_and_quote(venue, slot, [], 20, layout_style="seated", meals=["lunch"])

        assert outcome.availability.is_available is True
        assert "meal price lunch" in outcome.pricing_error

    def test_rule_loading_fault_is_reported_without_pricing(self):
        stay = DateRange(date(2026, 1, 5), date(2026, 1, 6))
        outcome = check_availability_and_quote(
            make_room(), stay, [], 2, pricing_fault="rule r1 value for * is not a valid amount: 'abc'"
        )

        assert outcome.availability.is_available is True
        assert outcome.quote is None
        assert "abc" in outcome.pricing_error

    def test_invalid_input_fails_before_evaluation(self):
        stay = DateRange(date(2026, 1, 5), date(2026, 1, 6))
        with pytest.raises(InvalidInputError):
            check_availability_and_quote(make_room(), stay, [], 2, discount_percent=Decimal("150"))
