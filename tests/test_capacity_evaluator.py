"""
Tests for capacity, maintenance, inventory and stay-length constraints
"""

from datetime import date

import pytest

from hospitality_engine.services.capacity_evaluator import (
    check_capacity,
    check_maintenance,
    check_stay_length,
    remaining_inventory,
    resolve_stay_rule,
)
from hospitality_engine.services.errors import InvalidInputError
from hospitality_engine.services.records import DateRange, MaintenanceWindow, StayRule

from conftest import make_room, make_stay_booking, make_venue


class TestCheckCapacity:
    def test_unconfigured_layout_fails_closed(self):
        venue = make_venue(capacities={"seated": 100})
        info = check_capacity(venue, "theatre", 10)
        assert info.has_capacity is False
        assert info.available_capacity == 0
        assert info.required_capacity == 10

    def test_within_capacity(self):
        info = check_capacity(make_venue(), "seated", 100)
        assert info.has_capacity is True
        assert info.available_capacity == 100
        assert info.layout_style == "seated"

    def test_over_capacity(self):
        assert check_capacity(make_venue(), "seated", 101).has_capacity is False

    def test_per_room_capacity_scales_with_rooms(self):
        info = check_capacity(make_room(), "per_room", 6, units=2)
        assert info.available_capacity == 6
        assert info.has_capacity is True

    @pytest.mark.parametrize("guests", [0, -3, None])
    def test_non_positive_guest_count_is_rejected(self, guests):
        with pytest.raises(InvalidInputError):
            check_capacity(make_venue(), "seated", guests)


class TestCheckMaintenance:
    def venue_with_window(self, **window):
        fields = dict(resource_id="venue-hall", start_date=date(2026, 3, 1), end_date=date(2026, 3, 3))
        fields.update(window)
        return make_venue(maintenance_windows=(MaintenanceWindow(**fields),))

    def test_both_ends_are_inclusive(self):
        venue = self.venue_with_window()
        assert check_maintenance(venue, date(2026, 3, 1))
        assert check_maintenance(venue, date(2026, 3, 3))

    def test_outside_window(self):
        venue = self.venue_with_window()
        assert not check_maintenance(venue, date(2026, 2, 28))
        assert not check_maintenance(venue, date(2026, 3, 4))

    def test_inactive_window_is_ignored(self):
        venue = self.venue_with_window(is_active=False)
        assert not check_maintenance(venue, date(2026, 3, 2))

    def test_other_resource_window_is_ignored(self):
        venue = self.venue_with_window(resource_id="another")
        assert not check_maintenance(venue, date(2026, 3, 2))


class TestRemainingInventory:
    def test_busiest_night_decides(self):
        room = make_room(inventory=3)
        overlapping = [
            make_stay_booking("a", date(2026, 1, 5), date(2026, 1, 7), rooms=1),
            make_stay_booking("b", date(2026, 1, 6), date(2026, 1, 8), rooms=2),
        ]
        stay = DateRange(date(2026, 1, 5), date(2026, 1, 8))
        assert remaining_inventory(room, stay, overlapping) == 0

    def test_partial_availability(self):
        room = make_room(inventory=3)
        overlapping = [make_stay_booking("a", date(2026, 1, 5), date(2026, 1, 7), rooms=1)]
        stay = DateRange(date(2026, 1, 6), date(2026, 1, 9))
        assert remaining_inventory(room, stay, overlapping) == 2

    def test_no_bookings(self):
        stay = DateRange(date(2026, 1, 5), date(2026, 1, 6))
        assert remaining_inventory(make_room(inventory=4), stay, []) == 4


class TestStayLength:
    stay_one_night = DateRange(date(2026, 12, 24), date(2026, 12, 25))

    def test_defaults_allow_one_night(self):
        assert check_stay_length(self.stay_one_night) == []

    def test_highest_priority_rule_applies(self):
        rules = [
            StayRule(id="festive", min_stay=3, priority=1),
            StayRule(id="override", min_stay=2, priority=5),
        ]
        assert resolve_stay_rule(rules, self.stay_one_night).id == "override"
        assert check_stay_length(self.stay_one_night, rules) == [
            "Minimum stay of 2 nights required for these dates"
        ]

    def test_rule_outside_the_stay_is_ignored(self):
        rules = [StayRule(id="summer", min_stay=5, start_date=date(2026, 6, 1), end_date=date(2026, 8, 31))]
        assert check_stay_length(self.stay_one_night, rules) == []

    def test_inactive_rule_is_ignored(self):
        rules = [StayRule(id="off", min_stay=5, is_active=False)]
        assert check_stay_length(self.stay_one_night, rules) == []

    def test_maximum_stay(self):
        stay = DateRange(date(2026, 1, 1), date(2026, 1, 11))
        rules = [StayRule(id="short", min_stay=1, max_stay=7)]
        assert check_stay_length(stay, rules) == ["Maximum stay of 7 nights exceeded"]

    def test_configured_maximum_applies_without_rules(self):
        stay = DateRange(date(2026, 1, 1), date(2026, 1, 31))
        assert check_stay_length(stay, max_stay_nights=14) == ["Maximum stay of 14 nights exceeded"]
