"""
Tests for interval conflicts and free-slot suggestions

Covers:
- Symmetry of the overlap test for stays and slots
- Full containment in both directions
- Half-open boundaries (checkout day, back-to-back slots)
- Terminal statuses, excluded ids and result ordering
- Minimum gap for suggestions
"""

import itertools
from datetime import date, time

import pytest

from hospitality_engine.services.conflict_checker import (
    find_conflicts,
    overlaps,
    slot_conflicts,
    suggest_free_slots,
)
from hospitality_engine.services.records import DateRange, TimeSlot

from conftest import EVENT_DAY, make_slot_booking, make_stay_booking


class TestOverlapSymmetry:
    """overlaps(a, b) == overlaps(b, a)"""

    def test_date_ranges(self):
        ranges = [
            DateRange(date(2026, 1, 5), date(2026, 1, 10)),
            DateRange(date(2026, 1, 10), date(2026, 1, 12)),
            DateRange(date(2026, 1, 1), date(2026, 1, 31)),
            DateRange(date(2026, 1, 8), date(2026, 1, 9)),
            DateRange(date(2026, 1, 3), date(2026, 1, 6)),
        ]
        for a, b in itertools.product(ranges, repeat=2):
            assert overlaps(a, b) == overlaps(b, a), (a, b)

    def test_time_slots(self):
        bounds = [time(h, m) for h in (9, 10, 11, 12, 13) for m in (0, 30)]
        slots = [
            TimeSlot(EVENT_DAY, start, end)
            for start, end in itertools.combinations(bounds, 2)
        ]
        for a, b in itertools.product(slots, repeat=2):
            assert overlaps(a, b) == overlaps(b, a), (a, b)

    def test_slots_on_different_days_never_overlap(self):
        a = TimeSlot(date(2026, 6, 15), time(10, 0), time(12, 0))
        b = TimeSlot(date(2026, 6, 16), time(10, 0), time(12, 0))
        assert overlaps(a, b) is False

    def test_mixed_kinds_are_rejected(self):
        stay = DateRange(date(2026, 1, 5), date(2026, 1, 10))
        slot = TimeSlot(EVENT_DAY, time(10, 0), time(12, 0))
        with pytest.raises(TypeError):
            overlaps(stay, slot)


class TestSlotConflicts:
    def test_candidate_inside_existing(self):
        assert slot_conflicts(time(10, 0), time(12, 0), time(9, 0), time(13, 0))

    def test_existing_inside_candidate(self):
        assert slot_conflicts(time(10, 0), time(12, 0), time(10, 30), time(11, 30))

    def test_start_inside(self):
        assert slot_conflicts(time(10, 0), time(12, 0), time(9, 0), time(11, 0))

    def test_end_inside(self):
        assert slot_conflicts(time(10, 0), time(12, 0), time(11, 0), time(13, 0))

    def test_identical_slots(self):
        assert slot_conflicts(time(10, 0), time(12, 0), time(10, 0), time(12, 0))

    def test_back_to_back_slots_do_not_conflict(self):
        assert not slot_conflicts(time(11, 0), time(13, 0), time(9, 0), time(11, 0))
        assert not slot_conflicts(time(9, 0), time(11, 0), time(11, 0), time(13, 0))


class TestFindConflicts:
    def test_checkout_day_is_free_for_next_checkin(self):
        existing = [make_stay_booking("r1", date(2026, 1, 5), date(2026, 1, 10))]
        candidate = DateRange(date(2026, 1, 10), date(2026, 1, 12))
        assert find_conflicts(candidate, existing) == []

    def test_overlapping_stay_is_reported(self):
        existing = [make_stay_booking("r1", date(2026, 1, 5), date(2026, 1, 10))]
        candidate = DateRange(date(2026, 1, 9), date(2026, 1, 12))
        assert [r.id for r in find_conflicts(candidate, existing)] == ["r1"]

    def test_cancelled_and_completed_never_conflict(self):
        existing = [
            make_slot_booking("cancelled", time(9, 0), time(13, 0), status="cancelled"),
            make_slot_booking("completed", time(9, 0), time(13, 0), status="completed"),
            make_slot_booking("pending", time(9, 0), time(13, 0), status="pending"),
        ]
        candidate = TimeSlot(EVENT_DAY, time(10, 0), time(12, 0))
        assert [r.id for r in find_conflicts(candidate, existing)] == ["pending"]

    def test_exclude_id_ignores_the_reservation_being_edited(self):
        existing = [
            make_slot_booking("editing", time(10, 0), time(12, 0)),
            make_slot_booking("other", time(11, 0), time(13, 0)),
        ]
        candidate = TimeSlot(EVENT_DAY, time(10, 0), time(12, 0))
        conflicts = find_conflicts(candidate, existing, exclude_id="editing")
        assert [r.id for r in conflicts] == ["other"]

    def test_results_are_ordered_by_start(self):
        existing = [
            make_slot_booking("late", time(14, 0), time(16, 0)),
            make_slot_booking("early", time(9, 0), time(11, 0)),
        ]
        candidate = TimeSlot(EVENT_DAY, time(10, 0), time(15, 0))
        assert [r.id for r in find_conflicts(candidate, existing)] == ["early", "late"]

    def test_stays_ignore_slot_bookings(self):
        existing = [make_slot_booking("slot", time(9, 0), time(11, 0))]
        candidate = DateRange(date(2026, 6, 14), date(2026, 6, 16))
        assert find_conflicts(candidate, existing) == []


class TestSuggestFreeSlots:
    """Gaps in an 08:00-22:00 window"""

    def suggest(self, bookings, min_gap=120):
        return suggest_free_slots(bookings, time(8, 0), time(22, 0), min_gap_minutes=min_gap)

    def test_90_minute_gap_is_not_suggested(self):
        bookings = [
            make_slot_booking("a", time(8, 0), time(10, 0)),
            make_slot_booking("b", time(11, 30), time(22, 0)),
        ]
        assert self.suggest(bookings) == []

    def test_120_minute_gap_is_suggested(self):
        bookings = [
            make_slot_booking("a", time(8, 0), time(10, 0)),
            make_slot_booking("b", time(12, 0), time(22, 0)),
        ]
        suggestions = self.suggest(bookings)
        assert len(suggestions) == 1
        assert suggestions[0].start == time(10, 0)
        assert suggestions[0].end == time(12, 0)
        assert suggestions[0].duration_minutes == 120

    def test_gaps_before_between_and_after(self):
        bookings = [
            make_slot_booking("b", time(14, 0), time(16, 0)),
            make_slot_booking("a", time(10, 0), time(11, 0)),
        ]
        suggestions = [(s.start, s.end, s.duration_minutes) for s in self.suggest(bookings)]
        assert suggestions == [
            (time(8, 0), time(10, 0), 120),
            (time(11, 0), time(14, 0), 180),
            (time(16, 0), time(22, 0), 360),
        ]

    def test_short_edge_gaps_are_dropped(self):
        bookings = [
            make_slot_booking("a", time(9, 0), time(11, 0)),
            make_slot_booking("b", time(14, 0), time(21, 0)),
        ]
        suggestions = [(s.start, s.end) for s in self.suggest(bookings)]
        assert suggestions == [(time(11, 0), time(14, 0))]

    def test_overlapping_bookings_do_not_open_false_gaps(self):
        bookings = [
            make_slot_booking("long", time(9, 0), time(15, 0)),
            make_slot_booking("inner", time(10, 0), time(11, 0)),
        ]
        suggestions = [(s.start, s.end) for s in self.suggest(bookings)]
        assert suggestions == [(time(15, 0), time(22, 0))]

    def test_cancelled_bookings_leave_their_slot_free(self):
        bookings = [make_slot_booking("gone", time(8, 0), time(22, 0), status="cancelled")]
        suggestions = self.suggest(bookings)
        assert [(s.start, s.end) for s in suggestions] == [(time(8, 0), time(22, 0))]

    def test_empty_window(self):
        assert suggest_free_slots([], time(22, 0), time(8, 0)) == []
