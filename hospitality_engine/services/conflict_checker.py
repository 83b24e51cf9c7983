"""
Interval Conflict Checker

Decides whether a candidate stay or venue slot collides with existing
reservations, and proposes free gaps in a venue's day.

Room stays are half-open date ranges [date_from, date_to): a checkout on the
same day as the next check-in is not a conflict.

Venue slots are compared with three OR'd clauses, mirroring how bookings are
matched at storage level:
1. candidate start falls inside an existing slot
2. candidate end falls inside an existing slot
3. candidate fully contains an existing slot
A slot that ends exactly when another begins does not conflict.
"""

import logging
from datetime import date, time
from typing import Iterable, List, Optional, Union

from .records import (
    DateRange,
    Reservation,
    SuggestedSlot,
    TimeSlot,
    minutes_of,
    time_from_minutes,
)

logger = logging.getLogger(__name__)

Candidate = Union[DateRange, TimeSlot]


def dates_overlap(
    existing_from: date,
    existing_to: date,
    candidate_from: date,
    candidate_to: date
) -> bool:
    """Half-open date range overlap"""
    return existing_from < candidate_to and existing_to > candidate_from


def slot_conflicts(
    candidate_start: time,
    candidate_end: time,
    existing_start: time,
    existing_end: time
) -> bool:
    """Three-clause time-of-day conflict test"""
    starts_inside = existing_start <= candidate_start < existing_end
    ends_inside = existing_start < candidate_end <= existing_end
    contains = candidate_start <= existing_start and existing_end <= candidate_end
    return starts_inside or ends_inside or contains


def overlaps(a: Candidate, b: Candidate) -> bool:
    """Whether two stays, or two slots, collide"""
    if isinstance(a, DateRange) and isinstance(b, DateRange):
        return dates_overlap(b.start, b.end, a.start, a.end)
    if isinstance(a, TimeSlot) and isinstance(b, TimeSlot):
        if a.event_date != b.event_date:
            return False
        return slot_conflicts(a.start, a.end, b.start, b.end)
    raise TypeError("Cannot compare a date range with a time slot")


def _sort_key(reservation: Reservation):
    if reservation.is_venue_slot:
        return (reservation.event_date, reservation.start_time, reservation.id)
    return (reservation.date_from, reservation.date_to, reservation.id)


def _conflicts_with(candidate: Candidate, reservation: Reservation) -> bool:
    if isinstance(candidate, DateRange):
        if reservation.date_from is None or reservation.date_to is None:
            logger.debug(f"Skipping reservation {reservation.id}: not a date-range booking")
            return False
        return dates_overlap(
            reservation.date_from, reservation.date_to,
            candidate.start, candidate.end
        )

    if reservation.event_date is None or reservation.start_time is None or reservation.end_time is None:
        logger.debug(f"Skipping reservation {reservation.id}: not a venue slot booking")
        return False
    if reservation.event_date != candidate.event_date:
        return False
    return slot_conflicts(
        candidate.start, candidate.end,
        reservation.start_time, reservation.end_time
    )


def find_conflicts(
    candidate: Candidate,
    existing_reservations: Iterable[Reservation],
    exclude_id: Optional[str] = None
) -> List[Reservation]:
    """
    Return the active reservations that collide with the candidate.

    Cancelled and completed reservations never conflict. exclude_id lets an
    edit re-check ignore the reservation being edited. Output is ordered by
    start ascending.
    """
    conflicts = [
        reservation
        for reservation in existing_reservations
        if reservation.is_active
        and reservation.id != exclude_id
        and _conflicts_with(candidate, reservation)
    ]
    conflicts.sort(key=_sort_key)
    return conflicts


def suggest_free_slots(
    day_reservations: Iterable[Reservation],
    window_open: time,
    window_close: time,
    min_gap_minutes: int = 120,
    exclude_id: Optional[str] = None
) -> List[SuggestedSlot]:
    """
    Propose free gaps in a venue's operating window.

    Walks the day's active bookings in start order and emits the gap before the
    first booking, the gaps between bookings and the gap after the last one.
    Gaps shorter than min_gap_minutes are dropped. Advisory only: capacity is
    checked separately.
    """
    open_minutes = minutes_of(window_open)
    close_minutes = minutes_of(window_close)
    if close_minutes <= open_minutes:
        return []

    bookings = sorted(
        (
            r for r in day_reservations
            if r.is_active and r.id != exclude_id
            and r.start_time is not None and r.end_time is not None
        ),
        key=lambda r: (r.start_time, r.end_time, r.id)
    )

    suggestions: List[SuggestedSlot] = []

    def emit(start: int, end: int):
        if end - start >= min_gap_minutes:
            suggestions.append(SuggestedSlot(
                start=time_from_minutes(start),
                end=time_from_minutes(end),
                duration_minutes=end - start
            ))

    # Overlapping bookings are tolerated: the cursor only moves forward
    cursor = open_minutes
    for booking in bookings:
        start = minutes_of(booking.start_time)
        end = minutes_of(booking.end_time)
        if start > cursor:
            emit(cursor, min(start, close_minutes))
        cursor = max(cursor, end)
        if cursor >= close_minutes:
            break

    if cursor < close_minutes:
        emit(cursor, close_minutes)

    return suggestions
