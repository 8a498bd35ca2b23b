"""Time-interval geometry over court bookings."""

from typing import Iterable, List

from models.reservation import AssignedReservation
from models.time_slot import TimeSlot


def slots_overlap(a: TimeSlot, b: TimeSlot) -> bool:
    """Positive-length intersection only; touching endpoints do not overlap."""
    return a.start < b.end and b.start < a.end


def slots_adjacent(a: TimeSlot, b: TimeSlot) -> bool:
    return a.end == b.start or b.end == a.start


def slot_duration(slot: TimeSlot) -> int:
    return slot.end - slot.start


def merge_slots(a: TimeSlot, b: TimeSlot) -> TimeSlot:
    """Merge two overlapping or adjacent slots."""
    if not (slots_overlap(a, b) or slots_adjacent(a, b)):
        raise ValueError(f"Cannot merge disjoint slots {a} and {b}")
    return TimeSlot(min(a.start, b.start), max(a.end, b.end))


def slot_fits_in(slot: TimeSlot, free_slot: TimeSlot) -> bool:
    return slot.start >= free_slot.start and slot.end <= free_slot.end


def court_bookings(
    assignments: Iterable[AssignedReservation],
    court_id: str,
) -> List[AssignedReservation]:
    """A court's bookings sorted by start time."""
    return sorted(
        (a for a in assignments if a.court_id == court_id),
        key=lambda a: a.slot.start,
    )


def find_free_slots(
    assignments: Iterable[AssignedReservation],
    court_id: str,
    open_time: int,
    close_time: int,
) -> List[TimeSlot]:
    """Maximal unbooked intervals on a court within [open_time, close_time]."""
    free: List[TimeSlot] = []
    cursor = open_time
    for booking in court_bookings(assignments, court_id):
        if booking.slot.start > cursor:
            free.append(TimeSlot(cursor, min(booking.slot.start, close_time)))
        cursor = max(cursor, booking.slot.end)
        if cursor >= close_time:
            break
    if cursor < close_time:
        free.append(TimeSlot(cursor, close_time))
    return free


def fits_on_court(
    slot: TimeSlot,
    assignments: Iterable[AssignedReservation],
    court_id: str,
    open_time: int,
    close_time: int,
) -> bool:
    return any(
        slot_fits_in(slot, fs)
        for fs in find_free_slots(assignments, court_id, open_time, close_time)
    )


def longest_contiguous_block(
    assignments: Iterable[AssignedReservation],
    court_id: str,
) -> int:
    """Length in minutes of the longest run of touching or overlapping bookings."""
    booked = court_bookings(assignments, court_id)
    if not booked:
        return 0

    block_start = booked[0].slot.start
    block_end = booked[0].slot.end
    longest = block_end - block_start
    for b in booked[1:]:
        if b.slot.start <= block_end:
            block_end = max(block_end, b.slot.end)
        else:
            block_start, block_end = b.slot.start, b.slot.end
        longest = max(longest, block_end - block_start)
    return longest


def total_booked_minutes(
    assignments: Iterable[AssignedReservation],
    court_id: str,
) -> int:
    return sum(slot_duration(a.slot) for a in assignments if a.court_id == court_id)


def largest_free_slot_across_courts(
    assignments: Iterable[AssignedReservation],
    court_ids: List[str],
    open_time: int,
    close_time: int,
) -> int:
    """Longest single free slot over all given courts; 0 when none."""
    assignments = list(assignments)
    largest = 0
    for court_id in court_ids:
        for fs in find_free_slots(assignments, court_id, open_time, close_time):
            largest = max(largest, slot_duration(fs))
    return largest


def parse_time(value) -> int:
    """Accept minutes since midnight or an "HH:MM" string."""
    if isinstance(value, str):
        text = value.strip()
        if ":" in text:
            hours, minutes = text.split(":", 1)
            return int(hours) * 60 + int(minutes)
        return int(float(text))
    return int(value)


def format_time(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"
