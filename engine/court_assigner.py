"""First-fit-decreasing court assignment with placement scoring.

Pipeline:
1. Place pinned reservations on their courts (first seen wins a conflict).
2. Sort flexible reservations by start time, then duration descending.
3. Score every court that can hold each flexible reservation and take the best.
4. Split across courts as a last resort (only when splitting is allowed).
5. Compaction pass: relocate flexible bookings when it strictly reduces gaps.
6. Split reduction: re-unify split reservations where conflicts can move away.
"""

import logging
from dataclasses import replace
from typing import List, Optional, Tuple

from models.court import Court
from models.reservation import AssignedReservation, Reservation
from models.result import AssignmentResult, PlacementScore, group_by_reservation
from models.schedule import AssignerConfig
from models.time_slot import TimeSlot
from engine.intervals import (
    court_bookings, find_free_slots, fits_on_court, largest_free_slot_across_courts,
    longest_contiguous_block, slot_duration, slot_fits_in, slots_adjacent,
    slots_overlap, total_booked_minutes,
)
from engine.gap_analyzer import analyze_gaps, build_result, total_gap_minutes
from config.defaults import (
    SCORE_TIE_EPSILON, LARGE_SLOT_SHRINK_THRESHOLD, LARGE_SLOT_PENALTY_SCALE,
)

logger = logging.getLogger(__name__)


def place_pinned(
    pinned: List[Reservation],
    config: AssignerConfig,
) -> Tuple[List[AssignedReservation], List[Reservation]]:
    """Place pinned reservations on their requested court, in input order."""
    schedule = config.schedule
    known = set(config.court_ids)
    assignments: List[AssignedReservation] = []
    unassigned: List[Reservation] = []

    for res in pinned:
        court_id = res.pinned_court_id
        if court_id is None or court_id not in known:
            unassigned.append(res)
            continue
        # Rejects both an overlap on the court and a slot outside operating hours
        if not fits_on_court(res.slot, assignments, court_id, schedule.open_time, schedule.close_time):
            unassigned.append(res)
        else:
            assignments.append(AssignedReservation.from_reservation(res, court_id))

    return assignments, unassigned


def sort_flexible(flexible: List[Reservation]) -> List[Reservation]:
    """Start ascending; among equal starts, longest first."""
    return sorted(flexible, key=lambda r: (r.slot.start, -slot_duration(r.slot)))


def score_placement(
    reservation: Reservation,
    court: Court,
    assignments: List[AssignedReservation],
    config: AssignerConfig,
) -> Optional[PlacementScore]:
    """Score placing a reservation on a court. None if it does not fit."""
    schedule = config.schedule
    weights = config.weights
    slot = reservation.slot

    free_slots = find_free_slots(assignments, court.id, schedule.open_time, schedule.close_time)
    if not any(slot_fits_in(slot, fs) for fs in free_slots):
        return None

    bookings = court_bookings(assignments, court.id)
    trial = assignments + [AssignedReservation.from_reservation(reservation, court.id)]

    # Adjacency: touches an existing booking
    adjacency_bonus = weights.adjacency if any(slots_adjacent(b.slot, slot) for b in bookings) else 0.0

    # Contiguity: growth of the longest run, relative to own duration
    current_longest = longest_contiguous_block(assignments, court.id)
    new_longest = longest_contiguous_block(trial, court.id)
    contiguity_bonus = 0.0
    if new_longest > current_longest:
        contiguity_bonus = weights.contiguity * (new_longest - current_longest) / slot_duration(slot)

    # Gap penalty: stranded gaps that did not exist before this placement
    min_slot = schedule.min_slot_duration
    stranded_before = {fs for fs in free_slots if 0 < slot_duration(fs) < min_slot}
    new_free = find_free_slots(trial, court.id, schedule.open_time, schedule.close_time)
    new_stranded = [
        fs for fs in new_free
        if 0 < slot_duration(fs) < min_slot and fs not in stranded_before
    ]
    gap_penalty = weights.gap_penalty * len(new_stranded)

    # Fill: consumes a free slot exactly
    fill_bonus = weights.fill if any(fs == slot for fs in free_slots) else 0.0

    large_slot_penalty = 0.0
    if config.allow_splitting:
        court_ids = config.court_ids
        largest_before = largest_free_slot_across_courts(
            assignments, court_ids, schedule.open_time, schedule.close_time,
        )
        largest_after = largest_free_slot_across_courts(
            trial, court_ids, schedule.open_time, schedule.close_time,
        )
        if largest_before > 0:
            shrink = (largest_before - largest_after) / largest_before
            if shrink > LARGE_SLOT_SHRINK_THRESHOLD:
                large_slot_penalty = LARGE_SLOT_PENALTY_SCALE * shrink

    total = adjacency_bonus + contiguity_bonus + gap_penalty + fill_bonus + large_slot_penalty

    return PlacementScore(
        court_id=court.id,
        total=total,
        adjacency_bonus=adjacency_bonus,
        contiguity_bonus=contiguity_bonus,
        gap_penalty=gap_penalty,
        fill_bonus=fill_bonus,
        large_slot_penalty=large_slot_penalty,
        load_tiebreaker=total_booked_minutes(assignments, court.id),
    )


def pick_best_score(scores: List[PlacementScore], allow_splitting: bool) -> PlacementScore:
    """Highest total wins; near-ties go to the most loaded court when splitting
    is allowed, the least loaded otherwise, then to court order."""
    best_total = max(s.total for s in scores)
    tied = [s for s in scores if best_total - s.total <= SCORE_TIE_EPSILON]
    if allow_splitting:
        return max(tied, key=lambda s: s.load_tiebreaker)
    return min(tied, key=lambda s: s.load_tiebreaker)


def try_split_reservation(
    reservation: Reservation,
    assignments: List[AssignedReservation],
    config: AssignerConfig,
) -> List[AssignedReservation]:
    """Cover a reservation with free fragments from several courts.

    Returns the fragments as split assignments, or an empty list when the
    interval cannot be covered end to end.
    """
    schedule = config.schedule
    start, end = reservation.slot.start, reservation.slot.end

    pool: List[Tuple[str, TimeSlot]] = []
    for court in config.courts:
        for fs in find_free_slots(assignments, court.id, schedule.open_time, schedule.close_time):
            lo, hi = max(fs.start, start), min(fs.end, end)
            if hi > lo and hi - lo >= schedule.min_slot_duration:
                pool.append((court.id, TimeSlot(lo, hi)))

    if not pool:
        return []

    def by_size(item):
        return -slot_duration(item[1])

    pool.sort(key=by_size)
    fragments: List[AssignedReservation] = []
    frontier = start

    while frontier < end:
        best = None
        best_end = frontier
        for item in pool:
            if item[1].start <= frontier and item[1].end > best_end:
                best = item
                best_end = item[1].end
        if best is None:
            return []

        court_id, used = best
        segment = TimeSlot(frontier, min(best_end, end))
        fragments.append(
            AssignedReservation.from_reservation(reservation, court_id, slot=segment, is_split=True)
        )

        pool.remove(best)
        if used.start < segment.start:
            pool.append((court_id, TimeSlot(used.start, segment.start)))
        if used.end > segment.end:
            pool.append((court_id, TimeSlot(segment.end, used.end)))
        pool.sort(key=by_size)

        frontier = segment.end

    return fragments


def _gap_total(assignments: List[AssignedReservation], config: AssignerConfig) -> int:
    return total_gap_minutes(analyze_gaps(assignments, config.courts, config.schedule))


def compact_assignments(assignments: List[AssignedReservation], config: AssignerConfig) -> int:
    """Hill-climb over single flexible relocations. Mutates the list in place.

    A move is committed only if globally recomputed gap minutes strictly
    drop. Bounded by flexible_count * court_count passes. Returns the number
    of moves made.
    """
    schedule = config.schedule
    flexible_indices = [i for i, a in enumerate(assignments) if a.is_flexible]
    max_iterations = len(flexible_indices) * len(config.courts)

    moves = 0
    iterations = 0
    improved = True
    while improved and iterations < max_iterations:
        improved = False
        iterations += 1

        for idx in flexible_indices:
            res = assignments[idx]
            current_gap = _gap_total(assignments, config)
            without = assignments[:idx] + assignments[idx + 1:]

            for court in config.courts:
                if court.id == res.court_id:
                    continue
                if not fits_on_court(res.slot, without, court.id, schedule.open_time, schedule.close_time):
                    continue
                moved = res.moved_to(court.id)
                if _gap_total(without + [moved], config) < current_gap:
                    assignments[idx] = moved
                    improved = True
                    moves += 1
                    break

    logger.debug("Compaction: %d move(s) over %d pass(es)", moves, iterations)
    return moves


def _plan_unsplit(
    unified: AssignedReservation,
    court_id: str,
    remaining: List[AssignedReservation],
    config: AssignerConfig,
) -> Optional[List[AssignedReservation]]:
    """New assignment list with ``unified`` on ``court_id``, or None.

    Flexible bookings on the target court that overlap the span are relocated
    one at a time against a scratch state, so accepted homes never collide.
    """
    schedule = config.schedule
    span = unified.slot

    conflict_ids = {
        id(a) for a in remaining
        if a.court_id == court_id and a.is_flexible and slots_overlap(a.slot, span)
    }
    cleared = [a for a in remaining if id(a) not in conflict_ids]
    if not fits_on_court(span, cleared, court_id, schedule.open_time, schedule.close_time):
        return None

    placed = unified.moved_to(court_id)
    scratch = cleared + [placed]
    relocated = {}
    for a in remaining:
        if id(a) not in conflict_ids:
            continue
        home = next(
            (
                other.id for other in config.courts
                if other.id != court_id
                and fits_on_court(a.slot, scratch, other.id, schedule.open_time, schedule.close_time)
            ),
            None,
        )
        if home is None:
            return None
        moved = a.moved_to(home)
        scratch.append(moved)
        relocated[id(a)] = moved

    return [relocated.get(id(a), a) for a in remaining] + [placed]


def reduce_splits(assignments: List[AssignedReservation], config: AssignerConfig) -> int:
    """Try once per split reservation to put it back on a single court.

    Mutates the list in place and returns the number of reservations unsplit.
    """
    groups = group_by_reservation([a for a in assignments if a.is_split])
    unsplit = 0

    for res_id, parts in groups.items():
        if len(parts) < 2:
            continue
        span = TimeSlot(min(p.slot.start for p in parts), max(p.slot.end for p in parts))
        unified = replace(parts[0], slot=span, is_split=False)
        remaining = [a for a in assignments if a.id != res_id]

        for court in config.courts:
            plan = _plan_unsplit(unified, court.id, remaining, config)
            if plan is not None:
                assignments[:] = plan
                unsplit += 1
                logger.debug("Unsplit %s onto %s", res_id, court.id)
                break

    return unsplit


def assign_courts(reservations: List[Reservation], config: AssignerConfig) -> AssignmentResult:
    """Assign reservations to courts, minimising unusable idle time."""
    pinned = [r for r in reservations if r.is_pinned]
    flexible = [r for r in reservations if r.is_flexible]

    assignments, unassigned = place_pinned(pinned, config)

    for res in sort_flexible(flexible):
        scores = [
            s for s in (score_placement(res, court, assignments, config) for court in config.courts)
            if s is not None
        ]

        if not scores:
            if config.allow_splitting:
                fragments = try_split_reservation(res, assignments, config)
                if fragments:
                    assignments.extend(fragments)
                    logger.debug("Split %s into %d fragment(s)", res.id, len(fragments))
                    continue
            unassigned.append(res)
            continue

        best = pick_best_score(scores, config.allow_splitting)
        assignments.append(AssignedReservation.from_reservation(res, best.court_id))

    compact_assignments(assignments, config)

    if config.allow_splitting:
        reduce_splits(assignments, config)

    logger.debug(
        "Assigned %d record(s), %d unassigned across %d court(s)",
        len(assignments), len(unassigned), len(config.courts),
    )
    return build_result(assignments, unassigned, config)
