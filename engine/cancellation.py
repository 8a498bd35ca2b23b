"""Cancellation handling with bounded chained reassignment."""

import logging
from typing import List, Optional

from models.reservation import AssignedReservation
from models.result import AssignmentResult
from models.schedule import AssignerConfig
from engine.intervals import court_bookings, fits_on_court, slots_adjacent
from engine.gap_analyzer import analyze_gaps, build_result, total_gap_minutes
from config.defaults import DEFAULT_MAX_CHAIN_DEPTH

logger = logging.getLogger(__name__)


def find_best_relocation(
    assignments: List[AssignedReservation],
    config: AssignerConfig,
) -> Optional[List[AssignedReservation]]:
    """Best single flexible move that strictly reduces total gap minutes.

    Among equal reductions, a later move that lands next to an existing
    booking replaces the current best.
    Returns the updated list, or None when no move helps.
    """
    schedule = config.schedule
    current_gap = total_gap_minutes(analyze_gaps(assignments, config.courts, config.schedule))

    best_index = None
    best_court = None
    best_reduction = 0

    for index, res in enumerate(assignments):
        if not res.is_flexible:
            continue
        without = assignments[:index] + assignments[index + 1:]

        for court in config.courts:
            if court.id == res.court_id:
                continue
            if not fits_on_court(res.slot, without, court.id, schedule.open_time, schedule.close_time):
                continue

            adjacent = any(slots_adjacent(b.slot, res.slot) for b in court_bookings(without, court.id))
            new_gap = total_gap_minutes(
                analyze_gaps(without + [res.moved_to(court.id)], config.courts, config.schedule)
            )
            reduction = current_gap - new_gap
            if reduction <= 0:
                continue
            if (
                best_index is None
                or reduction > best_reduction
                or (reduction == best_reduction and adjacent)
            ):
                best_index, best_court = index, court.id
                best_reduction = reduction

    if best_index is None:
        return None

    updated = list(assignments)
    updated[best_index] = updated[best_index].moved_to(best_court)
    return updated


def handle_cancellation(
    reservation_id: str,
    current_assignments: List[AssignedReservation],
    config: AssignerConfig,
    max_chain_depth: int = DEFAULT_MAX_CHAIN_DEPTH,
) -> AssignmentResult:
    """Remove a reservation (every fragment, if split) and re-pack around it.

    Unknown ids are a no-op: the input comes back with fresh gap metrics.
    """
    if not any(a.id == reservation_id for a in current_assignments):
        logger.debug("Cancellation of unknown reservation %s ignored", reservation_id)
        return build_result(current_assignments, [], config)

    assignments = [a for a in current_assignments if a.id != reservation_id]

    rounds = 0
    for _ in range(max_chain_depth):
        moved = find_best_relocation(assignments, config)
        if moved is None:
            break
        assignments = moved
        rounds += 1

    logger.debug("Cancelled %s; %d chained relocation(s)", reservation_id, rounds)
    return build_result(assignments, [], config)
