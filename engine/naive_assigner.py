"""Naive random court assignment, used as the benchmark baseline."""

import logging
import random
from typing import List

from models.reservation import AssignedReservation, Reservation
from models.result import AssignmentResult
from models.schedule import AssignerConfig
from engine.intervals import fits_on_court
from engine.court_assigner import place_pinned
from engine.gap_analyzer import build_result

logger = logging.getLogger(__name__)


def naive_assign_courts(
    reservations: List[Reservation],
    config: AssignerConfig,
    rng: random.Random,
) -> AssignmentResult:
    """First fit over a freshly shuffled court order per reservation.

    Flexible reservations keep their input order. No scoring, compaction or
    splitting.
    """
    schedule = config.schedule
    assignments, unassigned = place_pinned([r for r in reservations if r.is_pinned], config)

    for res in (r for r in reservations if r.is_flexible):
        courts = list(config.courts)
        rng.shuffle(courts)
        home = next(
            (
                c.id for c in courts
                if fits_on_court(res.slot, assignments, c.id, schedule.open_time, schedule.close_time)
            ),
            None,
        )
        if home is None:
            unassigned.append(res)
        else:
            assignments.append(AssignedReservation.from_reservation(res, home))

    logger.debug("Naive: %d placed, %d unassigned", len(assignments), len(unassigned))
    return build_result(assignments, unassigned, config)
