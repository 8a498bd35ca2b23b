"""Gap derivation and fragmentation scoring."""

from typing import List, Optional

from models.court import Court
from models.reservation import AssignedReservation, Reservation
from models.result import AssignmentResult, Gap
from models.schedule import AssignerConfig, OperatingSchedule
from models.simulation import GapBreakdown
from engine.intervals import find_free_slots, slot_duration
from config.defaults import (
    FRAG_WEIGHT_GAP_RATIO, FRAG_WEIGHT_STRANDED, FRAG_WEIGHT_SEGMENTS,
    FRAG_SEGMENT_CAP_PER_COURT,
)


def analyze_gaps(
    assignments: List[AssignedReservation],
    courts: List[Court],
    schedule: OperatingSchedule,
) -> List[Gap]:
    """Every unbooked interval on every court within operating hours."""
    gaps = []
    for court in courts:
        for slot in find_free_slots(assignments, court.id, schedule.open_time, schedule.close_time):
            duration = slot_duration(slot)
            gaps.append(Gap(
                court_id=court.id,
                slot=slot,
                duration=duration,
                stranded=duration < schedule.min_slot_duration,
            ))
    return gaps


def total_gap_minutes(gaps: List[Gap]) -> int:
    return sum(g.duration for g in gaps)


def stranded_gap_minutes(gaps: List[Gap]) -> int:
    return sum(g.duration for g in gaps if g.stranded)


def fragmentation_score(
    gaps: List[Gap],
    courts: List[Court],
    schedule: OperatingSchedule,
) -> float:
    """Blend of gap ratio, stranded share and segment count, in [0, 1].

    0 means perfectly packed. The segment term caps at
    FRAG_SEGMENT_CAP_PER_COURT gaps per court.
    """
    if not courts:
        return 0.0
    total_operating = len(courts) * schedule.operating_minutes
    if total_operating <= 0:
        return 0.0
    total_gap = total_gap_minutes(gaps)
    if total_gap == 0:
        return 0.0

    gap_ratio = total_gap / total_operating
    stranded_ratio = stranded_gap_minutes(gaps) / total_gap
    segment_penalty = min(len(gaps) / (len(courts) * FRAG_SEGMENT_CAP_PER_COURT), 1.0)

    score = (
        gap_ratio * FRAG_WEIGHT_GAP_RATIO
        + stranded_ratio * FRAG_WEIGHT_STRANDED
        + segment_penalty * FRAG_WEIGHT_SEGMENTS
    )
    return min(1.0, score)


def largest_usable_gap(gaps: List[Gap]) -> Optional[Gap]:
    usable = [g for g in gaps if not g.stranded]
    if not usable:
        return None
    best = usable[0]
    for g in usable[1:]:
        if g.duration > best.duration:
            best = g
    return best


def gaps_for_court(gaps: List[Gap], court_id: str) -> List[Gap]:
    return [g for g in gaps if g.court_id == court_id]


def gap_breakdown(results: List[AssignmentResult]) -> GapBreakdown:
    """Average booked / usable / stranded minutes over a set of results."""
    if not results:
        return GapBreakdown(0.0, 0.0, 0.0, 0.0)
    n = len(results)
    return GapBreakdown(
        booked_minutes=sum(r.booked_minutes for r in results) / n,
        usable_gap_minutes=sum(
            sum(g.duration for g in r.gaps if not g.stranded) for r in results
        ) / n,
        stranded_gap_minutes=sum(stranded_gap_minutes(r.gaps) for r in results) / n,
        stranded_count=sum(sum(1 for g in r.gaps if g.stranded) for r in results) / n,
    )


def build_result(
    assignments: List[AssignedReservation],
    unassigned: List[Reservation],
    config: AssignerConfig,
) -> AssignmentResult:
    """Attach final gap metrics to a set of assignments."""
    gaps = analyze_gaps(assignments, config.courts, config.schedule)
    return AssignmentResult(
        assignments=list(assignments),
        unassigned=list(unassigned),
        gaps=gaps,
        total_gap_minutes=total_gap_minutes(gaps),
        fragmentation_score=fragmentation_score(gaps, config.courts, config.schedule),
    )
