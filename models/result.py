from dataclasses import dataclass, field
from typing import Dict, List

from models.reservation import AssignedReservation, Reservation
from models.time_slot import TimeSlot


@dataclass
class Gap:
    court_id: str
    slot: TimeSlot
    duration: int
    stranded: bool   # Shorter than the minimum bookable duration


@dataclass
class PlacementScore:
    court_id: str
    total: float
    adjacency_bonus: float = 0.0
    contiguity_bonus: float = 0.0
    gap_penalty: float = 0.0
    fill_bonus: float = 0.0
    large_slot_penalty: float = 0.0
    load_tiebreaker: int = 0   # Booked minutes on the court; not part of total


def group_by_reservation(
    assignments: List[AssignedReservation],
) -> Dict[str, List[AssignedReservation]]:
    """Map reservation id -> its assignment records, ordered by start."""
    groups: Dict[str, List[AssignedReservation]] = {}
    for a in assignments:
        groups.setdefault(a.id, []).append(a)
    for parts in groups.values():
        parts.sort(key=lambda p: p.slot.start)
    return groups


@dataclass
class AssignmentResult:
    assignments: List[AssignedReservation] = field(default_factory=list)
    unassigned: List[Reservation] = field(default_factory=list)
    gaps: List[Gap] = field(default_factory=list)
    total_gap_minutes: int = 0
    fragmentation_score: float = 0.0

    @property
    def booked_minutes(self) -> int:
        return sum(a.slot.duration for a in self.assignments)

    def utilization(self, capacity_minutes: int) -> float:
        if capacity_minutes <= 0:
            return 0.0
        return self.booked_minutes / capacity_minutes

    def assignments_for_court(self, court_id: str) -> List[AssignedReservation]:
        return sorted(
            (a for a in self.assignments if a.court_id == court_id),
            key=lambda a: a.slot.start,
        )

    def split_groups(self) -> Dict[str, List[AssignedReservation]]:
        """Split reservations only: id -> fragments ordered by start."""
        return group_by_reservation([a for a in self.assignments if a.is_split])

    @property
    def split_count(self) -> int:
        return len(self.split_groups())
