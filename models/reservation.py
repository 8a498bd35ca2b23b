from dataclasses import dataclass, replace
from typing import Optional

from models.time_slot import TimeSlot

PINNED = "pinned"
FLEXIBLE = "flexible"


@dataclass(frozen=True)
class Reservation:
    id: str
    slot: TimeSlot
    mode: str                              # "pinned" or "flexible"
    pinned_court_id: Optional[str] = None  # Present iff mode == "pinned"
    priority: Optional[int] = None

    @property
    def is_pinned(self) -> bool:
        return self.mode == PINNED

    @property
    def is_flexible(self) -> bool:
        return self.mode == FLEXIBLE


@dataclass(frozen=True)
class AssignedReservation:
    """A reservation placed on a court.

    A split reservation is stored as several records sharing the same ``id``,
    each holding one disjoint sub-slot. Group by id (see
    ``AssignmentResult.split_groups``) before treating a reservation as a unit.
    """
    id: str
    slot: TimeSlot
    mode: str
    court_id: str
    pinned_court_id: Optional[str] = None
    priority: Optional[int] = None
    is_split: bool = False

    @classmethod
    def from_reservation(
        cls,
        reservation: Reservation,
        court_id: str,
        slot: Optional[TimeSlot] = None,
        is_split: bool = False,
    ) -> "AssignedReservation":
        return cls(
            id=reservation.id,
            slot=slot or reservation.slot,
            mode=reservation.mode,
            court_id=court_id,
            pinned_court_id=reservation.pinned_court_id,
            priority=reservation.priority,
            is_split=is_split,
        )

    @property
    def is_pinned(self) -> bool:
        return self.mode == PINNED

    @property
    def is_flexible(self) -> bool:
        return self.mode == FLEXIBLE

    def moved_to(self, court_id: str) -> "AssignedReservation":
        return replace(self, court_id=court_id)

    def as_reservation(self) -> Reservation:
        return Reservation(
            id=self.id,
            slot=self.slot,
            mode=self.mode,
            pinned_court_id=self.pinned_court_id,
            priority=self.priority,
        )
