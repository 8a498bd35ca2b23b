from dataclasses import dataclass, field
from typing import List, Optional

from models.court import Court
from config.defaults import (
    WEIGHT_ADJACENCY, WEIGHT_CONTIGUITY, WEIGHT_GAP_PENALTY, WEIGHT_FILL,
)


@dataclass
class OperatingSchedule:
    open_time: int           # Minutes since midnight
    close_time: int
    min_slot_duration: int   # Shortest bookable reservation, in minutes

    @property
    def operating_minutes(self) -> int:
        return self.close_time - self.open_time


@dataclass(frozen=True)
class ScoringWeights:
    """Weights for the placement scoring function."""
    adjacency: float = WEIGHT_ADJACENCY
    contiguity: float = WEIGHT_CONTIGUITY
    gap_penalty: float = WEIGHT_GAP_PENALTY   # Negative: applied per new stranded gap
    fill: float = WEIGHT_FILL


@dataclass
class AssignerConfig:
    courts: List[Court]
    schedule: OperatingSchedule
    weights: ScoringWeights = field(default_factory=ScoringWeights)
    allow_splitting: bool = False
    # Reserved: accepted and carried through, but does not change assignment.
    splitting_tolerance: Optional[float] = None
    price_per_hour: Optional[float] = None

    @property
    def court_ids(self) -> List[str]:
        return [c.id for c in self.courts]

    @property
    def total_capacity_minutes(self) -> int:
        return len(self.courts) * self.schedule.operating_minutes
