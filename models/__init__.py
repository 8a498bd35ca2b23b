from models.time_slot import TimeSlot
from models.court import Court
from models.reservation import Reservation, AssignedReservation, PINNED, FLEXIBLE
from models.schedule import OperatingSchedule, ScoringWeights, AssignerConfig
from models.result import Gap, PlacementScore, AssignmentResult, group_by_reservation
from models.simulation import (
    SimulationParams, RunStats, GapBreakdown, IterationResult,
    SplitVariant, SplittingComparison, SampleDay, SimulationResult,
)
