from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from models.court import Court
from models.result import AssignmentResult
from models.schedule import OperatingSchedule
from config.defaults import (
    DEFAULT_DURATION_BIN_PCTS, DEFAULT_LOCKED_FRACTION, DEFAULT_SEED,
    DEFAULT_SLOT_BLOCK_MIN,
)


@dataclass
class SimulationParams:
    courts: List[Court]
    schedule: OperatingSchedule
    iterations: int
    reservations_per_day: int
    # % weights for the bins M, M+B, M+2B, M+2B-or-longer (sum to 100)
    duration_bin_pcts: Tuple[float, float, float, float] = DEFAULT_DURATION_BIN_PCTS
    locked_fraction: float = DEFAULT_LOCKED_FRACTION  # 0-1, share of pinned requests
    variance_cv: float = 0.0        # Coefficient of variation of the daily count
    slot_block_min: int = DEFAULT_SLOT_BLOCK_MIN
    seed: Optional[int] = None      # None -> DEFAULT_SEED
    allow_splitting: bool = False
    splitting_tolerance: Optional[float] = None
    price_per_hour: float = 0.0
    lock_premium_per_hour: float = 0.0
    overflow_multiplier: float = 0.0
    model_peak_times: bool = False

    @property
    def effective_seed(self) -> int:
        return DEFAULT_SEED if self.seed is None else self.seed


@dataclass
class RunStats:
    avg_utilization: float
    min_utilization: float
    max_utilization: float
    avg_gap_minutes: float
    avg_fragmentation: float
    avg_unassigned: float
    avg_splits: float = 0.0
    revenue_per_day: float = 0.0


@dataclass
class GapBreakdown:
    booked_minutes: float
    usable_gap_minutes: float
    stranded_gap_minutes: float
    stranded_count: float


@dataclass
class IterationResult:
    reservation_count: int
    smart_utilization: float
    naive_utilization: float
    smart_gap_minutes: int
    naive_gap_minutes: int
    overflow_generated: int = 0
    overflow_placed_smart: int = 0
    overflow_placed_naive: int = 0
    smart_split_count: int = 0
    naive_split_count: int = 0


@dataclass
class SplitVariant:
    revenue: float
    splits: float
    utilization: float


@dataclass
class SplittingComparison:
    smart_no_split: SplitVariant
    smart_with_split: SplitVariant
    naive_no_split: SplitVariant
    naive_with_split: SplitVariant


@dataclass
class SampleDay:
    """One retained day of raw results for downstream inspection."""
    iteration: int
    smart: AssignmentResult
    naive: AssignmentResult
    court_names: List[str]
    open_time: int
    close_time: int


@dataclass
class SimulationResult:
    iterations: int
    smart: RunStats
    naive: RunStats
    delta_utilization: float
    gap_saved: float
    frag_reduction: float
    revenue_smart_per_day: float
    revenue_naive_per_day: float
    savings_per_day: float
    savings_percent: float
    lock_premium_per_day: float
    smart_gaps: GapBreakdown
    naive_gaps: GapBreakdown
    splitting: SplittingComparison
    sample_day: SampleDay
    avg_overflow_generated: float = 0.0
    avg_overflow_placed_smart: float = 0.0
    avg_overflow_placed_naive: float = 0.0
    iteration_results: List[IterationResult] = field(default_factory=list)
