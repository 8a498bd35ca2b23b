"""Monte Carlo comparison of the smart and naive court assigners.

Each iteration draws a randomized day of reservations under a concurrency
tracker (so every generated request is placeable by construction), runs both
assigners on the identical set, and records the outcome. Per-iteration
records are aggregated through pandas into RunStats for each algorithm.
"""

import logging
import math
import random
from bisect import bisect_left
from typing import List, Optional, Sequence

import pandas as pd

from models.court import Court
from models.reservation import Reservation, PINNED, FLEXIBLE
from models.result import AssignmentResult
from models.schedule import AssignerConfig, OperatingSchedule
from models.simulation import (
    IterationResult, RunStats, SampleDay, SimulationParams, SimulationResult,
    SplitVariant, SplittingComparison,
)
from models.time_slot import TimeSlot
from engine.court_assigner import assign_courts
from engine.naive_assigner import naive_assign_courts
from engine.gap_analyzer import gap_breakdown
from data.validator import raise_for_errors, validate_simulation_params
from config.defaults import (
    MAX_PLACEMENT_RETRIES, ATTEMPT_BUDGET_FACTOR, MAX_RESERVATION_MINUTES,
    ITERATION_SEED_STRIDE, NAIVE_SEED_OFFSET, NAIVE_NO_SPLIT_SEED_OFFSET,
    OVERFLOW_PRESSURE_FLOOR, PEAK_HOUR_START, PEAK_HOUR_END, PEAK_PRESSURE_BOOST,
)

logger = logging.getLogger(__name__)


def create_rng(seed: int) -> random.Random:
    return random.Random(seed)


def _ceil_div(a: int, b: int) -> int:
    return -(-a // b)


def sample_daily_count(mean: float, cv: float, max_count: int, rng: random.Random) -> int:
    """round(N(mean, cv * mean)), clamped to [1, max_count]."""
    value = round(rng.gauss(mean, cv * mean))
    return max(1, min(max_count, value))


def pick_weighted_duration(
    min_duration: int,
    block: int,
    bin_pcts: Sequence[float],
    operating_minutes: int,
    rng: random.Random,
) -> int:
    """Draw a duration from the four bins M, M+B, M+2B and "M+2B or longer".

    The last bin picks uniformly among multiples of B from M+2B up to
    min(operating_minutes, MAX_RESERVATION_MINUTES).
    """
    max_duration = min(operating_minutes, MAX_RESERVATION_MINUTES)
    r = rng.random() * 100
    cumulative = 0.0

    for i, pct in enumerate(bin_pcts):
        cumulative += pct
        if r >= cumulative:
            continue
        if i == 0:
            return min_duration
        if i < 3:
            return min(min_duration + i * block, max_duration)
        lowest = min_duration + 2 * block
        if lowest >= max_duration:
            return max_duration
        return rng.choice(list(range(lowest, max_duration + 1, block)))

    return min_duration


class ConcurrencyTracker:
    """Per-slot-block occupancy used to keep generated days placeable.

    Tracks a global concurrency count (bounded by the number of courts) and,
    per court, how many pinned reservations occupy each block.
    """

    def __init__(self, open_time: int, close_time: int, block_size: int, court_ids: List[str]):
        self.open_time = open_time
        self.block_size = block_size
        self.num_courts = len(court_ids)
        self.total_blocks = _ceil_div(close_time - open_time, block_size)
        self.counts = [0] * self.total_blocks
        self.pinned_counts = {cid: [0] * self.total_blocks for cid in court_ids}

    def _blocks(self, start: int, end: int) -> range:
        lo = (start - self.open_time) // self.block_size
        hi = _ceil_div(end - self.open_time, self.block_size)
        return range(max(0, lo), min(hi, self.total_blocks))

    def can_fit(self, start: int, end: int, pinned_court_id: Optional[str] = None) -> bool:
        blocks = self._blocks(start, end)
        if any(self.counts[i] >= self.num_courts for i in blocks):
            return False
        if pinned_court_id is not None:
            court = self.pinned_counts.get(pinned_court_id)
            return court is None or all(court[i] == 0 for i in blocks)
        # Flexible: some court must be clear of pinned bookings for the whole span
        return any(
            all(court[i] == 0 for i in blocks) for court in self.pinned_counts.values()
        )

    def add(self, start: int, end: int, pinned_court_id: Optional[str] = None):
        blocks = self._blocks(start, end)
        for i in blocks:
            self.counts[i] += 1
        if pinned_court_id in self.pinned_counts:
            court = self.pinned_counts[pinned_court_id]
            for i in blocks:
                court[i] += 1


def generate_reservations(
    count: int,
    locked_fraction: float,
    courts: List[Court],
    schedule: OperatingSchedule,
    slot_block_min: int,
    duration_bin_pcts: Sequence[float],
    rng: random.Random,
) -> List[Reservation]:
    """Generate up to ``count`` mutually placeable reservations.

    Each attempt draws a duration, mode and court, tries
    MAX_PLACEMENT_RETRIES random block-aligned starts, then scans the whole
    start grid from a random offset. The outer loop stops at ``count``
    placements or ``count * ATTEMPT_BUDGET_FACTOR`` attempts. Output is
    sorted by start, pinned before flexible on equal starts.
    """
    operating = schedule.operating_minutes
    tracker = ConcurrencyTracker(
        schedule.open_time, schedule.close_time, slot_block_min, [c.id for c in courts],
    )
    reservations: List[Reservation] = []

    def accept(start: int, duration: int, pinned_court_id: Optional[str]) -> bool:
        end = start + duration
        if not tracker.can_fit(start, end, pinned_court_id):
            return False
        reservations.append(Reservation(
            id=f"r-{len(reservations)}",
            slot=TimeSlot(start, end),
            mode=PINNED if pinned_court_id else FLEXIBLE,
            pinned_court_id=pinned_court_id,
        ))
        tracker.add(start, end, pinned_court_id)
        return True

    attempts = 0
    max_attempts = count * ATTEMPT_BUDGET_FACTOR
    while len(reservations) < count and attempts < max_attempts:
        attempts += 1
        duration = pick_weighted_duration(
            schedule.min_slot_duration, slot_block_min, duration_bin_pcts, operating, rng,
        )
        max_start = operating - duration
        if max_start <= 0:
            continue

        num_starts = max_start // slot_block_min + 1
        is_pinned = rng.random() < locked_fraction
        court = courts[int(rng.random() * len(courts))]
        pinned_court_id = court.id if is_pinned else None

        fitted = False
        for _ in range(MAX_PLACEMENT_RETRIES):
            start = schedule.open_time + int(rng.random() * num_starts) * slot_block_min
            if accept(start, duration, pinned_court_id):
                fitted = True
                break

        if not fitted:
            offset = int(rng.random() * num_starts)
            for k in range(num_starts):
                start = schedule.open_time + ((offset + k) % num_starts) * slot_block_min
                if accept(start, duration, pinned_court_id):
                    break

    reservations.sort(key=lambda r: (r.slot.start, 0 if r.is_pinned else 1))
    return reservations


def target_utilization(params: SimulationParams) -> float:
    """Requested daily count relative to how many average reservations fit."""
    m = params.schedule.min_slot_duration
    b = params.slot_block_min
    operating = params.schedule.operating_minutes
    p = [x / 100 for x in params.duration_bin_pcts]
    avg_duration = (
        p[0] * m
        + p[1] * (m + b)
        + p[2] * (m + 2 * b)
        + p[3] * ((m + 2 * b + min(operating, MAX_RESERVATION_MINUTES)) / 2)
    )
    if avg_duration <= 0:
        return 0.0
    max_reservations = math.floor(len(params.courts) * operating / avg_duration)
    if max_reservations <= 0:
        return 0.0
    return params.reservations_per_day / max_reservations


def generate_overflow(
    base: List[Reservation],
    num_courts: int,
    schedule: OperatingSchedule,
    slot_block_min: int,
    duration_bin_pcts: Sequence[float],
    overflow_multiplier: float,
    target_util: float,
    model_peak_times: bool,
    rng: random.Random,
) -> List[Reservation]:
    """Extra flexible requests aimed at congested blocks (pent-up demand).

    Block pressure is ((f - 0.5)^2 / 0.25) for occupancy fraction f above
    0.5, doubled during peak hours when ``model_peak_times`` is set. The
    count scales with e^(2 * (target_util - 0.5)).
    """
    if overflow_multiplier <= 0:
        return []

    open_time, close_time = schedule.open_time, schedule.close_time
    num_blocks = _ceil_div(close_time - open_time, slot_block_min)

    occupancy = [0] * num_blocks
    for res in base:
        lo = (res.slot.start - open_time) // slot_block_min
        hi = _ceil_div(res.slot.end - open_time, slot_block_min)
        for i in range(max(0, lo), min(hi, num_blocks)):
            occupancy[i] += 1

    peak_start, peak_end = PEAK_HOUR_START * 60, PEAK_HOUR_END * 60
    pressure = []
    for i, occupied in enumerate(occupancy):
        f = occupied / num_courts
        p = (f - OVERFLOW_PRESSURE_FLOOR) ** 2 / 0.25 if f > OVERFLOW_PRESSURE_FLOOR else 0.0
        block_start = open_time + i * slot_block_min
        if model_peak_times and p > 0 and peak_start <= block_start < peak_end:
            p *= PEAK_PRESSURE_BOOST
        pressure.append(p)

    total_pressure = sum(pressure)
    if total_pressure == 0:
        return []

    effective_multiplier = overflow_multiplier * math.exp(2 * (target_util - 0.5))
    overflow_count = round(total_pressure * effective_multiplier)

    cdf = []
    running = 0.0
    for p in pressure:
        running += p
        cdf.append(running / total_pressure)

    overflow: List[Reservation] = []
    for j in range(overflow_count):
        block = min(bisect_left(cdf, rng.random()), num_blocks - 1)
        start = open_time + block * slot_block_min
        duration = pick_weighted_duration(
            schedule.min_slot_duration, slot_block_min, duration_bin_pcts,
            schedule.operating_minutes, rng,
        )
        if start + duration > close_time:
            continue
        overflow.append(Reservation(
            id=f"overflow-{j}",
            slot=TimeSlot(start, start + duration),
            mode=FLEXIBLE,
        ))
    return overflow


def _run_stats(results: List[AssignmentResult], capacity: int, price_per_minute: float) -> RunStats:
    frame = pd.DataFrame({
        "utilization": [r.utilization(capacity) for r in results],
        "gap_minutes": [r.total_gap_minutes for r in results],
        "fragmentation": [r.fragmentation_score for r in results],
        "unassigned": [len(r.unassigned) for r in results],
        "splits": [r.split_count for r in results],
    })
    avg_util = float(frame["utilization"].mean())
    return RunStats(
        avg_utilization=avg_util,
        min_utilization=float(frame["utilization"].min()),
        max_utilization=float(frame["utilization"].max()),
        avg_gap_minutes=float(frame["gap_minutes"].mean()),
        avg_fragmentation=float(frame["fragmentation"].mean()),
        avg_unassigned=float(frame["unassigned"].mean()),
        avg_splits=float(frame["splits"].mean()),
        revenue_per_day=capacity * avg_util * price_per_minute,
    )


def _pinned_minutes(result: AssignmentResult) -> int:
    return sum(a.slot.duration for a in result.assignments if a.is_pinned)


def run_simulation(params: SimulationParams) -> SimulationResult:
    """Run ``params.iterations`` independent seeded days through both assigners."""
    raise_for_errors(validate_simulation_params(params))

    courts, schedule = params.courts, params.schedule
    config = AssignerConfig(
        courts=courts,
        schedule=schedule,
        allow_splitting=params.allow_splitting,
        splitting_tolerance=params.splitting_tolerance,
        price_per_hour=params.price_per_hour,
    )
    config_no_split = AssignerConfig(courts=courts, schedule=schedule)
    capacity = config.total_capacity_minutes
    price_per_minute = params.price_per_hour / 60
    target_util = target_utilization(params)
    max_count = max(1, math.floor(schedule.operating_minutes / schedule.min_slot_duration * len(courts)))
    seed = params.effective_seed

    smart_results: List[AssignmentResult] = []
    naive_results: List[AssignmentResult] = []
    smart_no_split: List[AssignmentResult] = []
    naive_no_split: List[AssignmentResult] = []
    iteration_results: List[IterationResult] = []

    for i in range(params.iterations):
        iteration_seed = seed + i * ITERATION_SEED_STRIDE
        rng = create_rng(iteration_seed)

        if params.variance_cv > 0:
            count = sample_daily_count(params.reservations_per_day, params.variance_cv, max_count, rng)
        else:
            count = params.reservations_per_day

        base = generate_reservations(
            count, params.locked_fraction, courts, schedule,
            params.slot_block_min, params.duration_bin_pcts, rng,
        )
        overflow = generate_overflow(
            base, len(courts), schedule, params.slot_block_min, params.duration_bin_pcts,
            params.overflow_multiplier, target_util, params.model_peak_times, rng,
        )
        reservations = base + overflow

        smart = assign_courts(reservations, config)
        naive = naive_assign_courts(reservations, config, create_rng(iteration_seed + NAIVE_SEED_OFFSET))
        smart_results.append(smart)
        naive_results.append(naive)

        if params.allow_splitting:
            smart_no_split.append(assign_courts(reservations, config_no_split))
            naive_no_split.append(naive_assign_courts(
                reservations, config_no_split, create_rng(iteration_seed + NAIVE_NO_SPLIT_SEED_OFFSET),
            ))

        overflow_ids = {r.id for r in overflow}
        iteration_results.append(IterationResult(
            reservation_count=len(reservations),
            smart_utilization=smart.utilization(capacity),
            naive_utilization=naive.utilization(capacity),
            smart_gap_minutes=smart.total_gap_minutes,
            naive_gap_minutes=naive.total_gap_minutes,
            overflow_generated=len(overflow),
            overflow_placed_smart=len({a.id for a in smart.assignments if a.id in overflow_ids}),
            overflow_placed_naive=len({a.id for a in naive.assignments if a.id in overflow_ids}),
            smart_split_count=smart.split_count,
            naive_split_count=naive.split_count,
        ))
        logger.debug(
            "Iteration %d: %d request(s), smart gap %d, naive gap %d",
            i, len(reservations), smart.total_gap_minutes, naive.total_gap_minutes,
        )

    smart_stats = _run_stats(smart_results, capacity, price_per_minute)
    naive_stats = _run_stats(naive_results, capacity, price_per_minute)

    if params.allow_splitting:
        smart_ns_stats = _run_stats(smart_no_split, capacity, price_per_minute)
        naive_ns_stats = _run_stats(naive_no_split, capacity, price_per_minute)
    else:
        smart_ns_stats, naive_ns_stats = smart_stats, naive_stats

    splitting = SplittingComparison(
        smart_no_split=SplitVariant(smart_ns_stats.revenue_per_day, 0.0, smart_ns_stats.avg_utilization),
        smart_with_split=SplitVariant(smart_stats.revenue_per_day, smart_stats.avg_splits, smart_stats.avg_utilization),
        naive_no_split=SplitVariant(naive_ns_stats.revenue_per_day, 0.0, naive_ns_stats.avg_utilization),
        naive_with_split=SplitVariant(naive_stats.revenue_per_day, naive_stats.avg_splits, naive_stats.avg_utilization),
    )

    iterations_df = pd.DataFrame([vars(r) for r in iteration_results])
    gap_delta = iterations_df["naive_gap_minutes"] - iterations_df["smart_gap_minutes"]
    sample_idx = int(gap_delta.idxmax())

    revenue_smart = smart_stats.revenue_per_day
    revenue_naive = naive_stats.revenue_per_day
    savings = revenue_smart - revenue_naive
    avg_pinned_minutes = sum(_pinned_minutes(r) for r in smart_results) / len(smart_results)

    logger.info(
        "Simulation: %d iteration(s), smart util %.3f vs naive %.3f",
        params.iterations, smart_stats.avg_utilization, naive_stats.avg_utilization,
    )

    return SimulationResult(
        iterations=params.iterations,
        smart=smart_stats,
        naive=naive_stats,
        delta_utilization=smart_stats.avg_utilization - naive_stats.avg_utilization,
        gap_saved=naive_stats.avg_gap_minutes - smart_stats.avg_gap_minutes,
        frag_reduction=naive_stats.avg_fragmentation - smart_stats.avg_fragmentation,
        revenue_smart_per_day=revenue_smart,
        revenue_naive_per_day=revenue_naive,
        savings_per_day=savings,
        savings_percent=(savings / revenue_naive * 100) if revenue_naive > 0 else 0.0,
        lock_premium_per_day=avg_pinned_minutes / 60 * params.lock_premium_per_hour,
        smart_gaps=gap_breakdown(smart_results),
        naive_gaps=gap_breakdown(naive_results),
        splitting=splitting,
        sample_day=SampleDay(
            iteration=sample_idx,
            smart=smart_results[sample_idx],
            naive=naive_results[sample_idx],
            court_names=[c.name for c in courts],
            open_time=schedule.open_time,
            close_time=schedule.close_time,
        ),
        avg_overflow_generated=float(iterations_df["overflow_generated"].mean()),
        avg_overflow_placed_smart=float(iterations_df["overflow_placed_smart"].mean()),
        avg_overflow_placed_naive=float(iterations_df["overflow_placed_naive"].mean()),
        iteration_results=iteration_results,
    )
