"""Boundary validation for schedules, courts, reservations and simulation inputs."""

from dataclasses import dataclass, field
from typing import List
import pandas as pd

from models.court import Court
from models.reservation import Reservation, PINNED, FLEXIBLE
from models.schedule import AssignerConfig, OperatingSchedule
from models.simulation import SimulationParams
from config.defaults import DAY_START_MINUTE, DAY_END_MINUTE, DURATION_BIN_COUNT


class ValidationError(ValueError):
    """Raised when input is rejected before entering the engine."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


@dataclass
class ValidationResult:
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, message: str):
        self.is_valid = False
        self.errors.append(message)

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        if not other.is_valid:
            self.is_valid = False
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        return self


def raise_for_errors(result: ValidationResult) -> None:
    if not result.is_valid:
        raise ValidationError(result.errors)


COURT_REQUIRED_COLUMNS = [
    "Court ID",
    "Court Name",
]

RESERVATION_REQUIRED_COLUMNS = [
    "Reservation ID",
    "Start",
    "End",
    "Mode",
]


def validate_schedule(schedule: OperatingSchedule) -> ValidationResult:
    result = ValidationResult()
    if not (DAY_START_MINUTE <= schedule.open_time <= DAY_END_MINUTE):
        result.add_error(f"Schedule: open time {schedule.open_time} is outside the day.")
    if not (DAY_START_MINUTE <= schedule.close_time <= DAY_END_MINUTE):
        result.add_error(f"Schedule: close time {schedule.close_time} is outside the day.")
    if schedule.open_time >= schedule.close_time:
        result.add_error(
            f"Schedule: open time {schedule.open_time} must be before close time {schedule.close_time}."
        )
    if schedule.min_slot_duration <= 0:
        result.add_error("Schedule: minimum slot duration must be positive.")
    return result


def validate_courts(courts: List[Court]) -> ValidationResult:
    result = ValidationResult()
    if not courts:
        result.add_error("Courts: at least one court is required.")
        return result
    ids = [c.id for c in courts]
    dupes = sorted({i for i in ids if ids.count(i) > 1})
    if dupes:
        result.add_error(f"Courts: duplicate court ids: {dupes}")
    return result


def validate_reservations(
    reservations: List[Reservation],
    courts: List[Court],
    schedule: OperatingSchedule,
) -> ValidationResult:
    result = ValidationResult()
    court_ids = {c.id for c in courts}
    seen = set()

    for res in reservations:
        label = f"Reservation {res.id}"
        if res.id in seen:
            result.add_error(f"{label}: duplicate reservation id.")
        seen.add(res.id)

        if res.slot.end <= res.slot.start:
            result.add_error(f"{label}: end must be after start.")
        if res.slot.start < DAY_START_MINUTE or res.slot.end > DAY_END_MINUTE:
            result.add_error(f"{label}: slot must lie within 0-1440 minutes.")
        elif res.slot.start < schedule.open_time or res.slot.end > schedule.close_time:
            result.warnings.append(f"{label}: slot falls outside operating hours and will be left unassigned.")

        if res.mode not in (PINNED, FLEXIBLE):
            result.add_error(f"{label}: mode must be '{PINNED}' or '{FLEXIBLE}', got '{res.mode}'.")
        elif res.mode == PINNED:
            if res.pinned_court_id is None:
                result.add_error(f"{label}: pinned reservation has no court.")
            elif res.pinned_court_id not in court_ids:
                result.add_error(f"{label}: pinned to unknown court '{res.pinned_court_id}'.")
        elif res.pinned_court_id is not None:
            result.add_error(f"{label}: flexible reservation must not name a court.")

        if res.slot.end > res.slot.start and res.slot.duration < schedule.min_slot_duration:
            result.warnings.append(f"{label}: shorter than the minimum bookable duration.")

    return result


def validate_assignment_request(
    reservations: List[Reservation],
    config: AssignerConfig,
) -> ValidationResult:
    """Everything an assigner call needs checked before it runs."""
    result = validate_courts(config.courts)
    result.merge(validate_schedule(config.schedule))
    if result.is_valid:
        result.merge(validate_reservations(reservations, config.courts, config.schedule))
    return result


def validate_simulation_params(params: SimulationParams) -> ValidationResult:
    result = validate_courts(params.courts)
    result.merge(validate_schedule(params.schedule))

    if params.iterations < 1:
        result.add_error("Simulation: iterations must be at least 1.")
    if params.reservations_per_day < 0:
        result.add_error("Simulation: reservations per day cannot be negative.")
    if not (0.0 <= params.locked_fraction <= 1.0):
        result.add_error("Simulation: locked fraction must be between 0 and 1.")
    if params.variance_cv < 0:
        result.add_error("Simulation: variance coefficient cannot be negative.")
    if params.slot_block_min <= 0:
        result.add_error("Simulation: slot block must be positive.")
    if params.overflow_multiplier < 0:
        result.add_error("Simulation: overflow multiplier cannot be negative.")

    pcts = list(params.duration_bin_pcts)
    if len(pcts) != DURATION_BIN_COUNT:
        result.add_error(f"Simulation: expected {DURATION_BIN_COUNT} duration bin weights, got {len(pcts)}.")
    elif any(p < 0 for p in pcts):
        result.add_error("Simulation: duration bin weights cannot be negative.")
    elif abs(sum(pcts) - 100) > 1e-6:
        result.warnings.append(f"Simulation: duration bin weights sum to {sum(pcts)}, not 100.")

    return result


def _check_required_columns(df: pd.DataFrame, required: List[str], file_label: str) -> ValidationResult:
    result = ValidationResult()
    missing = [col for col in required if col not in df.columns]
    if missing:
        result.add_error(f"{file_label}: Missing required columns: {', '.join(missing)}")
    if df.empty:
        result.add_error(f"{file_label}: File contains no data rows.")
    return result


def validate_courts_df(df: pd.DataFrame) -> ValidationResult:
    result = _check_required_columns(df, COURT_REQUIRED_COLUMNS, "Courts")
    if not result.is_valid:
        return result

    dupes = df.duplicated(subset=["Court ID"], keep=False)
    if dupes.any():
        result.add_error(f"Courts: Duplicate court ids: {df[dupes]['Court ID'].unique().tolist()}")
    return result


def validate_reservations_df(df: pd.DataFrame) -> ValidationResult:
    result = _check_required_columns(df, RESERVATION_REQUIRED_COLUMNS, "Reservations")
    if not result.is_valid:
        return result

    dupes = df.duplicated(subset=["Reservation ID"], keep=False)
    if dupes.any():
        result.add_error(
            f"Reservations: Duplicate reservation ids: {df[dupes]['Reservation ID'].unique().tolist()}"
        )

    modes = df["Mode"].astype(str).str.strip().str.lower()
    bad_modes = sorted(set(modes) - {PINNED, FLEXIBLE})
    if bad_modes:
        result.add_error(f"Reservations: Unknown modes: {bad_modes}")

    pinned = modes == PINNED
    if pinned.any():
        if "Pinned Court ID" not in df.columns:
            result.add_error("Reservations: Pinned rows present but no 'Pinned Court ID' column.")
        elif df.loc[pinned, "Pinned Court ID"].isna().any():
            result.add_error("Reservations: Pinned rows must name a court.")

    return result
