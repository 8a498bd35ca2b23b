"""File parsing: CSV/XLSX into typed court and reservation lists."""

import pandas as pd
from typing import List

from models.court import Court
from models.reservation import Reservation, PINNED
from models.result import AssignmentResult
from models.time_slot import TimeSlot
from engine.intervals import format_time, parse_time

# Columns copied into Court.attributes when present
COURT_ATTRIBUTE_COLUMNS = ["Surface", "Indoor", "Lighting"]


def parse_courts(df: pd.DataFrame) -> List[Court]:
    """Convert a courts DataFrame into Court objects."""
    courts = []
    for _, row in df.iterrows():
        attributes = {}
        for col in COURT_ATTRIBUTE_COLUMNS:
            if col in df.columns and pd.notna(row.get(col)):
                attributes[col.lower()] = str(row[col]).strip()
        courts.append(Court(
            id=str(row["Court ID"]).strip(),
            name=str(row["Court Name"]).strip(),
            attributes=attributes,
        ))
    return courts


def parse_reservations(df: pd.DataFrame) -> List[Reservation]:
    """Convert a reservations DataFrame into Reservation objects.

    Start/End accept minutes since midnight or "HH:MM".
    """
    reservations = []
    for _, row in df.iterrows():
        mode = str(row["Mode"]).strip().lower()
        pinned_court_id = None
        if mode == PINNED and "Pinned Court ID" in df.columns and pd.notna(row.get("Pinned Court ID")):
            pinned_court_id = str(row["Pinned Court ID"]).strip()
        priority = None
        if "Priority" in df.columns and pd.notna(row.get("Priority")):
            priority = int(row["Priority"])
        reservations.append(Reservation(
            id=str(row["Reservation ID"]).strip(),
            slot=TimeSlot(parse_time(row["Start"]), parse_time(row["End"])),
            mode=mode,
            pinned_court_id=pinned_court_id,
            priority=priority,
        ))
    return reservations


def load_file(source) -> pd.DataFrame:
    """Load a CSV or XLSX file (path or uploaded file object) into a DataFrame."""
    name = str(getattr(source, "name", source)).lower()
    if name.endswith(".csv"):
        return pd.read_csv(source)
    elif name.endswith(".xlsx") or name.endswith(".xls"):
        return pd.read_excel(source, engine="openpyxl")
    else:
        raise ValueError(f"Unsupported file format: {name}. Use CSV or XLSX.")


def assignments_to_frame(result: AssignmentResult) -> pd.DataFrame:
    """Flatten an assignment result into one row per booked record."""
    rows = [{
        "Reservation ID": a.id,
        "Court ID": a.court_id,
        "Start": format_time(a.slot.start),
        "End": format_time(a.slot.end),
        "Minutes": a.slot.duration,
        "Mode": a.mode,
        "Split": a.is_split,
    } for a in sorted(result.assignments, key=lambda a: (a.court_id, a.slot.start))]
    return pd.DataFrame(rows, columns=["Reservation ID", "Court ID", "Start", "End", "Minutes", "Mode", "Split"])
