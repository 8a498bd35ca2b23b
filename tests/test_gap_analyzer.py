"""Tests for gap analysis and fragmentation scoring."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from models.court import Court
from models.reservation import AssignedReservation, FLEXIBLE
from models.schedule import AssignerConfig, OperatingSchedule
from models.time_slot import TimeSlot
from engine.gap_analyzer import (
    analyze_gaps,
    total_gap_minutes,
    fragmentation_score,
    largest_usable_gap,
    gaps_for_court,
    gap_breakdown,
    build_result,
)

COURTS = [Court("c1", "Court 1"), Court("c2", "Court 2")]
SCHEDULE = OperatingSchedule(open_time=480, close_time=1320, min_slot_duration=60)


def booking(start, end, court="c1"):
    return AssignedReservation(f"{court}-{start}", TimeSlot(start, end), FLEXIBLE, court)


class TestAnalyzeGaps:
    def test_full_day_gap_per_court_when_empty(self):
        gaps = analyze_gaps([], COURTS, SCHEDULE)
        assert len(gaps) == 2
        assert total_gap_minutes(gaps) == 1680
        assert all(not g.stranded for g in gaps)

    def test_marks_short_gaps_as_stranded(self):
        bookings = [booking(480, 540), booking(570, 1320)]
        gaps = gaps_for_court(analyze_gaps(bookings, COURTS, SCHEDULE), "c1")
        assert len(gaps) == 1
        assert gaps[0].slot == TimeSlot(540, 570)
        assert gaps[0].duration == 30
        assert gaps[0].stranded

    def test_gap_conservation(self):
        bookings = [booking(480, 600), booking(700, 820), booking(900, 960, court="c2")]
        gaps = analyze_gaps(bookings, COURTS, SCHEDULE)
        booked = sum(b.slot.duration for b in bookings)
        assert total_gap_minutes(gaps) + booked == 2 * 840


class TestFragmentationScore:
    def test_zero_when_perfectly_packed(self):
        bookings = [booking(480, 1320), booking(480, 1320, court="c2")]
        gaps = analyze_gaps(bookings, COURTS, SCHEDULE)
        assert fragmentation_score(gaps, COURTS, SCHEDULE) == 0

    def test_empty_day_blend(self):
        gaps = analyze_gaps([], COURTS, SCHEDULE)
        # 0.4 * 1.0 gap ratio + 0.4 * 0 stranded + 0.2 * (2 / 20) segments
        assert abs(fragmentation_score(gaps, COURTS, SCHEDULE) - 0.42) < 1e-9

    def test_stranded_gaps_raise_score(self):
        clean = [booking(480, 540), booking(540, 1320)]
        stranded = [booking(480, 540), booking(570, 1320)]
        clean_score = fragmentation_score(analyze_gaps(clean, COURTS, SCHEDULE), COURTS, SCHEDULE)
        stranded_score = fragmentation_score(analyze_gaps(stranded, COURTS, SCHEDULE), COURTS, SCHEDULE)
        assert stranded_score > clean_score

    def test_bounded(self):
        bookings = [booking(s, s + 30) for s in range(480, 1320, 60)]
        score = fragmentation_score(analyze_gaps(bookings, COURTS, SCHEDULE), COURTS, SCHEDULE)
        assert 0 <= score <= 1

    def test_no_courts(self):
        assert fragmentation_score([], [], SCHEDULE) == 0


class TestLargestUsableGap:
    def test_none_when_all_stranded(self):
        bookings = [booking(480, 540), booking(570, 1320), booking(480, 1290, court="c2")]
        assert largest_usable_gap(analyze_gaps(bookings, COURTS, SCHEDULE)) is None

    def test_finds_largest(self):
        bookings = [booking(480, 600), booking(480, 1000, court="c2")]
        gap = largest_usable_gap(analyze_gaps(bookings, COURTS, SCHEDULE))
        assert gap.court_id == "c1"
        assert gap.duration == 720


class TestBuildResult:
    def test_result_metrics(self):
        config = AssignerConfig(COURTS, SCHEDULE)
        result = build_result([booking(480, 540)], [], config)
        assert result.total_gap_minutes == 1620
        assert result.booked_minutes == 60
        assert result.fragmentation_score > 0

    def test_gap_breakdown_averages(self):
        config = AssignerConfig(COURTS, SCHEDULE)
        r1 = build_result([booking(480, 540), booking(570, 1320)], [], config)
        r2 = build_result([], [], config)
        breakdown = gap_breakdown([r1, r2])
        assert breakdown.booked_minutes == (810 + 0) / 2
        assert breakdown.stranded_gap_minutes == 15
        assert breakdown.stranded_count == 0.5
        assert breakdown.usable_gap_minutes == (840 + 1680) / 2


if __name__ == "__main__":
    import pytest
    pytest.main([__file__, "-v"])
