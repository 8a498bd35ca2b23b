"""Tests for the naive baseline assigner."""

import sys
import os
import random
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from models.court import Court
from models.reservation import Reservation, PINNED, FLEXIBLE
from models.schedule import AssignerConfig, OperatingSchedule
from models.time_slot import TimeSlot
from engine.naive_assigner import naive_assign_courts
from engine.simulation import generate_reservations


def make_config(num_courts=3, allow_splitting=False):
    return AssignerConfig(
        courts=[Court(id=f"c{i}", name=f"Court {i}") for i in range(1, num_courts + 1)],
        schedule=OperatingSchedule(480, 1320, 60),
        allow_splitting=allow_splitting,
    )


def flex(rid, start, end):
    return Reservation(id=rid, slot=TimeSlot(start, end), mode=FLEXIBLE)


def pinned(rid, start, end, court):
    return Reservation(id=rid, slot=TimeSlot(start, end), mode=PINNED, pinned_court_id=court)


class TestNaiveAssign:
    def test_pinned_stay_on_their_court(self):
        config = make_config()
        reservations = [pinned("p1", 480, 600, "c2"), pinned("p2", 600, 720, "c3")]
        result = naive_assign_courts(reservations, config, random.Random(1))
        homes = {a.id: a.court_id for a in result.assignments}
        assert homes == {"p1": "c2", "p2": "c3"}

    def test_pinned_conflict_unassigned(self):
        config = make_config()
        reservations = [pinned("p1", 480, 600, "c1"), pinned("p2", 540, 660, "c1")]
        result = naive_assign_courts(reservations, config, random.Random(1))
        assert [r.id for r in result.unassigned] == ["p2"]

    def test_flexible_fill_every_court(self):
        config = make_config()
        reservations = [flex(f"f{i}", 600, 720) for i in range(3)]
        result = naive_assign_courts(reservations, config, random.Random(9))
        assert result.unassigned == []
        assert sorted(a.court_id for a in result.assignments) == ["c1", "c2", "c3"]

    def test_excess_unassigned(self):
        config = make_config(num_courts=2)
        reservations = [flex(f"f{i}", 600, 720) for i in range(3)]
        result = naive_assign_courts(reservations, config, random.Random(9))
        assert [r.id for r in result.unassigned] == ["f2"]

    def test_never_splits(self):
        config = make_config(num_courts=2, allow_splitting=True)
        reservations = [
            pinned("p1", 690, 780, "c1"),
            pinned("p2", 600, 690, "c2"),
            flex("f", 600, 780),
        ]
        result = naive_assign_courts(reservations, config, random.Random(2))
        assert result.split_count == 0
        assert [r.id for r in result.unassigned] == ["f"]

    def test_same_seed_same_result(self):
        config = make_config(num_courts=4)
        reservations = generate_reservations(
            25, 0.4, config.courts, config.schedule, 30, (25, 25, 25, 25), random.Random(17),
        )
        first = naive_assign_courts(reservations, config, random.Random(100))
        second = naive_assign_courts(reservations, config, random.Random(100))
        assert first.assignments == second.assignments

    def test_no_double_booking(self):
        config = make_config(num_courts=3)
        reservations = generate_reservations(
            30, 0.5, config.courts, config.schedule, 30, (25, 25, 25, 25), random.Random(23),
        )
        result = naive_assign_courts(reservations, config, random.Random(4))
        for court in config.courts:
            bookings = result.assignments_for_court(court.id)
            for a, b in zip(bookings, bookings[1:]):
                assert a.slot.end <= b.slot.start
        assert result.booked_minutes + result.total_gap_minutes == config.total_capacity_minutes

    def test_empty_input(self):
        config = make_config()
        result = naive_assign_courts([], config, random.Random(0))
        assert result.assignments == []
        assert result.total_gap_minutes == 2520


if __name__ == "__main__":
    import pytest
    pytest.main([__file__, "-v"])
