"""Tests for the smart court assigner."""

import sys
import os
import random
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from models.court import Court
from models.reservation import Reservation, AssignedReservation, PINNED, FLEXIBLE
from models.result import PlacementScore
from models.schedule import AssignerConfig, OperatingSchedule
from models.time_slot import TimeSlot
from engine.court_assigner import (
    assign_courts,
    place_pinned,
    sort_flexible,
    score_placement,
    pick_best_score,
    try_split_reservation,
    reduce_splits,
    compact_assignments,
)
from engine.naive_assigner import naive_assign_courts
from engine.simulation import generate_reservations


# --- Helpers ---

def make_courts(count):
    return [Court(id=f"c{i}", name=f"Court {i}") for i in range(1, count + 1)]


def make_config(num_courts=3, allow_splitting=False, open_time=480, close_time=1320, min_slot=60):
    return AssignerConfig(
        courts=make_courts(num_courts),
        schedule=OperatingSchedule(open_time, close_time, min_slot),
        allow_splitting=allow_splitting,
    )


def flex(rid, start, end):
    return Reservation(id=rid, slot=TimeSlot(start, end), mode=FLEXIBLE)


def pinned(rid, start, end, court):
    return Reservation(id=rid, slot=TimeSlot(start, end), mode=PINNED, pinned_court_id=court)


def placed(rid, start, end, court, mode=PINNED):
    pinned_court = court if mode == PINNED else None
    return AssignedReservation(rid, TimeSlot(start, end), mode, court, pinned_court_id=pinned_court)


def court_of(result, rid):
    courts = {a.court_id for a in result.assignments if a.id == rid}
    assert len(courts) == 1
    return courts.pop()


def assert_schedule_invariants(reservations, result, config):
    """Checks that hold for every assignment result."""
    schedule = config.schedule
    by_id = {r.id: r for r in reservations}

    for court in config.courts:
        bookings = result.assignments_for_court(court.id)
        for a, b in zip(bookings, bookings[1:]):
            assert a.slot.end <= b.slot.start, f"double booking on {court.id}: {a} / {b}"

    for a in result.assignments:
        assert schedule.open_time <= a.slot.start < a.slot.end <= schedule.close_time
        if a.is_pinned:
            assert a.court_id == by_id[a.id].pinned_court_id

    placed_ids = {a.id for a in result.assignments}
    unassigned_ids = {r.id for r in result.unassigned}
    assert not placed_ids & unassigned_ids
    assert placed_ids | unassigned_ids == set(by_id)

    for rid, parts in result.split_groups().items():
        original = by_id[rid].slot
        assert parts[0].slot.start == original.start
        assert parts[-1].slot.end == original.end
        for a, b in zip(parts, parts[1:]):
            assert a.slot.end == b.slot.start
    for a in result.assignments:
        if not a.is_split:
            assert a.slot == by_id[a.id].slot

    assert result.booked_minutes + result.total_gap_minutes == config.total_capacity_minutes


# --- Pinned placement ---

class TestPlacePinned:
    def test_first_seen_wins_conflict(self):
        config = make_config()
        assignments, unassigned = place_pinned(
            [pinned("p1", 480, 600, "c1"), pinned("p2", 540, 660, "c1")], config,
        )
        assert [a.id for a in assignments] == ["p1"]
        assert [r.id for r in unassigned] == ["p2"]

    def test_unknown_court_is_unassigned(self):
        config = make_config()
        assignments, unassigned = place_pinned([pinned("p1", 480, 600, "c9")], config)
        assert assignments == []
        assert [r.id for r in unassigned] == ["p1"]

    def test_touching_pinned_both_placed(self):
        config = make_config()
        assignments, unassigned = place_pinned(
            [pinned("p1", 480, 600, "c1"), pinned("p2", 600, 660, "c1")], config,
        )
        assert len(assignments) == 2
        assert unassigned == []

    def test_outside_hours_is_unassigned(self):
        config = make_config(num_courts=1)
        assignments, unassigned = place_pinned(
            [pinned("late", 1260, 1380, "c1"), pinned("early", 420, 540, "c1")], config,
        )
        assert assignments == []
        assert [r.id for r in unassigned] == ["late", "early"]


class TestSortFlexible:
    def test_start_then_longest_first(self):
        ordered = sort_flexible([flex("a", 600, 660), flex("b", 480, 540), flex("c", 480, 600)])
        assert [r.id for r in ordered] == ["c", "b", "a"]


# --- Scoring ---

class TestScorePlacement:
    def test_none_when_no_room(self):
        config = make_config(num_courts=1)
        assignments = [placed("p", 480, 1320, "c1")]
        assert score_placement(flex("f", 600, 660), config.courts[0], assignments, config) is None

    def test_exact_fill_scores_all_bonuses(self):
        config = make_config(num_courts=1)
        assignments = [placed("p1", 480, 540, "c1"), placed("p2", 600, 1320, "c1")]
        score = score_placement(flex("f", 540, 600), config.courts[0], assignments, config)
        assert score.adjacency_bonus == 1.0
        assert score.fill_bonus == 3.0
        # Longest run grows 720 -> 840, normalised by the 60 minute booking
        assert score.contiguity_bonus == pytest.approx(3.0)
        assert score.gap_penalty == 0
        assert score.total == pytest.approx(7.0)
        assert score.load_tiebreaker == 780

    def test_new_stranded_gap_is_penalised(self):
        config = make_config(num_courts=1)
        assignments = [placed("p1", 480, 540, "c1")]
        score = score_placement(flex("f", 570, 630), config.courts[0], assignments, config)
        assert score.gap_penalty == -2.0
        assert score.adjacency_bonus == 0

    def test_existing_stranded_gap_not_penalised_again(self):
        config = make_config(num_courts=1)
        assignments = [placed("p1", 480, 540, "c1"), placed("p2", 570, 630, "c1")]
        score = score_placement(flex("f", 630, 690), config.courts[0], assignments, config)
        assert score.gap_penalty == 0

    def test_large_slot_penalty_only_when_splitting(self):
        reservation = flex("f", 480, 780)
        plain = make_config(num_courts=1)
        splitting = make_config(num_courts=1, allow_splitting=True)
        assert score_placement(reservation, plain.courts[0], [], plain).large_slot_penalty == 0
        # Largest free slot shrinks 840 -> 540
        penalty = score_placement(reservation, splitting.courts[0], [], splitting).large_slot_penalty
        assert penalty == pytest.approx(-2.0 * 300 / 840)


class TestPickBestScore:
    def make_score(self, court_id, total, load):
        return PlacementScore(court_id=court_id, total=total, load_tiebreaker=load)

    def test_highest_total_wins(self):
        scores = [self.make_score("c1", 1.0, 0), self.make_score("c2", 2.0, 500)]
        assert pick_best_score(scores, allow_splitting=False).court_id == "c2"

    def test_tie_prefers_least_loaded(self):
        scores = [self.make_score("c1", 1.5, 300), self.make_score("c2", 1.5005, 60)]
        assert pick_best_score(scores, allow_splitting=False).court_id == "c2"

    def test_tie_prefers_most_loaded_when_splitting(self):
        scores = [self.make_score("c1", 1.5, 300), self.make_score("c2", 1.5005, 60)]
        assert pick_best_score(scores, allow_splitting=True).court_id == "c1"

    def test_full_tie_goes_to_court_order(self):
        scores = [self.make_score("c1", 1.5, 0), self.make_score("c2", 1.5, 0)]
        assert pick_best_score(scores, allow_splitting=False).court_id == "c1"


# --- End-to-end assignment ---

class TestAssignCourts:
    def test_empty_input(self):
        config = make_config()
        result = assign_courts([], config)
        assert result.assignments == []
        assert result.unassigned == []
        assert result.total_gap_minutes == 2520

    def test_adjacent_bookings_share_a_court(self):
        config = make_config()
        result = assign_courts([flex("a", 480, 540), flex("b", 540, 600)], config)
        assert court_of(result, "a") == court_of(result, "b")
        assert result.unassigned == []

    def test_pinned_conflict(self):
        config = make_config()
        reservations = [pinned("p1", 480, 600, "c1"), pinned("p2", 540, 660, "c1")]
        result = assign_courts(reservations, config)
        assert court_of(result, "p1") == "c1"
        assert [r.id for r in result.unassigned] == ["p2"]

    def test_flexible_avoids_pinned(self):
        config = make_config(num_courts=2)
        reservations = [pinned("p1", 480, 1320, "c1"), flex("f", 600, 720)]
        result = assign_courts(reservations, config)
        assert court_of(result, "f") == "c2"

    def test_overflow_is_unassigned_without_splitting(self):
        config = make_config(num_courts=1)
        reservations = [flex("a", 480, 600), flex("b", 540, 660)]
        result = assign_courts(reservations, config)
        assert [r.id for r in result.unassigned] == ["b"]

    def test_outside_hours_is_unassigned(self):
        config = make_config()
        result = assign_courts([flex("early", 420, 540)], config)
        assert [r.id for r in result.unassigned] == ["early"]

    def test_random_day_invariants(self):
        config = make_config(num_courts=3, allow_splitting=True)
        reservations = generate_reservations(
            25, 0.5, config.courts, config.schedule, 30, (25, 25, 25, 25), random.Random(11),
        )
        result = assign_courts(reservations, config)
        assert_schedule_invariants(reservations, result, config)

    def test_all_flexible_day_fully_placed(self):
        config = make_config(num_courts=3)
        reservations = generate_reservations(
            30, 0.0, config.courts, config.schedule, 30, (25, 25, 25, 25), random.Random(3),
        )
        result = assign_courts(reservations, config)
        assert result.unassigned == []
        assert_schedule_invariants(reservations, result, config)

    def test_deterministic(self):
        config = make_config(num_courts=4, allow_splitting=True)
        reservations = generate_reservations(
            20, 0.4, config.courts, config.schedule, 30, (25, 25, 25, 25), random.Random(5),
        )
        first = assign_courts(reservations, config)
        second = assign_courts(reservations, config)
        assert first.assignments == second.assignments
        assert first.total_gap_minutes == second.total_gap_minutes

    def test_pinned_outside_hours_left_unassigned(self):
        config = make_config(num_courts=1)
        reservations = [pinned("p", 1260, 1380, "c1"), flex("f", 600, 660)]

        smart = assign_courts(reservations, config)
        naive = naive_assign_courts(reservations, config, random.Random(1))

        for result in (smart, naive):
            assert [r.id for r in result.unassigned] == ["p"]
            assert [a.id for a in result.assignments] == ["f"]
            assert_schedule_invariants(reservations, result, config)


# --- Compaction ---

class TestCompaction:
    def test_relocation_never_commits_without_gap_drop(self):
        config = make_config(num_courts=3)
        assignments = [
            placed("p", 600, 700, "c1"),
            placed("a", 480, 600, "c1", mode=FLEXIBLE),
            placed("b", 540, 660, "c2", mode=FLEXIBLE),
            placed("c", 900, 960, "c3", mode=FLEXIBLE),
        ]
        before = list(assignments)
        # Moving a whole booking keeps booked minutes, so global gap minutes never drop
        assert compact_assignments(assignments, config) == 0
        assert assignments == before

    def test_no_flexible_bookings(self):
        config = make_config(num_courts=2)
        assignments = [placed("p1", 480, 600, "c1"), placed("p2", 480, 600, "c2")]
        before = list(assignments)
        assert compact_assignments(assignments, config) == 0
        assert assignments == before

    def test_empty(self):
        assignments = []
        assert compact_assignments(assignments, make_config()) == 0
        assert assignments == []


# --- Splitting ---

class TestSplitting:
    def blocked_day(self):
        return [
            pinned("p1", 690, 780, "c1"),
            pinned("p2", 600, 690, "c2"),
            flex("f", 600, 780),
        ]

    def test_split_covers_interval(self):
        config = make_config(num_courts=2, allow_splitting=True)
        reservations = self.blocked_day()
        result = assign_courts(reservations, config)

        parts = result.split_groups()["f"]
        assert [(p.court_id, p.slot) for p in parts] == [
            ("c1", TimeSlot(600, 690)),
            ("c2", TimeSlot(690, 780)),
        ]
        assert all(p.is_split for p in parts)
        assert result.split_count == 1
        assert_schedule_invariants(reservations, result, config)

    def test_no_split_when_disabled(self):
        config = make_config(num_courts=2)
        result = assign_courts(self.blocked_day(), config)
        assert [r.id for r in result.unassigned] == ["f"]
        assert result.split_count == 0

    def test_split_fails_when_interval_cannot_be_covered(self):
        config = make_config(num_courts=2, allow_splitting=True)
        assignments = [placed("p1", 660, 720, "c1"), placed("p2", 660, 720, "c2")]
        assert try_split_reservation(flex("f", 600, 780), assignments, config) == []

    def test_fragments_shorter_than_min_slot_are_not_used(self):
        config = make_config(num_courts=2, allow_splitting=True)
        # Only 30 free minutes overlap the request on either court
        assignments = [placed("p1", 630, 780, "c1"), placed("p2", 480, 600, "c2"), placed("p3", 630, 900, "c2")]
        assert try_split_reservation(flex("f", 600, 720), assignments, config) == []

    def test_split_is_reduced_when_conflict_can_move(self):
        config = make_config(num_courts=2, allow_splitting=True)
        reservations = [
            pinned("p", 660, 720, "c2"),
            flex("a", 540, 600),
            flex("b", 570, 690),
        ]
        result = assign_courts(reservations, config)

        assert result.split_count == 0
        b = [x for x in result.assignments if x.id == "b"]
        assert len(b) == 1
        assert b[0].slot == TimeSlot(570, 690)
        assert not b[0].is_split
        assert court_of(result, "b") == "c1"
        assert court_of(result, "a") == "c2"
        assert_schedule_invariants(reservations, result, config)

    def test_reduce_splits_keeps_split_when_blocked_by_pinned(self):
        config = make_config(num_courts=2, allow_splitting=True)
        f = flex("f", 600, 780)
        assignments = [
            placed("p1", 690, 780, "c1"),
            placed("p2", 600, 690, "c2"),
            AssignedReservation.from_reservation(f, "c1", slot=TimeSlot(600, 690), is_split=True),
            AssignedReservation.from_reservation(f, "c2", slot=TimeSlot(690, 780), is_split=True),
        ]
        before = list(assignments)
        assert reduce_splits(assignments, config) == 0
        assert assignments == before


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
