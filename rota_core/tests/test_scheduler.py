"""Tests for the greedy scheduler and the generate_rota entry point."""

from __future__ import annotations

import random
from datetime import date, timedelta

import pytest

from rota_core.criteria import (
    CurrentRotaUrgencyCriterion,
    MaleBalanceCriterion,
    NoDoubleShiftsCriterion,
    PromoteGroupsCriterion,
    ShiftSpreadCriterion,
)
from rota_core.errors import RotaGenerationError
from rota_core.model import (
    Gender,
    Role,
    RotaState,
    Shift,
    Volunteer,
    VolunteerAvailability,
    VolunteerGroup,
)
from rota_core.scheduler import (
    RotaRequest,
    TieBreak,
    allocate,
    eligible_groups,
    generate_rota,
    rank_groups,
)
from rota_core.shifts import ShiftOverride
from rota_core.validation import has_errors

START = date(2026, 1, 5)


def _dates(n):
    return [START + timedelta(days=7 * i) for i in range(n)]


def _shifts(*sizes):
    return [Shift(d, i, size) for i, (d, size) in enumerate(zip(_dates(len(sizes)), sizes))]


def _group(key, size=1, *, lead=False, male=False, available=None, history=0, n_shifts=4):
    members = tuple(
        Volunteer(
            f"{key}-{i}",
            role=Role.TEAM_LEAD if lead and i == 0 else Role.VOLUNTEER,
            gender=Gender.MALE if male else Gender.FEMALE,
            group_key=key,
        )
        for i in range(size)
    )
    avail = frozenset(range(n_shifts)) if available is None else frozenset(available)
    return VolunteerGroup(key, members, avail, historical_allocation_count=history)


def _request(volunteers, n_shifts, size, **kwargs):
    availability = [VolunteerAvailability(v.volunteer_id, True) for v in volunteers]
    options = dict(target_frequency=0.5, max_allocation_frequency=1)
    options.update(kwargs)
    return RotaRequest(
        volunteers=volunteers,
        availability=availability,
        shift_dates=_dates(n_shifts),
        default_shift_size=size,
        **options,
    )


def _members(key, size, **fields):
    return [Volunteer(f"{key}{i}", group_key=key, **fields) for i in range(size)]


class TestEndToEnd:
    def test_packs_three_then_two_plus_one(self):
        vols = _members("pair", 2) + _members("solo", 1) + _members("trio", 3)
        outcome = generate_rota(_request(vols, 2, 3))
        first, second = outcome.state.shifts
        assert first.group_keys == ["trio"]
        assert second.group_keys == ["pair", "solo"]
        assert first.is_full and second.is_full
        assert outcome.success
        assert outcome.underfilled_shifts == []

    def test_oversized_group_leaves_shift_empty(self):
        vols = _members("big", 5)
        outcome = generate_rota(_request(vols, 1, 4))
        shift = outcome.state.shifts[0]
        assert shift.current_size == 0
        assert not shift.is_full
        assert not outcome.success
        assert outcome.underfilled_shifts == [shift]


class TestRanking:
    def test_most_owed_group_goes_first(self):
        owed = _group("y", history=0)
        served = _group("x", history=1)
        state = RotaState(shifts=_shifts(1, 1), groups=[served, owed])
        allocate(state)
        assert state.shifts[0].group_keys == ["y"]
        assert state.shifts[1].group_keys == ["x"]

    def test_ranking_recomputed_after_each_pick(self):
        a = _group("a")
        b = _group("b")
        state = RotaState(shifts=_shifts(1, 1), groups=[a, b], max_allocation_frequency=2)
        allocate(state)
        assert state.shifts[0].group_keys == ["a"]
        assert state.shifts[1].group_keys == ["b"]

    def test_tie_break_smallest_first(self):
        state = RotaState(shifts=_shifts(3), groups=[_group("big", 3), _group("one", 1), _group("two", 2)])
        allocate(state, tie_break=TieBreak.SMALLEST_FIRST)
        assert state.shifts[0].group_keys == ["one", "two"]

    def test_tie_break_key_only(self):
        state = RotaState(shifts=_shifts(3), groups=[_group("c", 3), _group("a", 1), _group("b", 2)])
        allocate(state, tie_break="key_only")
        assert state.shifts[0].group_keys == ["a", "b"]

    def test_unknown_tie_break(self):
        with pytest.raises(ValueError, match="tie_break"):
            TieBreak.parse("random")

    def test_rank_groups_orders_candidates(self):
        groups = [_group("b"), _group("a", history=2), _group("c")]
        state = RotaState(shifts=_shifts(1, 1), groups=groups)
        ranked = rank_groups(state, state.shifts[0], groups)
        assert [g.group_key for g in ranked] == ["b", "c", "a"]


class TestTeamLeads:
    def test_team_lead_placed_first(self):
        lead = _group("lead", lead=True, history=5)
        state = RotaState(shifts=_shifts(2), groups=[_group("a"), _group("b"), lead])
        allocate(state)
        shift = state.shifts[0]
        assert shift.group_keys == ["lead", "a"]
        assert shift.team_lead.volunteer_id == "lead-0"

    def test_one_team_lead_per_shift(self):
        groups = [_group("l1", lead=True), _group("l2", lead=True), _group("m")]
        state = RotaState(shifts=_shifts(3), groups=groups)
        allocate(state)
        shift = state.shifts[0]
        assert shift.group_keys == ["l1", "m"]
        assert not shift.is_full

    def test_no_team_lead_available(self):
        state = RotaState(shifts=_shifts(1), groups=[_group("a")])
        allocate(state)
        assert state.shifts[0].team_lead is None
        assert state.shifts[0].is_full


class TestEligibility:
    def test_zero_capacity_never_assigned(self):
        state = RotaState(shifts=_shifts(2, 2), groups=[_group("a"), _group("b")], max_allocation_frequency=0)
        allocate(state)
        assert all(s.current_size == 0 for s in state.shifts)
        assert eligible_groups(state, state.shifts[0]) == []

    def test_unavailable_group_skipped(self):
        state = RotaState(shifts=_shifts(1, 1), groups=[_group("a", available={1})])
        allocate(state)
        assert state.shifts[0].group_keys == []
        assert state.shifts[1].group_keys == ["a"]

    def test_preallocated_counts_toward_size(self):
        shift = Shift(START, 0, 2, pre_allocated_volunteers=["p1"])
        state = RotaState(shifts=[shift], groups=[_group("pair", 2), _group("solo")])
        allocate(state)
        assert shift.group_keys == ["solo"]
        assert shift.is_full

    def test_full_shift_untouched(self):
        shift = Shift(START, 0, 1, pre_allocated_volunteers=["p1"])
        state = RotaState(shifts=[shift], groups=[_group("a")])
        allocate(state)
        assert shift.group_keys == []

    def test_criteria_veto(self):
        state = RotaState(shifts=_shifts(1, 1), groups=[_group("g")], max_allocation_frequency=2)
        allocate(state, criteria=[NoDoubleShiftsCriterion()])
        assert state.shifts[0].group_keys == ["g"]
        assert state.shifts[1].group_keys == []

    def test_criteria_bonus(self):
        groups = [_group("f"), _group("m", male=True)]
        state = RotaState(shifts=_shifts(1), groups=groups)
        allocate(state, criteria=[MaleBalanceCriterion()])
        assert state.shifts[0].group_keys == ["m"]


def _random_request(seed):
    rng = random.Random(seed)
    n_shifts = 6
    volunteers = [Volunteer("anchor")]
    availability = [VolunteerAvailability("anchor", True)]
    for g in range(8):
        key = "" if rng.random() < 0.4 else f"g{g}"
        for m in range(1 if not key else rng.randint(1, 3)):
            vid = f"v{g}-{m}"
            volunteers.append(
                Volunteer(
                    vid,
                    role=Role.TEAM_LEAD if rng.random() < 0.3 else Role.VOLUNTEER,
                    gender=Gender.MALE if rng.random() < 0.5 else Gender.FEMALE,
                    group_key=key,
                )
            )
            unavailable = frozenset(i for i in range(n_shifts) if rng.random() < 0.3)
            availability.append(VolunteerAvailability(vid, rng.random() < 0.85, unavailable))
    return RotaRequest(
        volunteers=volunteers,
        availability=availability,
        shift_dates=_dates(n_shifts),
        default_shift_size=4,
        target_frequency=0.5,
        max_allocation_frequency=2,
        overrides=[ShiftOverride("FREQ=WEEKLY;INTERVAL=3", preallocations=("pinned",))],
        criteria=[
            MaleBalanceCriterion(),
            NoDoubleShiftsCriterion(),
            CurrentRotaUrgencyCriterion(),
            PromoteGroupsCriterion(),
            ShiftSpreadCriterion(),
        ],
    )


class TestInvariants:
    @pytest.mark.parametrize("seed", range(5))
    def test_invariants_hold(self, seed):
        outcome = generate_rota(_random_request(seed))
        state = outcome.state
        for group in state.groups:
            assert set(group.allocated_shift_indices) <= group.available_shift_indices
            assert group.allocation_count <= state.max_allocation_frequency
        for shift in state.shifts:
            assert shift.current_size <= shift.size
            assert shift.is_full == (shift.current_size >= shift.size)
            assert len(shift.group_keys) == len(set(shift.group_keys))
            leads = [a for a in shift.allocated_groups if a.team_lead_id]
            assert len(leads) <= 1
            for key in shift.group_keys:
                assert shift.index in state.group(key).allocated_shift_indices
        assert not has_errors(outcome.validation_issues)

    def test_deterministic(self):
        a = generate_rota(_random_request(3))
        b = generate_rota(_random_request(3))
        assert [s.group_keys for s in a.state.shifts] == [s.group_keys for s in b.state.shifts]


class TestRequestChecks:
    def test_no_dates(self):
        with pytest.raises(RotaGenerationError, match="shift dates"):
            generate_rota(_request([Volunteer("v1")], 0, 1))

    def test_no_volunteers(self):
        with pytest.raises(RotaGenerationError, match="volunteers"):
            generate_rota(_request([], 1, 1))

    def test_negative_size(self):
        with pytest.raises(RotaGenerationError, match="shift size"):
            generate_rota(_request([Volunteer("v1")], 1, -1))

    @pytest.mark.parametrize("frequency", [0, 1.2])
    def test_frequency_out_of_range(self, frequency):
        with pytest.raises(RotaGenerationError, match="target frequency"):
            generate_rota(_request([Volunteer("v1")], 1, 1, target_frequency=frequency))

    def test_underutilized_groups_reported(self):
        vols = [Volunteer("v1"), Volunteer("v2")]
        outcome = generate_rota(_request(vols, 3, 1, max_allocation_frequency=3, target_frequency=0.34))
        assert outcome.state.all_shifts_full()
        assert [s.group_keys for s in outcome.state.shifts] == [["individual_v1"], ["individual_v2"], ["individual_v1"]]
        assert {g.group_key for g in outcome.underutilized_groups} == {"individual_v1", "individual_v2"}
