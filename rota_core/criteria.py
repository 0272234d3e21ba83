"""Optional ranking criteria layered on top of the fairness ranking.

A criterion can add a weighted bonus to a (group, shift) pairing, veto the
pairing outright, and report issues on the finished rota. None is active
unless a profile asks for it.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .model import RotaState, Shift, VolunteerGroup
from .validation import ValidationIssue


class Criterion:
    name = "criterion"

    def __init__(self, weight: float = 1.0):
        self.weight = float(weight)

    def score(self, state: RotaState, group: VolunteerGroup, shift: Shift) -> float:
        """Preference for this pairing in [-1, 1]; multiplied by ``weight``."""
        return 0.0

    def is_valid(self, state: RotaState, group: VolunteerGroup, shift: Shift) -> bool:
        return True

    def validate(self, state: RotaState) -> list[ValidationIssue]:
        return []

    def weighted_score(self, state: RotaState, group: VolunteerGroup, shift: Shift) -> float:
        return self.score(state, group, shift) * self.weight

    def __repr__(self) -> str:
        return f"{type(self).__name__}(weight={self.weight})"


class MaleBalanceCriterion(Criterion):
    """Prefer placing male volunteers on shifts that have none yet."""

    name = "male_balance"

    def score(self, state: RotaState, group: VolunteerGroup, shift: Shift) -> float:
        if group.male_count == 0:
            return 0.0
        # Each male already on the shift halves the remaining need.
        need = 1.0 - 0.5 * shift.male_count
        return max(need, 0.1)

    def validate(self, state: RotaState) -> list[ValidationIssue]:
        issues = []
        for shift in state.shifts:
            if shift.allocated_groups and shift.male_count == 0:
                issues.append(
                    ValidationIssue(
                        shift_index=shift.index,
                        shift_date=shift.date.isoformat(),
                        criterion=self.name,
                        severity="warning",
                        description="Shift has no male volunteer",
                    )
                )
        return issues


def _worked_last_historical_shift(state: RotaState, group_key: str) -> bool:
    if not state.historical_shifts:
        return False
    return state.historical_shifts[-1].has_group(group_key)


class NoDoubleShiftsCriterion(Criterion):
    """Never put a group on two consecutive shifts, including across rotations."""

    name = "no_double_shifts"

    def is_valid(self, state: RotaState, group: VolunteerGroup, shift: Shift) -> bool:
        i = shift.index
        if i == 0 and _worked_last_historical_shift(state, group.group_key):
            return False
        return not (group.is_allocated(i - 1) or group.is_allocated(i + 1))

    def validate(self, state: RotaState) -> list[ValidationIssue]:
        issues = []
        for i, shift in enumerate(state.shifts):
            current = set(shift.group_keys)
            if i > 0:
                for key in sorted(current & set(state.shifts[i - 1].group_keys)):
                    issues.append(
                        ValidationIssue(
                            shift_index=shift.index,
                            shift_date=shift.date.isoformat(),
                            criterion=self.name,
                            severity="error",
                            description=f"Group '{key}' is allocated to adjacent shifts {i - 1} and {i}",
                        )
                    )
            elif state.historical_shifts:
                for key in sorted(current & set(state.historical_shifts[-1].group_keys)):
                    issues.append(
                        ValidationIssue(
                            shift_index=shift.index,
                            shift_date=shift.date.isoformat(),
                            criterion=self.name,
                            severity="error",
                            description=f"Group '{key}' worked the last historical shift and the first shift",
                        )
                    )
        return issues


class CurrentRotaUrgencyCriterion(Criterion):
    """Promote groups whose share of this rotation needs most of what they have left.

    Urgency is allocations still needed this rotation over remaining
    availability, floored at 1.0, and scored as ``1 - 1/urgency``.
    """

    name = "current_rota_urgency"

    def score(self, state: RotaState, group: VolunteerGroup, shift: Shift) -> float:
        remaining_availability = len(group.available_shift_indices) - group.allocation_count
        if remaining_availability <= 0:
            return 0.0
        needed = int(state.total_current_shifts * state.target_frequency) - group.allocation_count
        urgency = max(needed / remaining_availability, 1.0)
        return 1.0 - 1.0 / urgency


class PromoteGroupsCriterion(Criterion):
    """Place multi-member groups before individuals while shifts still have room."""

    name = "promote_groups"

    def score(self, state: RotaState, group: VolunteerGroup, shift: Shift) -> float:
        return 1.0 if group.size > 1 else 0.0


def _last_historical_index(state: RotaState, group_key: str) -> int | None:
    for i in range(len(state.historical_shifts) - 1, -1, -1):
        if state.historical_shifts[i].has_group(group_key):
            return i
    return None


class ShiftSpreadCriterion(Criterion):
    """Prefer shifts far from the group's other allocations, history included.

    Historical shift ``i`` sits at position ``i`` and current shift ``j`` at
    ``len(historical) + j``. The score is the nearest such distance over the
    largest distance possible in this rotation.
    """

    name = "shift_spread"

    def score(self, state: RotaState, group: VolunteerGroup, shift: Shift) -> float:
        n = state.total_current_shifts
        if n <= 1:
            return 0.5
        offset = state.total_historical_shifts
        position = offset + shift.index
        taken = [offset + i for i in group.allocated_shift_indices]
        last = _last_historical_index(state, group.group_key)
        if last is not None:
            taken.append(last)
        if not taken:
            return 1.0
        span = offset + n - 1 - (last if last is not None else offset)
        return min(abs(position - p) for p in taken) / span


CRITERIA: dict[str, type[Criterion]] = {
    MaleBalanceCriterion.name: MaleBalanceCriterion,
    NoDoubleShiftsCriterion.name: NoDoubleShiftsCriterion,
    CurrentRotaUrgencyCriterion.name: CurrentRotaUrgencyCriterion,
    PromoteGroupsCriterion.name: PromoteGroupsCriterion,
    ShiftSpreadCriterion.name: ShiftSpreadCriterion,
}


def build_criteria(config: Mapping[str, Any] | None) -> list[Criterion]:
    """Instantiate criteria from a profile mapping like ``{"male_balance": {"weight": 0.5}}``."""
    criteria: list[Criterion] = []
    for name, options in (config or {}).items():
        cls = CRITERIA.get(name)
        if cls is None:
            raise ValueError(f"Unknown criterion: {name!r}. Choose from {sorted(CRITERIA)}")
        options = options or {}
        if options.get("enabled", True) is False:
            continue
        criteria.append(cls(weight=float(options.get("weight", 1.0))))
    return criteria
