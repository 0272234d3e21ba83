"""Priority-ordered greedy allocation of volunteer groups to shifts.

Shifts are filled in date order. For each shift the best-ranked team-lead
group is placed first (if the shift has no team lead yet), then groups are
packed in rank order until the shift is full or nothing else fits. Ranking
is recomputed for every pick because each allocation changes the picked
group's fairness standing.

Ranking, best first:
  1. highest desired remaining allocations (fairness)
  2. highest weighted bonus from optional criteria
  3. lowest historical + current allocation count
  4. group size according to the tie-break policy
  5. group key

The result is heuristic: shifts may finish under-filled, which is reported
in the outcome rather than raised.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from .availability import ResolutionReport, resolve_with_report
from .criteria import Criterion
from .errors import RotaGenerationError
from .fairness import validate_target_frequency
from .model import RotaState, Shift, Volunteer, VolunteerAvailability, VolunteerGroup
from .shifts import ShiftOverride, build_shifts
from .validation import ValidationIssue, has_errors, validate_rota_state

logger = logging.getLogger(__name__)


class TieBreak(str, Enum):
    LARGEST_FIRST = "largest_first"
    SMALLEST_FIRST = "smallest_first"
    KEY_ONLY = "key_only"

    @classmethod
    def parse(cls, value: "TieBreak | str | None") -> "TieBreak":
        if value is None or value == "":
            return cls.LARGEST_FIRST
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown tie_break: {value!r}. Choose from {[t.value for t in cls]}") from None


def _size_preference(group: VolunteerGroup, tie_break: TieBreak) -> int:
    if tie_break is TieBreak.LARGEST_FIRST:
        return -group.size
    if tie_break is TieBreak.SMALLEST_FIRST:
        return group.size
    return 0


def rank_key(
    state: RotaState,
    group: VolunteerGroup,
    shift: Shift,
    criteria: Sequence[Criterion] = (),
    tie_break: TieBreak = TieBreak.LARGEST_FIRST,
) -> tuple:
    bonus = sum(c.weighted_score(state, group, shift) for c in criteria)
    return (
        -state.desired_remaining(group),
        -bonus,
        group.total_allocation_count,
        _size_preference(group, tie_break),
        group.group_key,
    )


def eligible_groups(
    state: RotaState,
    shift: Shift,
    criteria: Sequence[Criterion] = (),
    *,
    team_leads_only: bool = False,
) -> list[VolunteerGroup]:
    """Groups that may legally join ``shift`` right now."""
    out = []
    for group in state.groups:
        if team_leads_only and not group.has_team_lead:
            continue
        if group.remaining_capacity(state.max_allocation_frequency) <= 0:
            continue
        if not group.is_available(shift.index) or group.is_allocated(shift.index):
            continue
        if shift.has_group(group.group_key):
            continue
        if group.has_team_lead and shift.team_lead is not None:
            continue
        if not shift.can_fit(group.size):
            continue
        if not all(c.is_valid(state, group, shift) for c in criteria):
            continue
        out.append(group)
    return out


def rank_groups(
    state: RotaState,
    shift: Shift,
    candidates: Iterable[VolunteerGroup],
    criteria: Sequence[Criterion] = (),
    tie_break: TieBreak = TieBreak.LARGEST_FIRST,
) -> list[VolunteerGroup]:
    return sorted(candidates, key=lambda g: rank_key(state, g, shift, criteria, tie_break))


def _assign(state: RotaState, group: VolunteerGroup, shift: Shift, *, reason: str) -> None:
    state.allocate(group, shift)
    logger.debug(
        "Shift %d (%s): %s group %s (size %d, desired %d) -> %d/%d",
        shift.index,
        shift.date,
        reason,
        group.group_key,
        group.size,
        state.desired_remaining(group),
        shift.current_size,
        shift.size,
    )


def _fill_shift(
    state: RotaState,
    shift: Shift,
    criteria: Sequence[Criterion],
    tie_break: TieBreak,
) -> None:
    if shift.team_lead is None and not shift.is_full:
        leads = rank_groups(
            state, shift, eligible_groups(state, shift, criteria, team_leads_only=True), criteria, tie_break
        )
        if leads:
            _assign(state, leads[0], shift, reason="team lead")

    while not shift.is_full:
        ranked = rank_groups(state, shift, eligible_groups(state, shift, criteria), criteria, tie_break)
        if not ranked:
            break
        _assign(state, ranked[0], shift, reason="member")


def allocate(
    state: RotaState,
    *,
    criteria: Sequence[Criterion] = (),
    tie_break: TieBreak | str = TieBreak.LARGEST_FIRST,
) -> RotaState:
    """Fill ``state.shifts`` in place and return the same state."""
    tie_break = TieBreak.parse(tie_break)
    for shift in sorted(state.shifts, key=lambda s: s.index):
        if shift.is_full:
            continue
        _fill_shift(state, shift, criteria, tie_break)

    underfilled = state.underfilled_shifts()
    for shift in underfilled:
        logger.warning("Shift %d (%s) underfilled: %d/%d", shift.index, shift.date, shift.current_size, shift.size)
    logger.info(
        "Allocation finished: %d/%d shifts full, %d group allocations",
        len(state.shifts) - len(underfilled),
        len(state.shifts),
        sum(len(s.allocated_groups) for s in state.shifts),
    )
    return state


@dataclass
class RotaRequest:
    volunteers: list[Volunteer]
    availability: list[VolunteerAvailability]
    shift_dates: list[date]
    default_shift_size: int
    target_frequency: float
    max_allocation_frequency: int
    historical_shifts: list[Shift] = field(default_factory=list)
    overrides: list[ShiftOverride] = field(default_factory=list)
    criteria: list[Criterion] = field(default_factory=list)
    tie_break: TieBreak = TieBreak.LARGEST_FIRST


@dataclass
class AllocationOutcome:
    state: RotaState
    success: bool
    underfilled_shifts: list[Shift]
    underutilized_groups: list[VolunteerGroup]
    validation_issues: list[ValidationIssue]
    resolution: ResolutionReport


def _check_request(request: RotaRequest) -> None:
    if not request.shift_dates:
        raise RotaGenerationError("no shift dates provided")
    if not request.volunteers:
        raise RotaGenerationError("no volunteers provided")
    if request.default_shift_size < 0:
        raise RotaGenerationError(f"default shift size must be non-negative, got {request.default_shift_size}")
    if request.max_allocation_frequency < 0:
        raise RotaGenerationError(
            f"max allocation frequency must be non-negative, got {request.max_allocation_frequency}"
        )
    try:
        validate_target_frequency(request.target_frequency)
    except ValueError as exc:
        raise RotaGenerationError(str(exc)) from exc


def _underutilized(state: RotaState) -> list[VolunteerGroup]:
    cap = state.max_allocation_frequency
    return [
        g
        for g in state.groups
        if 0 < g.allocation_count < len(g.available_shift_indices) and g.allocation_count < cap
    ]


def generate_rota(request: RotaRequest) -> AllocationOutcome:
    """Resolve groups, build shifts, allocate and validate one rotation."""
    _check_request(request)

    groups, report = resolve_with_report(
        request.volunteers,
        request.availability,
        len(request.shift_dates),
        request.historical_shifts,
    )
    shifts = build_shifts(request.shift_dates, request.default_shift_size, request.overrides)
    state = RotaState(
        shifts=shifts,
        groups=groups,
        historical_shifts=list(request.historical_shifts),
        max_allocation_frequency=request.max_allocation_frequency,
        target_frequency=request.target_frequency,
    )

    allocate(state, criteria=request.criteria, tie_break=request.tie_break)

    issues = validate_rota_state(state, request.criteria)
    underfilled = state.underfilled_shifts()
    return AllocationOutcome(
        state=state,
        success=not underfilled and not has_errors(issues),
        underfilled_shifts=underfilled,
        underutilized_groups=_underutilized(state),
        validation_issues=issues,
        resolution=report,
    )
