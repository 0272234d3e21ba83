"""Rota generation engine: volunteer groups -> dated shifts."""

from .availability import DiscardReason, ResolutionReport, resolve_volunteer_groups, resolve_with_report
from .criteria import MaleBalanceCriterion, NoDoubleShiftsCriterion, build_criteria
from .errors import AllocationError, NoEligibleGroupsError, RotaGenerationError
from .fairness import desired_remaining_allocations, fairness_overview, remaining_capacity
from .model import (
    Gender,
    GroupAllocation,
    Role,
    RotaState,
    Shift,
    Volunteer,
    VolunteerAvailability,
    VolunteerGroup,
)
from .scheduler import AllocationOutcome, RotaRequest, TieBreak, allocate, generate_rota
from .shifts import ShiftOverride, build_shifts, shift_dates
from .validation import ValidationIssue, validate_rota_state

# io re-exports; openpyxl is only imported when a workbook is read
from .io import load_input, outcome_to_dict

__all__ = [
    "AllocationError",
    "AllocationOutcome",
    "DiscardReason",
    "Gender",
    "GroupAllocation",
    "MaleBalanceCriterion",
    "NoDoubleShiftsCriterion",
    "NoEligibleGroupsError",
    "ResolutionReport",
    "Role",
    "RotaGenerationError",
    "RotaRequest",
    "RotaState",
    "Shift",
    "ShiftOverride",
    "TieBreak",
    "ValidationIssue",
    "Volunteer",
    "VolunteerAvailability",
    "VolunteerGroup",
    "allocate",
    "build_criteria",
    "build_shifts",
    "desired_remaining_allocations",
    "fairness_overview",
    "generate_rota",
    "load_input",
    "outcome_to_dict",
    "remaining_capacity",
    "resolve_volunteer_groups",
    "resolve_with_report",
    "shift_dates",
    "validate_rota_state",
]
