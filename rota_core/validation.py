"""Post-run checks on a finished rota.

Errors mark broken invariants (these should never come out of the
scheduler); warnings mark shortfalls an operator needs to look at, such as
under-filled shifts or shifts without a team lead.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .criteria import Criterion
    from .model import RotaState

ERROR = "error"
WARNING = "warning"


@dataclass(frozen=True)
class ValidationIssue:
    shift_index: int | None
    shift_date: str
    criterion: str
    severity: str
    description: str

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def has_errors(issues: Iterable[ValidationIssue]) -> bool:
    return any(i.severity == ERROR for i in issues)


def _shift_issues(state: RotaState) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for shift in state.shifts:
        day = shift.date.isoformat()

        if shift.current_size > shift.size:
            issues.append(
                ValidationIssue(
                    shift.index, day, "shift_size", ERROR,
                    f"Shift is overfilled: has {shift.current_size} volunteers but size is {shift.size}",
                )
            )
        elif shift.current_size < shift.size:
            issues.append(
                ValidationIssue(
                    shift.index, day, "shift_size", WARNING,
                    f"Shift is underfilled: has {shift.current_size} volunteers but size is {shift.size}",
                )
            )

        for key, count in sorted(Counter(shift.group_keys).items()):
            if count > 1:
                issues.append(
                    ValidationIssue(shift.index, day, "double_booking", ERROR, f"Group '{key}' appears {count} times")
                )

        leads = [a.team_lead_id for a in shift.allocated_groups if a.team_lead_id]
        if len(leads) > 1:
            issues.append(
                ValidationIssue(
                    shift.index, day, "team_lead", ERROR,
                    f"Shift has {len(leads)} team leads: {', '.join(leads)}",
                )
            )
        elif shift.team_lead is None and shift.size > 0:
            issues.append(ValidationIssue(shift.index, day, "team_lead", WARNING, "Shift has no team lead"))

    return issues


def _group_issues(state: RotaState) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    by_index = {s.index: s for s in state.shifts}
    for group in state.groups:
        for idx in group.allocated_shift_indices:
            if not group.is_available(idx):
                shift = by_index.get(idx)
                issues.append(
                    ValidationIssue(
                        idx,
                        shift.date.isoformat() if shift else "",
                        "availability",
                        ERROR,
                        f"Group '{group.group_key}' allocated to a shift it is unavailable for",
                    )
                )
        if group.allocation_count > state.max_allocation_frequency:
            issues.append(
                ValidationIssue(
                    None, "", "frequency_cap", ERROR,
                    f"Group '{group.group_key}' allocated {group.allocation_count} times "
                    f"(cap {state.max_allocation_frequency})",
                )
            )
    return issues


def validate_rota_state(state: RotaState, criteria: Iterable[Criterion] = ()) -> list[ValidationIssue]:
    issues = _shift_issues(state) + _group_issues(state)
    for criterion in criteria:
        issues.extend(criterion.validate(state))
    return issues
