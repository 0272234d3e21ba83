"""Serialise an AllocationOutcome into plain JSON-compatible data.

Nothing is written to disk here; callers decide where the result goes.
"""

from __future__ import annotations

from typing import Any

from rota_core.fairness import fairness_overview
from rota_core.model import Shift
from rota_core.scheduler import AllocationOutcome


def shift_to_dict(shift: Shift) -> dict[str, Any]:
    lead = shift.team_lead
    return {
        "index": shift.index,
        "date": shift.date.isoformat(),
        "size": shift.size,
        "current_size": shift.current_size,
        "is_full": shift.is_full,
        "remaining_capacity": shift.remaining_capacity,
        "team_lead": (
            {"volunteer_id": lead.volunteer_id, "name": lead.full_name} if lead is not None else None
        ),
        "pre_allocated_volunteers": list(shift.pre_allocated_volunteers),
        "allocated_groups": [
            {"group_key": a.group_key, "member_ids": list(a.member_ids)} for a in shift.allocated_groups
        ],
        "male_count": shift.male_count,
    }


def outcome_to_dict(outcome: AllocationOutcome) -> dict[str, Any]:
    state = outcome.state
    shifts = [shift_to_dict(s) for s in state.shifts]
    full = sum(1 for s in state.shifts if s.is_full)
    total = len(state.shifts)
    return {
        "success": outcome.success,
        "shifts": shifts,
        "metrics": {
            "total_shifts": total,
            "full_shifts": full,
            "underfilled_shifts": total - full,
            "fill_rate": round(full / total * 100, 1) if total else 0.0,
            "eligible_groups": len(state.groups),
            "historical_shifts": state.total_historical_shifts,
            "max_allocation_frequency": state.max_allocation_frequency,
            "target_frequency": state.target_frequency,
        },
        "underfilled": [
            {"index": s.index, "date": s.date.isoformat(), "current_size": s.current_size, "size": s.size}
            for s in outcome.underfilled_shifts
        ],
        "underutilized_groups": [g.group_key for g in outcome.underutilized_groups],
        "fairness": fairness_overview(state),
        "validation_issues": [i.as_dict() for i in outcome.validation_issues],
        "resolution": outcome.resolution.as_dict(),
    }
