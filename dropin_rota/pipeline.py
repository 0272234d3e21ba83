"""Glue between on-disk rota input, a profile and the engine."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from rota_core.availability import resolve_with_report
from rota_core.io import RotaInput, load_input, load_input_xlsx, outcome_to_dict
from rota_core.scheduler import AllocationOutcome, RotaRequest, generate_rota
from rota_core.shifts import ShiftOverride

from .config import RotaProfile, get_profile

logger = logging.getLogger(__name__)


def read_input(source: str | Path) -> RotaInput:
    """CSV directory or ``.xlsx`` workbook -> RotaInput."""
    path = Path(source).expanduser()
    if path.suffix.lower() == ".xlsx":
        return load_input_xlsx(path)
    return load_input(path)


def build_request(rota_input: RotaInput, profile: RotaProfile) -> RotaRequest:
    """Profile values, overridden per rotation by ``rota.json`` where it sets them."""
    meta = rota_input.meta
    overrides = list(profile.overrides)
    overrides.extend(ShiftOverride.from_dict(o) for o in meta.get("overrides", []) or [])
    return RotaRequest(
        volunteers=rota_input.volunteers,
        availability=rota_input.availability,
        shift_dates=rota_input.shift_dates,
        default_shift_size=int(meta.get("default_shift_size", profile.default_shift_size)),
        target_frequency=float(meta.get("target_frequency", profile.target_frequency)),
        max_allocation_frequency=int(meta.get("max_allocation_frequency", profile.max_allocation_frequency)),
        historical_shifts=rota_input.historical_shifts,
        overrides=overrides,
        criteria=list(profile.criteria),
        tie_break=profile.tie_break,
    )


def run_rota(source: str | Path, profile_name: str | None = None) -> AllocationOutcome:
    rota_input = read_input(source)
    profile = get_profile(profile_name or rota_input.profile_name)
    logger.info(
        "Generating rota from %s with profile '%s' (%d shifts, %d volunteers)",
        source, profile.name, len(rota_input.shift_dates), len(rota_input.volunteers),
    )
    return generate_rota(build_request(rota_input, profile))


def rota_summary(source: str | Path, profile_name: str | None = None) -> dict[str, Any]:
    return outcome_to_dict(run_rota(source, profile_name))


def resolution_summary(source: str | Path) -> dict[str, Any]:
    rota_input = read_input(source)
    groups, report = resolve_with_report(
        rota_input.volunteers,
        rota_input.availability,
        len(rota_input.shift_dates),
        rota_input.historical_shifts,
    )
    result = report.as_dict()
    result["groups"] = [
        {
            "group_key": g.group_key,
            "members": list(g.member_ids),
            "team_lead": g.team_lead.volunteer_id if g.team_lead else None,
            "available_shifts": sorted(g.available_shift_indices),
            "historical_allocations": g.historical_allocation_count,
        }
        for g in groups
    ]
    return result
