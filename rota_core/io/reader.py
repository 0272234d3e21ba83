"""Read a CSV input directory into the engine's input types."""

from __future__ import annotations

import csv
import json
from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any

from rota_core.model import (
    INDIVIDUAL_GROUP_PREFIX,
    GroupAllocation,
    Gender,
    Role,
    Shift,
    Volunteer,
    VolunteerAvailability,
)
from rota_core.shifts import shift_dates

from .schemas import (
    ACTIVE_STATUS,
    AVAILABILITY_COLS,
    HISTORY_COLS,
    VOLUNTEERS_COLS,
    require_columns,
    to_bool,
    to_int,
    to_int_set,
)


@dataclass
class RotaInput:
    volunteers: list[Volunteer]
    availability: list[VolunteerAvailability]
    historical_shifts: list[Shift]
    shift_dates: list[date]
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def profile_name(self) -> str:
        return str(self.meta.get("profile") or "default")


def load_input(directory: Path) -> RotaInput:
    """Read CSV input dir -> RotaInput.

    Expects ``rota.json``, ``volunteers.csv`` and ``availability.csv``;
    ``history.csv`` is optional (first rotation).
    Raises FileNotFoundError if required files are missing.
    """
    d = Path(directory)
    meta = _read_json(d / "rota.json")
    volunteer_rows = _read_csv(d / "volunteers.csv", VOLUNTEERS_COLS)
    availability_rows = _read_csv(d / "availability.csv", AVAILABILITY_COLS)
    history_path = d / "history.csv"
    history_rows = _read_csv(history_path, HISTORY_COLS) if history_path.exists() else []
    return build_input(meta, volunteer_rows, availability_rows, history_rows)


def build_input(
    meta: Mapping[str, Any],
    volunteer_rows: Iterable[Mapping[str, Any]],
    availability_rows: Iterable[Mapping[str, Any]],
    history_rows: Iterable[Mapping[str, Any]] = (),
) -> RotaInput:
    if not meta.get("start"):
        raise ValueError("rota metadata is missing 'start'")
    dates = shift_dates(
        _text(meta["start"]),
        to_int(_text(meta.get("shift_count"))),
        interval_days=to_int(_text(meta.get("interval_days")), default=7),
    )
    return RotaInput(
        volunteers=volunteers_from_rows(volunteer_rows),
        availability=availability_from_rows(availability_rows),
        historical_shifts=history_to_shifts(history_rows),
        shift_dates=dates,
        meta=dict(meta),
    )


def volunteers_from_rows(rows: Iterable[Mapping[str, Any]]) -> list[Volunteer]:
    """Active volunteers only; rows without a status column count as active."""
    volunteers = []
    for row in rows:
        vid = _text(row.get("volunteer_id"))
        if not vid:
            continue
        status = _text(row.get("status")).lower()
        if status and status != ACTIVE_STATUS:
            continue
        volunteers.append(
            Volunteer(
                volunteer_id=vid,
                first_name=_text(row.get("first_name")),
                last_name=_text(row.get("last_name")),
                gender=Gender.parse(_text(row.get("gender"))),
                role=Role.parse(_text(row.get("role"))),
                group_key=_text(row.get("group_key")),
            )
        )
    return volunteers


def availability_from_rows(rows: Iterable[Mapping[str, Any]]) -> list[VolunteerAvailability]:
    out = []
    for row in rows:
        vid = _text(row.get("volunteer_id"))
        if not vid:
            continue
        responded = to_bool(_text(row.get("responded")))
        out.append(
            VolunteerAvailability(
                volunteer_id=vid,
                has_responded=responded,
                unavailable_shift_indices=to_int_set(_text(row.get("unavailable_shifts"))) if responded else frozenset(),
            )
        )
    return out


def history_to_shifts(rows: Iterable[Mapping[str, Any]]) -> list[Shift]:
    """One row per historical volunteer allocation -> read-only shifts in date order."""
    by_date: dict[str, dict[str, list[Mapping[str, Any]]]] = defaultdict(lambda: defaultdict(list))
    for row in rows:
        day = _text(row.get("date"))
        vid = _text(row.get("volunteer_id"))
        if not day or not vid:
            continue
        key = _text(row.get("group_key")) or f"{INDIVIDUAL_GROUP_PREFIX}{vid}"
        by_date[day][key].append(row)

    shifts = []
    for index, day in enumerate(sorted(by_date)):
        allocations = []
        for key, members in sorted(by_date[day].items()):
            lead = next((m for m in members if Role.parse(_text(m.get("role"))) is Role.TEAM_LEAD), None)
            allocations.append(
                GroupAllocation(
                    group_key=key,
                    member_ids=tuple(_text(m.get("volunteer_id")) for m in members),
                    team_lead_id=_text(lead.get("volunteer_id")) if lead else None,
                )
            )
        shifts.append(Shift.historical(date.fromisoformat(day), index, allocations))
    return shifts


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def _read_json(path: Path) -> dict:
    """Read and parse a JSON file."""
    if not path.exists():
        raise FileNotFoundError(f"Required file not found: {path}")
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _read_csv(path: Path, columns: list[str]) -> list[dict[str, str]]:
    """Read a CSV file into a list of dicts via csv.DictReader, checking its header."""
    if not path.exists():
        raise FileNotFoundError(f"Required file not found: {path}")
    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        require_columns(reader.fieldnames, columns, path.name)
        return list(reader)
