"""Column constants, pipe helpers, and type coercion for CSV I/O."""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Input CSV column names
# ---------------------------------------------------------------------------

VOLUNTEERS_COLS = [
    "volunteer_id",
    "first_name",
    "last_name",
    "gender",
    "role",
    "group_key",
    "status",
]

AVAILABILITY_COLS = [
    "volunteer_id",
    "responded",
    "unavailable_shifts",
]

HISTORY_COLS = [
    "date",
    "group_key",
    "volunteer_id",
    "role",
]

ACTIVE_STATUS = "active"

# Blank when absent: no status means active, no group key means a singleton.
OPTIONAL_COLS = frozenset({"status", "group_key"})


def require_columns(header, expected: list[str], source: str) -> None:
    """Raise ValueError naming the required columns ``header`` lacks."""
    present = {str(h).strip() for h in header or () if h is not None}
    missing = [c for c in expected if c not in present and c not in OPTIONAL_COLS]
    if missing:
        raise ValueError(f"{source} is missing column(s): {', '.join(missing)}")


# ---------------------------------------------------------------------------
# Pipe-separated field helpers
# ---------------------------------------------------------------------------

PIPE = "|"


def pipe_split(value: str | None) -> list[str]:
    """Split a pipe-separated string into a list. Empty/None -> empty list."""
    if not value or not str(value).strip():
        return []
    return [v.strip() for v in str(value).split(PIPE) if v.strip()]


# ---------------------------------------------------------------------------
# Type coercion helpers for reading CSV values
# ---------------------------------------------------------------------------


def to_int(value: str | None, default: int = 0) -> int:
    """Coerce a CSV string to int. Empty/None -> default."""
    if value is None or str(value).strip() == "":
        return default
    try:
        return int(float(value))
    except (ValueError, TypeError):
        return default


def to_int_set(value: str | None) -> frozenset[int]:
    """Pipe-separated integers -> frozenset. Non-numeric entries are skipped."""
    out = set()
    for part in pipe_split(value):
        try:
            out.add(int(float(part)))
        except ValueError:
            continue
    return frozenset(out)


def to_bool(value: str | None) -> bool:
    """Coerce a CSV string to bool. TRUE/true/1/yes -> True, else False."""
    if value is None:
        return False
    return str(value).strip().upper() in ("TRUE", "1", "YES", "Y")
