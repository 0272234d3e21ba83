"""Lightweight rota evaluation.

Computes quality metrics from a serialised outcome (``outcome_to_dict``).
All functions are pure dict-in / dict-out.
"""

from __future__ import annotations

import statistics
from collections import Counter
from typing import Any

from rota_core.fairness import gini


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _stats(values: list[float]) -> dict[str, float]:
    """Basic distribution statistics."""
    if not values:
        return {"mean": 0, "median": 0, "std": 0, "min": 0, "max": 0}
    return {
        "mean": round(statistics.mean(values), 2),
        "median": round(statistics.median(values), 2),
        "std": round(statistics.stdev(values), 2) if len(values) > 1 else 0.0,
        "min": round(min(values), 2),
        "max": round(max(values), 2),
    }


# ---------------------------------------------------------------------------
# Metric functions
# ---------------------------------------------------------------------------


def _coverage(shifts: list[dict[str, Any]]) -> dict[str, Any]:
    """Fill rate counted over open shifts only; closed shifts (size 0) are excluded."""
    open_shifts = [s for s in shifts if s.get("size", 0) > 0]
    seats = sum(s["size"] for s in open_shifts)
    filled = sum(min(s.get("current_size", 0), s["size"]) for s in open_shifts)
    full = sum(1 for s in open_shifts if s.get("is_full"))
    return {
        "open_shifts": len(open_shifts),
        "closed_shifts": len(shifts) - len(open_shifts),
        "full_shifts": full,
        "shift_fill_rate": round(full / len(open_shifts) * 100, 1) if open_shifts else 0.0,
        "seats": seats,
        "seats_filled": filled,
        "seat_fill_rate": round(filled / seats * 100, 1) if seats else 0.0,
    }


def _team_lead_coverage(shifts: list[dict[str, Any]]) -> dict[str, Any]:
    open_shifts = [s for s in shifts if s.get("size", 0) > 0]
    led = [s for s in open_shifts if s.get("team_lead")]
    return {
        "shifts_with_team_lead": len(led),
        "shifts_without_team_lead": [s["date"] for s in open_shifts if not s.get("team_lead")],
        "team_lead_rate": round(len(led) / len(open_shifts) * 100, 1) if open_shifts else 0.0,
    }


def _underfilled(outcome: dict[str, Any]) -> dict[str, Any]:
    items = outcome.get("underfilled", [])
    return {
        "count": len(items),
        "missing_seats": sum(max(0, u["size"] - u["current_size"]) for u in items),
        "dates": [u["date"] for u in items],
    }


def _fairness(rows: list[dict[str, Any]]) -> dict[str, Any]:
    """Gini over current-rotation allocations and the spread of remaining need."""
    counts = [float(r.get("allocation_count", 0)) for r in rows]
    desired = [float(r.get("desired_remaining", 0)) for r in rows]
    return {
        "groups": len(rows),
        "allocation_gini": round(gini(counts), 4),
        "allocation_stats": _stats(counts),
        "desired_remaining_stats": _stats(desired),
        "groups_still_owed": sum(1 for d in desired if d > 0),
        "groups_never_allocated": sum(
            1 for r in rows if r.get("allocation_count", 0) == 0 and r.get("available_count", 0) > 0
        ),
    }


def _issues(issues: list[dict[str, Any]]) -> dict[str, Any]:
    by_severity = Counter(i.get("severity", "unknown") for i in issues)
    by_criterion = Counter(i.get("criterion", "unknown") for i in issues)
    return {
        "count": len(issues),
        "by_severity": dict(by_severity.most_common()),
        "by_criterion": dict(by_criterion.most_common()),
    }


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


def evaluate_outcome(outcome: dict[str, Any]) -> dict[str, Any]:
    """Compute quality metrics for a serialised rota outcome."""
    shifts = outcome.get("shifts", [])
    resolution = outcome.get("resolution", {})
    discarded = Counter(resolution.get("discarded", {}).values())
    return {
        "success": bool(outcome.get("success")),
        "coverage": _coverage(shifts),
        "team_leads": _team_lead_coverage(shifts),
        "underfilled": _underfilled(outcome),
        "underutilized_groups": list(outcome.get("underutilized_groups", [])),
        "fairness": _fairness(outcome.get("fairness", [])),
        "validation": _issues(outcome.get("validation_issues", [])),
        "resolution": {
            "eligible_groups": len(resolution.get("eligible", [])),
            "discarded": dict(discarded.most_common()),
        },
    }
