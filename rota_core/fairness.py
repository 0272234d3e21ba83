"""Long-run allocation fairness.

A group's *desired remaining allocations* is how many more shifts it should
get so that, over all historical shifts plus this rotation, it has been
allocated ``target_frequency`` of the time::

    target  = floor((historical_shifts + current_shifts) * target_frequency)
    desired = target - (historical_allocations + current_allocations)

Positive means under-served, negative over-served. The per-rotation cap
(``max_allocation_frequency``) is an absolute count and is applied
separately through ``remaining_capacity``.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .model import RotaState


def validate_target_frequency(target_frequency: float) -> float:
    value = float(target_frequency)
    if not 0 < value <= 1:
        raise ValueError(f"target frequency must be in (0, 1], got {value:.2f}")
    return value


def target_allocations(historical_shifts: int, current_shifts: int, target_frequency: float) -> int:
    return math.floor((historical_shifts + current_shifts) * target_frequency)


def desired_remaining_allocations(
    total_allocation_count: int,
    historical_shifts: int,
    current_shifts: int,
    target_frequency: float,
) -> int:
    """Signed number of further allocations needed to reach ``target_frequency``.

    >>> desired_remaining_allocations(22, 100, 10, 0.25)
    5
    """
    target = target_allocations(historical_shifts, current_shifts, target_frequency)
    return target - total_allocation_count


def remaining_capacity(max_allocation_frequency: int, current_allocations: int) -> int:
    return max(0, max_allocation_frequency - current_allocations)


def gini(values: list[float]) -> float:
    """Gini coefficient: 0 = perfectly even, 1 = fully concentrated."""
    if not values or all(v == 0 for v in values):
        return 0.0
    s = sorted(values)
    n = len(s)
    total = sum(s)
    if total == 0:
        return 0.0
    cum = sum((i + 1) * v for i, v in enumerate(s))
    return round((2 * cum) / (n * total) - (n + 1) / n, 4)


def fairness_overview(state: RotaState) -> list[dict[str, Any]]:
    """Per-group allocation summary, most under-served first."""
    rows = []
    for group in state.groups:
        rows.append(
            {
                "group_key": group.group_key,
                "members": list(group.member_ids),
                "historical_allocations": group.historical_allocation_count,
                "allocated_shifts": sorted(group.allocated_shift_indices),
                "allocation_count": group.allocation_count,
                "available_count": len(group.available_shift_indices),
                "desired_remaining": state.desired_remaining(group),
                "remaining_capacity": group.remaining_capacity(state.max_allocation_frequency),
            }
        )

    rows.sort(key=lambda row: (-row["desired_remaining"], row["group_key"]))
    return rows
