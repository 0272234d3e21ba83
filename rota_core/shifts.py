"""Shift dates and per-date overrides for a rotation."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any

from dateutil.rrule import rrulestr

from .model import Shift

logger = logging.getLogger(__name__)

# Occurrences are expanded from a week before the first shift so that rules
# whose first hit falls on the rotation's first date are not missed.
_RRULE_LEAD_DAYS = 7


def shift_dates(start: date | str, count: int, *, interval_days: int = 7) -> list[date]:
    """Dates of ``count`` shifts, one every ``interval_days`` from ``start``."""
    if isinstance(start, str):
        start = date.fromisoformat(start)
    if count < 0:
        raise ValueError(f"shift count must be non-negative, got {count}")
    return [start + timedelta(days=i * interval_days) for i in range(count)]


def _normalize_rrule(text: str) -> str:
    rule = str(text or "").strip()
    if rule.upper().startswith("RRULE:"):
        rule = rule[len("RRULE:"):]
    return rule


@dataclass(frozen=True)
class ShiftOverride:
    rrule: str
    shift_size: int | None = None
    preallocations: tuple[str, ...] = ()
    closed: bool = False

    def __post_init__(self) -> None:
        rule = _normalize_rrule(self.rrule)
        if not rule:
            raise ValueError("override rrule is required")
        try:
            rrulestr(rule, dtstart=datetime(2000, 1, 1))
        except (ValueError, TypeError) as exc:
            raise ValueError(f"invalid rrule {self.rrule!r}: {exc}") from exc
        if self.shift_size is not None and self.shift_size < 1:
            raise ValueError(f"override shift_size must be at least 1, got {self.shift_size}")
        object.__setattr__(self, "rrule", rule)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "ShiftOverride":
        size = raw.get("shift_size", raw.get("shiftSize"))
        pre = raw.get("preallocations", raw.get("prefilledAllocations")) or []
        return cls(
            rrule=str(raw.get("rrule") or ""),
            shift_size=int(size) if size is not None else None,
            preallocations=tuple(str(v) for v in pre),
            closed=bool(raw.get("closed", False)),
        )

    def occurrences(self, first: date, last: date) -> set[date]:
        anchor = datetime.combine(first - timedelta(days=_RRULE_LEAD_DAYS), time())
        end = datetime.combine(last + timedelta(days=_RRULE_LEAD_DAYS), time())
        rule = rrulestr(self.rrule, dtstart=anchor)
        return {dt.date() for dt in rule.between(anchor, end, inc=True)}

    def applies_to(self, day: date, first: date, last: date | None = None) -> bool:
        """Whether the rule hits ``day`` in a rotation starting on ``first``."""
        return day in self.occurrences(first, last or day)


def build_shifts(
    dates: Sequence[date],
    default_size: int,
    overrides: Iterable[ShiftOverride] = (),
) -> list[Shift]:
    """Create the rotation's empty shifts, applying overrides in order.

    Later overrides win for size; pre-allocations accumulate. A closed shift
    has size 0 and no pre-allocations.
    """
    if default_size < 0:
        raise ValueError(f"default shift size must be non-negative, got {default_size}")
    overrides = list(overrides)
    matches: list[set[date]] = []
    if dates:
        matches = [o.occurrences(dates[0], dates[-1]) for o in overrides]

    shifts: list[Shift] = []
    for index, day in enumerate(dates):
        size = default_size
        pre: list[str] = []
        closed = False
        for override, hits in zip(overrides, matches):
            if day not in hits:
                continue
            if override.shift_size is not None:
                size = override.shift_size
            pre.extend(v for v in override.preallocations if v not in pre)
            closed = closed or override.closed

        if closed:
            logger.debug("Shift %d (%s) closed by override", index, day)
            size, pre = 0, []
        elif len(pre) > size:
            logger.warning(
                "Shift %d (%s) has %d pre-allocations but size %d; raising size",
                index, day, len(pre), size,
            )
            size = len(pre)

        shifts.append(Shift(date=day, index=index, size=size, pre_allocated_volunteers=pre))
    return shifts
