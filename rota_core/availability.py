"""Turn roster + availability responses into allocatable volunteer groups.

Policy:
  - A group has responded if ANY member responded.
  - A shift is unavailable for a group if ANY responding member marked it.
  - Non-responding members neither confirm nor deny availability.

Groups with two or more team leads, groups nobody responded for and groups
left with no available shift are dropped; they are routine outcomes of
incomplete survey responses, not errors.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum

from .errors import NoEligibleGroupsError
from .model import Shift, Volunteer, VolunteerAvailability, VolunteerGroup

logger = logging.getLogger(__name__)


class DiscardReason(str, Enum):
    MULTIPLE_TEAM_LEADS = "multiple_team_leads"
    NO_RESPONSE = "no_response"
    NO_AVAILABILITY = "no_availability"


@dataclass
class ResolutionReport:
    eligible: list[str] = field(default_factory=list)
    discarded: dict[str, DiscardReason] = field(default_factory=dict)

    def discarded_for(self, reason: DiscardReason) -> list[str]:
        return sorted(k for k, r in self.discarded.items() if r is reason)

    def as_dict(self) -> dict[str, object]:
        return {
            "eligible": list(self.eligible),
            "discarded": {k: r.value for k, r in sorted(self.discarded.items())},
        }


def count_historical_allocations(group_key: str, historical_shifts: Iterable[Shift]) -> int:
    """Number of historical shifts the group worked (once per shift, however often listed)."""
    return sum(1 for shift in historical_shifts if shift.has_group(group_key))


def _partition(volunteers: Iterable[Volunteer]) -> dict[str, list[Volunteer]]:
    groups: dict[str, list[Volunteer]] = defaultdict(list)
    for volunteer in volunteers:
        groups[volunteer.effective_group_key].append(volunteer)
    return groups


def _group_availability(
    members: Sequence[Volunteer],
    responses: dict[str, VolunteerAvailability],
    total_shifts: int,
) -> tuple[bool, frozenset[int]]:
    responded = False
    unavailable: set[int] = set()
    for member in members:
        response = responses.get(member.volunteer_id)
        if response is None or not response.has_responded:
            continue
        responded = True
        unavailable.update(response.unavailable_shift_indices)

    available = frozenset(i for i in range(total_shifts) if i not in unavailable)
    return responded, available


def resolve_with_report(
    volunteers: Iterable[Volunteer],
    availability: Iterable[VolunteerAvailability],
    total_shifts: int,
    historical_shifts: Sequence[Shift] = (),
) -> tuple[list[VolunteerGroup], ResolutionReport]:
    """Resolve eligible groups and report why the others were dropped.

    Raises NoEligibleGroupsError if nothing survives.
    """
    responses = {a.volunteer_id: a for a in availability}
    report = ResolutionReport()
    groups: list[VolunteerGroup] = []

    for group_key, members in sorted(_partition(volunteers).items()):
        lead_count = sum(1 for m in members if m.is_team_lead)
        if lead_count > 1:
            logger.debug(
                "Discarding group %s: %d team leads (%s)",
                group_key,
                lead_count,
                ", ".join(m.full_name for m in members),
            )
            report.discarded[group_key] = DiscardReason.MULTIPLE_TEAM_LEADS
            continue

        responded, available = _group_availability(members, responses, total_shifts)
        if not responded:
            logger.debug("Discarding group %s: no member responded", group_key)
            report.discarded[group_key] = DiscardReason.NO_RESPONSE
            continue
        if not available:
            logger.debug("Discarding group %s: unavailable for every shift", group_key)
            report.discarded[group_key] = DiscardReason.NO_AVAILABILITY
            continue

        groups.append(
            VolunteerGroup(
                group_key=group_key,
                members=tuple(members),
                available_shift_indices=available,
                historical_allocation_count=count_historical_allocations(group_key, historical_shifts),
            )
        )
        report.eligible.append(group_key)

    logger.info(
        "Resolved %d eligible groups (%d discarded) over %d shifts",
        len(groups),
        len(report.discarded),
        total_shifts,
    )
    if not groups:
        raise NoEligibleGroupsError("no valid volunteer groups after availability resolution")
    return groups, report


def resolve_volunteer_groups(
    volunteers: Iterable[Volunteer],
    availability: Iterable[VolunteerAvailability],
    total_shifts: int,
    historical_shifts: Sequence[Shift] = (),
) -> list[VolunteerGroup]:
    groups, _ = resolve_with_report(volunteers, availability, total_shifts, historical_shifts)
    return groups
