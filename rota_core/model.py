"""Volunteers, groups, shifts and the mutable rota state.

Groups and shifts reference each other by stable identifiers only: a group
records the *indices* of the shifts it holds, a shift records immutable
``GroupAllocation`` values keyed by group key. ``RotaState.allocate`` is the
one place both sides are updated together.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from .errors import AllocationError
from .fairness import desired_remaining_allocations, remaining_capacity

INDIVIDUAL_GROUP_PREFIX = "individual_"


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"
    UNKNOWN = ""

    @classmethod
    def parse(cls, value: str | None) -> "Gender":
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value and member.value.lower() == text:
                return member
        if text in ("m", "man"):
            return cls.MALE
        if text in ("f", "w", "woman"):
            return cls.FEMALE
        return cls.UNKNOWN


class Role(str, Enum):
    VOLUNTEER = "Volunteer"
    TEAM_LEAD = "Team Lead"

    @classmethod
    def parse(cls, value: str | None) -> "Role":
        text = str(value or "").strip().lower().replace("_", " ").replace("-", " ")
        if text in ("team lead", "teamlead", "lead", "tl"):
            return cls.TEAM_LEAD
        return cls.VOLUNTEER


@dataclass(frozen=True)
class Volunteer:
    volunteer_id: str
    first_name: str = ""
    last_name: str = ""
    gender: Gender = Gender.UNKNOWN
    role: Role = Role.VOLUNTEER
    group_key: str = ""

    @property
    def is_team_lead(self) -> bool:
        return self.role is Role.TEAM_LEAD

    @property
    def is_male(self) -> bool:
        return self.gender is Gender.MALE

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.volunteer_id

    @property
    def effective_group_key(self) -> str:
        """Group key used for allocation; volunteers without one stand alone."""
        return self.group_key or f"{INDIVIDUAL_GROUP_PREFIX}{self.volunteer_id}"


@dataclass(frozen=True)
class VolunteerAvailability:
    volunteer_id: str
    has_responded: bool
    # Only meaningful when has_responded is True.
    unavailable_shift_indices: frozenset[int] = frozenset()


@dataclass
class VolunteerGroup:
    group_key: str
    members: tuple[Volunteer, ...]
    available_shift_indices: frozenset[int]
    allocated_shift_indices: list[int] = field(default_factory=list)
    historical_allocation_count: int = 0

    @property
    def size(self) -> int:
        return len(self.members)

    @property
    def is_singleton(self) -> bool:
        return self.group_key.startswith(INDIVIDUAL_GROUP_PREFIX)

    @property
    def team_lead(self) -> Volunteer | None:
        return next((m for m in self.members if m.is_team_lead), None)

    @property
    def has_team_lead(self) -> bool:
        return self.team_lead is not None

    @property
    def male_count(self) -> int:
        return sum(1 for m in self.members if m.is_male)

    @property
    def member_ids(self) -> tuple[str, ...]:
        return tuple(m.volunteer_id for m in self.members)

    def is_available(self, shift_index: int) -> bool:
        return shift_index in self.available_shift_indices

    def is_allocated(self, shift_index: int) -> bool:
        return shift_index in self.allocated_shift_indices

    @property
    def allocation_count(self) -> int:
        return len(self.allocated_shift_indices)

    @property
    def total_allocation_count(self) -> int:
        return self.historical_allocation_count + self.allocation_count

    def remaining_capacity(self, max_allocation_frequency: int) -> int:
        return remaining_capacity(max_allocation_frequency, self.allocation_count)

    def desired_remaining_allocations(
        self,
        historical_shifts: int,
        current_shifts: int,
        target_frequency: float,
    ) -> int:
        return desired_remaining_allocations(
            self.total_allocation_count,
            historical_shifts,
            current_shifts,
            target_frequency,
        )

    def record_allocation(self, shift_index: int) -> None:
        if not self.is_available(shift_index):
            raise AllocationError(f"group {self.group_key!r} is not available for shift {shift_index}")
        if self.is_allocated(shift_index):
            raise AllocationError(f"group {self.group_key!r} already allocated to shift {shift_index}")
        self.allocated_shift_indices.append(shift_index)


@dataclass(frozen=True)
class GroupAllocation:
    """Snapshot of a group as placed on a shift."""

    group_key: str
    member_ids: tuple[str, ...]
    male_count: int = 0
    team_lead_id: str | None = None

    @classmethod
    def from_group(cls, group: VolunteerGroup) -> "GroupAllocation":
        lead = group.team_lead
        return cls(
            group_key=group.group_key,
            member_ids=group.member_ids,
            male_count=group.male_count,
            team_lead_id=lead.volunteer_id if lead else None,
        )

    @property
    def size(self) -> int:
        return len(self.member_ids)


@dataclass
class Shift:
    date: date
    index: int
    size: int
    allocated_groups: list[GroupAllocation] = field(default_factory=list)
    # Pinned before generation: count toward size, never toward team lead or male count.
    pre_allocated_volunteers: list[str] = field(default_factory=list)
    team_lead: Volunteer | None = None
    male_count: int = 0

    @classmethod
    def historical(
        cls,
        shift_date: date,
        index: int,
        allocations: list[GroupAllocation],
        *,
        pre_allocated: list[str] | None = None,
    ) -> "Shift":
        """Build a finished shift from prior-rotation records (size = what was filled)."""
        pre = list(pre_allocated or [])
        return cls(
            date=shift_date,
            index=index,
            size=len(pre) + sum(a.size for a in allocations),
            allocated_groups=list(allocations),
            pre_allocated_volunteers=pre,
            male_count=sum(a.male_count for a in allocations),
        )

    @property
    def current_size(self) -> int:
        return len(self.pre_allocated_volunteers) + sum(a.size for a in self.allocated_groups)

    @property
    def remaining_capacity(self) -> int:
        return max(0, self.size - self.current_size)

    @property
    def is_full(self) -> bool:
        return self.current_size >= self.size

    @property
    def group_keys(self) -> list[str]:
        return [a.group_key for a in self.allocated_groups]

    def has_group(self, group_key: str) -> bool:
        return any(a.group_key == group_key for a in self.allocated_groups)

    def can_fit(self, headcount: int) -> bool:
        return self.current_size + headcount <= self.size

    def allocate(self, group: VolunteerGroup) -> GroupAllocation:
        if self.has_group(group.group_key):
            raise AllocationError(f"group {group.group_key!r} already on shift {self.index}")
        if not self.can_fit(group.size):
            raise AllocationError(
                f"group {group.group_key!r} ({group.size}) does not fit shift {self.index} "
                f"({self.current_size}/{self.size})"
            )
        lead = group.team_lead
        if lead is not None and self.team_lead is not None:
            raise AllocationError(f"shift {self.index} already has team lead {self.team_lead.volunteer_id}")

        allocation = GroupAllocation.from_group(group)
        self.allocated_groups.append(allocation)
        self.male_count += allocation.male_count
        if lead is not None:
            self.team_lead = lead
        return allocation


@dataclass
class RotaState:
    shifts: list[Shift]
    groups: list[VolunteerGroup]
    historical_shifts: list[Shift] = field(default_factory=list)
    max_allocation_frequency: int = 1
    target_frequency: float = 0.5

    def __post_init__(self) -> None:
        self._by_key = {g.group_key: g for g in self.groups}

    def group(self, group_key: str) -> VolunteerGroup:
        try:
            return self._by_key[group_key]
        except KeyError:
            raise KeyError(f"group_key not found: {group_key}") from None

    @property
    def total_historical_shifts(self) -> int:
        return len(self.historical_shifts)

    @property
    def total_current_shifts(self) -> int:
        return len(self.shifts)

    def desired_remaining(self, group: VolunteerGroup) -> int:
        return group.desired_remaining_allocations(
            self.total_historical_shifts,
            self.total_current_shifts,
            self.target_frequency,
        )

    def allocate(self, group: VolunteerGroup, shift: Shift) -> GroupAllocation:
        if group.remaining_capacity(self.max_allocation_frequency) <= 0:
            raise AllocationError(f"group {group.group_key!r} has no remaining capacity")
        if not group.is_available(shift.index):
            raise AllocationError(f"group {group.group_key!r} is not available for shift {shift.index}")
        if group.is_allocated(shift.index):
            raise AllocationError(f"group {group.group_key!r} already allocated to shift {shift.index}")
        allocation = shift.allocate(group)
        group.record_allocation(shift.index)
        return allocation

    def all_shifts_full(self) -> bool:
        return all(s.is_full for s in self.shifts)

    def underfilled_shifts(self) -> list[Shift]:
        return [s for s in self.shifts if not s.is_full]
