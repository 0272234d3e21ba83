"""Exception types raised by the rota engine."""

from __future__ import annotations


class RotaGenerationError(ValueError):
    """Generation cannot start: the inputs do not describe a runnable rotation."""


class NoEligibleGroupsError(RotaGenerationError):
    """Every volunteer group was discarded during availability resolution."""


class AllocationError(RuntimeError):
    """A shift or group invariant would be broken by an allocation."""
