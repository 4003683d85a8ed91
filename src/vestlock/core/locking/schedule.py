"""
Vesting curve for locking contracts.

Linear vesting anchored at ``start_time`` and gated by a cliff: nothing is
freed before ``start_time + cliff_duration``; from then on the freed share is
``(now - start_time) / locking_duration`` until everything is freed at
``start_time + locking_duration``. The cliff gates when releases may begin,
it does not move the curve's time origin.

All amounts are integers in token base units and are floored.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from fractions import Fraction

from ..exceptions import ConstructionError


class LockingPhase(Enum):
    UNFUNDED = "unfunded"
    CLIFF_LOCKED = "cliff_locked"
    VESTING = "vesting"
    FULLY_VESTED = "fully_vested"


@dataclass(frozen=True)
class VestingParameters:
    start_time: int
    locking_duration: int
    cliff_duration: int

    def __post_init__(self) -> None:
        for name in ("start_time", "locking_duration", "cliff_duration"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ConstructionError(
                    "Time parameters must be integers (Unix timestamps/durations).",
                    details={name: value},
                )
        if self.locking_duration <= 0:
            raise ConstructionError(
                "Locking duration must be positive.",
                details={"locking_duration": self.locking_duration},
            )
        if self.cliff_duration < 0:
            raise ConstructionError(
                "Cliff duration cannot be negative.",
                details={"cliff_duration": self.cliff_duration},
            )
        if self.cliff_duration > self.locking_duration:
            raise ConstructionError(
                "Cliff duration cannot exceed the locking duration.",
                details={
                    "cliff_duration": self.cliff_duration,
                    "locking_duration": self.locking_duration,
                },
            )

    @property
    def cliff_end(self) -> int:
        return self.start_time + self.cliff_duration

    @property
    def end_time(self) -> int:
        return self.start_time + self.locking_duration


class VestingCurve:
    """Pure mapping from a timestamp to the vested share of a principal."""

    def __init__(self, params: VestingParameters):
        self.params = params

    def freed_fraction(self, now: int) -> Fraction:
        """
        Fraction of the principal freed at ``now``, in ``[0, 1]``.

        Safe for any timestamp, including ones before start or far past the end.
        """
        now = int(now)
        if now < self.params.cliff_end:
            return Fraction(0)
        if now >= self.params.end_time:
            return Fraction(1)
        return Fraction(now - self.params.start_time, self.params.locking_duration)

    def freed_amount(self, principal: int, now: int) -> int:
        """Cumulative amount of ``principal`` freed at ``now``, floored."""
        if principal <= 0:
            return 0
        now = int(now)
        if now < self.params.cliff_end:
            return 0
        if now >= self.params.end_time:
            return principal
        # Integer arithmetic keeps the floor exact for any principal size
        return principal * (now - self.params.start_time) // self.params.locking_duration

    def phase_at(self, now: int, funded: bool) -> LockingPhase:
        if not funded:
            return LockingPhase.UNFUNDED
        now = int(now)
        if now < self.params.cliff_end:
            return LockingPhase.CLIFF_LOCKED
        if now >= self.params.end_time:
            return LockingPhase.FULLY_VESTED
        return LockingPhase.VESTING
