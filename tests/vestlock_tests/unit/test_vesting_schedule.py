"""
Unit tests for the cliff + linear vesting curve.

Coverage targets:
- Nothing is freed before the cliff, the curve is anchored at start
- Everything is freed at and after start + duration
- Parameter validation at construction
"""

from fractions import Fraction

import pytest

from vestlock.core.exceptions import ConstructionError
from vestlock.core.locking.schedule import LockingPhase, VestingCurve, VestingParameters

from locking_helpers import CLIFF, DURATION, PRINCIPAL, START


@pytest.fixture
def curve():
    return VestingCurve(VestingParameters(START, DURATION, CLIFF))


class TestFreedAmount:
    def test_nothing_freed_before_cliff(self, curve):
        assert curve.freed_amount(PRINCIPAL, START) == 0
        assert curve.freed_amount(PRINCIPAL, START + CLIFF - 1) == 0

    def test_cliff_end_frees_elapsed_share_from_start(self, curve):
        # 500/900 of the principal, not 0/400
        assert curve.freed_amount(PRINCIPAL, START + CLIFF) == 555_555

    def test_linear_between_cliff_and_end(self, curve):
        assert curve.freed_amount(PRINCIPAL, START + 600) == 666_666
        assert curve.freed_amount(PRINCIPAL, START + 899) == 998_888

    def test_everything_freed_at_end(self, curve):
        assert curve.freed_amount(PRINCIPAL, START + DURATION) == PRINCIPAL

    def test_saturates_after_end(self, curve):
        assert curve.freed_amount(PRINCIPAL, START + DURATION * 100) == PRINCIPAL
        assert curve.freed_amount(PRINCIPAL, 2**63) == PRINCIPAL

    def test_far_past_timestamps(self, curve):
        assert curve.freed_amount(PRINCIPAL, 0) == 0
        assert curve.freed_amount(PRINCIPAL, -(2**40)) == 0

    def test_zero_principal_frees_nothing(self, curve):
        assert curve.freed_amount(0, START + DURATION) == 0

    def test_large_principal_is_floored_exactly(self):
        curve = VestingCurve(VestingParameters(0, 3, 0))
        principal = 10**30 + 1
        assert curve.freed_amount(principal, 1) == principal // 3

    def test_zero_cliff_vests_from_start(self):
        curve = VestingCurve(VestingParameters(START, DURATION, 0))
        assert curve.freed_amount(PRINCIPAL, START) == 0
        assert curve.freed_amount(PRINCIPAL, START + 1) == 1_111

    def test_cliff_equal_to_duration_is_all_or_nothing(self):
        curve = VestingCurve(VestingParameters(START, DURATION, DURATION))
        assert curve.freed_amount(PRINCIPAL, START + DURATION - 1) == 0
        assert curve.freed_amount(PRINCIPAL, START + DURATION) == PRINCIPAL


class TestFreedFraction:
    def test_fraction_bounds(self, curve):
        assert curve.freed_fraction(START) == 0
        assert curve.freed_fraction(START + CLIFF) == Fraction(5, 9)
        assert curve.freed_fraction(START + DURATION + 1) == 1


class TestPhase:
    def test_phases(self, curve):
        assert curve.phase_at(START, funded=False) is LockingPhase.UNFUNDED
        assert curve.phase_at(START + CLIFF - 1, funded=True) is LockingPhase.CLIFF_LOCKED
        assert curve.phase_at(START + CLIFF, funded=True) is LockingPhase.VESTING
        assert curve.phase_at(START + DURATION, funded=True) is LockingPhase.FULLY_VESTED


class TestVestingParameters:
    def test_derived_times(self):
        params = VestingParameters(START, DURATION, CLIFF)
        assert params.cliff_end == START + CLIFF
        assert params.end_time == START + DURATION

    @pytest.mark.parametrize(
        "duration,cliff",
        [(0, 0), (-1, 0), (DURATION, -1), (DURATION, DURATION + 1)],
    )
    def test_invalid_durations_rejected(self, duration, cliff):
        with pytest.raises(ConstructionError):
            VestingParameters(START, duration, cliff)

    def test_non_integer_times_rejected(self):
        with pytest.raises(ConstructionError):
            VestingParameters(float(START), DURATION, CLIFF)
        with pytest.raises(ConstructionError):
            VestingParameters(START, True, 0)
