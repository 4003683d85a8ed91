"""
Unit tests for owner clawback (withdraw_locked / withdraw_locked_amount).

Coverage targets:
- Ceiling is principal - freed - withdrawn, independent of custody balance
- Repeated percentage withdrawals cannot drain vested tokens
- Argument validation and owner-only access
- Withdrawal window policy
- Funding address administration
"""

import pytest

from vestlock.core.config import LockingConfig, WithdrawalPolicy
from vestlock.core.exceptions import LockingValidationError, UnauthorizedError

from locking_helpers import (
    BENEFICIARIES,
    CLIFF,
    DURATION,
    OUTSIDER,
    OWNER,
    PRINCIPAL,
    START,
    TREASURY,
)


class TestWithdrawLocked:
    def test_percentage_at_start(self, contract, token, clock):
        assert contract.withdraw_locked(OWNER, 1_070) == 107_000
        assert token.balance_of(TREASURY) == 107_000
        assert contract.withdrawn() == 107_000
        assert token.balance_of(contract.address) == PRINCIPAL - 107_000

    def test_beneficiaries_keep_remaining_pool(self, contract, token, clock):
        contract.withdraw_locked(OWNER, 1_070)
        clock.set(START + DURATION)

        assert contract.release(BENEFICIARIES[0]) == 892_998
        assert [token.balance_of(b) for b in BENEFICIARIES] == [297_666] * 3

    def test_withdraw_most_then_release(self, contract, token, clock):
        assert contract.withdraw_locked(OWNER, 9_500) == 950_000

        clock.set(START + DURATION)
        assert contract.release(BENEFICIARIES[0]) == 49_998
        assert contract.released() + contract.withdrawn() <= contract.locked_principal

    def test_repeated_withdrawals_use_pinned_principal(self, contract, token, clock):
        clock.set(START + 600)
        first = contract.withdraw_locked(OWNER, 5_000)
        second = contract.withdraw_locked(OWNER, 5_000)

        assert (first, second) == (166_667, 83_333)
        assert contract.withdrawn() == 250_000
        # Vested tokens are untouched
        assert contract.release(BENEFICIARIES[0]) == 666_666

    def test_full_ceiling_then_nothing_left(self, contract, clock):
        clock.set(START + 600)
        assert contract.withdraw_locked(OWNER, 10_000) == 333_334
        assert contract.withdrawable_amount() == 0
        assert contract.withdraw_locked(OWNER, 10_000) == 0

    def test_fully_vested_withdrawal_is_zero(self, contract, token, clock):
        clock.set(START + DURATION)
        assert contract.withdraw_locked(OWNER, 10_000) == 0
        assert token.balance_of(TREASURY) == 0
        assert contract.get_events("ZeroWithdrawal")

    def test_truncated_share_is_zero(self, make_contract, clock):
        contract = make_contract(funding=9_999)
        assert contract.withdraw_locked(OWNER, 1) == 0
        assert contract.withdrawn() == 0

    def test_withdrawal_after_release_does_not_touch_released(self, contract, clock):
        clock.set(START + 700)
        contract.release(BENEFICIARIES[0])
        assert contract.withdraw_locked(OWNER, 10_000) == 222_223
        assert contract.released() + contract.withdrawn() == PRINCIPAL

    @pytest.mark.parametrize("basis_points", [0, -1, 10_001, 1.5, True, "100"])
    def test_invalid_basis_points(self, contract, basis_points):
        with pytest.raises(LockingValidationError):
            contract.withdraw_locked(OWNER, basis_points)
        assert contract.withdrawn() == 0

    @pytest.mark.parametrize("caller", [BENEFICIARIES[0], OUTSIDER])
    def test_non_owner_rejected(self, contract, caller):
        with pytest.raises(UnauthorizedError) as exc_info:
            contract.withdraw_locked(caller, 100)
        assert exc_info.value.required_role == "owner"

    def test_withdrawal_event(self, contract):
        contract.withdraw_locked(OWNER, 2_500)
        (event,) = contract.get_events("Withdrawal")
        assert event.values["recipient"] == TREASURY
        assert event.values["amount"] == 250_000
        assert event.values["basis_points"] == 2_500


class TestWithdrawLockedAmount:
    def test_exact_amount(self, contract, token):
        assert contract.withdraw_locked_amount(OWNER, 12_345) == 12_345
        assert token.balance_of(TREASURY) == 12_345

    def test_amount_up_to_ceiling(self, contract, clock):
        clock.set(START + 600)
        assert contract.withdraw_locked_amount(OWNER, 333_334) == 333_334

    def test_amount_above_ceiling_rejected(self, contract, token, clock):
        clock.set(START + 600)
        with pytest.raises(LockingValidationError):
            contract.withdraw_locked_amount(OWNER, 333_335)
        assert token.balance_of(TREASURY) == 0
        assert contract.withdrawn() == 0

    def test_fully_vested_rejects_any_amount(self, contract, clock):
        clock.set(START + DURATION)
        with pytest.raises(LockingValidationError):
            contract.withdraw_locked_amount(OWNER, 1)

    @pytest.mark.parametrize("amount", [0, -5, 2.0, None])
    def test_invalid_amount(self, contract, amount):
        with pytest.raises(LockingValidationError):
            contract.withdraw_locked_amount(OWNER, amount)


class TestWithdrawalWindow:
    def test_cliff_only_allows_before_cliff(self, make_contract, clock):
        contract = make_contract(config=LockingConfig(withdrawal_policy=WithdrawalPolicy.CLIFF_ONLY))
        clock.set(START + CLIFF - 1)
        assert contract.withdraw_locked(OWNER, 1_000) == 100_000

    def test_cliff_only_rejects_after_cliff(self, make_contract, clock):
        contract = make_contract(config=LockingConfig(withdrawal_policy=WithdrawalPolicy.CLIFF_ONLY))
        clock.set(START + CLIFF)
        with pytest.raises(LockingValidationError):
            contract.withdraw_locked(OWNER, 1_000)
        with pytest.raises(LockingValidationError):
            contract.withdraw_locked_amount(OWNER, 1)

    def test_anytime_allows_during_vesting(self, contract, clock):
        clock.set(START + 800)
        assert contract.withdraw_locked(OWNER, 10_000) == 111_112


class TestAdministration:
    def test_set_funding_address_redirects_withdrawals(self, contract, token):
        assert contract.set_funding_address(OWNER, OUTSIDER) is True
        contract.withdraw_locked(OWNER, 100)

        assert contract.funding_address() == OUTSIDER
        assert token.balance_of(OUTSIDER) == 10_000
        assert token.balance_of(TREASURY) == 0
        (event,) = contract.get_events("FundingAddressChanged")
        assert event.values == {"previous": TREASURY, "current": OUTSIDER}

    @pytest.mark.parametrize("funding_address", ["0x" + "0" * 40, None, ""])
    def test_zero_funding_address_rejected(self, contract, funding_address):
        with pytest.raises(LockingValidationError):
            contract.set_funding_address(OWNER, funding_address)
        assert contract.funding_address() == TREASURY

    def test_set_funding_address_owner_only(self, contract):
        with pytest.raises(UnauthorizedError):
            contract.set_funding_address(BENEFICIARIES[0], OUTSIDER)

    def test_transfer_ownership(self, contract):
        assert contract.transfer_ownership(OWNER, OUTSIDER) is True

        assert contract.owner == OUTSIDER
        assert contract.withdraw_locked(OUTSIDER, 100) == 10_000
        with pytest.raises(UnauthorizedError):
            contract.withdraw_locked(OWNER, 100)

    @pytest.mark.parametrize("new_owner", ["0x" + "0" * 40, None])
    def test_transfer_ownership_to_zero_rejected(self, contract, new_owner):
        with pytest.raises(LockingValidationError):
            contract.transfer_ownership(OWNER, new_owner)
        assert contract.owner == OWNER
        assert contract.get_events("OwnershipTransferred") == []
