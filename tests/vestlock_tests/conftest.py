import sys
from pathlib import Path

import pytest

# Shared helpers live beside this file
sys.path.insert(0, str(Path(__file__).resolve().parent))

from vestlock.core.contracts.erc20 import create_token
from vestlock.core.locking.contract import LockingContract
from vestlock.core.locking.deployment import ManualClock, fund

from locking_helpers import BENEFICIARIES, CLIFF, DURATION, OWNER, PRINCIPAL, START, TREASURY


@pytest.fixture
def clock():
    """Manual clock starting at the vesting start."""
    return ManualClock(START)


@pytest.fixture
def token():
    """Token whose whole supply sits with the owner."""
    return create_token(OWNER, "Locked Token", "LCK", initial_supply=10**12)


@pytest.fixture
def make_contract(token, clock):
    """Factory deploying a locking contract and depositing ``funding`` into it."""

    def _make(
        beneficiaries=None,
        config=None,
        start=START,
        duration=DURATION,
        cliff=CLIFF,
        funding=PRINCIPAL,
        ledger=None,
    ):
        ledger = ledger or token
        contract = LockingContract(
            token=ledger,
            owner=OWNER,
            beneficiaries=list(BENEFICIARIES if beneficiaries is None else beneficiaries),
            funding_address=TREASURY,
            start_time=start,
            locking_duration=duration,
            cliff_duration=cliff,
            config=config,
            time_provider=clock,
        )
        if funding:
            fund(ledger, OWNER, contract, funding)
        return contract

    return _make


@pytest.fixture
def contract(make_contract):
    """Funded contract with three beneficiaries, cliff 500s, duration 900s."""
    return make_contract()
