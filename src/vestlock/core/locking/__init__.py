"""
Token locking (cliff + linear vesting with owner clawback).

- LockingContract: release, clawback and beneficiary-set operations
- VestingCurve / VestingParameters: the pure vesting schedule
- LedgerState: pinned principal and cumulative outflows
"""

from .access import AccessGuard, Role
from .beneficiaries import BeneficiarySet
from .contract import LockingContract, LockingEvent
from .deployment import (
    DeploymentResult,
    ManualClock,
    ScenarioError,
    deploy_locking_contract,
    fund,
    run_scenario,
)
from .ledger import LedgerState
from .schedule import LockingPhase, VestingCurve, VestingParameters

__all__ = [
    "AccessGuard",
    "Role",
    "BeneficiarySet",
    "LockingContract",
    "LockingEvent",
    "LedgerState",
    "LockingPhase",
    "VestingCurve",
    "VestingParameters",
    "DeploymentResult",
    "ManualClock",
    "ScenarioError",
    "deploy_locking_contract",
    "fund",
    "run_scenario",
]
