"""
Deployment and scenario replay for locking contracts.

Builds a contract and its token ledger from a deployment manifest, funds it
the way a real deployment is funded (token owner -> treasury -> contract) and
replays a scripted list of timed calls against a manual clock. Used by the
CLI and by integration tests.

Manifest steps look like::

    - {at: 1700000500, action: release, caller: "0xb1..."}
    - {after: 3600, action: withdraw, caller: "0x0w...", basis_points: 1070}
    - {action: withdraw, caller: "0xb1...", basis_points: 100, expect_error: true}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from ..config import DeploymentManifest
from ..contracts.erc20 import ERC20Token, create_token
from ..exceptions import LockingError
from .contract import LockingContract

logger = logging.getLogger(__name__)


class ScenarioError(LockingError):
    """Raised when a scenario step is malformed or does not behave as scripted."""
    pass


class ManualClock:
    """Settable time source standing in for block timestamps."""

    def __init__(self, now: int):
        self.now = int(now)

    def __call__(self) -> int:
        return self.now

    def set(self, timestamp: int) -> None:
        if timestamp < self.now:
            raise ScenarioError(f"Clock cannot move backwards ({timestamp} < {self.now})")
        self.now = int(timestamp)

    def advance(self, seconds: int) -> None:
        self.set(self.now + int(seconds))


@dataclass
class DeploymentResult:
    contract: LockingContract
    token: ERC20Token
    clock: ManualClock
    steps: list[dict[str, Any]] = field(default_factory=list)

    def summary(self) -> dict[str, Any]:
        contract = self.contract
        return {
            "contract": contract.to_dict(),
            "phase": contract.phase().value,
            "custody_balance": self.token.balance_of(contract.address),
            "funding_balance": self.token.balance_of(contract.funding_address()),
            "beneficiary_balances": {
                b: self.token.balance_of(b) for b in contract.beneficiaries()
            },
            "withdrawable": contract.withdrawable_amount(),
            "releasable": contract.releasable_amount(),
            "now": self.clock.now,
            "events": [
                {"type": event.event_type, "timestamp": event.timestamp, **event.values}
                for event in contract.get_events()
            ],
        }


def deploy_locking_contract(
    manifest: DeploymentManifest,
    token: ERC20Token | None = None,
    clock: ManualClock | None = None,
) -> DeploymentResult:
    """
    Deploy a contract (and, when not given, its token) from a manifest.

    The token's initial supply is minted to the owner, moved to the funding
    address and from there deposited into custody, mirroring a treasury that
    holds funds before locking them.
    """
    clock = clock or ManualClock(manifest.start_time)
    if token is None:
        token_spec = manifest.token
        token = create_token(
            creator=manifest.owner,
            name=token_spec.get("name", "Locked Token"),
            symbol=token_spec.get("symbol", "LOCK"),
            decimals=int(token_spec.get("decimals", 18)),
            initial_supply=int(token_spec.get("initial_supply", manifest.funding_amount)),
        )

    contract = LockingContract(
        token=token,
        owner=manifest.owner,
        beneficiaries=manifest.beneficiaries,
        funding_address=manifest.funding_address,
        start_time=manifest.start_time,
        locking_duration=manifest.locking_duration,
        cliff_duration=manifest.cliff_duration,
        config=manifest.config,
        time_provider=clock,
    )
    result = DeploymentResult(contract=contract, token=token, clock=clock)

    if manifest.funding_amount > 0:
        token.transfer(manifest.owner, manifest.funding_address, manifest.funding_amount)
        fund(token, manifest.funding_address, contract, manifest.funding_amount)

    return result


def fund(token: ERC20Token, depositor: str, contract: LockingContract, amount: int) -> None:
    """Deposit ``amount`` into the contract's custody account."""
    token.transfer(depositor, contract.address, amount)
    logger.info(
        "Locking contract funded",
        extra={
            "event": "locking.deposit",
            "address": contract.address[:10],
            "depositor": depositor[:10],
            "amount": amount,
        }
    )


def _step_release(contract: LockingContract, step: dict[str, Any]) -> int:
    return contract.release(step["caller"])


def _step_withdraw(contract: LockingContract, step: dict[str, Any]) -> int:
    return contract.withdraw_locked(step["caller"], int(step["basis_points"]))


def _step_withdraw_amount(contract: LockingContract, step: dict[str, Any]) -> int:
    return contract.withdraw_locked_amount(step["caller"], int(step["amount"]))


def _step_remove_beneficiary(contract: LockingContract, step: dict[str, Any]) -> int:
    return contract.remove_beneficiary(step["caller"], step["address"])


def _step_add_beneficiary(contract: LockingContract, step: dict[str, Any]) -> int:
    return contract.add_beneficiary(step["caller"], step["address"])


def _step_set_funding_address(contract: LockingContract, step: dict[str, Any]) -> bool:
    return contract.set_funding_address(step["caller"], step["address"])


STEP_ACTIONS: dict[str, Callable[[LockingContract, dict[str, Any]], Any]] = {
    "release": _step_release,
    "withdraw": _step_withdraw,
    "withdraw_amount": _step_withdraw_amount,
    "remove_beneficiary": _step_remove_beneficiary,
    "add_beneficiary": _step_add_beneficiary,
    "set_funding_address": _step_set_funding_address,
}


def run_scenario(result: DeploymentResult, steps: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Replay timed steps against a deployed contract.

    Steps with ``expect_error: true`` must fail with a ``LockingError``; the
    error is recorded instead of raised.

    Returns:
        One report per step with the outcome and the ledger totals after it
    """
    reports = []
    for index, step in enumerate(steps):
        action = step.get("action")
        handler = STEP_ACTIONS.get(action)
        if handler is None:
            raise ScenarioError(
                f"Step {index}: unknown action {action!r}",
                details={"allowed": sorted(STEP_ACTIONS)},
            )
        if "caller" not in step:
            raise ScenarioError(f"Step {index}: caller is required")

        if "at" in step:
            result.clock.set(int(step["at"]))
        elif "after" in step:
            result.clock.advance(int(step["after"]))

        report: dict[str, Any] = {
            "index": index,
            "action": action,
            "timestamp": result.clock.now,
            "result": None,
            "error": None,
        }
        try:
            report["result"] = handler(result.contract, step)
        except LockingError as exc:
            if not step.get("expect_error"):
                raise
            report["error"] = f"{type(exc).__name__}: {exc.message}"
        else:
            if step.get("expect_error"):
                raise ScenarioError(
                    f"Step {index}: {action} was expected to fail but succeeded",
                    details={"step": step},
                )

        report["released"] = result.contract.released()
        report["withdrawn"] = result.contract.withdrawn()
        reports.append(report)
        logger.debug(
            "Scenario step executed",
            extra={"event": "locking.scenario_step", "index": index, "action": action}
        )

    result.steps.extend(reports)
    return reports
