"""
Token Locking Contract.

Holds a single pool of one fungible token in custody and releases it to a
set of beneficiaries on a cliff + linear vesting schedule, while letting the
owner claw back part of the still-unvested pool to a funding address.

Operations:
- release: beneficiaries pull everything vested so far, split equally
- withdraw_locked / withdraw_locked_amount: owner claws back unvested tokens
- add_beneficiary / remove_beneficiary: owner reshapes the set, after
  settling what already vested under the old divisor
- set_funding_address / transfer_ownership: owner administration

Security considerations:
- The principal is pinned when deposits are recognized; the clawback
  ceiling is ``principal - freed - withdrawn`` and never uses the custody
  balance, so repeated percentage withdrawals cannot compound
- Every mutating call runs under one lock and rolls back contract and
  ledger state together if any step fails
- Role checks run under that lock, before any state is read or written
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

from ..addresses import derive_address, is_zero_address, normalize_address
from ..config import BASIS_POINTS_DENOMINATOR, LockingConfig, WithdrawalPolicy
from ..exceptions import (
    AccountingError,
    ConstructionError,
    LockingValidationError,
    TransferFailedError,
)
from ..logging_config import contract_logger
from ..protocols import ITokenLedger
from .access import AccessGuard, Role
from .beneficiaries import BeneficiarySet
from .ledger import LedgerState
from .schedule import LockingPhase, VestingCurve, VestingParameters

logger = logging.getLogger(__name__)


@dataclass
class LockingEvent:
    """Represents an event emitted by a locking contract."""

    event_type: str
    values: dict[str, Any] = field(default_factory=dict)
    timestamp: int = 0


class LockingContract:
    """
    Cliff + linear vesting vault for one token, with bounded owner clawback.

    Args:
        token: Ledger holding the contract's custody balance
        owner: Address allowed to claw back and administer
        beneficiaries: Initial beneficiary addresses
        funding_address: Receiver of clawed-back tokens
        start_time: Vesting origin (Unix timestamp)
        locking_duration: Seconds until everything is freed
        cliff_duration: Seconds after start before anything is freed
        config: Deployment policy (withdrawal window, set bounds)
        time_provider: Returns the current Unix timestamp
        address: Custody address (derived when omitted)
    """

    def __init__(
        self,
        token: ITokenLedger,
        owner: str,
        beneficiaries: list[str],
        funding_address: str,
        start_time: int,
        locking_duration: int,
        cliff_duration: int,
        config: LockingConfig | None = None,
        time_provider: Callable[[], int] | None = None,
        address: str = "",
    ):
        if not isinstance(token, ITokenLedger):
            raise ConstructionError("Token does not implement the ledger interface")
        if is_zero_address(token.address):
            raise ConstructionError("Locked token is the zero address")
        if is_zero_address(funding_address):
            raise ConstructionError("Funding address is the zero address")

        self.config = config or LockingConfig()
        self.token = token
        self.params = VestingParameters(
            start_time=start_time,
            locking_duration=locking_duration,
            cliff_duration=cliff_duration,
        )
        self.curve = VestingCurve(self.params)
        self.beneficiary_set = BeneficiarySet(
            beneficiaries,
            min_size=self.config.min_beneficiaries,
            max_size=self.config.max_beneficiaries,
        )
        self.access = AccessGuard(owner, self.beneficiary_set)
        self.ledger = LedgerState()
        self.address = normalize_address(address or derive_address("locking", owner, token.address))
        self._funding_address = normalize_address(funding_address)
        self._time_provider = time_provider or (lambda: int(time.time()))
        self._lock = threading.RLock()
        self.events: list[LockingEvent] = []
        self.log = contract_logger(logger, self.address, token.address)

        self.log.info(
            "Locking contract deployed",
            extra={
                "event": "locking.deployed",
                "beneficiaries": len(self.beneficiary_set),
                "start": start_time,
                "duration": locking_duration,
                "cliff": cliff_duration,
                "withdrawal_policy": self.config.withdrawal_policy.value,
            }
        )

    # ==================== View Functions ====================

    @property
    def owner(self) -> str:
        return self.access.owner

    @property
    def locked_principal(self) -> int:
        """Principal pinned so far (zero until a deposit is recognized)."""
        return self.ledger.locked_principal

    def start(self) -> int:
        return self.params.start_time

    def locking_duration(self) -> int:
        return self.params.locking_duration

    def cliff_duration(self) -> int:
        return self.params.cliff_duration

    def beneficiaries(self) -> list[str]:
        return self.beneficiary_set.as_list()

    def funding_address(self) -> str:
        return self._funding_address

    def released(self) -> int:
        return self.ledger.cumulative_released

    def withdrawn(self) -> int:
        return self.ledger.cumulative_withdrawn

    def total_allocation(self) -> int:
        """
        Principal the contract is accountable for.

        Includes custody deposits not yet recognized by a mutating call, so
        projections made before the first release already see the funding.
        """
        return self.ledger.locked_principal + self._unrecognized_deposit()

    def freed_amount(self, timestamp: int | None = None) -> int:
        """Cumulative amount the curve frees at ``timestamp`` (default: now)."""
        when = self._now() if timestamp is None else timestamp
        return self.curve.freed_amount(self.total_allocation(), when)

    def releasable_amount(self, timestamp: int | None = None) -> int:
        """Amount a release at ``timestamp`` would distribute before splitting."""
        when = self._now() if timestamp is None else timestamp
        projected = self._projected_ledger()
        return projected.releasable(self.curve.freed_amount(projected.locked_principal, when))

    def withdrawable_amount(self, timestamp: int | None = None) -> int:
        """Current clawback ceiling: unvested tokens not yet withdrawn."""
        when = self._now() if timestamp is None else timestamp
        projected = self._projected_ledger()
        return projected.withdrawal_ceiling(self.curve.freed_amount(projected.locked_principal, when))

    def phase(self, timestamp: int | None = None) -> LockingPhase:
        when = self._now() if timestamp is None else timestamp
        return self.curve.phase_at(when, funded=self.total_allocation() > 0)

    def get_events(self, event_type: str | None = None) -> list[LockingEvent]:
        if event_type is None:
            return list(self.events)
        return [event for event in self.events if event.event_type == event_type]

    # ==================== Release ====================

    def release(self, caller: str) -> int:
        """
        Release everything vested so far to the current beneficiaries.

        Args:
            caller: Must be a beneficiary

        Returns:
            Total amount paid out (``share * beneficiaries``); 0 on a no-op

        Raises:
            UnauthorizedError: If caller is not a beneficiary
            TransferFailedError: If any payout fails (nothing is paid)
        """
        with self._atomic("release", Role.BENEFICIARY, caller):
            self._sync_funding()
            return self._release(self._now())

    def _release(self, now: int) -> int:
        freed = self.curve.freed_amount(self.ledger.locked_principal, now)
        owed = self.ledger.releasable(freed)
        members = self.beneficiary_set.as_list()
        share = owed // len(members)

        if share == 0:
            self._emit("ZeroReleased", now, owed=owed)
            self.log.debug(
                "Nothing to release",
                extra={"event": "locking.zero_released", "owed": owed}
            )
            return 0

        total = share * len(members)
        self.ledger.record_release(total)
        for beneficiary in members:
            self._transfer(beneficiary, share)
            self._emit("Released", now, beneficiary=beneficiary, amount=share)

        self.log.info(
            "Tokens released",
            extra={
                "event": "locking.released",
                "share": share,
                "beneficiaries": len(members),
                "total": total,
                "dust": owed - total,
                "cumulative_released": self.ledger.cumulative_released,
            }
        )
        return total

    # ==================== Withdrawal ====================

    def withdraw_locked(self, caller: str, basis_points: int) -> int:
        """
        Claw back a share of the unvested pool to the funding address.

        Args:
            caller: Must be the owner
            basis_points: Share of the current ceiling, in ``[1, 10000]``

        Returns:
            Amount withdrawn; 0 when the share truncates to nothing

        Raises:
            UnauthorizedError: If caller is not the owner
            LockingValidationError: If basis points are out of range or the
                withdrawal window is closed
            TransferFailedError: If the transfer fails
        """
        with self._atomic("withdraw_locked", Role.OWNER, caller):
            if (
                not isinstance(basis_points, int)
                or isinstance(basis_points, bool)
                or not 1 <= basis_points <= BASIS_POINTS_DENOMINATOR
            ):
                raise LockingValidationError(
                    f"Basis points must be between 1 and {BASIS_POINTS_DENOMINATOR}",
                    details={"basis_points": basis_points},
                )
            now = self._now()
            self._require_withdrawal_window(now)
            self._sync_funding()
            ceiling = self._withdrawal_ceiling(now)
            requested = ceiling * basis_points // BASIS_POINTS_DENOMINATOR
            return self._withdraw(requested, now, ceiling=ceiling, basis_points=basis_points)

    def withdraw_locked_amount(self, caller: str, amount: int) -> int:
        """
        Claw back an exact amount of unvested tokens to the funding address.

        Raises:
            LockingValidationError: If ``amount`` is outside ``[1, ceiling]``
        """
        with self._atomic("withdraw_locked_amount", Role.OWNER, caller):
            if not isinstance(amount, int) or isinstance(amount, bool) or amount < 1:
                raise LockingValidationError(
                    "Withdrawal amount must be a positive integer",
                    details={"amount": amount},
                )
            now = self._now()
            self._require_withdrawal_window(now)
            self._sync_funding()
            ceiling = self._withdrawal_ceiling(now)
            if amount > ceiling:
                raise LockingValidationError(
                    f"Withdrawal amount exceeds unvested balance ({amount} > {ceiling})",
                    details={"amount": amount, "ceiling": ceiling},
                )
            return self._withdraw(amount, now, ceiling=ceiling)

    def _withdrawal_ceiling(self, now: int) -> int:
        freed = self.curve.freed_amount(self.ledger.locked_principal, now)
        return self.ledger.withdrawal_ceiling(freed)

    def _withdraw(self, requested: int, now: int, **context: Any) -> int:
        if requested == 0:
            self._emit("ZeroWithdrawal", now, **context)
            self.log.debug(
                "Nothing to withdraw",
                extra={"event": "locking.zero_withdrawal", **context}
            )
            return 0

        self.ledger.record_withdrawal(requested)
        self._transfer(self._funding_address, requested)
        self._emit("Withdrawal", now, recipient=self._funding_address, amount=requested, **context)

        self.log.info(
            "Locked tokens withdrawn",
            extra={
                "event": "locking.withdrawal",
                "recipient": self._funding_address[:10],
                "amount": requested,
                "cumulative_withdrawn": self.ledger.cumulative_withdrawn,
                **context,
            }
        )
        return requested

    def _require_withdrawal_window(self, now: int) -> None:
        if self.config.withdrawal_policy is WithdrawalPolicy.CLIFF_ONLY and now >= self.params.cliff_end:
            raise LockingValidationError(
                "Withdrawals are only allowed before the cliff ends",
                details={"now": now, "cliff_end": self.params.cliff_end},
            )

    # ==================== Beneficiary Set ====================

    def remove_beneficiary(self, caller: str, beneficiary: str) -> int:
        """
        Remove a beneficiary after settling everything vested so far.

        Returns:
            Amount released by the settling pass
        """
        with self._atomic("remove_beneficiary", Role.OWNER, caller):
            member = self.beneficiary_set.check_can_remove(beneficiary)
            now = self._now()
            self._sync_funding()
            settled = self._release(now)
            self.beneficiary_set.remove(member)
            self._emit("BeneficiaryRemoved", now, beneficiary=member, settled=settled)

            self.log.info(
                "Beneficiary removed",
                extra={
                    "event": "locking.beneficiary_removed",
                    "beneficiary": member[:10],
                    "remaining": len(self.beneficiary_set),
                }
            )
            return settled

    def add_beneficiary(self, caller: str, beneficiary: str) -> int:
        """
        Add a beneficiary after settling everything vested so far, so the
        newcomer only shares in what vests from now on.

        Returns:
            Amount released by the settling pass
        """
        with self._atomic("add_beneficiary", Role.OWNER, caller):
            member = self.beneficiary_set.check_can_add(beneficiary)
            now = self._now()
            self._sync_funding()
            settled = self._release(now)
            self.beneficiary_set.add(member)
            self._emit("BeneficiaryAdded", now, beneficiary=member, settled=settled)

            self.log.info(
                "Beneficiary added",
                extra={
                    "event": "locking.beneficiary_added",
                    "beneficiary": member[:10],
                    "count": len(self.beneficiary_set),
                }
            )
            return settled

    # ==================== Admin Functions ====================

    def set_funding_address(self, caller: str, funding_address: str) -> bool:
        """Change the clawback receiver (owner only)."""
        with self._atomic("set_funding_address", Role.OWNER, caller):
            if not isinstance(funding_address, str) or is_zero_address(funding_address):
                raise LockingValidationError("Funding address is the zero address")
            previous = self._funding_address
            self._funding_address = normalize_address(funding_address)
            self._emit(
                "FundingAddressChanged",
                self._now(),
                previous=previous,
                current=self._funding_address,
            )
            self.log.info(
                "Funding address changed",
                extra={
                    "event": "locking.funding_address_changed",
                    "previous": previous[:10],
                    "current": self._funding_address[:10],
                }
            )
        return True

    def transfer_ownership(self, caller: str, new_owner: str) -> bool:
        """Hand the owner role to another address (owner only)."""
        with self._atomic("transfer_ownership", Role.OWNER, caller):
            previous = self.access.transfer_ownership(new_owner)
            self._emit("OwnershipTransferred", self._now(), previous=previous, current=self.access.owner)
        return True

    # ==================== Helpers ====================

    def _now(self) -> int:
        timestamp = self._time_provider()
        try:
            return int(timestamp)
        except (TypeError, ValueError) as exc:
            raise ValueError("time_provider must return an integer timestamp") from exc

    def _unrecognized_deposit(self) -> int:
        return max(0, self.token.balance_of(self.address) - self.ledger.held)

    def _projected_ledger(self) -> LedgerState:
        projected = LedgerState(**self.ledger.to_dict())
        deposit = self._unrecognized_deposit()
        if deposit:
            projected.record_funding(deposit)
        return projected

    def _sync_funding(self) -> None:
        """Pin custody deposits the ledger has not accounted for yet."""
        custody = self.token.balance_of(self.address)
        held = self.ledger.held
        if custody < held:
            self.log.error(
                "Custody balance below accounted holdings",
                extra={
                    "event": "locking.custody_shortfall",
                    "custody": custody,
                    "held": held,
                }
            )
            raise AccountingError(
                f"Custody holds {custody} but the ledger accounts for {held}",
                details={"custody": custody, "held": held},
            )
        if custody > held:
            deposit = custody - held
            self.ledger.record_funding(deposit)
            self._emit("Funded", self._now(), amount=deposit, locked_principal=self.ledger.locked_principal)
            self.log.info(
                "Funding recognized",
                extra={
                    "event": "locking.funded",
                    "amount": deposit,
                    "locked_principal": self.ledger.locked_principal,
                }
            )

    def _transfer(self, recipient: str, amount: int) -> None:
        try:
            ok = self.token.transfer(self.address, recipient, amount)
        except Exception as exc:
            raise TransferFailedError(
                f"Transfer of {amount} to {recipient[:10]} failed: {exc}",
                recipient=recipient,
                amount=amount,
            ) from exc
        if not ok:
            raise TransferFailedError(
                f"Transfer of {amount} to {recipient[:10]} was rejected",
                recipient=recipient,
                amount=amount,
            )

    def _emit(self, event_type: str, timestamp: int, **values: Any) -> None:
        self.events.append(LockingEvent(event_type=event_type, values=values, timestamp=timestamp))

    @contextmanager
    def _atomic(self, operation: str, role: Role, caller: str) -> Iterator[None]:
        """
        Serialize the operation and roll back contract and ledger on failure.

        The role check runs under the lock, against the owner and beneficiary
        set the operation will act on, and before any state is captured.
        """
        with self._lock:
            self.access.require(role, caller, operation)
            contract_state = self._snapshot()
            ledger_state = self.token.snapshot()
            try:
                yield
            except Exception as exc:
                self._restore(contract_state)
                self.token.restore(ledger_state)
                self.log.warning(
                    "Operation aborted and rolled back",
                    extra={
                        "event": "locking.rolled_back",
                        "operation": operation,
                        "error_type": type(exc).__name__,
                    }
                )
                raise

    def _snapshot(self) -> dict[str, Any]:
        return {
            "ledger": self.ledger.snapshot(),
            "beneficiaries": self.beneficiary_set.snapshot(),
            "funding_address": self._funding_address,
            "owner": self.access.owner,
            "event_count": len(self.events),
        }

    def _restore(self, snapshot: dict[str, Any]) -> None:
        self.ledger.restore(snapshot["ledger"])
        self.beneficiary_set.restore(snapshot["beneficiaries"])
        self._funding_address = snapshot["funding_address"]
        self.access.owner = snapshot["owner"]
        del self.events[snapshot["event_count"]:]

    # ==================== Serialization ====================

    def to_dict(self) -> dict[str, Any]:
        """Serialize contract state to dictionary."""
        return {
            "address": self.address,
            "owner": self.access.owner,
            "token": self.token.address,
            "start_time": self.params.start_time,
            "locking_duration": self.params.locking_duration,
            "cliff_duration": self.params.cliff_duration,
            **self.ledger.to_dict(),
            "beneficiaries": self.beneficiary_set.as_list(),
            "funding_address": self._funding_address,
            "withdrawal_policy": self.config.withdrawal_policy.value,
            "min_beneficiaries": self.config.min_beneficiaries,
            "max_beneficiaries": self.config.max_beneficiaries,
        }

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        token: ITokenLedger,
        time_provider: Callable[[], int] | None = None,
    ) -> "LockingContract":
        """Rebuild a contract from ``to_dict`` output over the given ledger."""
        if normalize_address(data["token"]) != normalize_address(token.address):
            raise ConstructionError(
                "Persisted contract belongs to a different token",
                details={"expected": data["token"], "actual": token.address},
            )
        config = LockingConfig.from_mapping(
            {
                "withdrawal_policy": data.get("withdrawal_policy", WithdrawalPolicy.ANYTIME.value),
                "min_beneficiaries": data.get("min_beneficiaries", 1),
                "max_beneficiaries": data.get("max_beneficiaries"),
            }
        )
        contract = cls(
            token=token,
            owner=data["owner"],
            beneficiaries=list(data["beneficiaries"]),
            funding_address=data["funding_address"],
            start_time=data["start_time"],
            locking_duration=data["locking_duration"],
            cliff_duration=data["cliff_duration"],
            config=config,
            time_provider=time_provider,
            address=data["address"],
        )
        contract.ledger = LedgerState.from_dict(data)
        return contract
