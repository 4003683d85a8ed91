"""
Authoritative accounting record of a locking contract.

``LedgerState`` is the only place where the contract's totals change. The
principal is pinned when custody deposits are recognized and is never
re-derived from the live custody balance: custody already reflects earlier
releases and withdrawals, so basing a withdrawal ceiling on it would count
those outflows twice and let the owner drain more than the unvested pool.

Invariants held after every mutation:
    cumulative_released + cumulative_withdrawn <= locked_principal
    cumulative_released and cumulative_withdrawn never decrease
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..exceptions import AccountingError

logger = logging.getLogger(__name__)


@dataclass
class LedgerState:
    locked_principal: int = 0
    cumulative_released: int = 0
    cumulative_withdrawn: int = 0

    @property
    def funded(self) -> bool:
        return self.locked_principal > 0

    @property
    def held(self) -> int:
        """Tokens the pool should still have in custody."""
        return self.locked_principal - self.cumulative_released - self.cumulative_withdrawn

    # ==================== Derived amounts ====================

    def releasable(self, freed: int) -> int:
        """
        Amount owed to beneficiaries given the curve's freed amount.

        Capped by what the pool still holds once clawbacks are accounted for.
        """
        owed = freed - self.cumulative_released
        return max(0, min(owed, self.held))

    def withdrawal_ceiling(self, freed: int) -> int:
        """Unvested tokens that have not been clawed back yet."""
        unvested = self.locked_principal - freed - self.cumulative_withdrawn
        # A clock that moved backwards can put freed below released
        return max(0, min(unvested, self.held))

    # ==================== Mutations ====================

    def record_funding(self, amount: int) -> None:
        """Append a recognized custody deposit to the principal."""
        if amount <= 0:
            raise AccountingError(f"Funding amount must be positive, got {amount}")
        self.locked_principal += amount

    def record_release(self, amount: int) -> None:
        self._require_non_negative(amount, "release")
        self._require_conserved(self.cumulative_released + amount, self.cumulative_withdrawn)
        self.cumulative_released += amount

    def record_withdrawal(self, amount: int) -> None:
        self._require_non_negative(amount, "withdrawal")
        self._require_conserved(self.cumulative_released, self.cumulative_withdrawn + amount)
        self.cumulative_withdrawn += amount

    def _require_non_negative(self, amount: int, kind: str) -> None:
        if amount < 0:
            raise AccountingError(f"Negative {kind} amount {amount} would decrease a cumulative total")

    def _require_conserved(self, released: int, withdrawn: int) -> None:
        if released + withdrawn > self.locked_principal:
            logger.error(
                "Conservation violated",
                extra={
                    "event": "locking.conservation_violation",
                    "released": released,
                    "withdrawn": withdrawn,
                    "locked_principal": self.locked_principal,
                }
            )
            raise AccountingError(
                "Outflows would exceed locked principal",
                details={
                    "released": released,
                    "withdrawn": withdrawn,
                    "locked_principal": self.locked_principal,
                },
            )

    # ==================== Persistence ====================

    def snapshot(self) -> dict[str, int]:
        return self.to_dict()

    def restore(self, snapshot: dict[str, int]) -> None:
        self.locked_principal = snapshot["locked_principal"]
        self.cumulative_released = snapshot["cumulative_released"]
        self.cumulative_withdrawn = snapshot["cumulative_withdrawn"]

    def to_dict(self) -> dict[str, Any]:
        return {
            "locked_principal": self.locked_principal,
            "cumulative_released": self.cumulative_released,
            "cumulative_withdrawn": self.cumulative_withdrawn,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LedgerState":
        state = cls(
            locked_principal=int(data.get("locked_principal", 0)),
            cumulative_released=int(data.get("cumulative_released", 0)),
            cumulative_withdrawn=int(data.get("cumulative_withdrawn", 0)),
        )
        if state.held < 0 or min(state.to_dict().values()) < 0:
            raise AccountingError("Persisted ledger state violates conservation", details=state.to_dict())
        return state
