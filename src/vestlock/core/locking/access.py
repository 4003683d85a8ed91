"""
Role checks for locking contracts.

Two roles exist: the owner (clawback, funding address, beneficiary set,
ownership) and beneficiaries (release). Membership is a pure predicate over
the contract's current owner and beneficiary set; every operation calls
``require`` before touching state.
"""

from __future__ import annotations

import logging
from enum import Enum

from ..addresses import is_zero_address, normalize_address
from ..exceptions import ConstructionError, LockingValidationError, UnauthorizedError
from .beneficiaries import BeneficiarySet

logger = logging.getLogger(__name__)


class Role(Enum):
    OWNER = "owner"
    BENEFICIARY = "beneficiary"


class AccessGuard:
    def __init__(self, owner: str, beneficiaries: BeneficiarySet):
        if is_zero_address(owner):
            raise ConstructionError("Owner is the zero address")
        self.owner = normalize_address(owner)
        self.beneficiaries = beneficiaries

    def has_role(self, role: Role, address: str) -> bool:
        """Check role membership without side effects."""
        if not isinstance(address, str) or not address:
            return False
        if role is Role.OWNER:
            return normalize_address(address) == self.owner
        return address in self.beneficiaries

    def require(self, role: Role, caller: str, operation: str) -> None:
        """
        Raise if ``caller`` does not hold ``role``.

        Raises:
            UnauthorizedError: Carries the missing role and the caller
        """
        if self.has_role(role, caller):
            return
        caller_norm = normalize_address(caller) if isinstance(caller, str) else ""
        logger.warning(
            "Access denied: role not assigned",
            extra={
                "event": "locking.access_denied",
                "operation": operation,
                "caller": caller_norm[:10],
                "required_role": role.value,
            }
        )
        raise UnauthorizedError(
            f"Unauthorized: {operation} requires role '{role.value}'",
            required_role=role.value,
            caller=caller_norm,
        )

    def transfer_ownership(self, new_owner: str) -> str:
        if not isinstance(new_owner, str) or is_zero_address(new_owner):
            raise LockingValidationError("New owner is the zero address")
        previous = self.owner
        self.owner = normalize_address(new_owner)
        return previous
