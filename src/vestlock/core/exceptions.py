"""
Exception hierarchy for vestlock.

Provides typed exceptions for locking-contract and token-ledger operations so
callers can tell construction failures, authorization failures, validation
failures and transfer failures apart without parsing messages.
"""

from __future__ import annotations
from typing import Optional, Any, Dict


class LockingError(Exception):
    """Base exception for all vestlock errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether the caller may retry the operation
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable


# ==================== Construction Errors ====================


class ConstructionError(LockingError):
    """Raised when a contract cannot be deployed with the given parameters.

    Examples: empty beneficiary set, zero-address beneficiary or funding
    address, cliff longer than the locking duration.
    """
    pass


# ==================== Authorization Errors ====================


class UnauthorizedError(LockingError):
    """Raised when the caller lacks the role an operation requires."""

    def __init__(
        self,
        message: str,
        required_role: str,
        caller: str = "",
    ) -> None:
        super().__init__(
            message,
            details={"required_role": required_role, "caller": caller},
            recoverable=True,
        )
        self.required_role = required_role
        self.caller = caller


# ==================== Validation Errors ====================


class LockingValidationError(LockingError):
    """Raised when an operation's arguments or timing are rejected."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, details=details, recoverable=True)


# ==================== Ledger Errors ====================


class LedgerError(LockingError):
    """Raised by the token ledger when a balance operation is invalid."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, details=details, recoverable=True)


class TransferFailedError(LockingError):
    """Raised when an outbound transfer fails and the enclosing operation aborts."""

    def __init__(
        self,
        message: str,
        recipient: str = "",
        amount: int = 0,
    ) -> None:
        super().__init__(
            message,
            details={"recipient": recipient, "amount": amount},
            recoverable=True,
        )
        self.recipient = recipient
        self.amount = amount


class AccountingError(LockingError):
    """Raised when custody holds fewer tokens than the ledger accounts for."""
    pass
