"""
vestlock - Core Protocol Interfaces

The locking contract never talks to a concrete token implementation. It
consumes the narrow ledger interface below, which lets tests, the simulator
and any real integration plug in their own ledger through structural typing.

Security Notes:
- ``transfer`` must either fully apply or leave balances untouched
- ``snapshot``/``restore`` must round-trip every balance the ledger holds
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ITokenLedger(Protocol):
    """
    Protocol for the fungible-token ledger holding custody balances.

    Thread Safety: callers serialize access; implementations need not lock.
    """

    address: str

    def balance_of(self, account: str) -> int:
        """
        Get the token balance of an account.

        Args:
            account: Address to query

        Returns:
            Balance in base units
        """
        ...

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """
        Move tokens from sender to recipient.

        Args:
            sender: Address whose balance is debited
            recipient: Address credited
            amount: Amount in base units

        Returns:
            True on success. False or an exception means the transfer failed.
        """
        ...

    def snapshot(self) -> dict[str, Any]:
        """Capture ledger state so a failed operation can be rolled back."""
        ...

    def restore(self, snapshot: dict[str, Any]) -> None:
        """Restore ledger state captured by ``snapshot``."""
        ...
