"""
In-memory ERC20 token ledger.

This module provides the fungible-token ledger the locking contract pays out
from. It implements the subset of EIP-20 the contract consumes plus the
administration needed to stage deployments and failure scenarios:
- Balance queries and transfers
- Minting (owner only)
- Pausing, which makes every transfer fail
- Snapshot/restore so an aborted operation leaves no partial transfers
- Events (Transfer)

Security features:
- Zero address checks
- Balance underflow prevention
- uint256 bounds on amounts
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict

from ..addresses import ZERO_ADDRESS, derive_address, is_zero_address, normalize_address
from ..exceptions import LedgerError

logger = logging.getLogger(__name__)


@dataclass
class TokenEvent:
    """Represents an ERC20 event."""

    event_type: str
    from_address: str
    to_address: str
    value: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class ERC20Token:
    """
    In-memory ERC20 token.

    Implements ``ITokenLedger`` so it can back a ``LockingContract``.
    All balances are integers in base units.
    """

    # Token metadata
    name: str
    symbol: str
    decimals: int = 18
    total_supply: int = 0

    # Contract address
    address: str = ""

    # Owner (for minting permissions)
    owner: str = ""

    # State
    balances: dict[str, int] = field(default_factory=dict)
    events: list[TokenEvent] = field(default_factory=list)

    # Supply cap (0 = unlimited)
    max_supply: int = 0

    # Pause state
    paused: bool = False

    UINT256_MAX: int = 2**256 - 1

    def __post_init__(self) -> None:
        if not self.address:
            self.address = derive_address(self.name, self.symbol)
        self.address = normalize_address(self.address)
        self.owner = normalize_address(self.owner)

    # ==================== View Functions ====================

    def balance_of(self, account: str) -> int:
        """
        Get the token balance of an account.

        Args:
            account: Address to check

        Returns:
            Token balance
        """
        return self.balances.get(normalize_address(account), 0)

    # ==================== State-Changing Functions ====================

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """
        Transfer tokens from sender to recipient.

        Args:
            sender: Address sending tokens
            recipient: Address receiving tokens
            amount: Amount to transfer

        Returns:
            True if successful

        Raises:
            LedgerError: If the transfer is rejected
        """
        self._require_not_paused()
        sender_norm = normalize_address(sender)
        recipient_norm = normalize_address(recipient)

        self._validate_address(recipient_norm, "recipient")
        self._validate_amount(amount)

        sender_balance = self.balances.get(sender_norm, 0)
        if sender_balance < amount:
            raise LedgerError(
                f"ERC20: transfer amount exceeds balance ({amount} > {sender_balance})",
                details={"sender": sender_norm, "amount": amount, "balance": sender_balance},
            )

        self.balances[sender_norm] = sender_balance - amount
        self.balances[recipient_norm] = self.balances.get(recipient_norm, 0) + amount

        self._emit_transfer(sender_norm, recipient_norm, amount)

        logger.debug(
            "ERC20 transfer",
            extra={
                "event": "erc20.transfer",
                "token": self.symbol,
                "from": sender_norm[:10],
                "to": recipient_norm[:10],
                "amount": amount,
            }
        )

        return True

    # ==================== Minting & Burning ====================

    def mint(self, minter: str, to: str, amount: int) -> bool:
        """
        Mint new tokens (owner only).

        Raises:
            LedgerError: If minting fails
        """
        self._require_not_paused()
        self._require_owner(minter)

        to_norm = normalize_address(to)
        self._validate_address(to_norm, "recipient")
        self._validate_amount(amount)

        if self.max_supply > 0 and self.total_supply + amount > self.max_supply:
            raise LedgerError(
                f"ERC20: mint would exceed max supply "
                f"({self.total_supply + amount} > {self.max_supply})"
            )

        self.total_supply += amount
        self.balances[to_norm] = self.balances.get(to_norm, 0) + amount

        self._emit_transfer(ZERO_ADDRESS, to_norm, amount)

        logger.info(
            "ERC20 mint",
            extra={
                "event": "erc20.mint",
                "token": self.symbol,
                "to": to_norm[:10],
                "amount": amount,
                "new_supply": self.total_supply,
            }
        )

        return True

    # ==================== Admin Functions ====================

    def pause(self, caller: str) -> bool:
        """Pause token transfers (owner only)."""
        self._require_owner(caller)
        self.paused = True
        return True

    def unpause(self, caller: str) -> bool:
        """Unpause token transfers (owner only)."""
        self._require_owner(caller)
        self.paused = False
        return True

    # ==================== Rollback ====================

    def snapshot(self) -> dict[str, Any]:
        """Capture balances, supply and event count."""
        return {
            "balances": dict(self.balances),
            "total_supply": self.total_supply,
            "event_count": len(self.events),
        }

    def restore(self, snapshot: dict[str, Any]) -> None:
        """Restore state captured by ``snapshot``."""
        self.balances = dict(snapshot["balances"])
        self.total_supply = snapshot["total_supply"]
        del self.events[snapshot["event_count"]:]

    # ==================== Helpers ====================

    def _validate_address(self, address: str, field_name: str) -> None:
        if is_zero_address(address):
            raise LedgerError(f"ERC20: {field_name} is zero address")

    def _validate_amount(self, amount: int) -> None:
        if not isinstance(amount, int) or isinstance(amount, bool):
            raise LedgerError("ERC20: amount must be an integer")
        if amount < 0:
            raise LedgerError("ERC20: amount cannot be negative")
        if amount > self.UINT256_MAX:
            raise LedgerError("ERC20: amount exceeds uint256")

    def _require_owner(self, caller: str) -> None:
        if normalize_address(caller) != self.owner:
            raise LedgerError("ERC20: caller is not owner")

    def _require_not_paused(self) -> None:
        if self.paused:
            raise LedgerError("ERC20: token is paused")

    def _emit_transfer(self, from_addr: str, to_addr: str, amount: int) -> None:
        self.events.append(
            TokenEvent(
                event_type="Transfer",
                from_address=from_addr,
                to_address=to_addr,
                value=amount,
            )
        )

    # ==================== Serialization ====================

    def to_dict(self) -> Dict:
        """Serialize token state to dictionary."""
        return {
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "total_supply": self.total_supply,
            "address": self.address,
            "owner": self.owner,
            "balances": dict(self.balances),
            "max_supply": self.max_supply,
            "paused": self.paused,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "ERC20Token":
        """Deserialize token state from dictionary."""
        token = cls(
            name=data["name"],
            symbol=data["symbol"],
            decimals=data.get("decimals", 18),
            total_supply=data.get("total_supply", 0),
            address=data.get("address", ""),
            owner=data.get("owner", ""),
            max_supply=data.get("max_supply", 0),
            paused=data.get("paused", False),
        )
        token.balances = dict(data.get("balances", {}))
        return token


def create_token(
    creator: str,
    name: str,
    symbol: str,
    initial_supply: int = 0,
    decimals: int = 18,
    mint_to: str | None = None,
) -> ERC20Token:
    """
    Create a token and mint its initial supply.

    Args:
        creator: Address creating the token (becomes owner)
        name: Token name
        symbol: Token symbol
        initial_supply: Initial supply to mint
        decimals: Decimal places
        mint_to: Recipient of the initial supply (defaults to creator)

    Raises:
        LedgerError: If creation fails
    """
    if not name:
        raise LedgerError("ERC20: name cannot be empty")
    if not symbol:
        raise LedgerError("ERC20: symbol cannot be empty")
    if initial_supply < 0:
        raise LedgerError("ERC20: invalid initial supply")

    token = ERC20Token(name=name, symbol=symbol, decimals=decimals, owner=creator)
    if initial_supply > 0:
        token.mint(creator, mint_to or creator, initial_supply)

    logger.info(
        "ERC20 token created",
        extra={
            "event": "erc20.created",
            "address": token.address,
            "symbol": symbol,
            "initial_supply": initial_supply,
            "creator": creator[:10],
        }
    )
    return token
