"""Address helpers shared by the token ledger and the locking contract."""

from __future__ import annotations

import hashlib
import time

ZERO_ADDRESS = "0x" + "0" * 40


def normalize_address(address: str) -> str:
    """Normalize address to lowercase."""
    return address.lower()


def is_zero_address(address: str | None) -> bool:
    return not address or normalize_address(address) == ZERO_ADDRESS


def derive_address(*parts: object) -> str:
    """Derive a deterministic-looking contract address from its identity."""
    addr_input = "".join(str(part) for part in parts) + str(time.time())
    addr_hash = hashlib.sha3_256(addr_input.encode()).digest()
    return f"0x{addr_hash[-20:].hex()}"
