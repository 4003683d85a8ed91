"""
vestlock contract implementations.

- ERC20: in-memory fungible token ledger backing locking contracts
"""

from .erc20 import ERC20Token, TokenEvent, create_token

__all__ = [
    "ERC20Token",
    "TokenEvent",
    "create_token",
]
