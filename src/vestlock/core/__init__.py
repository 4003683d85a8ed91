"""
vestlock Core Module

Core functionality:
- Locking contract, vesting curve and ledger accounting
- Token ledger interface and in-memory ERC20 implementation
- Configuration, logging and exception hierarchy
"""

__all__ = []
