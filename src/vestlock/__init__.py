"""
vestlock - Token Locking and Vesting Engine

Cliff + linear vesting of a single token pool to a set of beneficiaries, with
bounded owner clawback of the unvested remainder.

Main Components:
- core.locking: the locking contract and its accounting
- core.contracts: in-memory ERC20 ledger used for custody
- cli: schedule projection and scenario simulation
"""

__version__ = "0.1.0"
__author__ = "vestlock developers"

__all__ = []
