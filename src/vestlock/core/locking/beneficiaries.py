"""Ordered set of beneficiary addresses sharing each release equally."""

from __future__ import annotations

from typing import Iterable, Iterator

from ..addresses import is_zero_address, normalize_address
from ..exceptions import ConstructionError, LockingValidationError


class BeneficiarySet:
    """
    Distinct, non-zero beneficiary addresses in insertion order.

    Cardinality stays within ``[min_size, max_size]``; ``max_size`` of None
    means no cap.
    """

    def __init__(
        self,
        addresses: Iterable[str],
        min_size: int = 1,
        max_size: int | None = None,
    ):
        self.min_size = max(1, min_size)
        self.max_size = max_size
        self._members: list[str] = []

        for address in addresses:
            if is_zero_address(address):
                raise ConstructionError("Beneficiary is the zero address")
            address_norm = normalize_address(address)
            if address_norm in self._members:
                raise ConstructionError(
                    f"Duplicate beneficiary {address_norm[:10]}",
                    details={"beneficiary": address_norm},
                )
            self._members.append(address_norm)

        if not self._members:
            raise ConstructionError("Beneficiary set cannot be empty")
        if len(self._members) < self.min_size or (
            self.max_size is not None and len(self._members) > self.max_size
        ):
            raise ConstructionError(
                f"Beneficiary count {len(self._members)} outside allowed bounds "
                f"[{self.min_size}, {self.max_size if self.max_size is not None else 'unbounded'}]",
                details={"count": len(self._members), "min": self.min_size, "max": self.max_size},
            )

    def __len__(self) -> int:
        return len(self._members)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._members))

    def __contains__(self, address: object) -> bool:
        return isinstance(address, str) and normalize_address(address) in self._members

    def as_list(self) -> list[str]:
        return list(self._members)

    def check_can_add(self, address: str) -> str:
        """Validate ``address`` as a new member and return its normalized form."""
        if not isinstance(address, str) or is_zero_address(address):
            raise LockingValidationError("Cannot add the zero address as a beneficiary")
        address_norm = normalize_address(address)
        if address_norm in self._members:
            raise LockingValidationError(
                f"{address_norm[:10]} is already a beneficiary",
                details={"beneficiary": address_norm},
            )
        if self.max_size is not None and len(self._members) >= self.max_size:
            raise LockingValidationError(
                f"Beneficiary set is full ({self.max_size})",
                details={"max": self.max_size},
            )
        return address_norm

    def check_can_remove(self, address: str) -> str:
        """Validate removal of ``address`` and return its normalized form."""
        if not isinstance(address, str) or is_zero_address(address):
            raise LockingValidationError(
                "Beneficiary to remove must be a non-zero address",
                details={"beneficiary": address},
            )
        address_norm = normalize_address(address)
        if address_norm not in self._members:
            raise LockingValidationError(
                f"{address_norm[:10]} is not a beneficiary",
                details={"beneficiary": address_norm},
            )
        if len(self._members) - 1 < self.min_size:
            raise LockingValidationError(
                f"Removing {address_norm[:10]} would leave fewer than {self.min_size} beneficiaries",
                details={"min": self.min_size},
            )
        return address_norm

    def add(self, address: str) -> None:
        self._members.append(self.check_can_add(address))

    def remove(self, address: str) -> None:
        self._members.remove(self.check_can_remove(address))

    def snapshot(self) -> list[str]:
        return list(self._members)

    def restore(self, members: list[str]) -> None:
        self._members = list(members)
