"""
Persisted program records keyed by their derived address.

One PlatformRegistry, one ReserveLedger per asset, zero-or-one
VestingSchedule per asset, and the mint record for each asset all live here.
`create()` has init semantics: an occupied address is never overwritten.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Tuple, Type, TypeVar

from ..errors import AccountError, ErrorCode
from .balances import Address


R = TypeVar("R")


@dataclass
class AccountStore:
    """
    Mutable mapping: address -> frozen record.

    Records are immutable dataclasses; updating an account means storing a
    replacement record under the same address.
    """

    _records: Dict[Address, Any] = field(default_factory=dict)

    def exists(self, address: Address) -> bool:
        return address in self._records

    def get(self, address: Address, kind: Type[R]) -> Optional[R]:
        """Return the record at `address`, or None when the address is empty."""
        record = self._records.get(address)
        if record is None:
            return None
        if not isinstance(record, kind):
            raise AccountError(
                ErrorCode.ACCOUNT_NOT_FOUND,
                f"account {address} holds {type(record).__name__}, expected {kind.__name__}",
            )
        return record

    def load(self, address: Address, kind: Type[R]) -> R:
        record = self.get(address, kind)
        if record is None:
            raise AccountError(ErrorCode.ACCOUNT_NOT_FOUND, f"no {kind.__name__} at {address}")
        return record

    def create(self, address: Address, record: Any) -> None:
        if address in self._records:
            raise AccountError(ErrorCode.ACCOUNT_ALREADY_EXISTS, f"account {address} already in use")
        self._records[address] = record

    def store(self, address: Address, record: Any) -> None:
        existing = self._records.get(address)
        if existing is None:
            raise AccountError(ErrorCode.ACCOUNT_NOT_FOUND, f"cannot update missing account {address}")
        if type(existing) is not type(record):
            raise AccountError(
                ErrorCode.ACCOUNT_NOT_FOUND,
                f"account {address} holds {type(existing).__name__}, got {type(record).__name__}",
            )
        self._records[address] = record

    def items(self) -> Iterator[Tuple[Address, Any]]:
        return iter(list(self._records.items()))

    def copy(self) -> "AccountStore":
        # Records are frozen, so a shallow copy is an independent store.
        return AccountStore(dict(self._records))

    def __len__(self) -> int:
        return len(self._records)
