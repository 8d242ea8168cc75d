"""
Token and settlement-currency capabilities consumed by the program.

These play the role of the runtime's token program and system transfer:
the core never edits balances directly, it asks these functions to issue,
destroy or move units. Each function validates every precondition before it
touches a balance, so a failure leaves the tables unchanged.

Authority model:
- a human-owned account is debited only when its owner signed the transaction
  (`signers`),
- a program-owned account is debited only when the caller presents the
  matching derivation proof (`authority`),
- issuing new units requires the mint authority's derivation proof.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, AbstractSet, Optional

from ..errors import ArithmeticOverflowError, ErrorCode, LedgerError
from .accounts import AccountStore
from .balances import NATIVE_ASSET, Address, Amount, AssetId, BalanceTable

if TYPE_CHECKING:
    from ..core.custody import ProgramAuthority


U64_MAX = (1 << 64) - 1


@dataclass(frozen=True)
class MintAccount:
    """
    Mint record for one asset: who may issue, and how much exists.

    The record lives at its own derived address; `asset` is the balance key
    its units are held under.
    """

    authority: Address
    asset: AssetId
    supply: Amount = 0
    decimals: int = 6

    def __post_init__(self) -> None:
        if self.asset == NATIVE_ASSET:
            raise ValueError("the settlement currency has no mint")
        if not (0 <= self.supply <= U64_MAX):
            raise ValueError(f"supply outside u64: {self.supply}")
        if not (0 <= self.decimals <= 18):
            raise ValueError(f"decimals outside [0, 18]: {self.decimals}")


def _require_amount(amount: Amount) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise TypeError("amount must be an int")
    if amount < 0 or amount > U64_MAX:
        raise ArithmeticOverflowError(f"amount outside u64: {amount}")


def _require_debit(
    owner: Address,
    *,
    signers: AbstractSet[Address],
    authority: Optional["ProgramAuthority"],
) -> None:
    if authority is not None:
        if not authority.signs_for(owner):
            raise LedgerError(ErrorCode.MISSING_AUTHORITY, f"authority does not sign for {owner}")
        return
    if owner not in signers:
        raise LedgerError(ErrorCode.MISSING_AUTHORITY, f"{owner} did not sign")


def _require_balance(balances: BalanceTable, owner: Address, asset: AssetId, amount: Amount) -> None:
    have = balances.get(owner, asset)
    if have < amount:
        raise LedgerError(ErrorCode.INSUFFICIENT_FUNDS, f"{owner} holds {have}, needs {amount}")


def _credit(balances: BalanceTable, owner: Address, asset: AssetId, amount: Amount) -> None:
    if balances.get(owner, asset) + amount > U64_MAX:
        raise ArithmeticOverflowError(f"balance of {owner} would exceed u64")
    balances.add(owner, asset, amount)


# -- Fungible-unit ledger ---------------------------------------------------------

def create_mint(
    accounts: AccountStore,
    mint_address: Address,
    *,
    asset: AssetId,
    authority: Address,
    decimals: int = 6,
) -> MintAccount:
    mint = MintAccount(authority=authority, asset=asset, supply=0, decimals=decimals)
    accounts.create(mint_address, mint)
    return mint


def issue(
    accounts: AccountStore,
    balances: BalanceTable,
    mint_address: Address,
    destination: Address,
    amount: Amount,
    *,
    authority: "ProgramAuthority",
) -> None:
    """Mint `amount` new units to `destination`."""
    _require_amount(amount)
    mint = accounts.load(mint_address, MintAccount)
    if not authority.signs_for(mint.authority):
        raise LedgerError(ErrorCode.MISSING_AUTHORITY, f"not the mint authority of {mint.asset}")
    new_supply = mint.supply + amount
    if new_supply > U64_MAX:
        raise ArithmeticOverflowError(f"supply of {mint.asset} would exceed u64")
    _credit(balances, destination, mint.asset, amount)
    accounts.store(mint_address, replace(mint, supply=new_supply))


def destroy(
    accounts: AccountStore,
    balances: BalanceTable,
    mint_address: Address,
    source: Address,
    amount: Amount,
    *,
    signers: AbstractSet[Address],
) -> None:
    """Burn `amount` units held by `source`; the holder must sign."""
    _require_amount(amount)
    mint = accounts.load(mint_address, MintAccount)
    _require_debit(source, signers=signers, authority=None)
    _require_balance(balances, source, mint.asset, amount)
    if amount > mint.supply:
        raise ArithmeticOverflowError(f"burn exceeds supply of {mint.asset}")
    balances.subtract(source, mint.asset, amount)
    accounts.store(mint_address, replace(mint, supply=mint.supply - amount))


def move_tokens(
    accounts: AccountStore,
    balances: BalanceTable,
    mint_address: Address,
    source: Address,
    destination: Address,
    amount: Amount,
    *,
    signers: AbstractSet[Address],
) -> None:
    _require_amount(amount)
    mint = accounts.load(mint_address, MintAccount)
    _require_debit(source, signers=signers, authority=None)
    _require_balance(balances, source, mint.asset, amount)
    if source == destination:
        return
    balances.subtract(source, mint.asset, amount)
    _credit(balances, destination, mint.asset, amount)


# -- Settlement currency ----------------------------------------------------------

def transfer(
    balances: BalanceTable,
    source: Address,
    destination: Address,
    amount: Amount,
    *,
    signers: AbstractSet[Address] = frozenset(),
    authority: Optional["ProgramAuthority"] = None,
) -> None:
    """
    Move settlement currency between accounts.

    Program-owned sources must pass `authority`; human sources must be in
    `signers`.
    """
    _require_amount(amount)
    _require_debit(source, signers=signers, authority=authority)
    _require_balance(balances, source, NATIVE_ASSET, amount)
    if source == destination or amount == 0:
        return
    balances.subtract(source, NATIVE_ASSET, amount)
    _credit(balances, destination, NATIVE_ASSET, amount)
