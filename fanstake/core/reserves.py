"""Reserve ledger construction, trade updates and invariants.

Updates evaluate against the PRE-state and are applied simultaneously via
`dataclasses.replace()`; every expression is checked in u64. The four reserve
fields are touched only by `apply_buy` / `apply_sell`.

`check_ledger()` returns the list of violated invariant ids (empty = all pass).
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable

from ..errors import InvariantViolationError
from ..state.balances import AssetId, PubKey
from .curve_math import (
    INITIAL_REAL_ASSET_RESERVE,
    INITIAL_REAL_BASE_RESERVE,
    INITIAL_VIRTUAL_ASSET_RESERVE,
    INITIAL_VIRTUAL_BASE_RESERVE,
    TOTAL_SUPPLY,
    U64_MAX,
    checked_add,
    checked_sub,
    creator_share_tokens,
)
from .types import MAX_CREATOR_SHARE_BPS, MAX_NAME_LEN, MAX_SYMBOL_LEN, MAX_URI_LEN, ReserveLedger


# Virtual and real legs move by identical deltas, so their gaps never change.
BASE_RESERVE_OFFSET = INITIAL_VIRTUAL_BASE_RESERVE - INITIAL_REAL_BASE_RESERVE
ASSET_RESERVE_OFFSET = INITIAL_VIRTUAL_ASSET_RESERVE - INITIAL_REAL_ASSET_RESERVE


def new_ledger(
    *,
    creator: PubKey,
    asset_id: AssetId,
    display_name: str,
    ticker: str,
    metadata_uri: str,
    creator_share_bps: int,
    created_at: int,
) -> ReserveLedger:
    return ReserveLedger(
        creator=creator,
        asset_id=asset_id,
        display_name=display_name,
        ticker=ticker,
        metadata_uri=metadata_uri,
        virtual_base_reserve=INITIAL_VIRTUAL_BASE_RESERVE,
        virtual_asset_reserve=INITIAL_VIRTUAL_ASSET_RESERVE,
        real_base_reserve=INITIAL_REAL_BASE_RESERVE,
        real_asset_reserve=INITIAL_REAL_ASSET_RESERVE,
        total_supply=TOTAL_SUPPLY,
        creator_share_bps=creator_share_bps,
        is_active=True,
        created_at=created_at,
        creator_share_issued=False,
    )


def constant_product(ledger: ReserveLedger) -> int:
    return ledger.virtual_base_reserve * ledger.virtual_asset_reserve


def apply_buy(ledger: ReserveLedger, net_base_in: int, asset_out: int) -> ReserveLedger:
    """Fee-net base enters the curve; `asset_out` leaves it."""
    updated = replace(
        ledger,
        virtual_base_reserve=checked_add(ledger.virtual_base_reserve, net_base_in),
        virtual_asset_reserve=checked_sub(ledger.virtual_asset_reserve, asset_out),
        real_base_reserve=checked_add(ledger.real_base_reserve, net_base_in),
        real_asset_reserve=checked_sub(ledger.real_asset_reserve, asset_out),
    )
    if constant_product(updated) < constant_product(ledger):
        raise InvariantViolationError(["constant_product_non_decreasing"])
    return updated


def apply_sell(ledger: ReserveLedger, asset_in: int, gross_base_out: int) -> ReserveLedger:
    """`asset_in` returns to the curve; gross base (fee included) leaves it."""
    updated = replace(
        ledger,
        virtual_base_reserve=checked_sub(ledger.virtual_base_reserve, gross_base_out),
        virtual_asset_reserve=checked_add(ledger.virtual_asset_reserve, asset_in),
        real_base_reserve=checked_sub(ledger.real_base_reserve, gross_base_out),
        real_asset_reserve=checked_add(ledger.real_asset_reserve, asset_in),
    )
    if constant_product(updated) < constant_product(ledger):
        raise InvariantViolationError(["constant_product_non_decreasing"])
    return updated


# -- Invariants -------------------------------------------------------------------

def _utf8_len(s: str) -> int:
    return len(s.encode("utf-8"))


def inv_reserves_in_u64(s: ReserveLedger) -> bool:
    return all(
        0 <= v <= U64_MAX
        for v in (
            s.virtual_base_reserve,
            s.virtual_asset_reserve,
            s.real_base_reserve,
            s.real_asset_reserve,
            s.total_supply,
        )
    )


def inv_creator_share_capped(s: ReserveLedger) -> bool:
    return 0 <= s.creator_share_bps <= MAX_CREATOR_SHARE_BPS


def inv_creator_allocation_carved_out(s: ReserveLedger) -> bool:
    # Undefined outside the domains the other invariants check.
    if not (inv_reserves_in_u64(s) and inv_creator_share_capped(s)):
        return False
    return s.real_asset_reserve <= s.total_supply - creator_share_tokens(s.total_supply, s.creator_share_bps)


def inv_base_offset_fixed(s: ReserveLedger) -> bool:
    return s.virtual_base_reserve - s.real_base_reserve == BASE_RESERVE_OFFSET


def inv_asset_offset_fixed(s: ReserveLedger) -> bool:
    return s.virtual_asset_reserve - s.real_asset_reserve == ASSET_RESERVE_OFFSET


def inv_metadata_bounded(s: ReserveLedger) -> bool:
    return (
        _utf8_len(s.display_name) <= MAX_NAME_LEN
        and _utf8_len(s.ticker) <= MAX_SYMBOL_LEN
        and _utf8_len(s.metadata_uri) <= MAX_URI_LEN
    )


INVARIANTS: dict[str, Callable[[ReserveLedger], bool]] = {
    "reserves_in_u64": inv_reserves_in_u64,
    "creator_share_capped": inv_creator_share_capped,
    "creator_allocation_carved_out": inv_creator_allocation_carved_out,
    "base_offset_fixed": inv_base_offset_fixed,
    "asset_offset_fixed": inv_asset_offset_fixed,
    "metadata_bounded": inv_metadata_bounded,
}


def check_ledger(ledger: ReserveLedger) -> list[str]:
    """Return the ids of every violated invariant."""
    return [name for name, fn in INVARIANTS.items() if not fn(ledger)]
