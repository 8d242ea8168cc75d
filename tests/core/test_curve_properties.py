"""Property tests for the bonding curve: constant product, rounding direction, round trips."""

from __future__ import annotations

import importlib.util

import pytest

if importlib.util.find_spec("hypothesis") is None:  # pragma: no cover
    pytest.skip("hypothesis not installed", allow_module_level=True)

import hypothesis.strategies as st
from hypothesis import given, settings

from fanstake.core.curve_math import (
    INITIAL_REAL_ASSET_RESERVE,
    compute_fee,
    preview_buy,
    quote_buy,
    quote_sell,
)
from fanstake.core.engine import execute, get_ledger
from fanstake.core.reserves import apply_buy, check_ledger, constant_product, new_ledger
from fanstake.core.types import Instruction, InstructionContext, InstructionParams, ProgramState
from fanstake.state.balances import NATIVE_ASSET


ASSET = "0x" + "ab" * 32

# Base amounts that keep the curve inside its public headroom.
base_amounts = st.integers(min_value=1, max_value=20_000_000_000)
fee_rates = st.integers(min_value=0, max_value=10_000)


def _fresh_ledger():
    return new_ledger(
        creator="creator",
        asset_id=ASSET,
        display_name="P",
        ticker="P",
        metadata_uri="",
        creator_share_bps=1000,
        created_at=0,
    )


def _launched(fee_bps: int) -> ProgramState:
    s = ProgramState()
    for params, signer, asset in (
        (InstructionParams(instruction=Instruction.INITIALIZE, fee_bps=fee_bps), "admin", None),
        (
            InstructionParams(
                instruction=Instruction.CREATE_ARTIST_TOKEN, name="P", symbol="P", uri="", creator_share_bps=1000
            ),
            "creator",
            ASSET,
        ),
    ):
        r = execute(s, params, InstructionContext(signer=signer, now=0, asset_id=asset))
        assert r.accepted, r.detail
        s = r.state
    return s


@given(base_in=base_amounts)
@settings(max_examples=200, deadline=None)
def test_buy_never_decreases_constant_product(base_in: int) -> None:
    ledger = _fresh_ledger()
    out = quote_buy(base_in, ledger.virtual_base_reserve, ledger.virtual_asset_reserve)
    updated = apply_buy(ledger, base_in, out)
    assert constant_product(updated) >= constant_product(ledger)
    assert check_ledger(updated) == []


@given(base_in=base_amounts)
@settings(max_examples=200, deadline=None)
def test_sell_quote_of_bought_tokens_never_exceeds_payment(base_in: int) -> None:
    ledger = _fresh_ledger()
    out = quote_buy(base_in, ledger.virtual_base_reserve, ledger.virtual_asset_reserve)
    after = apply_buy(ledger, base_in, out)
    assert quote_sell(out, after.virtual_base_reserve, after.virtual_asset_reserve) <= base_in


@given(amount=st.integers(min_value=0, max_value=10**15), fee_bps=fee_rates)
@settings(max_examples=200, deadline=None)
def test_fee_is_floor_and_bounded(amount: int, fee_bps: int) -> None:
    fee = compute_fee(amount, fee_bps)
    assert 0 <= fee <= amount
    assert fee * 10_000 <= amount * fee_bps < (fee + 1) * 10_000


@given(base_in=base_amounts, fee_bps=fee_rates)
@settings(max_examples=100, deadline=None)
def test_preview_buy_conserves_payment(base_in: int, fee_bps: int) -> None:
    q = preview_buy(base_in, 30_000_000_000, 1_073_000_000_000_000, fee_bps)
    assert q.fee + q.net == q.gross == base_in
    assert q.output <= INITIAL_REAL_ASSET_RESERVE


@given(base_in=st.integers(min_value=1, max_value=5_000_000_000))
@settings(max_examples=50, deadline=None)
def test_zero_fee_round_trip_returns_at_most_paid(base_in: int) -> None:
    s = _launched(fee_bps=0)
    s.balances.set("fan", NATIVE_ASSET, base_in)

    r = execute(s, InstructionParams(instruction=Instruction.BUY, amount_in=base_in), InstructionContext("fan", 1, ASSET))
    assert r.accepted, r.detail
    s = r.state
    held = s.balances.get("fan", ASSET)
    if held == 0:
        return

    r = execute(s, InstructionParams(instruction=Instruction.SELL, amount_in=held), InstructionContext("fan", 2, ASSET))
    assert r.accepted, r.detail
    assert r.state.balances.get("fan", NATIVE_ASSET) <= base_in
    ledger = get_ledger(r.state, ASSET)
    assert ledger.real_base_reserve >= 0
    assert ledger.real_asset_reserve <= INITIAL_REAL_ASSET_RESERVE
