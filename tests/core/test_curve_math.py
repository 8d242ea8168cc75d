# [TESTER] v1

from __future__ import annotations

import pytest

from fanstake.core.curve_math import (
    INITIAL_REAL_ASSET_RESERVE,
    INITIAL_VIRTUAL_ASSET_RESERVE,
    INITIAL_VIRTUAL_BASE_RESERVE,
    TOTAL_SUPPLY,
    U64_MAX,
    TradeQuote,
    checked_add,
    checked_div,
    checked_mul,
    checked_sub,
    compute_fee,
    creator_share_tokens,
    curve_progress_bps,
    market_cap,
    narrow_u64,
    preview_buy,
    preview_sell,
    quote_buy,
    quote_sell,
    spot_price_e9,
)
from fanstake.errors import ArithmeticOverflowError, ErrorCode

VB = INITIAL_VIRTUAL_BASE_RESERVE
VA = INITIAL_VIRTUAL_ASSET_RESERVE


def test_quote_buy_known_value() -> None:
    # floor(1e9 * 1.073e15 / 3.1e10)
    assert quote_buy(1_000_000_000, VB, VA) == 34_612_903_225_806


def test_quote_sell_known_value() -> None:
    # floor(1e12 * 3e10 / 1.074e15)
    assert quote_sell(1_000_000_000_000, VB, VA) == 27_932_960


def test_quote_zero_input_is_zero() -> None:
    assert quote_buy(0, VB, VA) == 0
    assert quote_sell(0, VB, VA) == 0


def test_quotes_are_deterministic() -> None:
    assert quote_buy(123_456_789, VB, VA) == quote_buy(123_456_789, VB, VA)
    assert quote_sell(987_654_321, VB, VA) == quote_sell(987_654_321, VB, VA)


def test_quote_buy_never_exceeds_virtual_asset() -> None:
    assert quote_buy(U64_MAX, VB, VA) < VA


@pytest.mark.parametrize("bad", [-1, U64_MAX + 1])
def test_quotes_reject_out_of_domain_inputs(bad: int) -> None:
    with pytest.raises(ArithmeticOverflowError):
        quote_buy(bad, VB, VA)
    with pytest.raises(ArithmeticOverflowError):
        quote_sell(bad, VB, VA)
    with pytest.raises(ArithmeticOverflowError):
        quote_buy(1, bad, VA)


def test_quotes_reject_non_int() -> None:
    with pytest.raises(TypeError):
        quote_buy(True, VB, VA)  # type: ignore[arg-type]
    with pytest.raises(TypeError):
        quote_sell(1.5, VB, VA)  # type: ignore[arg-type]


def test_quote_zero_denominator_is_overflow() -> None:
    with pytest.raises(ArithmeticOverflowError) as exc_info:
        quote_buy(0, 0, VA)
    assert exc_info.value.code == ErrorCode.ARITHMETIC_OVERFLOW


def test_fee_one_percent() -> None:
    assert compute_fee(1_000_000, 100) == 10_000


def test_fee_floors() -> None:
    assert compute_fee(999, 100) == 9
    assert compute_fee(99, 100) == 0


def test_fee_bounds() -> None:
    assert compute_fee(12_345, 0) == 0
    assert compute_fee(12_345, 10_000) == 12_345
    with pytest.raises(ValueError):
        compute_fee(12_345, 10_001)


def test_fee_product_checked_in_u64() -> None:
    with pytest.raises(ArithmeticOverflowError):
        compute_fee(U64_MAX, 2)


def test_creator_share_tokens() -> None:
    assert creator_share_tokens(TOTAL_SUPPLY, 2000) == 2 * 10**14
    assert creator_share_tokens(TOTAL_SUPPLY, 1) == 10**11
    assert creator_share_tokens(TOTAL_SUPPLY, 0) == 0


def test_preview_buy_breakdown() -> None:
    q = preview_buy(1_000_000, VB, VA, 100)
    assert q == TradeQuote(gross=1_000_000, fee=10_000, net=990_000, output=quote_buy(990_000, VB, VA))


def test_preview_sell_breakdown() -> None:
    q = preview_sell(10**12, VB, VA, 100)
    assert q.gross == 27_932_960
    assert q.fee == 279_329
    assert q.net == q.gross - q.fee
    assert q.output == q.net


def test_checked_primitives() -> None:
    assert checked_add(U64_MAX - 1, 1) == U64_MAX
    assert checked_sub(5, 5) == 0
    assert checked_mul(U64_MAX, 2, bits=128) == 2 * U64_MAX
    assert checked_div(7, 2) == 3
    with pytest.raises(ArithmeticOverflowError):
        checked_add(U64_MAX, 1)
    with pytest.raises(ArithmeticOverflowError):
        checked_sub(0, 1)
    with pytest.raises(ArithmeticOverflowError):
        checked_mul(U64_MAX, 2)
    with pytest.raises(ArithmeticOverflowError):
        checked_div(1, 0)
    with pytest.raises(ArithmeticOverflowError):
        narrow_u64(U64_MAX + 1)
    with pytest.raises(ValueError):
        checked_add(1, 1, bits=32)


def test_spot_price_and_market_cap_at_launch() -> None:
    # 3e10 * 1e6 * 1e9 / 1.073e15
    assert spot_price_e9(VB, VA) == 27_958_993_476
    assert market_cap(VB, VA) == 27_958_993_476


def test_curve_progress() -> None:
    assert curve_progress_bps(INITIAL_REAL_ASSET_RESERVE) == 0
    assert curve_progress_bps(0) == 10_000
    assert curve_progress_bps(INITIAL_REAL_ASSET_RESERVE // 2) == 5_000
