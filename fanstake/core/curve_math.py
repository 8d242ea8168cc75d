"""
Fixed-point bonding-curve arithmetic.

Every function is pure and operates on plain Python ints, but enforces the
unsigned 64-bit domain of the persisted reserves: multiply-then-divide steps
use a 128-bit intermediate, and any value that leaves its domain raises
`ArithmeticOverflowError` instead of wrapping.

Quotes use the constant-product formula solved for the output leg:

    asset_out = floor(base_in  * virtual_asset / (virtual_base  + base_in))
    base_out  = floor(asset_in * virtual_base  / (virtual_asset + asset_in))

The floor is deliberate: every trade rounds in the curve's favour.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import ArithmeticOverflowError


# Integer domains
U64_MAX: int = (1 << 64) - 1
U128_MAX: int = (1 << 128) - 1
BPS_DENOM: int = 10_000

# Deployment constants for every new curve
TOKEN_DECIMALS: int = 6
TOTAL_SUPPLY: int = 1_000_000_000 * 10**TOKEN_DECIMALS  # 10**15 minor units
INITIAL_VIRTUAL_BASE_RESERVE: int = 30_000_000_000
INITIAL_VIRTUAL_ASSET_RESERVE: int = 1_073_000_000_000_000
INITIAL_REAL_BASE_RESERVE: int = 0
INITIAL_REAL_ASSET_RESERVE: int = 793_100_000_000_000

PRICE_SCALE: int = 1_000_000_000  # 1e9


def _bits_max(bits: int) -> int:
    if bits == 64:
        return U64_MAX
    if bits == 128:
        return U128_MAX
    raise ValueError(f"unsupported width: {bits}")


def _require_uint(name: str, value: int, bits: int = 64) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0 or value > _bits_max(bits):
        raise ArithmeticOverflowError(f"{name} outside u{bits}: {value}")
    return value


# -- Checked primitives -------------------------------------------------------

def checked_add(a: int, b: int, *, bits: int = 64) -> int:
    out = a + b
    if out < 0 or out > _bits_max(bits):
        raise ArithmeticOverflowError(f"add overflow: {a} + {b}")
    return out


def checked_sub(a: int, b: int, *, bits: int = 64) -> int:
    out = a - b
    if out < 0 or out > _bits_max(bits):
        raise ArithmeticOverflowError(f"sub underflow: {a} - {b}")
    return out


def checked_mul(a: int, b: int, *, bits: int = 64) -> int:
    out = a * b
    if out < 0 or out > _bits_max(bits):
        raise ArithmeticOverflowError(f"mul overflow: {a} * {b}")
    return out


def checked_div(a: int, b: int) -> int:
    if b == 0:
        raise ArithmeticOverflowError(f"division by zero: {a} / 0")
    if a < 0 or b < 0:
        raise ArithmeticOverflowError(f"negative operand in division: {a} / {b}")
    return a // b


def narrow_u64(value: int) -> int:
    """Narrow a 128-bit intermediate to u64; out-of-range is fatal."""
    if value < 0 or value > U64_MAX:
        raise ArithmeticOverflowError(f"value does not fit in u64: {value}")
    return value


# -- Quotes -------------------------------------------------------------------

def quote_buy(base_in: int, virtual_base: int, virtual_asset: int) -> int:
    """Asset units received for a fee-net `base_in`."""
    _require_uint("base_in", base_in)
    _require_uint("virtual_base", virtual_base)
    _require_uint("virtual_asset", virtual_asset)
    numerator = checked_mul(base_in, virtual_asset, bits=128)
    denominator = checked_add(virtual_base, base_in, bits=128)
    return narrow_u64(checked_div(numerator, denominator))


def quote_sell(asset_in: int, virtual_base: int, virtual_asset: int) -> int:
    """Gross base units released for `asset_in` (before the platform fee)."""
    _require_uint("asset_in", asset_in)
    _require_uint("virtual_base", virtual_base)
    _require_uint("virtual_asset", virtual_asset)
    numerator = checked_mul(asset_in, virtual_base, bits=128)
    denominator = checked_add(virtual_asset, asset_in, bits=128)
    return narrow_u64(checked_div(numerator, denominator))


def compute_fee(amount: int, fee_bps: int) -> int:
    """
    Platform fee: `floor(amount * fee_bps / 10_000)`.

    The product is checked in 64 bits, matching the persisted fee arithmetic.
    """
    _require_uint("amount", amount)
    _require_uint("fee_bps", fee_bps)
    if fee_bps > BPS_DENOM:
        raise ValueError(f"fee_bps must be in [0, {BPS_DENOM}]: {fee_bps}")
    return checked_div(checked_mul(amount, fee_bps), BPS_DENOM)


def creator_share_tokens(total_supply: int, share_bps: int) -> int:
    """Creator allocation carved out of `total_supply`."""
    _require_uint("total_supply", total_supply)
    _require_uint("share_bps", share_bps)
    product = checked_mul(total_supply, share_bps, bits=128)
    return narrow_u64(checked_div(product, BPS_DENOM))


# -- Previews -----------------------------------------------------------------

@dataclass(frozen=True)
class TradeQuote:
    """
    Full breakdown of a trade at the current curve point.

    Buy:  gross = base paid, fee taken from gross, net enters the curve,
          output = asset units issued.
    Sell: gross = base released by the curve, fee taken from gross,
          net = base paid to the seller, output = net.
    """

    gross: int
    fee: int
    net: int
    output: int


def preview_buy(base_in: int, virtual_base: int, virtual_asset: int, fee_bps: int) -> TradeQuote:
    fee = compute_fee(base_in, fee_bps)
    net = checked_sub(base_in, fee)
    asset_out = quote_buy(net, virtual_base, virtual_asset)
    return TradeQuote(gross=base_in, fee=fee, net=net, output=asset_out)


def preview_sell(asset_in: int, virtual_base: int, virtual_asset: int, fee_bps: int) -> TradeQuote:
    gross = quote_sell(asset_in, virtual_base, virtual_asset)
    fee = compute_fee(gross, fee_bps)
    net = checked_sub(gross, fee)
    return TradeQuote(gross=gross, fee=fee, net=net, output=net)


# -- Market observables --------------------------------------------------------

def spot_price_e9(virtual_base: int, virtual_asset: int) -> int:
    """
    Marginal price of one whole token, in base minor units scaled by 1e9.

    `virtual_base / virtual_asset` is base minor units per token minor unit;
    one whole token is 10**TOKEN_DECIMALS minor units.
    """
    _require_uint("virtual_base", virtual_base)
    _require_uint("virtual_asset", virtual_asset)
    numerator = virtual_base * (10**TOKEN_DECIMALS) * PRICE_SCALE
    return checked_div(numerator, virtual_asset)


def market_cap(virtual_base: int, virtual_asset: int, total_supply: int = TOTAL_SUPPLY) -> int:
    """Fully diluted valuation in base minor units at the marginal price."""
    _require_uint("total_supply", total_supply)
    _require_uint("virtual_base", virtual_base)
    _require_uint("virtual_asset", virtual_asset)
    return checked_div(total_supply * virtual_base, virtual_asset)


def curve_progress_bps(real_asset_reserve: int, initial_real_asset: int = INITIAL_REAL_ASSET_RESERVE) -> int:
    """Share of the initial public headroom already sold, in bps (0..10_000)."""
    _require_uint("real_asset_reserve", real_asset_reserve)
    if initial_real_asset <= 0:
        raise ValueError("initial_real_asset must be positive")
    sold = initial_real_asset - min(real_asset_reserve, initial_real_asset)
    return (sold * BPS_DENOM) // initial_real_asset
