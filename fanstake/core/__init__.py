"""
Core bonding-curve algorithms
"""

from .curve_math import (
    TradeQuote,
    compute_fee,
    creator_share_tokens,
    preview_buy,
    preview_sell,
    quote_buy,
    quote_sell,
    spot_price_e9,
)
from .custody import ProgramAuthority, derive_program_address
from .engine import execute, execute_or_raise, get_ledger, get_registry, get_vesting, quote_trade
from .types import (
    Effect,
    Event,
    Instruction,
    InstructionContext,
    InstructionParams,
    InstructionResult,
    PlatformRegistry,
    ProgramState,
    ReserveLedger,
    VestingSchedule,
)
from .vesting import VESTING_DURATION

__all__ = [
    "TradeQuote",
    "compute_fee",
    "creator_share_tokens",
    "preview_buy",
    "preview_sell",
    "quote_buy",
    "quote_sell",
    "spot_price_e9",
    "ProgramAuthority",
    "derive_program_address",
    "execute",
    "execute_or_raise",
    "get_ledger",
    "get_registry",
    "get_vesting",
    "quote_trade",
    "Effect",
    "Event",
    "Instruction",
    "InstructionContext",
    "InstructionParams",
    "InstructionResult",
    "PlatformRegistry",
    "ProgramState",
    "ReserveLedger",
    "VestingSchedule",
    "VESTING_DURATION",
]
