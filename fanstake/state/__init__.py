"""
State management for the FanStake program
"""

from .accounts import AccountStore
from .balances import NATIVE_ASSET, BalanceTable
from .ledgers import MintAccount

__all__ = [
    "AccountStore",
    "BalanceTable",
    "MintAccount",
    "NATIVE_ASSET",
]
