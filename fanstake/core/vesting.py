"""
Creator vesting gate.

A VestingSchedule blocks the creator's own sell path until `unlock_at`.
Ordinary holders are never gated.
"""

from __future__ import annotations

from typing import Optional

from ..errors import ErrorCode
from ..state.balances import AssetId, PubKey
from .curve_math import checked_add
from .types import ReserveLedger, VestingSchedule


VESTING_DURATION = 90 * 24 * 60 * 60  # seconds


def new_schedule(asset_id: AssetId, creator: PubKey, now: int) -> VestingSchedule:
    return VestingSchedule(asset_id=asset_id, creator=creator, unlock_at=checked_add(now, VESTING_DURATION))


def is_unlocked(schedule: VestingSchedule, now: int) -> bool:
    return now >= schedule.unlock_at


def check_sell_gate(
    ledger: ReserveLedger,
    schedule: Optional[VestingSchedule],
    seller: PubKey,
    now: int,
) -> Optional[ErrorCode]:
    """Return the rejection code for a sell, or None when the sell may proceed."""
    if seller != ledger.creator or schedule is None:
        return None
    if not is_unlocked(schedule, now):
        return ErrorCode.TOKENS_STILL_VESTING
    return None
