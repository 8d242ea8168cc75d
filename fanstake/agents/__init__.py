"""
Client helpers for building and signing FanStake instructions
"""

from .instruction_signer import (
    create_artist_token,
    create_buy,
    create_claim_artist_share,
    create_initialize,
    create_sell,
    create_update_artist_token,
    new_asset_id,
    pubkey_from_secret,
    sign_instruction,
)

__all__ = [
    "create_artist_token",
    "create_buy",
    "create_claim_artist_share",
    "create_initialize",
    "create_sell",
    "create_update_artist_token",
    "new_asset_id",
    "pubkey_from_secret",
    "sign_instruction",
]
