"""Data types for the FanStake bonding-curve program.

All records are frozen dataclasses (immutable); an update stores a
replacement record under the same derived address.

Units/conventions:
- `*_base*` amounts are settlement-currency minor units (1e-9).
- `*_asset*` amounts and supplies are token minor units (1e-6).
- `*_bps` rates are basis points (1/10_000).
- timestamps are unix seconds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, unique
from typing import FrozenSet, Optional

from ..errors import ErrorCode
from ..state.accounts import AccountStore
from ..state.balances import Address, AssetId, BalanceTable, PubKey


MAX_NAME_LEN = 32
MAX_SYMBOL_LEN = 10
MAX_URI_LEN = 200
MAX_CREATOR_SHARE_BPS = 2000


@unique
class Instruction(Enum):
    """One member per program entry point."""
    INITIALIZE = "initialize"
    CREATE_ARTIST_TOKEN = "create_artist_token"
    CLAIM_ARTIST_SHARE = "claim_artist_share"
    UPDATE_ARTIST_TOKEN = "update_artist_token"
    BUY = "buy"
    SELL = "sell"


@unique
class Event(Enum):
    PLATFORM_INITIALIZED = "PlatformInitialized"
    ARTIST_TOKEN_CREATED = "ArtistTokenCreated"
    ARTIST_SHARE_CLAIMED = "ArtistShareClaimed"
    ARTIST_TOKEN_UPDATED = "ArtistTokenUpdated"
    TOKENS_BOUGHT = "TokensBought"
    TOKENS_SOLD = "TokensSold"


@dataclass(frozen=True)
class PlatformRegistry:
    """Singleton platform configuration."""

    admin: PubKey
    fee_bps: int
    fee_destination: Address
    creator_count: int = 0


@dataclass(frozen=True)
class ReserveLedger:
    """Price state of one creator token (the bonding curve)."""

    creator: PubKey
    asset_id: AssetId
    display_name: str
    ticker: str
    metadata_uri: str
    virtual_base_reserve: int
    virtual_asset_reserve: int
    real_base_reserve: int
    real_asset_reserve: int
    total_supply: int
    creator_share_bps: int
    is_active: bool
    created_at: int
    # Set once the creator allocation has been issued (at creation or by a claim).
    creator_share_issued: bool = False


@dataclass(frozen=True)
class VestingSchedule:
    asset_id: AssetId
    creator: PubKey
    unlock_at: int


@dataclass(frozen=True)
class ProgramState:
    """Everything an instruction can read or write."""

    accounts: AccountStore = field(default_factory=AccountStore)
    balances: BalanceTable = field(default_factory=BalanceTable)

    def copy(self) -> "ProgramState":
        return ProgramState(accounts=self.accounts.copy(), balances=self.balances.copy())


@dataclass(frozen=True)
class InstructionParams:
    """Parameters for an instruction. Unused fields default to 0/""."""

    instruction: Instruction
    fee_bps: int = 0              # initialize
    name: str = ""                # create_artist_token
    symbol: str = ""              # create_artist_token
    uri: str = ""                 # create_artist_token / update_artist_token
    creator_share_bps: int = 0    # create_artist_token
    amount_in: int = 0            # buy (base) / sell (asset)
    min_amount_out: int = 0       # buy (asset floor) / sell (base floor)


@dataclass(frozen=True)
class InstructionContext:
    """
    Who is calling, when, and against which asset.

    `signer` is the verified identity that authorised the instruction;
    `signers` defaults to just that identity.
    """

    signer: PubKey
    now: int
    asset_id: Optional[AssetId] = None
    program_id: Optional[str] = None
    deployer: Optional[PubKey] = None
    signers: FrozenSet[Address] = frozenset()

    def all_signers(self) -> FrozenSet[Address]:
        return self.signers | {self.signer}


@dataclass(frozen=True)
class Effect:
    """Observable outcome of an accepted instruction."""

    event: Event
    asset_id: Optional[AssetId] = None
    base_amount: int = 0      # base paid (buy, fee-net) or received (sell, net)
    asset_amount: int = 0     # tokens issued or burned
    fee: int = 0
    creator_tokens: int = 0   # creator allocation issued
    unlock_at: int = 0
    virtual_base_reserve: int = 0
    virtual_asset_reserve: int = 0
    real_base_reserve: int = 0
    real_asset_reserve: int = 0


@dataclass(frozen=True)
class InstructionResult:
    accepted: bool
    state: Optional[ProgramState] = None
    effect: Optional[Effect] = None
    error: Optional[ErrorCode] = None
    detail: Optional[str] = None
