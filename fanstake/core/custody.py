"""
Keyless custody: program-derived addresses and their signing capability.

A vault has no private key. Its address is a hash of stable seeds and the
program id, and the only way to move funds out of it is to present a
`ProgramAuthority` whose seeds re-derive that exact address. Code that does
not know the seeds cannot build one that verifies.

Seeds in use:

    platform_config                    -> PlatformRegistry
    fee_vault                          -> fee-collection vault
    bonding_curve || asset_id          -> ReserveLedger, and the mint authority
    curve_vault   || asset_id          -> settlement-currency escrow vault
    artist_vesting|| asset_id          -> VestingSchedule
    mint          || asset_id          -> MintAccount (units keyed by asset_id)
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Sequence, Tuple

from ..state.balances import Address, AssetId
from ..state.canonical import domain_sep_bytes, encode_bytes, hex_to_bytes_fixed


SEED_PLATFORM_CONFIG = b"platform_config"
SEED_FEE_VAULT = b"fee_vault"
SEED_BONDING_CURVE = b"bonding_curve"
SEED_CURVE_VAULT = b"curve_vault"
SEED_ARTIST_VESTING = b"artist_vesting"
SEED_MINT = b"mint"

DEFAULT_PROGRAM_ID = "0x" + hashlib.sha256(domain_sep_bytes("program_id")).hexdigest()


def _derive_address(seeds: Tuple[bytes, ...], program_id: str) -> Address:
    program_b = hex_to_bytes_fixed(program_id, nbytes=32, name="program_id")
    payload = bytearray(domain_sep_bytes("program_address"))
    payload += encode_bytes(program_b)
    for seed in seeds:
        payload += encode_bytes(seed)
    return "0x" + hashlib.sha256(bytes(payload)).hexdigest()


@dataclass(frozen=True)
class ProgramAuthority:
    """Derivation proof for one program-owned address."""

    address: Address
    seeds: Tuple[bytes, ...]
    program_id: str

    def verify(self) -> bool:
        return _derive_address(self.seeds, self.program_id) == self.address

    def signs_for(self, address: Address) -> bool:
        return self.address == address and self.verify()


def derive_program_address(seeds: Sequence[bytes], program_id: str = DEFAULT_PROGRAM_ID) -> ProgramAuthority:
    """Deterministically derive `(address, signing capability)` from seeds."""
    seeds_t = tuple(bytes(s) for s in seeds)
    if not seeds_t:
        raise ValueError("at least one seed is required")
    for s in seeds_t:
        if len(s) > 32:
            raise ValueError("seed longer than 32 bytes")
    return ProgramAuthority(
        address=_derive_address(seeds_t, program_id),
        seeds=seeds_t,
        program_id=program_id,
    )


def _asset_seed(asset_id: AssetId) -> bytes:
    return hex_to_bytes_fixed(asset_id, nbytes=32, name="asset_id")


def registry_address(program_id: str = DEFAULT_PROGRAM_ID) -> Address:
    return derive_program_address([SEED_PLATFORM_CONFIG], program_id).address


def fee_vault_address(program_id: str = DEFAULT_PROGRAM_ID) -> Address:
    return derive_program_address([SEED_FEE_VAULT], program_id).address


def ledger_authority(asset_id: AssetId, program_id: str = DEFAULT_PROGRAM_ID) -> ProgramAuthority:
    """The ReserveLedger's own address; it is also the mint authority."""
    return derive_program_address([SEED_BONDING_CURVE, _asset_seed(asset_id)], program_id)


def vault_authority(asset_id: AssetId, program_id: str = DEFAULT_PROGRAM_ID) -> ProgramAuthority:
    return derive_program_address([SEED_CURVE_VAULT, _asset_seed(asset_id)], program_id)


def vesting_address(asset_id: AssetId, program_id: str = DEFAULT_PROGRAM_ID) -> Address:
    return derive_program_address([SEED_ARTIST_VESTING, _asset_seed(asset_id)], program_id).address


def mint_address(asset_id: AssetId, program_id: str = DEFAULT_PROGRAM_ID) -> Address:
    return derive_program_address([SEED_MINT, _asset_seed(asset_id)], program_id).address
