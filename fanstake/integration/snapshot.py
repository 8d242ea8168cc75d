"""
Program state snapshot encoding.

Goals:
- Deterministic JSON serialization for hashing / snapshot distribution.
- Round-trippable into the functional-core `ProgramState` types.
- Explicit versioning; ledger records written before `creator_share_issued`
  existed load with the marker unset.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping

from ..core.reserves import check_ledger
from ..core.types import PlatformRegistry, ProgramState, ReserveLedger, VestingSchedule
from ..state.accounts import AccountStore
from ..state.balances import BalanceTable
from ..state.canonical import bounded_json_utf8_size, canonical_json_bytes, domain_sep_bytes, sha256_hex
from ..state.ledgers import MintAccount


PROGRAM_SNAPSHOT_VERSION = 1


def _require_str(value: Any, *, name: str, non_empty: bool = True, max_len: int = 4096) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a string")
    if non_empty and not value:
        raise ValueError(f"{name} must be non-empty")
    if max_len > 0 and len(value) > max_len:
        raise ValueError(f"{name} too large")
    return value


def _require_int(value: Any, *, name: str, non_negative: bool = True) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if non_negative and value < 0:
        raise ValueError(f"{name} must be non-negative")
    return int(value)


def _require_bool(value: Any, *, name: str) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"{name} must be a bool")
    return value


@dataclass(frozen=True)
class ProgramSnapshot:
    """
    Deterministic, versioned snapshot of `ProgramState`.

    The commitment is *not* included inside `data` to avoid self-reference.
    """

    version: int
    data: Dict[str, Any]

    def canonical_bytes(self) -> bytes:
        return canonical_json_bytes(self.data)

    def commitment_bytes(self) -> bytes:
        payload = domain_sep_bytes("program_snapshot", version=self.version) + self.canonical_bytes()
        return hashlib.sha256(payload).digest()

    def commitment_hex(self) -> str:
        payload = domain_sep_bytes("program_snapshot", version=self.version) + self.canonical_bytes()
        return sha256_hex(payload)


# -- Record encoders ---------------------------------------------------------------

def _encode_registry(r: PlatformRegistry) -> Dict[str, Any]:
    return {
        "admin": r.admin,
        "fee_bps": int(r.fee_bps),
        "fee_destination": r.fee_destination,
        "creator_count": int(r.creator_count),
    }


def _encode_ledger(l: ReserveLedger) -> Dict[str, Any]:
    return {
        "creator": l.creator,
        "asset_id": l.asset_id,
        "display_name": l.display_name,
        "ticker": l.ticker,
        "metadata_uri": l.metadata_uri,
        "virtual_base_reserve": int(l.virtual_base_reserve),
        "virtual_asset_reserve": int(l.virtual_asset_reserve),
        "real_base_reserve": int(l.real_base_reserve),
        "real_asset_reserve": int(l.real_asset_reserve),
        "total_supply": int(l.total_supply),
        "creator_share_bps": int(l.creator_share_bps),
        "is_active": bool(l.is_active),
        "created_at": int(l.created_at),
        "creator_share_issued": bool(l.creator_share_issued),
    }


def _encode_vesting(v: VestingSchedule) -> Dict[str, Any]:
    return {"asset_id": v.asset_id, "creator": v.creator, "unlock_at": int(v.unlock_at)}


def _encode_mint(m: MintAccount) -> Dict[str, Any]:
    return {"authority": m.authority, "asset": m.asset, "supply": int(m.supply), "decimals": int(m.decimals)}


_ENCODERS: Dict[type, tuple[str, Callable[[Any], Dict[str, Any]]]] = {
    PlatformRegistry: ("registry", _encode_registry),
    ReserveLedger: ("ledger", _encode_ledger),
    VestingSchedule: ("vesting", _encode_vesting),
    MintAccount: ("mint", _encode_mint),
}


# -- Record decoders ---------------------------------------------------------------

def _decode_registry(d: Mapping[str, Any], *, max_str_len: int) -> PlatformRegistry:
    return PlatformRegistry(
        admin=_require_str(d.get("admin"), name="registry.admin", max_len=max_str_len),
        fee_bps=_require_int(d.get("fee_bps"), name="registry.fee_bps"),
        fee_destination=_require_str(d.get("fee_destination"), name="registry.fee_destination", max_len=max_str_len),
        creator_count=_require_int(d.get("creator_count"), name="registry.creator_count"),
    )


def _decode_ledger(d: Mapping[str, Any], *, max_str_len: int) -> ReserveLedger:
    # Absent marker: the record predates automatic issuance, so the share is still claimable.
    issued = d.get("creator_share_issued", False)
    ledger = ReserveLedger(
        creator=_require_str(d.get("creator"), name="ledger.creator", max_len=max_str_len),
        asset_id=_require_str(d.get("asset_id"), name="ledger.asset_id", max_len=max_str_len),
        display_name=_require_str(d.get("display_name"), name="ledger.display_name", non_empty=False, max_len=max_str_len),
        ticker=_require_str(d.get("ticker"), name="ledger.ticker", non_empty=False, max_len=max_str_len),
        metadata_uri=_require_str(d.get("metadata_uri"), name="ledger.metadata_uri", non_empty=False, max_len=max_str_len),
        virtual_base_reserve=_require_int(d.get("virtual_base_reserve"), name="ledger.virtual_base_reserve"),
        virtual_asset_reserve=_require_int(d.get("virtual_asset_reserve"), name="ledger.virtual_asset_reserve"),
        real_base_reserve=_require_int(d.get("real_base_reserve"), name="ledger.real_base_reserve"),
        real_asset_reserve=_require_int(d.get("real_asset_reserve"), name="ledger.real_asset_reserve"),
        total_supply=_require_int(d.get("total_supply"), name="ledger.total_supply"),
        creator_share_bps=_require_int(d.get("creator_share_bps"), name="ledger.creator_share_bps"),
        is_active=_require_bool(d.get("is_active"), name="ledger.is_active"),
        created_at=_require_int(d.get("created_at"), name="ledger.created_at", non_negative=False),
        creator_share_issued=_require_bool(issued, name="ledger.creator_share_issued"),
    )
    violations = check_ledger(ledger)
    if violations:
        raise ValueError(f"ledger {ledger.asset_id} violates: {', '.join(violations)}")
    return ledger


def _decode_vesting(d: Mapping[str, Any], *, max_str_len: int) -> VestingSchedule:
    return VestingSchedule(
        asset_id=_require_str(d.get("asset_id"), name="vesting.asset_id", max_len=max_str_len),
        creator=_require_str(d.get("creator"), name="vesting.creator", max_len=max_str_len),
        unlock_at=_require_int(d.get("unlock_at"), name="vesting.unlock_at", non_negative=False),
    )


def _decode_mint(d: Mapping[str, Any], *, max_str_len: int) -> MintAccount:
    return MintAccount(
        authority=_require_str(d.get("authority"), name="mint.authority", max_len=max_str_len),
        asset=_require_str(d.get("asset"), name="mint.asset", max_len=max_str_len),
        supply=_require_int(d.get("supply"), name="mint.supply"),
        decimals=_require_int(d.get("decimals"), name="mint.decimals"),
    )


_DECODERS: Dict[str, Callable[..., Any]] = {
    "registry": _decode_registry,
    "ledger": _decode_ledger,
    "vesting": _decode_vesting,
    "mint": _decode_mint,
}


def snapshot_from_state(state: ProgramState, *, version: int = PROGRAM_SNAPSHOT_VERSION) -> ProgramSnapshot:
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise ValueError("version must be a positive int")

    account_entries: List[Dict[str, Any]] = []
    for address, record in state.accounts.items():
        enc = _ENCODERS.get(type(record))
        if enc is None:
            raise TypeError(f"cannot snapshot account {address}: {type(record).__name__}")
        kind, fn = enc
        account_entries.append({"address": address, "kind": kind, "record": fn(record)})
    account_entries.sort(key=lambda e: e["address"])

    balances_entries = [
        {"pubkey": pk, "asset": asset, "amount": int(amount)}
        for (pk, asset), amount in state.balances.get_all_balances().items()
        if amount != 0
    ]
    balances_entries.sort(key=lambda e: (e["pubkey"], e["asset"]))

    data: Dict[str, Any] = {
        "version": int(version),
        "accounts": account_entries,
        "balances": balances_entries,
    }
    return ProgramSnapshot(version=version, data=data)


def state_from_snapshot(
    snapshot: Mapping[str, Any],
    *,
    max_snapshot_bytes: int = 4_000_000,
    max_accounts: int = 200_000,
    max_balances: int = 200_000,
    max_str_len: int = 4096,
) -> ProgramState:
    if not isinstance(snapshot, Mapping):
        raise TypeError("snapshot must be a mapping")
    if bounded_json_utf8_size(snapshot, max_bytes=max_snapshot_bytes) > max_snapshot_bytes:
        raise ValueError("snapshot too large")

    version = _require_int(snapshot.get("version"), name="version")
    if version != PROGRAM_SNAPSHOT_VERSION:
        raise ValueError(f"unsupported snapshot version: {version}")

    raw_accounts = snapshot.get("accounts", [])
    if not isinstance(raw_accounts, list):
        raise TypeError("accounts must be a list")
    if len(raw_accounts) > max_accounts:
        raise ValueError("too many accounts")

    accounts = AccountStore()
    for i, entry in enumerate(raw_accounts):
        if not isinstance(entry, Mapping):
            raise TypeError(f"accounts[{i}] must be an object")
        address = _require_str(entry.get("address"), name=f"accounts[{i}].address", max_len=max_str_len)
        kind = _require_str(entry.get("kind"), name=f"accounts[{i}].kind", max_len=64)
        decoder = _DECODERS.get(kind)
        if decoder is None:
            raise ValueError(f"accounts[{i}].kind unknown: {kind}")
        record = entry.get("record")
        if not isinstance(record, Mapping):
            raise TypeError(f"accounts[{i}].record must be an object")
        if accounts.exists(address):
            raise ValueError(f"duplicate account address: {address}")
        accounts.create(address, decoder(record, max_str_len=max_str_len))

    raw_balances = snapshot.get("balances", [])
    if not isinstance(raw_balances, list):
        raise TypeError("balances must be a list")
    if len(raw_balances) > max_balances:
        raise ValueError("too many balances")

    balances = BalanceTable()
    seen: set[tuple[str, str]] = set()
    for i, entry in enumerate(raw_balances):
        if not isinstance(entry, Mapping):
            raise TypeError(f"balances[{i}] must be an object")
        pk = _require_str(entry.get("pubkey"), name=f"balances[{i}].pubkey", max_len=max_str_len)
        asset = _require_str(entry.get("asset"), name=f"balances[{i}].asset", max_len=max_str_len)
        amount = _require_int(entry.get("amount"), name=f"balances[{i}].amount")
        if (pk, asset) in seen:
            raise ValueError(f"duplicate balance entry: {pk}/{asset}")
        seen.add((pk, asset))
        balances.set(pk, asset, amount)

    return ProgramState(accounts=accounts, balances=balances)
