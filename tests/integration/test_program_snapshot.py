# [TESTER] v1

from __future__ import annotations

import pytest

from fanstake.core.engine import execute, get_ledger
from fanstake.core.types import Instruction, InstructionContext, InstructionParams, ProgramState
from fanstake.integration.snapshot import snapshot_from_state, state_from_snapshot
from fanstake.state.balances import NATIVE_ASSET

ASSET = "0x" + "ab" * 32


def _state() -> ProgramState:
    s = ProgramState()
    steps = [
        (InstructionParams(instruction=Instruction.INITIALIZE, fee_bps=100), "admin", None),
        (
            InstructionParams(
                instruction=Instruction.CREATE_ARTIST_TOKEN,
                name="Artist",
                symbol="ART",
                uri="ipfs://x",
                creator_share_bps=1000,
            ),
            "creator",
            ASSET,
        ),
    ]
    for params, signer, asset in steps:
        r = execute(s, params, InstructionContext(signer=signer, now=10, asset_id=asset))
        assert r.accepted, r.detail
        s = r.state
    s.balances.set("fan", NATIVE_ASSET, 10**9)
    r = execute(s, InstructionParams(instruction=Instruction.BUY, amount_in=10**8), InstructionContext("fan", 11, ASSET))
    assert r.accepted, r.detail
    return r.state


def test_snapshot_roundtrip_is_deterministic() -> None:
    snap1 = snapshot_from_state(_state())
    state2 = state_from_snapshot(snap1.data)
    snap2 = snapshot_from_state(state2)

    assert snap1.canonical_bytes() == snap2.canonical_bytes()
    assert snap1.commitment_hex() == snap2.commitment_hex()
    assert get_ledger(state2, ASSET) == get_ledger(_state(), ASSET)
    assert state2.balances == _state().balances


def test_roundtripped_state_keeps_trading() -> None:
    state = state_from_snapshot(snapshot_from_state(_state()).data)
    r = execute(state, InstructionParams(instruction=Instruction.BUY, amount_in=10**6), InstructionContext("fan", 12, ASSET))
    assert r.accepted, r.detail


def test_commitment_changes_with_state() -> None:
    s = _state()
    before = snapshot_from_state(s).commitment_hex()
    s.balances.add("fan", NATIVE_ASSET, 1)
    assert snapshot_from_state(s).commitment_hex() != before


def test_legacy_ledger_without_marker_loads_unclaimed() -> None:
    data = snapshot_from_state(_state()).data
    for entry in data["accounts"]:
        if entry["kind"] == "ledger":
            del entry["record"]["creator_share_issued"]
    state = state_from_snapshot(data)
    assert get_ledger(state, ASSET).creator_share_issued is False


def test_unknown_record_kind_rejected() -> None:
    data = snapshot_from_state(_state()).data
    data["accounts"][0]["kind"] = "pool"
    with pytest.raises(ValueError, match="kind unknown"):
        state_from_snapshot(data)


def test_duplicate_balance_rejected() -> None:
    data = snapshot_from_state(_state()).data
    data["balances"].append(dict(data["balances"][0]))
    with pytest.raises(ValueError, match="duplicate"):
        state_from_snapshot(data)


def test_version_checked() -> None:
    data = dict(snapshot_from_state(_state()).data, version=2)
    with pytest.raises(ValueError, match="version"):
        state_from_snapshot(data)


def test_oversized_snapshot_rejected() -> None:
    with pytest.raises(ValueError):
        state_from_snapshot(snapshot_from_state(_state()).data, max_snapshot_bytes=100)


@pytest.mark.parametrize(
    "field,value,violation",
    [
        ("creator_share_bps", 9000, "creator_share_capped"),
        ("real_asset_reserve", 2**64, "reserves_in_u64"),
        ("real_base_reserve", 1, "base_offset_fixed"),
    ],
)
def test_ledger_violating_invariants_rejected(field, value, violation) -> None:
    data = snapshot_from_state(_state()).data
    for entry in data["accounts"]:
        if entry["kind"] == "ledger":
            entry["record"][field] = value
    with pytest.raises(ValueError, match=violation):
        state_from_snapshot(data)


def test_mint_for_settlement_currency_rejected() -> None:
    data = snapshot_from_state(_state()).data
    for entry in data["accounts"]:
        if entry["kind"] == "mint":
            entry["record"]["asset"] = NATIVE_ASSET
    with pytest.raises(ValueError, match="settlement currency"):
        state_from_snapshot(data)
