#!/usr/bin/env python3

from __future__ import annotations

import argparse
import json
import sys
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from fanstake.agents.instruction_signer import (
    create_artist_token,
    create_buy,
    create_initialize,
    create_sell,
    new_asset_id,
)
from fanstake.core.curve_math import curve_progress_bps, market_cap, spot_price_e9
from fanstake.core.custody import fee_vault_address, mint_address
from fanstake.core.engine import get_ledger
from fanstake.integration.config import EngineConfig
from fanstake.integration.program_engine import ProgramRuntime
from fanstake.integration.snapshot import snapshot_from_state
from fanstake.state.balances import NATIVE_ASSET
from fanstake.state.ledgers import move_tokens


ADMIN = "0x" + "0a" * 48
CREATOR = "0x" + "0c" * 48
FAN = "0x" + "0f" * 48
FRIEND = "0x" + "1f" * 48


def _now() -> int:
    return int(time.time())


def _print_curve(runtime: ProgramRuntime, asset_id: str, label: str) -> None:
    ledger = get_ledger(runtime.state, asset_id, runtime.config.program_id)
    assert ledger is not None
    fee_vault = runtime.state.balances.get(fee_vault_address(runtime.config.program_id), NATIVE_ASSET)
    price = spot_price_e9(ledger.virtual_base_reserve, ledger.virtual_asset_reserve)
    cap = market_cap(ledger.virtual_base_reserve, ledger.virtual_asset_reserve, ledger.total_supply)
    progress = curve_progress_bps(ledger.real_asset_reserve)
    print(
        f"[offline-demo] {label}: real_base={ledger.real_base_reserve} real_asset={ledger.real_asset_reserve} "
        f"fee_vault={fee_vault} spot_price_e9={price} market_cap={cap} progress_bps={progress}"
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run a FanStake launch/buy/sell cycle offline (unsigned).")
    parser.add_argument("--fee-bps", type=int, default=100)
    parser.add_argument("--share-bps", type=int, default=1000)
    parser.add_argument("--buy", type=int, default=1_000_000_000, help="base units the fan spends")
    parser.add_argument("--funds", type=int, default=10_000_000_000, help="base units credited to the fan")
    parser.add_argument("--snapshot-out", type=Path, default=None, help="write the final snapshot JSON here")
    args = parser.parse_args(argv)

    runtime = ProgramRuntime(EngineConfig(require_signatures=False, chain_id="fanstake-offline"))
    runtime.state.balances.set(FAN, NATIVE_ASSET, args.funds)
    asset_id = new_asset_id(CREATOR, b"demo")
    now = _now()

    steps = [
        ("initialize", create_initialize(ADMIN, args.fee_bps, nonce=1)),
        ("create", create_artist_token(CREATOR, asset_id, "Demo Artist", "DEMO", "https://example.invalid/demo.json", args.share_bps, nonce=1)),
        ("buy", create_buy(FAN, asset_id, args.buy, nonce=1)),
    ]
    for label, op in steps:
        result = runtime.submit(op, now=now)
        if not result.ok:
            print(f"[offline-demo] FAIL ({label}): {result.error}")
            return 1
        now += 1
    print(f"[offline-demo] asset_id={asset_id}")
    _print_curve(runtime, asset_id, "after buy")

    held = runtime.state.balances.get(FAN, asset_id)
    gift = held // 4
    # Holder-to-holder moves are outside the program; they go straight to the token ledger.
    move_tokens(
        runtime.state.accounts,
        runtime.state.balances,
        mint_address(asset_id, runtime.config.program_id),
        FAN,
        FRIEND,
        gift,
        signers=frozenset({FAN}),
    )
    print(f"[offline-demo] fan holds {held} tokens; gave {gift} to a friend; both sell everything")
    for label, seller in (("sell", FAN), ("friend sell", FRIEND)):
        amount = runtime.state.balances.get(seller, asset_id)
        if amount == 0:
            continue
        result = runtime.submit(create_sell(seller, asset_id, amount, nonce=2), now=now)
        if not result.ok:
            print(f"[offline-demo] FAIL ({label}): {result.error}")
            return 1
        now += 1
    _print_curve(runtime, asset_id, "after sell")

    spent = args.funds - runtime.state.balances.get(FAN, NATIVE_ASSET)
    print(f"[offline-demo] fan round-trip cost: {spent} base")

    snap = snapshot_from_state(runtime.state)
    print(f"[offline-demo] snapshot commitment={snap.commitment_hex()}")
    if args.snapshot_out is not None:
        args.snapshot_out.write_text(json.dumps(snap.data, indent=2, sort_keys=True), encoding="utf-8")
    print("[offline-demo] OK")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
