from __future__ import annotations

import json


def test_offline_demo_runs_full_cycle(tmp_path, capsys) -> None:
    from tools.fanstake_offline_demo import main

    out = tmp_path / "snapshot.json"
    assert main(["--fee-bps", "100", "--buy", "1000000", "--snapshot-out", str(out)]) == 0

    printed = capsys.readouterr().out
    assert "[offline-demo] OK" in printed
    assert "market_cap=" in printed and "progress_bps=" in printed
    assert "gave " in printed and "to a friend" in printed
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["version"] == 1
    assert any(entry["kind"] == "ledger" for entry in data["accounts"])
    # Fan and friend both sold out, so neither holds creator tokens any more.
    asset_ids = {entry["record"]["asset_id"] for entry in data["accounts"] if entry["kind"] == "ledger"}
    holders = {b["pubkey"] for b in data["balances"] if b["asset"] in asset_ids}
    assert "0x" + "0f" * 48 not in holders
    assert "0x" + "1f" * 48 not in holders


def test_offline_demo_reports_failure(capsys) -> None:
    from tools.fanstake_offline_demo import main

    assert main(["--buy", "10", "--funds", "5"]) == 1
    assert "FAIL (buy)" in capsys.readouterr().out
