# [TESTER] v1

from __future__ import annotations

import logging

import pytest

from fanstake.agents.instruction_signer import (
    create_artist_token,
    create_buy,
    create_initialize,
    create_sell,
    keygen,
    pubkey_from_secret,
    sign_instruction,
)
from fanstake.core.custody import fee_vault_address
from fanstake.core.engine import get_ledger, get_registry
from fanstake.core.types import Event, ProgramState
from fanstake.errors import ErrorCode
from fanstake.integration.config import EngineConfig
from fanstake.integration.program_engine import ProgramRuntime, apply_instruction
from fanstake.state.balances import NATIVE_ASSET


ADMIN = "0x" + "0a" * 48
CREATOR = "0x" + "0c" * 48
FAN = "0x" + "0f" * 48
ASSET = "0x" + "ab" * 32
T0 = 1_700_000_000

UNSIGNED = EngineConfig(require_signatures=False, chain_id="fanstake-test")


def _launched_runtime(config: EngineConfig = UNSIGNED) -> ProgramRuntime:
    rt = ProgramRuntime(config)
    assert rt.submit(create_initialize(ADMIN, 100, nonce=1), now=T0).ok
    assert rt.submit(create_artist_token(CREATOR, ASSET, "Artist", "ART", "ipfs://x", 1000, nonce=1), now=T0).ok
    rt.state.balances.set(FAN, NATIVE_ASSET, 10**12)
    return rt


def test_unsigned_flow_commits_state() -> None:
    rt = _launched_runtime()
    r = rt.submit(create_buy(FAN, ASSET, 1_000_000, nonce=1), now=T0 + 1)
    assert r.ok, r.error
    assert r.effect.event == Event.TOKENS_BOUGHT
    assert rt.state.balances.get(fee_vault_address(), NATIVE_ASSET) == 10_000
    assert get_ledger(rt.state, ASSET).real_base_reserve == 990_000
    assert rt.last_nonce(FAN) == 1


def test_rejection_keeps_committed_state(caplog) -> None:
    rt = _launched_runtime()
    before = rt.state
    with caplog.at_level(logging.WARNING, logger="fanstake.integration.program_engine"):
        r = rt.submit(create_sell(FAN, ASSET, 1, nonce=1), now=T0 + 1)
    assert not r.ok
    assert r.code == ErrorCode.INSUFFICIENT_FUNDS
    assert rt.state is before
    assert rt.last_nonce(FAN) is None
    assert "insufficient_funds" in caplog.text


def test_replayed_nonce_rejected() -> None:
    rt = _launched_runtime()
    assert rt.submit(create_buy(FAN, ASSET, 1_000, nonce=5), now=T0 + 1).ok
    r = rt.submit(create_buy(FAN, ASSET, 1_000, nonce=5), now=T0 + 2)
    assert not r.ok
    assert "stale nonce" in r.error
    assert rt.submit(create_buy(FAN, ASSET, 1_000, nonce=6), now=T0 + 3).ok


def test_apply_instruction_is_pure() -> None:
    state = ProgramState()
    r = apply_instruction(UNSIGNED, state, create_initialize(ADMIN, 100), now=T0)
    assert r.ok
    assert get_registry(state) is None
    assert get_registry(r.state) is not None


def test_oversized_instruction_rejected() -> None:
    config = EngineConfig(require_signatures=False, max_instruction_bytes=200)
    op = create_artist_token(CREATOR, ASSET, "Artist", "ART", "u" * 150, 0)
    r = apply_instruction(config, ProgramState(), op, now=T0)
    assert not r.ok
    assert "too large" in r.error


def test_malformed_instruction_rejected() -> None:
    op = create_initialize(ADMIN, 100)
    op["args"]["extra"] = 1
    r = apply_instruction(UNSIGNED, ProgramState(), op, now=T0)
    assert not r.ok
    assert r.error.startswith("invalid instruction")


def test_program_error_code_surfaces() -> None:
    rt = _launched_runtime()
    r = rt.submit(create_artist_token(CREATOR, ASSET, "N" * 33, "ART", "", 0, nonce=2), now=T0)
    assert r.code == ErrorCode.NAME_TOO_LONG


def test_configured_deployer_gate() -> None:
    config = EngineConfig(require_signatures=False, deployer=ADMIN)
    r = apply_instruction(config, ProgramState(), create_initialize(FAN, 100), now=T0)
    assert r.code == ErrorCode.UNAUTHORIZED
    assert apply_instruction(config, ProgramState(), create_initialize(ADMIN, 100), now=T0).ok


def test_unsigned_instruction_rejected_when_signatures_required() -> None:
    config = EngineConfig(chain_id="fanstake-test")
    r = apply_instruction(config, ProgramState(), create_initialize(ADMIN, 100), now=T0)
    assert not r.ok
    assert r.error == "missing signature"


def test_signed_instruction_roundtrip_bls_g2basic() -> None:
    pytest.importorskip("py_ecc")
    sk = keygen(b"\x01" * 32)
    admin = pubkey_from_secret(sk)
    config = EngineConfig(chain_id="fanstake-test")

    op = sign_instruction(create_initialize(admin, 100), sk, chain_id="fanstake-test")
    r = apply_instruction(config, ProgramState(), op, now=T0)
    assert r.ok, r.error
    assert get_registry(r.state).admin == admin


def test_signature_rejects_tampered_args() -> None:
    pytest.importorskip("py_ecc")
    sk = keygen(b"\x02" * 32)
    admin = pubkey_from_secret(sk)
    config = EngineConfig(chain_id="fanstake-test")

    op = sign_instruction(create_initialize(admin, 100), sk, chain_id="fanstake-test")
    op["args"] = {"fee_bps": 10_000}
    r = apply_instruction(config, ProgramState(), op, now=T0)
    assert not r.ok
    assert r.error == "invalid signature"


def test_signature_bound_to_chain_id() -> None:
    pytest.importorskip("py_ecc")
    sk = keygen(b"\x03" * 32)
    admin = pubkey_from_secret(sk)

    op = sign_instruction(create_initialize(admin, 100), sk, chain_id="other-chain")
    r = apply_instruction(EngineConfig(chain_id="fanstake-test"), ProgramState(), op, now=T0)
    assert not r.ok
    assert r.error == "invalid signature"


def test_sign_instruction_rejects_foreign_signer() -> None:
    pytest.importorskip("py_ecc")
    sk = keygen(b"\x04" * 32)
    with pytest.raises(ValueError):
        sign_instruction(create_initialize(ADMIN, 100), sk, chain_id="fanstake-test")
