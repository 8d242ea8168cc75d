"""
Program execution adapter.

This is an imperative-shell wrapper around the functional core:
- Bounds the raw instruction size before any hashing.
- Parses the envelope and verifies its BLS signature (optional, but required
  by default).
- Rejects replayed nonces when the caller tracks them.
- Runs `core.engine.execute` against the current `ProgramState`.

`ProgramRuntime` owns the committed state and applies instructions one at a
time; a result is committed only when it was accepted.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from py_ecc.bls import G2Basic

from ..core.engine import execute
from ..core.types import Effect, InstructionContext, ProgramState
from ..errors import ErrorCode
from ..state.canonical import bounded_json_utf8_size, domain_sep_bytes, hex_to_bytes_fixed
from .config import EngineConfig
from .operations import SignedInstructionEnvelope, instruction_signing_bytes, parse_instruction


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgramTxResult:
    ok: bool
    state: Optional[ProgramState] = None
    effect: Optional[Effect] = None
    error: Optional[str] = None
    code: Optional[ErrorCode] = None
    signer: Optional[str] = None
    nonce: Optional[int] = None


def signing_message_hash(payload: bytes, *, chain_id: str) -> bytes:
    """Digest actually signed: sha256(domain_sep("fanstake_ix_sig:<chain_id>") || payload)."""
    msg = domain_sep_bytes(f"fanstake_ix_sig:{chain_id}", version=1) + payload
    return hashlib.sha256(msg).digest()


def _verify_signature(envelope: SignedInstructionEnvelope, *, chain_id: str) -> Tuple[bool, Optional[str]]:
    if envelope.signature is None:
        return False, "missing signature"
    try:
        pubkey_bytes = hex_to_bytes_fixed(envelope.signer, nbytes=48, name="signer")
        sig_bytes = hex_to_bytes_fixed(envelope.signature, nbytes=96, name="signature")
        msg_hash = signing_message_hash(instruction_signing_bytes(envelope), chain_id=chain_id)
        ok = bool(G2Basic.Verify(pubkey_bytes, msg_hash, sig_bytes))
    except (TypeError, ValueError) as exc:
        return False, f"signature verification error: {exc}"
    if not ok:
        return False, "invalid signature"
    return True, None


def _clean_error(exc: Exception, *, max_len: int = 200) -> str:
    s = str(exc).replace("\n", " ").replace("\r", " ")
    return s if len(s) <= max_len else s[:max_len] + "..."


def apply_instruction(
    config: EngineConfig,
    state: ProgramState,
    raw: Mapping[str, Any],
    *,
    now: int,
    nonces: Optional[Mapping[str, int]] = None,
) -> ProgramTxResult:
    """
    Validate and execute one raw instruction. Never mutates `state`.

    `nonces` maps signer -> last accepted nonce; when given, the instruction's
    nonce must be strictly greater.
    """
    try:
        bounded_json_utf8_size(raw, max_bytes=config.max_instruction_bytes)
    except ValueError:
        return ProgramTxResult(ok=False, error=f"instruction too large (max {config.max_instruction_bytes} bytes)")
    except TypeError as exc:
        return ProgramTxResult(ok=False, error=f"invalid instruction encoding: {_clean_error(exc)}")

    try:
        envelope = parse_instruction(raw, max_string_bytes=config.max_string_field_bytes)
    except (TypeError, ValueError) as exc:
        return ProgramTxResult(ok=False, error=f"invalid instruction: {_clean_error(exc)}")

    if config.require_signatures:
        ok, err = _verify_signature(envelope, chain_id=config.chain_id)
        if not ok:
            return ProgramTxResult(ok=False, error=err, signer=envelope.signer, nonce=envelope.nonce)

    if nonces is not None:
        last = nonces.get(envelope.signer)
        if last is not None and envelope.nonce <= last:
            return ProgramTxResult(
                ok=False,
                error=f"stale nonce: {envelope.nonce} <= {last}",
                signer=envelope.signer,
                nonce=envelope.nonce,
            )

    ctx = InstructionContext(
        signer=envelope.signer,
        now=now,
        asset_id=envelope.asset_id,
        program_id=config.program_id,
        deployer=config.deployer,
    )
    result = execute(state, envelope.params, ctx)
    if not result.accepted:
        code = result.error or ErrorCode.INVALID_PARAMETER
        return ProgramTxResult(
            ok=False,
            error=result.detail or code.value,
            code=code,
            signer=envelope.signer,
            nonce=envelope.nonce,
        )
    return ProgramTxResult(
        ok=True,
        state=result.state,
        effect=result.effect,
        signer=envelope.signer,
        nonce=envelope.nonce,
    )


class ProgramRuntime:
    """
    Committed program state plus per-signer nonces.

    `submit` serialises instruction application: each instruction sees the
    state committed by the previous one.
    """

    def __init__(self, config: EngineConfig, state: Optional[ProgramState] = None) -> None:
        self.config = config
        self._state = state if state is not None else ProgramState()
        self._nonces: Dict[str, int] = {}
        self._lock = threading.Lock()

    @property
    def state(self) -> ProgramState:
        return self._state

    def last_nonce(self, signer: str) -> Optional[int]:
        return self._nonces.get(signer)

    def submit(self, raw: Mapping[str, Any], *, now: int) -> ProgramTxResult:
        with self._lock:
            result = apply_instruction(self.config, self._state, raw, now=now, nonces=self._nonces)
            if not result.ok:
                logger.warning(
                    "instruction rejected: %s (signer=%s)",
                    result.code.value if result.code else result.error,
                    result.signer,
                )
                return result
            assert result.state is not None
            self._state = result.state
            if result.signer is not None and result.nonce is not None:
                self._nonces[result.signer] = result.nonce
            logger.info("instruction committed: %s", result.effect.event.value if result.effect else "?")
            return result
