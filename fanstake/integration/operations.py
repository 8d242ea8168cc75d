"""
Instruction envelopes.

An instruction travels as a JSON object:

    {
      "program": "fanstake",
      "version": 1,
      "instruction": "buy",
      "signer": "0x<48-byte BLS pubkey>",
      "asset_id": "0x<32 bytes>" | null,
      "nonce": 7,
      "args": {"base_in": 1000000, "min_asset_out": 0},
      "signature": "0x<96-byte BLS signature>"      (optional)
    }

`parse_instruction` validates the shape and produces `InstructionParams`;
`create_instruction_operation` is its inverse.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..core.types import Instruction, InstructionParams
from ..state.balances import NATIVE_ASSET
from ..state.canonical import canonical_hex_fixed_allow_0x, canonical_json_bytes


PROGRAM_NAME = "fanstake"
ENVELOPE_VERSION = 1

_ENVELOPE_KEYS = frozenset(
    {"program", "version", "instruction", "signer", "asset_id", "nonce", "args", "signature"}
)

# args key -> InstructionParams field, per instruction.
_ARG_FIELDS: Dict[Instruction, Dict[str, str]] = {
    Instruction.INITIALIZE: {"fee_bps": "fee_bps"},
    Instruction.CREATE_ARTIST_TOKEN: {
        "name": "name",
        "symbol": "symbol",
        "uri": "uri",
        "creator_share_bps": "creator_share_bps",
    },
    Instruction.CLAIM_ARTIST_SHARE: {},
    Instruction.UPDATE_ARTIST_TOKEN: {"new_uri": "uri"},
    Instruction.BUY: {"base_in": "amount_in", "min_asset_out": "min_amount_out"},
    Instruction.SELL: {"asset_in": "amount_in", "min_base_out": "min_amount_out"},
}

_STR_FIELDS = frozenset({"name", "symbol", "uri"})

_NEEDS_ASSET = frozenset(
    {
        Instruction.CREATE_ARTIST_TOKEN,
        Instruction.CLAIM_ARTIST_SHARE,
        Instruction.UPDATE_ARTIST_TOKEN,
        Instruction.BUY,
        Instruction.SELL,
    }
)


def _require_str(value: Any, *, name: str, non_empty: bool = True, max_len: int = 4096) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string")
    if non_empty and not value:
        raise ValueError(f"{name} must be non-empty")
    if max_len > 0 and len(value.encode("utf-8")) > max_len:
        raise ValueError(f"{name} too large")
    return value


def _require_int(value: Any, *, name: str, non_negative: bool = False) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{name} must be an int")
    if non_negative and value < 0:
        raise ValueError(f"{name} must be non-negative")
    return int(value)


def _require_dict_str_keys(value: Any, *, name: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(f"{name} must be an object")
    for k in value.keys():
        if not isinstance(k, str):
            raise ValueError(f"{name} keys must be strings")
    return value


@dataclass(frozen=True)
class SignedInstructionEnvelope:
    """Parsed instruction plus the identity fields the shell needs."""

    params: InstructionParams
    signer: str
    nonce: int
    asset_id: Optional[str] = None
    signature: Optional[str] = None


def parse_instruction(raw: Mapping[str, Any], *, max_string_bytes: int = 4096) -> SignedInstructionEnvelope:
    """
    Parse an instruction envelope.

    String args are bounded by `max_string_bytes` only; the program's own
    length rules (name, symbol, uri) are applied by the engine so that they
    surface as program error codes.

    Raises:
        ValueError: If the envelope is malformed.
    """
    if not isinstance(raw, Mapping):
        raise ValueError(f"instruction must be an object, got {type(raw)}")
    unknown = sorted(k for k in raw.keys() if k not in _ENVELOPE_KEYS)
    if unknown:
        raise ValueError(f"unknown envelope fields: {unknown}")

    program = _require_str(raw.get("program"), name="program")
    if program != PROGRAM_NAME:
        raise ValueError(f"program must be {PROGRAM_NAME!r}, got {program!r}")
    version = _require_int(raw.get("version"), name="version")
    if version != ENVELOPE_VERSION:
        raise ValueError(f"unsupported envelope version: {version}")

    kind_s = _require_str(raw.get("instruction"), name="instruction")
    try:
        kind = Instruction(kind_s)
    except ValueError as exc:
        raise ValueError(f"unknown instruction: {kind_s}") from exc

    signer = canonical_hex_fixed_allow_0x(_require_str(raw.get("signer"), name="signer"), nbytes=48, name="signer")
    nonce = _require_int(raw.get("nonce"), name="nonce", non_negative=True)

    asset_raw = raw.get("asset_id")
    asset_id: Optional[str] = None
    if asset_raw is not None:
        asset_id = canonical_hex_fixed_allow_0x(
            _require_str(asset_raw, name="asset_id"), nbytes=32, name="asset_id"
        )
        if asset_id == NATIVE_ASSET:
            raise ValueError("asset_id must not be the settlement currency")
    if kind in _NEEDS_ASSET and asset_id is None:
        raise ValueError(f"{kind.value} requires asset_id")
    if kind not in _NEEDS_ASSET and asset_id is not None:
        raise ValueError(f"{kind.value} does not take an asset_id")

    args = _require_dict_str_keys(raw.get("args", {}), name="args")
    arg_fields = _ARG_FIELDS[kind]
    extra = sorted(set(args) - set(arg_fields))
    if extra:
        raise ValueError(f"unknown args for {kind.value}: {extra}")
    missing = sorted(set(arg_fields) - set(args))
    if missing:
        raise ValueError(f"missing args for {kind.value}: {missing}")

    values: Dict[str, Any] = {}
    for arg_name, field_name in arg_fields.items():
        value = args[arg_name]
        if field_name in _STR_FIELDS:
            values[field_name] = _require_str(
                value, name=f"args.{arg_name}", non_empty=False, max_len=max_string_bytes
            )
        else:
            values[field_name] = _require_int(value, name=f"args.{arg_name}", non_negative=True)

    signature = raw.get("signature")
    if signature is not None:
        signature = canonical_hex_fixed_allow_0x(
            _require_str(signature, name="signature"), nbytes=96, name="signature"
        )

    return SignedInstructionEnvelope(
        params=InstructionParams(instruction=kind, **values),
        signer=signer,
        nonce=nonce,
        asset_id=asset_id,
        signature=signature,
    )


def create_instruction_operation(envelope: SignedInstructionEnvelope) -> Dict[str, Any]:
    """Inverse of `parse_instruction`."""
    kind = envelope.params.instruction
    args = {arg_name: getattr(envelope.params, field_name) for arg_name, field_name in _ARG_FIELDS[kind].items()}
    op: Dict[str, Any] = {
        "program": PROGRAM_NAME,
        "version": ENVELOPE_VERSION,
        "instruction": kind.value,
        "signer": envelope.signer,
        "asset_id": envelope.asset_id,
        "nonce": envelope.nonce,
        "args": args,
    }
    if envelope.signature is not None:
        op["signature"] = envelope.signature
    return op


def instruction_signing_bytes(envelope: SignedInstructionEnvelope) -> bytes:
    """Canonical payload covered by the signature (the envelope minus `signature`)."""
    op = create_instruction_operation(envelope)
    op.pop("signature", None)
    return canonical_json_bytes(op)
