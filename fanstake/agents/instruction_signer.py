"""
Instruction creation and signing for clients.
"""

import hashlib
from typing import Any, Dict, Optional

from py_ecc.bls import G2Basic

from ..core.types import Instruction
from ..integration.operations import ENVELOPE_VERSION, PROGRAM_NAME, instruction_signing_bytes, parse_instruction
from ..integration.program_engine import signing_message_hash
from ..state.canonical import domain_sep_bytes, encode_bytes, hex_to_bytes_fixed


def pubkey_from_secret(secret_key: int) -> str:
    """48-byte compressed BLS12-381 public key, 0x-prefixed."""
    return "0x" + G2Basic.SkToPk(secret_key).hex()


def keygen(seed: bytes) -> int:
    """Derive a BLS secret key from at least 32 bytes of seed material."""
    if len(seed) < 32:
        raise ValueError("seed must be at least 32 bytes")
    return G2Basic.KeyGen(seed)


def new_asset_id(creator_pubkey: str, salt: bytes) -> str:
    """
    Fresh asset id for a creator launch.

    Formula: H(domain_sep("asset_id") || len||creator || len||salt)
    """
    creator_b = hex_to_bytes_fixed(creator_pubkey, nbytes=48, name="creator_pubkey")
    payload = domain_sep_bytes("asset_id") + encode_bytes(creator_b) + encode_bytes(salt)
    return "0x" + hashlib.sha256(payload).hexdigest()


def _instruction(
    kind: Instruction,
    signer: str,
    args: Dict[str, Any],
    *,
    asset_id: Optional[str] = None,
    nonce: int = 0,
) -> Dict[str, Any]:
    return {
        "program": PROGRAM_NAME,
        "version": ENVELOPE_VERSION,
        "instruction": kind.value,
        "signer": signer,
        "asset_id": asset_id,
        "nonce": nonce,
        "args": args,
    }


def create_initialize(signer: str, fee_bps: int, *, nonce: int = 0) -> Dict[str, Any]:
    return _instruction(Instruction.INITIALIZE, signer, {"fee_bps": fee_bps}, nonce=nonce)


def create_artist_token(
    signer: str,
    asset_id: str,
    name: str,
    symbol: str,
    uri: str,
    creator_share_bps: int,
    *,
    nonce: int = 0,
) -> Dict[str, Any]:
    args = {"name": name, "symbol": symbol, "uri": uri, "creator_share_bps": creator_share_bps}
    return _instruction(Instruction.CREATE_ARTIST_TOKEN, signer, args, asset_id=asset_id, nonce=nonce)


def create_claim_artist_share(signer: str, asset_id: str, *, nonce: int = 0) -> Dict[str, Any]:
    return _instruction(Instruction.CLAIM_ARTIST_SHARE, signer, {}, asset_id=asset_id, nonce=nonce)


def create_update_artist_token(signer: str, asset_id: str, new_uri: str, *, nonce: int = 0) -> Dict[str, Any]:
    return _instruction(Instruction.UPDATE_ARTIST_TOKEN, signer, {"new_uri": new_uri}, asset_id=asset_id, nonce=nonce)


def create_buy(signer: str, asset_id: str, base_in: int, min_asset_out: int = 0, *, nonce: int = 0) -> Dict[str, Any]:
    args = {"base_in": base_in, "min_asset_out": min_asset_out}
    return _instruction(Instruction.BUY, signer, args, asset_id=asset_id, nonce=nonce)


def create_sell(signer: str, asset_id: str, asset_in: int, min_base_out: int = 0, *, nonce: int = 0) -> Dict[str, Any]:
    args = {"asset_in": asset_in, "min_base_out": min_base_out}
    return _instruction(Instruction.SELL, signer, args, asset_id=asset_id, nonce=nonce)


def sign_instruction(op: Dict[str, Any], secret_key: int, *, chain_id: str) -> Dict[str, Any]:
    """
    Return a copy of `op` carrying a BLS12-381 signature.

    The signed digest is bound to `chain_id`, so a signature is only valid on
    one deployment.
    """
    unsigned = dict(op)
    unsigned.pop("signature", None)
    envelope = parse_instruction(unsigned)
    if envelope.signer != pubkey_from_secret(secret_key):
        raise ValueError("secret key does not match the instruction signer")
    msg_hash = signing_message_hash(instruction_signing_bytes(envelope), chain_id=chain_id)
    signed = dict(op)
    signed["signature"] = "0x" + G2Basic.Sign(secret_key, msg_hash).hex()
    return signed
