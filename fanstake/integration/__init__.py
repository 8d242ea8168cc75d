"""
Integration layer: envelopes, configuration, snapshots and the execution shell
"""

from .config import EngineConfig, config_from_env, load_config
from .operations import (
    SignedInstructionEnvelope,
    create_instruction_operation,
    instruction_signing_bytes,
    parse_instruction,
)
from .program_engine import ProgramRuntime, ProgramTxResult, apply_instruction
from .snapshot import ProgramSnapshot, snapshot_from_state, state_from_snapshot

__all__ = [
    "EngineConfig",
    "config_from_env",
    "load_config",
    "SignedInstructionEnvelope",
    "create_instruction_operation",
    "instruction_signing_bytes",
    "parse_instruction",
    "ProgramRuntime",
    "ProgramTxResult",
    "apply_instruction",
    "ProgramSnapshot",
    "snapshot_from_state",
    "state_from_snapshot",
]
