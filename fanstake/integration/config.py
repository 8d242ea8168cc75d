"""
Engine configuration.

Configuration is a frozen dataclass. It can be built directly, loaded from a
YAML mapping, or read from `FANSTAKE_*` environment variables. Unknown keys
are rejected so that a typo never silently falls back to a default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from ..core.custody import DEFAULT_PROGRAM_ID
from ..state.canonical import canonical_hex_fixed_allow_0x


ENV_PREFIX = "FANSTAKE_"


@dataclass(frozen=True)
class EngineConfig:
    # Program identity: every derived address is bound to it.
    program_id: str = DEFAULT_PROGRAM_ID

    # Signature replay protection: signatures are bound to one deployment.
    chain_id: str = "fanstake-local"

    # If set, only this pubkey may run `initialize`.
    deployer: Optional[str] = None

    # If False, instructions are accepted without a BLS signature (offline tooling).
    require_signatures: bool = True

    # DoS limits (applied before hashing/signature verification).
    max_instruction_bytes: int = 16_000
    max_string_field_bytes: int = 512

    def __post_init__(self) -> None:
        # Stored canonical so they compare equal to parsed envelope fields.
        object.__setattr__(
            self, "program_id", canonical_hex_fixed_allow_0x(self.program_id, nbytes=32, name="program_id")
        )
        if not isinstance(self.chain_id, str) or not self.chain_id:
            raise ValueError("chain_id must be a non-empty string")
        if self.deployer is not None:
            if not isinstance(self.deployer, str):
                raise ValueError("deployer must be a string or None")
            object.__setattr__(
                self, "deployer", canonical_hex_fixed_allow_0x(self.deployer, nbytes=48, name="deployer")
            )
        if not isinstance(self.require_signatures, bool):
            raise ValueError("require_signatures must be a bool")
        for name in ("max_instruction_bytes", "max_string_field_bytes"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise ValueError(f"{name} must be a positive int")


_FIELD_NAMES = frozenset(f.name for f in fields(EngineConfig))


def config_from_mapping(data: Mapping[str, Any], *, base: Optional[EngineConfig] = None) -> EngineConfig:
    if not isinstance(data, Mapping):
        raise TypeError("config must be a mapping")
    unknown = sorted(set(data) - _FIELD_NAMES)
    if unknown:
        raise ValueError(f"unknown config keys: {', '.join(unknown)}")
    return replace(base or EngineConfig(), **dict(data))


def load_config(path: str | Path) -> EngineConfig:
    """Load an `EngineConfig` from a YAML file; an empty file yields the defaults."""
    obj = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    if obj is None:
        return EngineConfig()
    if not isinstance(obj, dict):
        raise TypeError("config YAML must be a mapping")
    return config_from_mapping(obj)


def _parse_bool(raw: str, *, name: str) -> bool:
    v = raw.strip().lower()
    if v in ("1", "true", "yes", "on"):
        return True
    if v in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _parse_int(raw: str, *, name: str) -> int:
    try:
        return int(raw.strip(), 10)
    except ValueError as exc:
        raise ValueError(f"{name} must be an int, got {raw!r}") from exc


def config_from_env(
    environ: Optional[Mapping[str, str]] = None,
    *,
    base: Optional[EngineConfig] = None,
) -> EngineConfig:
    """
    Overlay `FANSTAKE_*` environment variables on `base` (or the defaults).

    FANSTAKE_PROGRAM_ID, FANSTAKE_CHAIN_ID, FANSTAKE_DEPLOYER,
    FANSTAKE_REQUIRE_SIGNATURES, FANSTAKE_MAX_INSTRUCTION_BYTES,
    FANSTAKE_MAX_STRING_FIELD_BYTES.
    """
    env = os.environ if environ is None else environ
    overrides: dict[str, Any] = {}
    for key, raw in env.items():
        if not key.startswith(ENV_PREFIX):
            continue
        name = key[len(ENV_PREFIX):].lower()
        if name not in _FIELD_NAMES:
            raise ValueError(f"unknown config variable: {key}")
        if name == "require_signatures":
            overrides[name] = _parse_bool(raw, name=key)
        elif name.startswith("max_"):
            overrides[name] = _parse_int(raw, name=key)
        elif name == "deployer":
            overrides[name] = raw or None
        else:
            overrides[name] = raw
    return config_from_mapping(overrides, base=base)
