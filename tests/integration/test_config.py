# [TESTER] v1

from __future__ import annotations

import pytest

from fanstake.core.custody import DEFAULT_PROGRAM_ID
from fanstake.integration.config import EngineConfig, config_from_env, load_config


def test_defaults() -> None:
    c = EngineConfig()
    assert c.program_id == DEFAULT_PROGRAM_ID
    assert c.require_signatures is True
    assert c.deployer is None


def test_load_yaml(tmp_path) -> None:
    path = tmp_path / "fanstake.yaml"
    path.write_text(
        "chain_id: fanstake-devnet\n"
        "require_signatures: false\n"
        "max_instruction_bytes: 4096\n"
        "deployer: '0x" + "0a" * 48 + "'\n",
        encoding="utf-8",
    )
    c = load_config(path)
    assert c.chain_id == "fanstake-devnet"
    assert c.require_signatures is False
    assert c.max_instruction_bytes == 4096
    assert c.deployer == "0x" + "0a" * 48


def test_empty_yaml_gives_defaults(tmp_path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert load_config(path) == EngineConfig()


def test_unknown_yaml_key_rejected(tmp_path) -> None:
    path = tmp_path / "typo.yaml"
    path.write_text("chainid: x\n", encoding="utf-8")
    with pytest.raises(ValueError, match="unknown config keys"):
        load_config(path)


def test_non_mapping_yaml_rejected(tmp_path) -> None:
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(TypeError):
        load_config(path)


def test_env_overrides() -> None:
    env = {
        "FANSTAKE_CHAIN_ID": "fanstake-env",
        "FANSTAKE_REQUIRE_SIGNATURES": "0",
        "FANSTAKE_MAX_STRING_FIELD_BYTES": "256",
        "UNRELATED": "ignored",
    }
    c = config_from_env(env)
    assert c.chain_id == "fanstake-env"
    assert c.require_signatures is False
    assert c.max_string_field_bytes == 256


def test_env_overlays_base() -> None:
    base = EngineConfig(chain_id="from-file", max_instruction_bytes=999)
    c = config_from_env({"FANSTAKE_CHAIN_ID": "from-env"}, base=base)
    assert c.chain_id == "from-env"
    assert c.max_instruction_bytes == 999


@pytest.mark.parametrize(
    "env",
    [
        {"FANSTAKE_CHAINID": "x"},
        {"FANSTAKE_REQUIRE_SIGNATURES": "maybe"},
        {"FANSTAKE_MAX_INSTRUCTION_BYTES": "lots"},
        {"FANSTAKE_MAX_INSTRUCTION_BYTES": "0"},
        {"FANSTAKE_PROGRAM_ID": "0x1234"},
    ],
)
def test_bad_env_rejected(env) -> None:
    with pytest.raises(ValueError):
        config_from_env(env)


def test_hex_fields_stored_lowercase() -> None:
    c = EngineConfig(deployer="0x" + "AB" * 48, program_id=DEFAULT_PROGRAM_ID.upper().replace("0X", "0x"))
    assert c.deployer == "0x" + "ab" * 48
    assert c.program_id == DEFAULT_PROGRAM_ID


def test_short_deployer_rejected() -> None:
    with pytest.raises(ValueError):
        EngineConfig(deployer="0x1234")
