# [TESTER] v1

from __future__ import annotations

import pytest

from fanstake.core.types import PlatformRegistry, VestingSchedule
from fanstake.errors import AccountError, ErrorCode
from fanstake.state.accounts import AccountStore

ADDR = "0x" + "11" * 32


def _registry(fee_bps: int = 100) -> PlatformRegistry:
    return PlatformRegistry(admin="admin", fee_bps=fee_bps, fee_destination="0x" + "22" * 32)


def test_create_then_load() -> None:
    store = AccountStore()
    store.create(ADDR, _registry())
    assert store.exists(ADDR)
    assert store.load(ADDR, PlatformRegistry) == _registry()
    assert len(store) == 1


def test_create_never_overwrites() -> None:
    store = AccountStore()
    store.create(ADDR, _registry())
    with pytest.raises(AccountError) as exc_info:
        store.create(ADDR, _registry(5))
    assert exc_info.value.code == ErrorCode.ACCOUNT_ALREADY_EXISTS
    assert store.load(ADDR, PlatformRegistry).fee_bps == 100


def test_missing_account() -> None:
    store = AccountStore()
    assert store.get(ADDR, PlatformRegistry) is None
    with pytest.raises(AccountError) as exc_info:
        store.load(ADDR, PlatformRegistry)
    assert exc_info.value.code == ErrorCode.ACCOUNT_NOT_FOUND
    with pytest.raises(AccountError):
        store.store(ADDR, _registry())


def test_type_confusion_rejected() -> None:
    store = AccountStore()
    store.create(ADDR, _registry())
    with pytest.raises(AccountError):
        store.get(ADDR, VestingSchedule)
    with pytest.raises(AccountError):
        store.store(ADDR, VestingSchedule(asset_id="a", creator="c", unlock_at=1))


def test_store_replaces_record() -> None:
    store = AccountStore()
    store.create(ADDR, _registry())
    store.store(ADDR, _registry(7))
    assert store.load(ADDR, PlatformRegistry).fee_bps == 7


def test_copy_is_independent() -> None:
    store = AccountStore()
    store.create(ADDR, _registry())
    c = store.copy()
    c.store(ADDR, _registry(9))
    c.create("0x" + "33" * 32, _registry())
    assert store.load(ADDR, PlatformRegistry).fee_bps == 100
    assert len(store) == 1
