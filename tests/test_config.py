from __future__ import annotations

import pytest

from timecapsule.config import LedgerConfig, load_capsule_config
from timecapsule.errors import ConfigError
from timecapsule.sdk import build_content_store
from timecapsule.storage.kubo import KuboContentStore
from timecapsule.storage.pinata import PinataContentStore

_VARS = [
    "TIMECAPSULE_STORAGE_BACKEND",
    "TIMECAPSULE_MAX_ATTEMPTS",
    "TIMECAPSULE_BACKOFF_BASE_MS",
    "TIMECAPSULE_BACKOFF_CAP_MS",
    "TIMECAPSULE_IPFS_API_BASE",
    "TIMECAPSULE_PINATA_JWT",
    "TIMECAPSULE_NETWORK",
    "TIMECAPSULE_RPC_URL",
    "TIMECAPSULE_PACKAGE_ID",
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    cfg = load_capsule_config()
    assert cfg.storage.backend == "kubo"
    assert cfg.storage.retry.max_attempts == 3
    assert cfg.storage.retry.backoff_base_ms == 1000
    assert cfg.storage.retry.backoff_cap_ms is None
    assert cfg.ledger.resolved_rpc_url() == "https://fullnode.devnet.sui.io:443"


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TIMECAPSULE_STORAGE_BACKEND", "Pinata")
    monkeypatch.setenv("TIMECAPSULE_PINATA_JWT", "tok")
    monkeypatch.setenv("TIMECAPSULE_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("TIMECAPSULE_BACKOFF_CAP_MS", "4000")
    monkeypatch.setenv("TIMECAPSULE_RPC_URL", "http://127.0.0.1:9000/")
    monkeypatch.setenv("TIMECAPSULE_PACKAGE_ID", "0xpkg")

    cfg = load_capsule_config()
    assert cfg.storage.backend == "pinata"
    assert cfg.storage.retry.max_attempts == 5
    assert cfg.storage.retry.backoff_cap_ms == 4000
    assert cfg.ledger.resolved_rpc_url() == "http://127.0.0.1:9000"
    assert cfg.ledger.package_id == "0xpkg"

    store = build_content_store(cfg)
    assert isinstance(store, PinataContentStore)
    assert store.retry.max_attempts == 5


def test_default_backend_builds_kubo() -> None:
    store = build_content_store(load_capsule_config())
    assert isinstance(store, KuboContentStore)
    assert store.api_base == "http://127.0.0.1:5001"


@pytest.mark.parametrize(
    "name,value",
    [
        ("TIMECAPSULE_STORAGE_BACKEND", "s3"),
        ("TIMECAPSULE_MAX_ATTEMPTS", "three"),
        ("TIMECAPSULE_MAX_ATTEMPTS", "0"),
    ],
)
def test_bad_values_raise(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigError):
        load_capsule_config()


def test_unknown_network() -> None:
    with pytest.raises(ConfigError):
        LedgerConfig(network="moonnet").resolved_rpc_url()
