# src/timecapsule/config.py
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

from timecapsule.errors import ConfigError


_SUI_FULLNODES = {
    "mainnet": "https://fullnode.mainnet.sui.io:443",
    "testnet": "https://fullnode.testnet.sui.io:443",
    "devnet": "https://fullnode.devnet.sui.io:443",
    "localnet": "http://127.0.0.1:9000",
}


def _env_str(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _env_int(name: str, default: int) -> int:
    v = _env_str(name)
    if not v:
        return int(default)
    try:
        return int(v)
    except ValueError as e:
        raise ConfigError("bad_int", {"name": name, "value": v}) from e


def _env_float(name: str, default: float) -> float:
    v = _env_str(name)
    if not v:
        return float(default)
    try:
        return float(v)
    except ValueError as e:
        raise ConfigError("bad_float", {"name": name, "value": v}) from e


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 3
    backoff_base_ms: int = 1000
    backoff_cap_ms: Optional[int] = None


@dataclass(frozen=True)
class StorageConfig:
    backend: str = "kubo"  # "kubo" | "pinata"
    ipfs_api_base: str = "http://127.0.0.1:5001"
    pinata_api_base: str = "https://api.pinata.cloud"
    pinata_gateway: str = "https://gateway.pinata.cloud"
    pinata_jwt: str = ""
    pinata_api_key: str = ""
    pinata_api_secret: str = ""
    timeout_s: float = 30.0
    retry: RetryConfig = field(default_factory=RetryConfig)


@dataclass(frozen=True)
class LedgerConfig:
    network: str = "devnet"
    rpc_url: str = ""
    package_id: str = "0x0"
    timeout_s: float = 30.0

    def resolved_rpc_url(self) -> str:
        if self.rpc_url:
            return self.rpc_url.rstrip("/")
        url = _SUI_FULLNODES.get(self.network)
        if not url:
            raise ConfigError("unknown_network", {"network": self.network})
        return url


@dataclass(frozen=True)
class CapsuleConfig:
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)


def load_capsule_config() -> CapsuleConfig:
    """Read TIMECAPSULE_* variables. Unset values fall back to dev defaults."""
    backend = _env_str("TIMECAPSULE_STORAGE_BACKEND", "kubo").lower()
    if backend not in {"kubo", "pinata"}:
        raise ConfigError("unknown_storage_backend", {"backend": backend})

    cap_ms = _env_int("TIMECAPSULE_BACKOFF_CAP_MS", 0)
    retry = RetryConfig(
        max_attempts=_env_int("TIMECAPSULE_MAX_ATTEMPTS", 3),
        backoff_base_ms=_env_int("TIMECAPSULE_BACKOFF_BASE_MS", 1000),
        backoff_cap_ms=cap_ms if cap_ms > 0 else None,
    )
    if retry.max_attempts < 1:
        raise ConfigError("bad_max_attempts", {"max_attempts": retry.max_attempts})

    storage = StorageConfig(
        backend=backend,
        ipfs_api_base=_env_str("TIMECAPSULE_IPFS_API_BASE", "http://127.0.0.1:5001").rstrip("/"),
        pinata_api_base=_env_str("TIMECAPSULE_PINATA_API_BASE", "https://api.pinata.cloud").rstrip("/"),
        pinata_gateway=_env_str("TIMECAPSULE_PINATA_GATEWAY", "https://gateway.pinata.cloud").rstrip("/"),
        pinata_jwt=_env_str("TIMECAPSULE_PINATA_JWT"),
        pinata_api_key=_env_str("TIMECAPSULE_PINATA_API_KEY"),
        pinata_api_secret=_env_str("TIMECAPSULE_PINATA_API_SECRET"),
        timeout_s=_env_float("TIMECAPSULE_STORAGE_TIMEOUT_S", 30.0),
        retry=retry,
    )

    ledger = LedgerConfig(
        network=_env_str("TIMECAPSULE_NETWORK", "devnet").lower(),
        rpc_url=_env_str("TIMECAPSULE_RPC_URL"),
        package_id=_env_str("TIMECAPSULE_PACKAGE_ID", "0x0"),
        timeout_s=_env_float("TIMECAPSULE_LEDGER_TIMEOUT_S", 30.0),
    )
    return CapsuleConfig(ledger=ledger, storage=storage)
