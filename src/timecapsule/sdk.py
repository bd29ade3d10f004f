# src/timecapsule/sdk.py
from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from timecapsule.config import CapsuleConfig, load_capsule_config
from timecapsule.crypto.engine import EncryptionEngine
from timecapsule.errors import CapsuleError, CapsuleSdkError
from timecapsule.ledger.client import LedgerReader, SuiJsonRpcLedger
from timecapsule.logging_util import log_event
from timecapsule.models import (
    Capsule,
    CapsulePage,
    CapsuleStatus,
    ContentStats,
    EncryptedPayload,
    StoredCapsuleContent,
    UnlockResult,
)
from timecapsule.query.capsules import DEFAULT_PAGE_LIMIT, CapsuleQuery
from timecapsule.storage.base import ContentStore
from timecapsule.storage.envelope import pack_envelope
from timecapsule.storage.kubo import KuboContentStore
from timecapsule.storage.pinata import PinataContentStore
from timecapsule.storage.retry import RetryPolicy
from timecapsule.unlock import UnlockOrchestrator

log = logging.getLogger("timecapsule.sdk")


def _now_ms() -> int:
    return int(time.time() * 1000)


@contextmanager
def _boundary(op: str) -> Iterator[None]:
    try:
        yield
    except Exception as e:
        err = CapsuleSdkError.wrap(e)
        log_event(log, "sdk_error", level=logging.WARNING, op=op, kind=err.kind, message=err.message)
        raise err from e


def build_content_store(cfg: CapsuleConfig) -> ContentStore:
    s = cfg.storage
    retry = RetryPolicy(
        max_attempts=s.retry.max_attempts,
        backoff_base_ms=s.retry.backoff_base_ms,
        backoff_cap_ms=s.retry.backoff_cap_ms,
    )
    if s.backend == "pinata":
        return PinataContentStore(
            api_base=s.pinata_api_base,
            gateway=s.pinata_gateway,
            jwt=s.pinata_jwt,
            api_key=s.pinata_api_key,
            api_secret=s.pinata_api_secret,
            timeout_s=s.timeout_s,
            retry=retry,
        )
    return KuboContentStore(s.ipfs_api_base, timeout_s=s.timeout_s, retry=retry)


class CapsuleSdk:
    """Client handle exposed to UI code.

    Build it once and pass it around; it owns its HTTP clients and holds no
    per-call state. Every error leaving a method is a CapsuleSdkError.
    """

    def __init__(
        self,
        *,
        ledger: LedgerReader,
        store: ContentStore,
        engine: Optional[EncryptionEngine] = None,
        package_id: str = "0x0",
        clock_ms: Callable[[], int] = _now_ms,
    ) -> None:
        self.ledger = ledger
        self.store = store
        self.engine = engine or EncryptionEngine()
        self._clock_ms = clock_ms
        self.query = CapsuleQuery(ledger, package_id=package_id, clock_ms=clock_ms)
        self.unlocker = UnlockOrchestrator(store, self.engine, clock_ms=clock_ms)

    @classmethod
    def from_config(cls, cfg: Optional[CapsuleConfig] = None) -> "CapsuleSdk":
        with _boundary("from_config"):
            cfg = cfg or load_capsule_config()
            ledger = SuiJsonRpcLedger(cfg.ledger.resolved_rpc_url(), timeout_s=cfg.ledger.timeout_s)
            return cls(ledger=ledger, store=build_content_store(cfg), package_id=cfg.ledger.package_id)

    async def __aenter__(self) -> "CapsuleSdk":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.store.aclose()
        closer = getattr(self.ledger, "aclose", None)
        if closer is not None:
            await closer()

    # ----------------------------
    # Encryption
    # ----------------------------

    async def encrypt_content_with_wallet(
        self,
        content: bytes,
        owner_identity: str,
        capsule_id: str,
        unlock_time_ms: int,
    ) -> EncryptedPayload:
        with _boundary("encrypt"):
            return self.engine.encrypt(content, owner_identity, capsule_id, unlock_time_ms)

    async def decrypt_content_with_wallet(
        self,
        ciphertext: bytes,
        nonce: bytes,
        owner_identity: str,
        capsule_id: str,
        unlock_time_ms: int,
        salt: bytes,
    ) -> Dict[str, bytes]:
        with _boundary("decrypt"):
            content = self.engine.decrypt(ciphertext, nonce, owner_identity, capsule_id, unlock_time_ms, salt)
            return {"content": content}

    async def store_capsule_content(
        self,
        content: bytes,
        owner_identity: str,
        capsule_id: str,
        unlock_time_ms: int,
        *,
        content_type: str = "application/octet-stream",
    ) -> StoredCapsuleContent:
        """Encrypt, wrap in an envelope and upload.

        The returned `cid` and `content_hash` are what the ledger object
        should record.
        """
        with _boundary("store"):
            payload = self.engine.encrypt(content, owner_identity, capsule_id, unlock_time_ms)
            meta_ts = self._clock_ms()
            blob = pack_envelope(
                payload,
                content_type=content_type,
                original_size=len(content),
                timestamp_ms=meta_ts,
            )
            up = await self.store.upload(blob)
            return StoredCapsuleContent(
                cid=up.cid,
                content_hash=up.hash,
                size=up.size,
                payload=payload,
                metadata={"contentType": content_type, "originalSize": len(content), "timestamp": meta_ts},
            )

    # ----------------------------
    # Queries
    # ----------------------------

    async def get_capsules_by_owner(
        self,
        owner: str,
        *,
        limit: int = DEFAULT_PAGE_LIMIT,
        cursor: Optional[str] = None,
        show_content: bool = True,
    ) -> CapsulePage:
        with _boundary("get_capsules_by_owner"):
            return await self.query.get_by_owner(owner, limit=limit, cursor=cursor, show_content=show_content)

    async def get_all_capsules_by_owner(self, owner: str) -> List[Capsule]:
        with _boundary("get_all_capsules_by_owner"):
            return await self.query.get_all_by_owner(owner)

    async def get_capsule_by_id(self, capsule_id: str) -> Capsule:
        with _boundary("get_capsule_by_id"):
            return await self.query.get_by_id(capsule_id)

    async def get_capsules_by_ids(self, capsule_ids: Sequence[str]) -> List[Optional[Capsule]]:
        with _boundary("get_capsules_by_ids"):
            return await self.query.get_by_ids(capsule_ids)

    def get_capsule_status(self, capsule: Capsule, now_ms: Optional[int] = None) -> CapsuleStatus:
        with _boundary("get_capsule_status"):
            return self.query.status(capsule, now_ms)

    async def get_capsules_by_owner_with_status(
        self,
        owner: str,
        *,
        limit: int = DEFAULT_PAGE_LIMIT,
        cursor: Optional[str] = None,
    ) -> Tuple[CapsulePage, List[Tuple[Capsule, CapsuleStatus]]]:
        with _boundary("get_capsules_by_owner_with_status"):
            return await self.query.get_by_owner_with_status(owner, limit=limit, cursor=cursor)

    # ----------------------------
    # Unlock / storage probes
    # ----------------------------

    async def unlock(self, capsule: Capsule, caller_identity: str) -> UnlockResult:
        with _boundary("unlock"):
            return await self.unlocker.unlock(capsule, caller_identity)

    async def unlock_by_id(self, capsule_id: str, caller_identity: str) -> UnlockResult:
        with _boundary("unlock_by_id"):
            capsule = await self.query.get_by_id(capsule_id)
            return await self.unlocker.unlock(capsule, caller_identity)

    async def verify_content_integrity(self, cid: str, expected_hash: bytes) -> bool:
        return await self.store.verify_content_integrity(cid, expected_hash)

    async def get_content_info(self, cid: str) -> Dict[str, object]:
        """Existence probe plus size; never raises."""
        if not await self.store.content_exists(cid):
            return {"exists": False}
        try:
            stats: ContentStats = await self.store.get_content_stats(cid)
        except CapsuleError:
            return {"exists": False}
        return {"exists": True, "size": stats.size}
