# src/timecapsule/unlock.py
from __future__ import annotations

import logging
import time
from typing import Callable

from timecapsule.crypto.engine import EncryptionEngine
from timecapsule.crypto.hashing import verify_content_hash
from timecapsule.errors import AuthorizationError, HashMismatchError, PreconditionError
from timecapsule.logging_util import log_event
from timecapsule.models import Capsule, TimeLock, UnlockResult
from timecapsule.query.status import compute_status
from timecapsule.storage.base import ContentStore
from timecapsule.storage.envelope import unpack_envelope
from timecapsule.util.sniff import OCTET_STREAM, sniff_content_type

log = logging.getLogger("timecapsule.unlock")


def _now_ms() -> int:
    return int(time.time() * 1000)


def unlock_timestamp_for(capsule: Capsule) -> int:
    """Timestamp bound into the capsule key.

    TimeLock capsules use their unlock time; other conditions have none and
    bind 0.
    """
    cond = capsule.unlock_condition
    if isinstance(cond, TimeLock):
        return int(cond.unlock_time_ms)
    return 0


class UnlockOrchestrator:
    """Owner check, condition check, download, decrypt.

    Reads only; marking the capsule unlocked on the ledger is a separate
    transaction.
    """

    def __init__(
        self,
        store: ContentStore,
        engine: EncryptionEngine,
        *,
        clock_ms: Callable[[], int] = _now_ms,
    ) -> None:
        self.store = store
        self.engine = engine
        self._clock_ms = clock_ms

    async def unlock(self, capsule: Capsule, caller_identity: str) -> UnlockResult:
        if (caller_identity or "").strip() != capsule.owner:
            log_event(log, "unlock_denied", level=logging.WARNING, capsule_id=capsule.id, reason="not_owner")
            raise AuthorizationError("caller_not_owner", {"capsule_id": capsule.id})

        status = compute_status(capsule, self._clock_ms())
        if not status.can_unlock:
            log_event(log, "unlock_denied", capsule_id=capsule.id, reason="condition_unmet")
            raise PreconditionError(status.status_message, {"capsule_id": capsule.id})

        downloaded = await self.store.download(capsule.cid, capsule.content_hash or None)
        envelope = unpack_envelope(downloaded.content)
        payload = envelope.payload

        plaintext = self.engine.decrypt(
            payload.ciphertext,
            payload.nonce,
            capsule.owner,
            capsule.id,
            unlock_timestamp_for(capsule),
            payload.salt,
        )

        if payload.content_hash and not verify_content_hash(plaintext, payload.content_hash):
            raise HashMismatchError("plaintext_hash_mismatch", {"capsule_id": capsule.id})

        declared = envelope.content_type
        content_type = declared if declared and declared != OCTET_STREAM else sniff_content_type(plaintext)

        log_event(log, "capsule_unlocked", capsule_id=capsule.id, cid=capsule.cid, size=len(plaintext))
        return UnlockResult(capsule_id=capsule.id, content=plaintext, content_type=content_type, cid=capsule.cid)
