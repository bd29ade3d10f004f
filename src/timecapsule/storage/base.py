# src/timecapsule/storage/base.py
from __future__ import annotations

import logging
from typing import Optional

import httpx

from timecapsule.crypto.hashing import hash_content, verify_content_hash
from timecapsule.errors import CapsuleError, HashMismatchError, StorageError, TransientIOError
from timecapsule.logging_util import log_event
from timecapsule.models import ContentStats, DownloadResult, UploadResult
from timecapsule.storage.retry import RetryPolicy
from timecapsule.util.cid import require_valid_cid

log = logging.getLogger("timecapsule.storage")


def raise_for_status(resp: httpx.Response, *, op: str) -> None:
    """Map an HTTP status to the error taxonomy.

    5xx and 429 are transient; any other non-2xx is terminal.
    """
    status = int(resp.status_code)
    if 200 <= status < 300:
        return
    msg = resp.text.strip()[:300] if resp.content else ""
    details = {"op": op, "status": status, "body": msg}
    if status >= 500 or status == 429:
        raise TransientIOError(f"{op}_failed:http_{status}", details)
    raise StorageError(f"{op}_failed:http_{status}", details)


class ContentStore:
    """Content-addressed upload/download client.

    Subclasses implement `_add`, `_cat` and `_stat` (one HTTP round trip
    each). This class validates CIDs, applies the retry policy, and checks
    hashes. One instance holds one `httpx.AsyncClient` and is safe to share
    between concurrent operations.
    """

    backend = "abstract"

    def __init__(
        self,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout_s: float = 30.0,
        retry: Optional[RetryPolicy] = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_s)
        self.retry = retry or RetryPolicy()

    async def __aenter__(self) -> "ContentStore":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ----------------------------
    # Backend round trips
    # ----------------------------

    async def _add(self, content: bytes) -> UploadResult:
        raise NotImplementedError

    async def _cat(self, cid: str) -> bytes:
        raise NotImplementedError

    async def _stat(self, cid: str) -> ContentStats:
        raise NotImplementedError

    async def _send(self, op: str, request: httpx.Request) -> httpx.Response:
        try:
            resp = await self._client.send(request)
        except httpx.TimeoutException as e:
            raise TransientIOError(f"{op}_failed:timeout", {"op": op}) from e
        except httpx.TransportError as e:
            raise TransientIOError(f"{op}_failed:transport", {"op": op, "error": str(e)}) from e
        raise_for_status(resp, op=op)
        return resp

    # ----------------------------
    # Public operations
    # ----------------------------

    async def upload(self, content: bytes) -> UploadResult:
        """Upload bytes with pinning; `hash` is computed locally over `content`."""
        data = bytes(content)

        async def _attempt() -> UploadResult:
            res = await self._add(data)
            require_valid_cid(res.cid)
            return UploadResult(cid=res.cid, size=res.size or len(data), hash=hash_content(data))

        res = await self.retry.run(_attempt, name="upload")
        log_event(log, "content_uploaded", backend=self.backend, cid=res.cid, size=res.size)
        return res

    async def download(self, cid: str, expected_hash: Optional[bytes] = None) -> DownloadResult:
        c = require_valid_cid(cid)

        async def _attempt() -> bytes:
            return await self._cat(c)

        content = await self.retry.run(_attempt, name="download")
        if expected_hash:
            if not verify_content_hash(content, expected_hash):
                log_event(log, "content_hash_mismatch", level=logging.WARNING, backend=self.backend, cid=c)
                raise HashMismatchError(
                    "content_hash_mismatch",
                    {"cid": c, "expected": bytes(expected_hash).hex(), "actual": hash_content(content).hex()},
                )
        log_event(log, "content_downloaded", backend=self.backend, cid=c, size=len(content))
        return DownloadResult(content=content, size=len(content))

    async def content_exists(self, cid: str) -> bool:
        """Single probe, no retry. Any failure reads as "absent"."""
        try:
            c = require_valid_cid(cid)
            await self._stat(c)
            return True
        except Exception as e:
            log_event(log, "content_probe_failed", level=logging.DEBUG, backend=self.backend, error=repr(e))
            return False

    async def get_content_stats(self, cid: str) -> ContentStats:
        c = require_valid_cid(cid)

        async def _attempt() -> ContentStats:
            return await self._stat(c)

        return await self.retry.run(_attempt, name="stat")

    async def verify_content_integrity(self, cid: str, expected_hash: bytes) -> bool:
        try:
            await self.download(cid, expected_hash)
            return True
        except CapsuleError:
            return False
